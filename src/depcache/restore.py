"""The restore step.

:class:`RestoreOrchestrator` walks a fixed sequence of phases::

    INIT -> MANIFEST_RESOLVED -> HASHED -> KEYS_BUILT -> TRANSPORT_INVOKED
         -> HIT_EXACT | HIT_FALLBACK | MISS

Any exception moves it to ``ABORTED`` and propagates unchanged; there is no
degraded restore mode. The base and primary keys are written to the run
state *before* the transport is called, one write each, so a save step can
still act after a transport failure or an interrupted run.

Example::

    from depcache.restore import RestoreOrchestrator

    orchestrator = RestoreOrchestrator(
        config,
        package_manager,
        manifest_hasher=FileContentHasher(config.workspace),
        build_hasher=DirectoryMetaHasher(),
        transport=DiskCacheTransport(config.store_dir),
        state=RunState.create(config.state_file),
    )
    outcome = orchestrator.restore()
"""

from __future__ import annotations

import time
from typing import Optional

from depcache.exceptions import HashComputationError
from depcache.hashing import HashProvider
from depcache.keys import KeyBuilder
from depcache.locator import ManifestLocator
from depcache.models import (
    CacheKeySet,
    OutputKey,
    PackageManagerInfo,
    RestoreConfig,
    RestoreOutcome,
    RestorePhase,
    StateKey,
)
from depcache.output import debug, info
from depcache.state import RunState
from depcache.transport import CacheTransport


class RestoreOrchestrator:
    """Coordinate manifest discovery, hashing, key derivation, and transport.

    Args:
        config: Resolved restore configuration.
        package_manager: Registry entry with ``cache_paths`` resolved.
        manifest_hasher: Hashes the dependency manifest by content.
        build_hasher: Hashes the secondary build-artifact directory.
        transport: Cache store to restore from.
        state: Run state shared with the save step.
        locator: Manifest locator. Defaults to one rooted at
            ``config.workspace``.
        key_builder: Key builder. Defaults to one using ``config.tool_name``
            and ``config.runtime_name``.
    """

    def __init__(
        self,
        config: RestoreConfig,
        package_manager: PackageManagerInfo,
        manifest_hasher: HashProvider,
        build_hasher: HashProvider,
        transport: CacheTransport,
        state: RunState,
        locator: Optional[ManifestLocator] = None,
        key_builder: Optional[KeyBuilder] = None,
    ) -> None:
        self.config = config
        self.package_manager = package_manager
        self.manifest_hasher = manifest_hasher
        self.build_hasher = build_hasher
        self.transport = transport
        self.state = state
        self.locator = locator or ManifestLocator(config.workspace)
        self.key_builder = key_builder or KeyBuilder(config.tool_name, config.runtime_name)
        self.phase = RestorePhase.INIT

    def restore(self) -> RestoreOutcome:
        """Run the restore to a terminal phase.

        Returns:
            The outcome of a completed restore (hit or miss).

        Raises:
            ManifestNotFoundError: Auto-discovery found no manifest.
            HashComputationError: The manifest hashed to nothing.
            Exception: Transport and state-file failures, unchanged.
        """
        try:
            return self._run()
        except BaseException:
            self.phase = RestorePhase.ABORTED
            raise

    def _run(self) -> RestoreOutcome:
        manifest_path = self.locator.locate(
            self.config.cache_dependency_path, self.package_manager
        )
        self.phase = RestorePhase.MANIFEST_RESOLVED

        manifest_hash = self.manifest_hasher.hash([manifest_path])
        if not manifest_hash:
            raise HashComputationError(
                "Some specified paths were not resolved, unable to cache dependencies."
            )
        self.phase = RestorePhase.HASHED

        keys = self.build_keys(manifest_hash)
        self.phase = RestorePhase.KEYS_BUILT

        self.state.save_state(StateKey.PREFIX_BASE_KEY, keys.prefix_base_key)
        self.state.save_state(StateKey.PRIMARY_KEY, keys.primary_key)
        debug(f"primary key is {keys.primary_key}")

        cache_paths = list(self.package_manager.cache_paths)
        start = time.monotonic()
        matched_key = self.transport.restore(
            cache_paths, keys.primary_key, list(keys.restore_keys)
        )
        elapsed_ms = int((time.monotonic() - start) * 1000)
        self.phase = RestorePhase.TRANSPORT_INVOKED
        info(f"Time taken to restore cache: {elapsed_ms}ms")

        if not matched_key:
            self.state.set_output(OutputKey.CACHE_HIT, False)
            info("Cache is not found")
            self.phase = RestorePhase.MISS
            return RestoreOutcome(phase=self.phase, elapsed_ms=elapsed_ms)

        self.state.save_state(StateKey.MATCHED_KEY, matched_key)
        info(f"Cache restored from key: {matched_key}")

        if self.package_manager.has_build_cache:
            build_hash = self.build_hasher.hash([cache_paths[1]])
            debug(f"build hash is {build_hash}")
            self.state.save_state(StateKey.BUILD_HASH, build_hash)

        self.state.set_output(OutputKey.CACHE_HIT, True)
        hit_exact = matched_key == keys.primary_key
        self.phase = RestorePhase.HIT_EXACT if hit_exact else RestorePhase.HIT_FALLBACK
        return RestoreOutcome(
            matched_key=matched_key,
            hit_exact=hit_exact,
            phase=self.phase,
            elapsed_ms=elapsed_ms,
        )

    def build_keys(self, manifest_hash: str) -> CacheKeySet:
        """Derive the key set for *manifest_hash* from the configuration."""
        return self.key_builder.build(
            platform=self.config.platform,
            runtime_version=self.config.runtime_version,
            manifest_hash=manifest_hash,
            prefix=self.config.cache_key_prefix,
            image_os=self.config.image_os,
        )
