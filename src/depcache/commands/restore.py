"""Restore and keys commands.

``depcache restore`` runs :class:`~depcache.restore.RestoreOrchestrator`
against the disk-backed store and prints the step outputs (``cache-hit``,
``matched-key``) on stdout. ``depcache keys`` derives the same keys without
touching the store or the run state, which is handy when debugging why two
runs did not share a cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from depcache.exceptions import DepcacheError
from depcache.output import error, format_response


def _overrides(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def restore_command(
    runtime_version: Optional[str] = typer.Option(
        None, "--runtime-version", "-V", help="Installed runtime version, e.g. 1.21.0."
    ),
    package_manager: Optional[str] = typer.Option(
        None, "--package-manager", help="Package manager registry name."
    ),
    cache_dependency_path: Optional[str] = typer.Option(
        None, "--cache-dependency-path", help="Manifest path or glob (skips discovery)."
    ),
    cache_key_prefix: Optional[str] = typer.Option(
        None, "--cache-key-prefix", help="Namespace prepended to every key."
    ),
    platform: Optional[str] = typer.Option(
        None, "--platform", help="Host OS family (Linux, macOS, Windows)."
    ),
    image_os: Optional[str] = typer.Option(
        None, "--image-os", help="CI image identifier (Linux only)."
    ),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", help="Directory searched for the manifest."
    ),
    state_file: Optional[Path] = typer.Option(
        None, "--state-file", help="Run state file read by the save step."
    ),
    store_dir: Optional[Path] = typer.Option(
        None, "--store-dir", help="Cache store directory."
    ),
) -> None:
    """Restore the dependency cache for the current workspace.

    Resolves the configuration, the package manager's cache directories and
    the manifest hash, then restores the best matching cache entry. A miss
    is not an error: the command succeeds with ``cache-hit=false``.

    Raises:
        typer.Exit: With the error's exit code when the manifest is missing,
            hashes to nothing, or the configuration is invalid.

    Example::

        depcache restore --runtime-version 1.21.0
        depcache restore -V 1.21.0 --cache-key-prefix nightly --json
    """
    from depcache.config import resolve_restore_config, resolve_state_file
    from depcache.hashing import DirectoryMetaHasher, FileContentHasher
    from depcache.package_managers import get_package_manager_info, resolve_cache_paths
    from depcache.restore import RestoreOrchestrator
    from depcache.state import RunState
    from depcache.transport import DiskCacheTransport

    try:
        # Emptied first: a save after a failed restore must not reuse old keys.
        state = RunState.create(resolve_state_file(state_file))
        config = resolve_restore_config(
            _overrides(
                runtime_version=runtime_version,
                package_manager=package_manager,
                cache_dependency_path=cache_dependency_path,
                cache_key_prefix=cache_key_prefix,
                platform=platform,
                image_os=image_os,
                workspace=workspace,
                state_file=state_file,
                store_dir=store_dir,
            )
        )
        manager = resolve_cache_paths(get_package_manager_info(config.package_manager))
        with DiskCacheTransport(config.store_dir) as transport:
            outcome = RestoreOrchestrator(
                config,
                manager,
                manifest_hasher=FileContentHasher(config.workspace),
                build_hasher=DirectoryMetaHasher(),
                transport=transport,
                state=state,
            ).restore()
    except DepcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(
        {
            "cache-hit": outcome.cache_hit,
            "matched-key": outcome.matched_key,
            "exact-match": outcome.hit_exact,
        }
    )


def keys_command(
    runtime_version: Optional[str] = typer.Option(
        None, "--runtime-version", "-V", help="Installed runtime version, e.g. 1.21.0."
    ),
    package_manager: Optional[str] = typer.Option(
        None, "--package-manager", help="Package manager registry name."
    ),
    cache_dependency_path: Optional[str] = typer.Option(
        None, "--cache-dependency-path", help="Manifest path or glob (skips discovery)."
    ),
    cache_key_prefix: Optional[str] = typer.Option(
        None, "--cache-key-prefix", help="Namespace prepended to every key."
    ),
    platform: Optional[str] = typer.Option(
        None, "--platform", help="Host OS family (Linux, macOS, Windows)."
    ),
    image_os: Optional[str] = typer.Option(
        None, "--image-os", help="CI image identifier (Linux only)."
    ),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", help="Directory searched for the manifest."
    ),
) -> None:
    """Print the primary and restore keys a restore would use.

    Does not run the package manager, read the store, or write run state.

    Example::

        depcache keys -V 1.21.0 --platform Linux --image-os ubuntu22
    """
    from depcache.config import resolve_restore_config
    from depcache.exceptions import HashComputationError
    from depcache.hashing import FileContentHasher
    from depcache.keys import KeyBuilder
    from depcache.locator import ManifestLocator
    from depcache.package_managers import get_package_manager_info

    try:
        config = resolve_restore_config(
            _overrides(
                runtime_version=runtime_version,
                package_manager=package_manager,
                cache_dependency_path=cache_dependency_path,
                cache_key_prefix=cache_key_prefix,
                platform=platform,
                image_os=image_os,
                workspace=workspace,
            )
        )
        manager = get_package_manager_info(config.package_manager)
        manifest = ManifestLocator(config.workspace).locate(
            config.cache_dependency_path, manager
        )
        manifest_hash = FileContentHasher(config.workspace).hash([manifest])
        if not manifest_hash:
            raise HashComputationError(
                "Some specified paths were not resolved, unable to cache dependencies."
            )
    except DepcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    keys = KeyBuilder(config.tool_name, config.runtime_name).build(
        platform=config.platform,
        runtime_version=config.runtime_version,
        manifest_hash=manifest_hash,
        prefix=config.cache_key_prefix,
        image_os=config.image_os,
    )
    format_response(
        {
            "primary-key": keys.primary_key,
            "restore-keys": list(keys.restore_keys),
        }
    )
