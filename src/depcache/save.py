"""The save step.

Runs after the build and reads back the run state written by
:class:`~depcache.restore.RestoreOrchestrator`. It stores the package
manager's cache directories under the primary key unless the restore
already hit that exact key, in which case the store holds the same
dependency set and stored entries cannot be overwritten anyway.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Sequence

from depcache.hashing import HashProvider
from depcache.models import StateKey
from depcache.output import debug, info, warning
from depcache.state import RunState
from depcache.transport import CacheTransport


class SaveResult(str, Enum):
    """How a save step ended."""

    SAVED = "saved"
    EXISTS = "exists"
    SKIPPED_NO_KEY = "skipped_no_key"
    SKIPPED_NO_PATHS = "skipped_no_paths"
    SKIPPED_EXACT_HIT = "skipped_exact_hit"


class SaveStep:
    """Persist cache directories under the primary key recorded by the restore step.

    Args:
        state: Run state loaded from the restore step.
        cache_paths: The package manager's resolved cache directories, in
            the same order the restore step used.
        transport: Cache store to write to.
        build_hasher: Used to report drift of the build cache since restore.
    """

    def __init__(
        self,
        state: RunState,
        cache_paths: Sequence[str],
        transport: CacheTransport,
        build_hasher: HashProvider,
    ) -> None:
        self.state = state
        self.cache_paths = list(cache_paths)
        self.transport = transport
        self.build_hasher = build_hasher

    def run(self) -> SaveResult:
        primary_key = self.state.get_state(StateKey.PRIMARY_KEY)
        if not primary_key:
            warning(
                "Primary key was not generated. Please check the log messages "
                "above for more errors or information"
            )
            return SaveResult.SKIPPED_NO_KEY

        existing = [p for p in self.cache_paths if os.path.exists(p)]
        if not existing:
            warning("There are no cache folders on the disk")
            return SaveResult.SKIPPED_NO_PATHS

        matched_key = self.state.get_state(StateKey.MATCHED_KEY)
        if matched_key == primary_key:
            self._report_build_drift()
            info(f"Cache hit occurred on the primary key {primary_key}, not saving cache.")
            return SaveResult.SKIPPED_EXACT_HIT

        # Pass every path, missing ones included, so archive positions match on restore.
        if not self.transport.save(self.cache_paths, primary_key):
            info(f"Cache entry {primary_key} already exists, not saving cache.")
            return SaveResult.EXISTS

        info(f"Cache saved with the key: {primary_key}")
        return SaveResult.SAVED

    def _report_build_drift(self) -> None:
        recorded = self.state.get_state(StateKey.BUILD_HASH)
        if not recorded or len(self.cache_paths) < 2:
            return
        current = self.build_hasher.hash([self.cache_paths[1]])
        if current != recorded:
            debug(
                f"build cache changed since restore ({recorded} -> {current}); "
                "stored entries are immutable"
            )
