"""Dependency manifest discovery."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from depcache.exceptions import ManifestNotFoundError
from depcache.models import PackageManagerInfo


class ManifestLocator:
    """Resolve the dependency manifest path for a package manager.

    Args:
        workspace: Root directory searched when no explicit path is given.
    """

    def __init__(self, workspace: str | Path) -> None:
        self._workspace = str(workspace)

    def locate(self, explicit_path: Optional[str], info: PackageManagerInfo) -> str:
        """Return the manifest path to hash.

        An explicit path is returned unchanged; it may be a glob and is not
        checked here because hashing fails loudly on no match. Otherwise the
        workspace root is listed once and must contain
        ``info.dependency_file_pattern``.

        Raises:
            ManifestNotFoundError: If auto-discovery finds no manifest, or the
                workspace root cannot be listed.
        """
        if explicit_path:
            return explicit_path

        pattern = info.dependency_file_pattern
        try:
            entries = os.listdir(self._workspace)
        except OSError:
            entries = []
        if pattern not in entries:
            raise ManifestNotFoundError(
                f"Dependencies file is not found in {self._workspace}. "
                f"Supported file pattern: {pattern}"
            )
        return os.path.join(self._workspace, pattern)
