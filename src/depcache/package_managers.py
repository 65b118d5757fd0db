"""Static package-manager registry and cache directory resolution.

Each registry entry is a :class:`~depcache.models.PackageManagerInfo`
naming the manifest file expected in the workspace root and the shell
commands that print the package manager's cache directories. The first
command yields the dependency cache; an optional second one yields the
build-artifact cache whose content is tracked separately as the build hash.
"""

from __future__ import annotations

import shlex
import subprocess
from typing import Callable

from depcache.exceptions import CachePathError, UnknownPackageManagerError
from depcache.models import PackageManagerInfo
from depcache.output import debug

PACKAGE_MANAGERS: dict[str, PackageManagerInfo] = {
    "default": PackageManagerInfo(
        name="default",
        dependency_file_pattern="go.sum",
        cache_folder_commands=("go env GOMODCACHE", "go env GOCACHE"),
    ),
}

Runner = Callable[..., subprocess.CompletedProcess]


def get_package_manager_info(name: str) -> PackageManagerInfo:
    """Look up *name* in :data:`PACKAGE_MANAGERS`.

    Raises:
        UnknownPackageManagerError: If the name is not registered.
    """
    try:
        return PACKAGE_MANAGERS[name]
    except KeyError:
        supported = ", ".join(sorted(PACKAGE_MANAGERS))
        raise UnknownPackageManagerError(
            f"Package manager '{name}' is not supported. Supported: {supported}"
        ) from None


def resolve_cache_paths(
    info: PackageManagerInfo, runner: Runner = subprocess.run
) -> PackageManagerInfo:
    """Run the entry's cache folder commands and return a copy with ``cache_paths`` set.

    Commands are run in order without a shell. Empty output is skipped, so a
    package manager without a build cache simply resolves a single path.

    Args:
        info: Registry entry to resolve.
        runner: ``subprocess.run`` compatible callable, injectable for tests.

    Raises:
        CachePathError: If a command cannot be run or exits non-zero, or if
            no command printed a path.
    """
    paths: list[str] = []
    for command in info.cache_folder_commands:
        try:
            result = runner(
                shlex.split(command),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CachePathError(f"Could not run '{command}': {exc}") from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise CachePathError(
                f"'{command}' failed with exit code {result.returncode}: {stderr}"
            )
        output = (result.stdout or "").strip()
        debug(f"{command} -> {output or '<empty>'}")
        if output:
            paths.append(output)

    if not paths:
        raise CachePathError("Could not get cache folder paths.")
    return info.model_copy(update={"cache_paths": tuple(paths)})
