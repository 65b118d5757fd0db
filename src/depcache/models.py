"""Canonical Pydantic models shared across all depcache modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- resolved once per run and passed explicitly to
the components that need them:
    :class:`RestoreConfig` and :class:`PackageManagerInfo`.

**Value objects** -- produced by one step of a restore and consumed by the
next:
    :class:`CacheKeySet`, :class:`RestorePhase`, and :class:`RestoreOutcome`.

All models use Pydantic v2 and are frozen: nothing downstream of the step
that creates a value is allowed to mutate it.
"""

from __future__ import annotations

import enum
import platform as _host
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Persisted state names ---


class StateKey(str, enum.Enum):
    """Names of the values written to the run state for the save step."""

    PREFIX_BASE_KEY = "prefixBaseKey"
    PRIMARY_KEY = "primaryKey"
    MATCHED_KEY = "matchedKey"
    BUILD_HASH = "buildHash"


class OutputKey(str, enum.Enum):
    """Names of the outputs reported to the calling pipeline."""

    CACHE_HIT = "cache-hit"


# --- Package managers ---


class PackageManagerInfo(BaseModel):
    """Cache-relevant facts about one package manager.

    Registry entries (see :mod:`depcache.package_managers`) declare the
    manifest filename and the shell commands that print cache directories.
    :func:`~depcache.package_managers.resolve_cache_paths` returns a copy
    with ``cache_paths`` filled in, primary dependency cache first and the
    optional build-artifact cache second.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    dependency_file_pattern: str = Field(
        description="Manifest filename expected in the workspace root"
    )
    cache_folder_commands: tuple[str, ...] = Field(
        default=(), description="Commands printing one cache directory each"
    )
    cache_paths: tuple[str, ...] = Field(
        default=(), description="Resolved cache directories"
    )

    @property
    def has_build_cache(self) -> bool:
        """Whether a secondary build-artifact directory was resolved."""
        return len(self.cache_paths) > 1


# --- Restore configuration ---

_PLATFORM_NAMES = {"Linux": "Linux", "Darwin": "macOS", "Windows": "Windows"}


def host_platform() -> str:
    """Return the host OS family the way CI runners name it (``Linux``, ``macOS``, ``Windows``)."""
    system = _host.system()
    return _PLATFORM_NAMES.get(system, system)


class RestoreConfig(BaseModel):
    """Every option consulted during a restore, with its default.

    Built by :func:`~depcache.config.resolve_restore_config` from CLI flags,
    environment variables and the project config, then handed to
    :class:`~depcache.restore.RestoreOrchestrator` at construction so that
    the core never reads the process environment itself.
    """

    model_config = ConfigDict(frozen=True)

    runtime_version: str = Field(description="Installed runtime version, e.g. 1.21.0")
    package_manager: str = Field(default="default", description="Registry name")
    cache_dependency_path: Optional[str] = Field(
        default=None, description="Explicit manifest path or glob; skips discovery"
    )
    cache_key_prefix: str = Field(default="", description="Operator namespace segment")
    platform: str = Field(default_factory=host_platform, description="Host OS family")
    image_os: Optional[str] = Field(
        default=None, description="CI image identifier, only used on Linux"
    )
    workspace: Path = Field(default_factory=Path.cwd, description="Manifest search root")
    tool_name: str = Field(default="setup-go", description="Leading key segment")
    runtime_name: str = Field(default="go", description="Runtime key segment")
    state_file: Optional[Path] = Field(
        default=None, description="Run state file shared with the save step"
    )
    store_dir: Optional[Path] = Field(
        default=None, description="Directory of the disk-backed cache store"
    )


# --- Keys and outcomes ---


class CacheKeySet(BaseModel):
    """The primary key plus fallback keys, most specific first.

    ``restore_keys`` is always ``(prefix_base_key, base_key)``. Neither
    fallback contains the manifest hash.
    """

    model_config = ConfigDict(frozen=True)

    primary_key: str
    restore_keys: tuple[str, ...]

    @property
    def prefix_base_key(self) -> str:
        return self.restore_keys[0]

    @property
    def base_key(self) -> str:
        return self.restore_keys[-1]


class RestorePhase(str, enum.Enum):
    """States of :class:`~depcache.restore.RestoreOrchestrator`.

    ``HIT_EXACT``, ``HIT_FALLBACK``, ``MISS`` and ``ABORTED`` are terminal.
    """

    INIT = "init"
    MANIFEST_RESOLVED = "manifest_resolved"
    HASHED = "hashed"
    KEYS_BUILT = "keys_built"
    TRANSPORT_INVOKED = "transport_invoked"
    HIT_EXACT = "hit_exact"
    HIT_FALLBACK = "hit_fallback"
    MISS = "miss"
    ABORTED = "aborted"


class RestoreOutcome(BaseModel):
    """Result of a completed restore."""

    model_config = ConfigDict(frozen=True)

    matched_key: Optional[str] = None
    hit_exact: bool = False
    phase: RestorePhase = RestorePhase.MISS
    elapsed_ms: int = 0

    @property
    def cache_hit(self) -> bool:
        return self.matched_key is not None


class SaveConfig(BaseModel):
    """Options consulted by the save step.

    A subset of :class:`RestoreConfig`: saving never derives keys, it reads
    them back from the run state.
    """

    model_config = ConfigDict(frozen=True)

    package_manager: str = Field(default="default", description="Registry name")
    state_file: Optional[Path] = None
    store_dir: Optional[Path] = None
