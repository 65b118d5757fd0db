"""Where depcache keeps its files and how a run's options are resolved.

* :func:`get_cache_dir` holds the disk store and :func:`get_data_dir` the
  run state and crash logs. Linux and the BSDs follow ``XDG_CACHE_HOME`` /
  ``XDG_DATA_HOME``; other systems use ``~/.depcache/``.
* A repository may pin options in ``./depcache.json`` (see
  :func:`load_project_config`).
* :func:`resolve_restore_config` and :func:`resolve_save_config` layer CLI
  flags over environment variables over the project file over defaults.

:func:`atomic_write` is used for every file depcache writes, so a save step
running concurrently never reads a truncated run state.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Collection, Mapping, Optional

from pydantic import ValidationError

from depcache.exceptions import ConfigError, InvalidUsageError
from depcache.models import RestoreConfig, SaveConfig

_APP_NAME = "depcache"
_PROJECT_CONFIG_FILENAME = "depcache.json"
_STATE_FILENAME = "run-state.json"

# Field name -> environment variable consulted when no CLI flag is given.
ENV_VARS: dict[str, str] = {
    "runtime_version": "DEPCACHE_RUNTIME_VERSION",
    "package_manager": "DEPCACHE_PACKAGE_MANAGER",
    "cache_dependency_path": "DEPCACHE_DEPENDENCY_PATH",
    "cache_key_prefix": "DEPCACHE_KEY_PREFIX",
    "platform": "RUNNER_OS",
    "image_os": "ImageOS",
    "workspace": "GITHUB_WORKSPACE",
    "state_file": "DEPCACHE_STATE_FILE",
    "store_dir": "DEPCACHE_STORE_DIR",
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: str) -> Path:
    """Return (and create) depcache's directory of one kind.

    On XDG platforms this is ``$<xdg_var>/depcache``, with *xdg_default*
    (relative to the home directory) standing in for an unset or empty
    variable. Elsewhere it is ``~/.depcache/<fallback>``.
    """
    if _is_xdg_platform():
        root = Path(os.environ.get(xdg_var) or Path.home() / xdg_default)
        directory = root / _APP_NAME
    else:
        directory = Path.home() / f".{_APP_NAME}" / fallback
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_cache_dir() -> Path:
    """Directory for the cache store. Deleting it only costs cache misses.

    ``~/.cache/depcache`` by default on Linux, ``~/.depcache/cache`` on
    macOS and Windows.
    """
    return _app_dir("XDG_CACHE_HOME", ".cache", "cache")


def get_data_dir() -> Path:
    """Directory for the run state and crash logs.

    ``~/.local/share/depcache`` by default on Linux, ``~/.depcache/data``
    on macOS and Windows.
    """
    return _app_dir("XDG_DATA_HOME", os.path.join(".local", "share"), "data")


def default_state_file() -> Path:
    """Default location of the run state shared between restore and save."""
    return get_data_dir() / _STATE_FILENAME


def default_store_dir() -> Path:
    """Default location of the disk-backed cache store."""
    return get_cache_dir() / "store"


def atomic_write(path: Path, data: str) -> None:
    """Replace the contents of *path* with *data* in one rename.

    The data is written and fsynced to a hidden sibling file first, then
    moved over *path* with :func:`os.replace`. Readers see either the old
    file or the new one. The sibling is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, path)
    except BaseException:
        try:
            os.unlink(handle.name)
        except FileNotFoundError:
            pass
        raise


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./depcache.json``.

    Project-local config sits between the defaults and environment variables
    in the precedence chain. It typically pins ``package_manager`` or
    ``cache_key_prefix`` for a repository.

    Args:
        directory: Directory to look in. Defaults to the current directory.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = (directory or Path.cwd()) / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def _merge_layers(
    fields: Collection[str],
    overrides: Optional[Mapping[str, Any]],
    environ: Optional[Mapping[str, str]],
    project_dir: Optional[Path],
) -> dict[str, Any]:
    """Merge project config, env vars, and CLI flags for the given model *fields*."""
    env = os.environ if environ is None else environ

    # 4 + 3. Defaults come from the model; layer in project-local config.
    merged: dict[str, Any] = {}
    project = load_project_config(project_dir)
    if project is not None:
        unknown = sorted(set(project) - set(RestoreConfig.model_fields))
        if unknown:
            raise ConfigError(f"Unknown project config keys: {', '.join(unknown)}")
        merged.update({k: v for k, v in project.items() if k in fields})

    # 2. Environment variables (empty values count as unset)
    for field_name, var in ENV_VARS.items():
        value = env.get(var)
        if value and field_name in fields:
            merged[field_name] = value

    # 1. CLI flags (highest precedence)
    for field_name, value in (overrides or {}).items():
        if value is not None:
            merged[field_name] = value

    return merged


def resolve_restore_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    project_dir: Optional[Path] = None,
) -> RestoreConfig:
    """Resolve a :class:`~depcache.models.RestoreConfig` with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (*overrides*; ``None`` values are ignored)
        2. Environment variables (see :data:`ENV_VARS`)
        3. Project config (``./depcache.json``)
        4. Defaults

    ``state_file`` and ``store_dir`` fall back to the XDG data and cache
    directories when no layer sets them.

    Args:
        overrides: Values from CLI flags, keyed by field name.
        environ: Environment mapping. Defaults to :data:`os.environ`.
        project_dir: Directory holding ``depcache.json``. Defaults to the
            current directory.

    Returns:
        The frozen, validated configuration.

    Raises:
        InvalidUsageError: If no layer provides a runtime version.
        ConfigError: If the project config or the merged values are invalid.
    """
    merged = _merge_layers(RestoreConfig.model_fields, overrides, environ, project_dir)

    if not merged.get("runtime_version"):
        raise InvalidUsageError(
            "A runtime version is required (--runtime-version or "
            f"{ENV_VARS['runtime_version']})."
        )

    try:
        config = RestoreConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    updates: dict[str, Any] = {}
    if config.state_file is None:
        updates["state_file"] = default_state_file()
    if config.store_dir is None:
        updates["store_dir"] = default_store_dir()
    return config.model_copy(update=updates) if updates else config


def resolve_save_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    project_dir: Optional[Path] = None,
) -> SaveConfig:
    """Resolve a :class:`~depcache.models.SaveConfig` with the same precedence as restore.

    Raises:
        ConfigError: If the project config or the merged values are invalid.
    """
    merged = _merge_layers(SaveConfig.model_fields, overrides, environ, project_dir)
    try:
        config = SaveConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    return config.model_copy(
        update={
            "state_file": config.state_file or default_state_file(),
            "store_dir": config.store_dir or default_store_dir(),
        }
    )


def resolve_state_file(
    override: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    project_dir: Optional[Path] = None,
) -> Path:
    """Resolve only the run state location, with the same precedence as above.

    The restore step calls this before anything else can fail, so the state
    of a previous run is discarded even when the rest of the configuration
    turns out to be invalid.

    Raises:
        ConfigError: If the project config is unreadable or the value is not a path.
    """
    merged = _merge_layers(("state_file",), {"state_file": override}, environ, project_dir)
    value = merged.get("state_file")
    if value is None or value == "":
        return default_state_file()
    if not isinstance(value, (str, os.PathLike)):
        raise ConfigError(f"Invalid configuration: state_file must be a path, got {value!r}")
    return Path(value)
