"""Shared test fixtures for depcache.

Provides isolated config environments, output state management, a Go-style
workspace on disk, and in-memory stand-ins for the hash and transport
collaborators. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import pytest

from depcache.models import PackageManagerInfo, RestoreConfig
from depcache.output import OutputFormat, OutputManager, reset_output, set_output


GO_SUM = "golang.org/x/text v0.14.0 h1:ScX5w1eTa3QqT8oi6+ziP7dTV1S2+ALU0bI+0zXKWiQ=\n"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Collaborator stand-ins
# ---------------------------------------------------------------------------


class StaticHasher:
    """HashProvider returning a fixed value and recording every call."""

    def __init__(self, value: str = "deadbeef") -> None:
        self.value = value
        self.calls: list[list[str]] = []

    def hash(self, paths: Sequence[str]) -> str:
        self.calls.append(list(paths))
        return self.value


class FakeTransport:
    """CacheTransport that matches keys against an in-memory set.

    ``stored`` keys match exactly; fallback keys also match keys continuing
    them after a ``-``, the lexicographically greatest stored key winning.
    """

    def __init__(self, stored: Sequence[str] = (), error: Optional[Exception] = None) -> None:
        self.stored = list(stored)
        self.error = error
        self.restore_calls: list[tuple[list[str], str, list[str]]] = []
        self.saved: dict[str, list[str]] = {}

    def restore(
        self, target_paths: Sequence[str], primary_key: str, fallback_keys: Sequence[str]
    ) -> Optional[str]:
        self.restore_calls.append((list(target_paths), primary_key, list(fallback_keys)))
        if self.error is not None:
            raise self.error
        if primary_key in self.stored:
            return primary_key
        for fallback in fallback_keys:
            candidates = sorted(k for k in self.stored if k.startswith(f"{fallback}-"))
            if candidates:
                return candidates[-1]
        return None

    def save(self, target_paths: Sequence[str], key: str) -> bool:
        if key in self.stored:
            return False
        self.stored.append(key)
        self.saved[key] = list(target_paths)
        return True


@pytest.fixture
def static_hasher() -> StaticHasher:
    return StaticHasher()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport():
    """Factory for FakeTransport instances with pre-stored keys or a failure."""
    return FakeTransport


@pytest.fixture
def make_hasher():
    """Factory for StaticHasher instances returning a given value."""
    return StaticHasher


# ---------------------------------------------------------------------------
# Workspace and model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def go_workspace(tmp_path: Path) -> Path:
    """A workspace directory containing a ``go.sum`` manifest."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    (workspace / "go.sum").write_text(GO_SUM)
    (workspace / "go.mod").write_text("module example.com/app\n\ngo 1.21\n")
    return workspace


@pytest.fixture
def cache_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """A module cache and a build cache directory, both populated."""
    mod = tmp_path / "gomodcache"
    build = tmp_path / "gocache"
    (mod / "golang.org" / "x").mkdir(parents=True)
    (mod / "golang.org" / "x" / "text.zip").write_bytes(b"module archive")
    build.mkdir()
    (build / "00-obj").write_bytes(b"compiled object")
    return mod, build


@pytest.fixture
def go_manager(cache_dirs: tuple[Path, Path]) -> PackageManagerInfo:
    """The default registry entry with both cache directories resolved."""
    mod, build = cache_dirs
    return PackageManagerInfo(
        name="default",
        dependency_file_pattern="go.sum",
        cache_folder_commands=("go env GOMODCACHE", "go env GOCACHE"),
        cache_paths=(str(mod), str(build)),
    )


@pytest.fixture
def restore_config(go_workspace: Path, tmp_path: Path) -> RestoreConfig:
    return RestoreConfig(
        runtime_version="1.21.0",
        platform="Linux",
        image_os="ubuntu22",
        workspace=go_workspace,
        state_file=tmp_path / "state.json",
        store_dir=tmp_path / "store",
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CACHE_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch the real store or run state, clears every
    environment variable depcache consults, and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    from depcache.config import ENV_VARS

    monkeypatch.setattr("depcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the duration of a test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()

