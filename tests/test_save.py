"""Tests for depcache.save -- the downstream save step."""

from __future__ import annotations

from pathlib import Path

import pytest

from depcache.models import StateKey
from depcache.save import SaveResult, SaveStep
from depcache.state import RunState


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state.json"


def _state(path: Path, **values: str) -> RunState:
    state = RunState.create(path)
    for name, value in values.items():
        state.save_state(name, value)
    return RunState.load(path)


class TestSkips:
    def test_no_primary_key(
        self, state_path, cache_dirs, fake_transport, static_hasher, capsys
    ) -> None:
        from depcache.output import OutputFormat, OutputManager, set_output

        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        step = SaveStep(_state(state_path), [str(p) for p in cache_dirs], fake_transport, static_hasher)

        assert step.run() == SaveResult.SKIPPED_NO_KEY
        assert fake_transport.saved == {}
        assert "Primary key was not generated" in capsys.readouterr().err

    def test_no_cache_folders_on_disk(
        self, state_path, tmp_path, fake_transport, static_hasher, quiet_output
    ) -> None:
        state = _state(state_path, primaryKey="pk")
        step = SaveStep(state, [str(tmp_path / "absent")], fake_transport, static_hasher)

        assert step.run() == SaveResult.SKIPPED_NO_PATHS
        assert fake_transport.saved == {}

    def test_exact_hit_is_not_saved(
        self, state_path, cache_dirs, fake_transport, static_hasher, quiet_output
    ) -> None:
        state = _state(state_path, primaryKey="pk", matchedKey="pk")
        step = SaveStep(state, [str(p) for p in cache_dirs], fake_transport, static_hasher)

        assert step.run() == SaveResult.SKIPPED_EXACT_HIT
        assert fake_transport.saved == {}

    def test_exact_hit_reports_build_drift(
        self, state_path, cache_dirs, fake_transport, make_hasher, capsys
    ) -> None:
        from depcache.output import OutputFormat, OutputManager, set_output

        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        state = _state(state_path, primaryKey="pk", matchedKey="pk", buildHash="old")
        hasher = make_hasher("new")
        step = SaveStep(state, [str(p) for p in cache_dirs], fake_transport, hasher)

        assert step.run() == SaveResult.SKIPPED_EXACT_HIT
        assert hasher.calls == [[str(cache_dirs[1])]]
        assert "build cache changed since restore" in capsys.readouterr().err


class TestSaves:
    def test_miss_saves_under_primary_key(
        self, state_path, cache_dirs, fake_transport, static_hasher, quiet_output
    ) -> None:
        paths = [str(p) for p in cache_dirs]
        state = _state(state_path, prefixBaseKey="base", primaryKey="base-abc")

        assert SaveStep(state, paths, fake_transport, static_hasher).run() == SaveResult.SAVED
        assert fake_transport.saved == {"base-abc": paths}

    def test_fallback_hit_saves_under_primary_key(
        self, state_path, cache_dirs, fake_transport, static_hasher, quiet_output
    ) -> None:
        state = _state(state_path, primaryKey="base-abc", matchedKey="base")
        step = SaveStep(state, [str(p) for p in cache_dirs], fake_transport, static_hasher)

        assert step.run() == SaveResult.SAVED
        assert "base-abc" in fake_transport.saved

    def test_existing_key_is_reported_not_raised(
        self, state_path, cache_dirs, make_transport, static_hasher, quiet_output
    ) -> None:
        transport = make_transport(stored=["base-abc"])
        state = _state(state_path, primaryKey="base-abc")
        step = SaveStep(state, [str(p) for p in cache_dirs], transport, static_hasher)

        assert step.run() == SaveResult.EXISTS

    def test_missing_secondary_dir_keeps_its_slot(
        self, state_path, cache_dirs, tmp_path, fake_transport, static_hasher, quiet_output
    ) -> None:
        paths = [str(cache_dirs[0]), str(tmp_path / "no-build-cache")]
        state = _state(state_path, primaryKey="pk")

        assert SaveStep(state, paths, fake_transport, static_hasher).run() == SaveResult.SAVED
        assert fake_transport.saved["pk"] == paths


def test_state_key_names_match_restore() -> None:
    assert {k.value for k in StateKey} == {
        "prefixBaseKey",
        "primaryKey",
        "matchedKey",
        "buildHash",
    }
