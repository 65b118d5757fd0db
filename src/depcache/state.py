"""Run state shared between the restore step and the save step.

The restore step writes a handful of named strings (see
:class:`~depcache.models.StateKey`) and outputs (see
:class:`~depcache.models.OutputKey`) to a small JSON file. Every write is
its own atomic file replacement, so whatever was written before a crash or
a transport timeout is still there for the save step to read.

File layout::

    {
      "state": {"prefixBaseKey": "...", "primaryKey": "..."},
      "outputs": {"cache-hit": false}
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from depcache.config import atomic_write
from depcache.exceptions import StateError


class RunState:
    """Append-only mapping of state values and outputs for one run.

    Use :meth:`create` at the start of a restore and :meth:`load` in the save
    step; the constructor itself does not touch the filesystem.
    """

    def __init__(
        self,
        path: Path,
        state: dict[str, str] | None = None,
        outputs: dict[str, Any] | None = None,
    ) -> None:
        self.path = Path(path)
        self._state: dict[str, str] = dict(state or {})
        self._outputs: dict[str, Any] = dict(outputs or {})

    @classmethod
    def create(cls, path: Path) -> RunState:
        """Start a new run, replacing any state left by a previous one."""
        run_state = cls(path)
        run_state._flush()
        return run_state

    @classmethod
    def load(cls, path: Path) -> RunState:
        """Read the state written by an earlier step.

        Raises:
            StateError: If the file is missing or malformed.
        """
        path = Path(path)
        if not path.is_file():
            raise StateError(f"No run state found at {path}. Did the restore step run?")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            state = data.get("state", {})
            outputs = data.get("outputs", {})
        except (json.JSONDecodeError, AttributeError, ValueError) as exc:
            raise StateError(f"Invalid run state at {path}: {exc}") from exc
        if not isinstance(state, dict) or not isinstance(outputs, dict):
            raise StateError(f"Invalid run state at {path}")
        return cls(path, state, outputs)

    def save_state(self, name: str, value: str) -> None:
        """Record a state value and write it to disk immediately.

        Raises:
            StateError: If *name* was already written in this run.
        """
        name = _name(name)
        if name in self._state:
            raise StateError(f"State '{name}' was already written in this run")
        self._state[name] = value
        self._flush()

    def set_output(self, name: str, value: Any) -> None:
        """Record an output and write it to disk immediately.

        Raises:
            StateError: If *name* was already set in this run.
        """
        name = _name(name)
        if name in self._outputs:
            raise StateError(f"Output '{name}' was already set in this run")
        self._outputs[name] = value
        self._flush()

    def get_state(self, name: str) -> str:
        """Return a state value, or ``""`` if it was never written."""
        return self._state.get(_name(name), "")

    def get_output(self, name: str) -> Any:
        return self._outputs.get(_name(name))

    @property
    def state(self) -> dict[str, str]:
        return dict(self._state)

    @property
    def outputs(self) -> dict[str, Any]:
        return dict(self._outputs)

    def _flush(self) -> None:
        payload = {"state": self._state, "outputs": self._outputs}
        atomic_write(self.path, json.dumps(payload, indent=2) + "\n")


def _name(name: Any) -> str:
    # Accept StateKey / OutputKey members as well as plain strings.
    return getattr(name, "value", name)
