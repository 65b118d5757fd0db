"""Terminal output for depcache.

A pipeline step captures what depcache prints, so the two streams have
separate jobs:

* **stdout** carries the step outputs (``cache-hit``, ``matched-key``,
  derived keys, resolved config) and nothing else;
* **stderr** carries everything a human reads while the job runs: restore
  timings, the matched key, warnings and errors.

Colour follows the usual conventions (``NO_COLOR``, ``TERM=dumb``,
``--no-color``). There is no ``logging`` configuration; :func:`debug` is
the verbose channel and is silent unless ``--verbose`` was given.

:func:`~depcache.app.main_callback` builds one :class:`OutputManager` per
invocation and installs it with :func:`set_output`; library code calls the
module-level helpers (:func:`info`, :func:`warning`, ...) instead of passing
the manager around.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """How step outputs are rendered on stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else, which is what CI log capture sees.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route step outputs to stdout and diagnostics to stderr.

    Args:
        format: Rendering of step outputs. ``AUTO`` is resolved once, here.
        no_color: Print diagnostics without Rich markup.
        quiet: Drop :meth:`info` messages.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = self._resolve(format)

        self._data_console = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format is OutputFormat.RICH,
        )
        self._diag_console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    def _resolve(self, requested: OutputFormat) -> OutputFormat:
        if requested is not OutputFormat.AUTO:
            return requested
        if _is_tty() and not self._no_color:
            return OutputFormat.RICH
        return OutputFormat.PLAIN

    @property
    def format(self) -> OutputFormat:
        return self._format

    # -- stdout ----------------------------------------------------------

    def format_response(self, data: Any) -> None:
        """Render step outputs on stdout.

        Dicts become ``key=value`` lines in ``PLAIN`` mode (booleans as
        ``true``/``false``, ``None`` as an empty value), lists one item per
        line. ``JSON`` dumps the value as indented JSON and ``RICH``
        highlights that same JSON.
        """
        if self._format is OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
            return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format is OutputFormat.JSON:
            self.print_data(text)
        else:
            self._data_console.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        """Write one line to stdout as-is."""
        print(text, file=sys.stdout, flush=True)

    # -- stderr ----------------------------------------------------------

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def warning(self, message: str) -> None:
        """Warnings are shown even with ``--quiet``."""
        self._diagnostic(message, label="Warning:", markup="yellow")

    def error(self, message: str) -> None:
        """Errors are always shown."""
        self._diagnostic(message, label="Error:", markup="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", markup="dim")

    def _diagnostic(
        self, message: str, label: str = "", markup: Optional[str] = None
    ) -> None:
        if self._no_color:
            text = f"{label} {message}" if label else message
            print(text, file=sys.stderr, flush=True)
            return
        if label:
            # Only the label is styled; the message may contain brackets.
            self._diag_console.print(f"[{markup}]{label}[/{markup}] ", end="")
            self._diag_console.print(message, markup=False, highlight=False)
        elif markup:
            self._diag_console.print(message, style=markup, markup=False)
        else:
            self._diag_console.print(message, markup=False)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif value is None:
                value = ""
            lines.append(f"{key}={value}")
        return lines
    if isinstance(data, list):
        return [str(item) for item in data]
    return [str(data)]


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# -- process-wide instance -------------------------------------------------

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout between runs)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
