"""The ``depcache`` command line.

``restore`` runs before the build, ``save`` after it; ``keys`` and
``config`` are for looking at what a restore would do. Global flags pick
the output format and verbosity and apply to every sub-command::

    depcache --json restore -V 1.21.0
    depcache -v save

:func:`main` is the console-script entry point. A
:class:`~depcache.exceptions.DepcacheError` that escapes a command ends the
process with that error's exit code. Anything else (a broken store, a
corrupt archive) is unexpected: its traceback goes to
``<data dir>/logs/crash-<timestamp>.log`` and the exit code is
:data:`~depcache.exit_codes.EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from depcache import __version__
from depcache.commands.config import config_app
from depcache.commands.restore import keys_command, restore_command
from depcache.commands.save import save_command
from depcache.exit_codes import EXIT_GENERIC_FAILURE
from depcache.output import OutputFormat, OutputManager, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="depcache",
    help="Restore and save dependency caches for build pipelines.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.command("restore")(restore_command)
app.command("save")(save_command)
app.command("keys")(keys_command)
app.add_typer(config_app, name="config", help="Inspect the resolved configuration.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"depcache {__version__}")
        raise typer.Exit()


def _selected_format(json_output: bool, plain_output: bool) -> OutputFormat:
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Print the depcache version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print step outputs as JSON."),
    plain_output: bool = typer.Option(
        False, "--plain", help="Print step outputs as key=value lines."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="No colour on stderr."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only warnings and errors on stderr."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Also print derived keys and hashes."
    ),
) -> None:
    """Install the output manager every sub-command writes through."""
    set_output(
        OutputManager(
            format=_selected_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )


def _on_sigint(signum: int, frame: Any) -> None:
    sys.stderr.write("\nInterrupted.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log(exc: BaseException) -> str:
    """Save the traceback of *exc* under the data directory; return the file path."""
    from depcache.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_file.write_text("".join(traceback.format_exception(exc)), encoding="utf-8")
    return str(log_file)


def main() -> None:
    """Entry point of the ``depcache`` console script. Always exits."""
    from depcache.exceptions import DepcacheError
    from depcache.output import error

    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(EXIT_INTERRUPTED)
    except DepcacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_file = _write_crash_log(exc)
        error(f"{type(exc).__name__}: {exc}")
        error(f"Unexpected failure; traceback saved to {log_file}")
        sys.exit(EXIT_GENERIC_FAILURE)
