"""Config commands -- inspect the resolved configuration.

Provides the ``depcache config`` sub-command group. Configuration is never
written by depcache itself: it comes from CLI flags, environment variables
and an optional project-local ``depcache.json``.
"""

from __future__ import annotations

from typing import Optional

import typer

from depcache.exceptions import DepcacheError
from depcache.output import error, format_response, info


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    runtime_version: Optional[str] = typer.Option(
        None, "--runtime-version", "-V", help="Installed runtime version."
    ),
) -> None:
    """Show the restore configuration resolved from flags, env, and project config.

    Example::

        depcache config show -V 1.21.0
        DEPCACHE_RUNTIME_VERSION=1.21.0 depcache config show --json
    """
    from depcache.config import get_cache_dir, resolve_restore_config

    try:
        config = resolve_restore_config({"runtime_version": runtime_version})
    except DepcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Cache directory: {get_cache_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("env")
def config_env() -> None:
    """List the environment variables consulted for each option."""
    from depcache.config import ENV_VARS

    format_response(dict(ENV_VARS))
