"""Save command -- store the cache after the build.

Reads the run state left by ``depcache restore`` and saves the package
manager's cache directories under the recorded primary key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from depcache.exceptions import DepcacheError
from depcache.models import StateKey
from depcache.output import error, format_response


def save_command(
    package_manager: Optional[str] = typer.Option(
        None, "--package-manager", help="Package manager registry name."
    ),
    state_file: Optional[Path] = typer.Option(
        None, "--state-file", help="Run state file written by the restore step."
    ),
    store_dir: Optional[Path] = typer.Option(
        None, "--store-dir", help="Cache store directory."
    ),
) -> None:
    """Save the dependency cache under the primary key from the restore step.

    Skips the save when no primary key was recorded, when none of the cache
    directories exist, or when the restore already hit the primary key.

    Example::

        depcache save
        depcache save --state-file .depcache/state.json
    """
    from depcache.config import resolve_save_config
    from depcache.hashing import DirectoryMetaHasher
    from depcache.package_managers import get_package_manager_info, resolve_cache_paths
    from depcache.save import SaveStep
    from depcache.state import RunState
    from depcache.transport import DiskCacheTransport

    overrides = {
        "package_manager": package_manager,
        "state_file": state_file,
        "store_dir": store_dir,
    }
    try:
        config = resolve_save_config(overrides)
        state = RunState.load(config.state_file)
        manager = resolve_cache_paths(get_package_manager_info(config.package_manager))
        with DiskCacheTransport(config.store_dir) as transport:
            result = SaveStep(
                state,
                manager.cache_paths,
                transport=transport,
                build_hasher=DirectoryMetaHasher(),
            ).run()
    except DepcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(
        {"result": result.value, "primary-key": state.get_state(StateKey.PRIMARY_KEY)}
    )
