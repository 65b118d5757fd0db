"""depcache -- restore dependency caches for build pipelines.

Given a runtime version, a package-manager identifier and a dependency
manifest, depcache derives a deterministic cache key, restores the closest
stored cache archive and records which key was used so that a later save
step can decide whether to write a new entry.

Typical workflow::

    depcache restore --runtime-version 1.21.0   # before the build
    depcache save                               # after the build

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware paths and restore configuration resolution.
    keys: Primary and fallback cache key derivation.
    restore: The restoration state machine.
    save: The downstream save step.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
