"""Exception hierarchy for depcache.

All exceptions inherit from :class:`DepcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`depcache.exit_codes`.
The top-level error handler in :func:`depcache.app.main` catches
``DepcacheError`` and exits with the appropriate code, while unexpected
exceptions (including cache transport failures) produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    DepcacheError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- UnknownPackageManagerError (exit 2)
    +-- ManifestNotFoundError      (exit 3)
    +-- HashComputationError       (exit 4)
    +-- CachePathError             (exit 5)
    +-- StateError                 (exit 6)
    +-- ConfigError                (exit 1)
"""

from depcache.exit_codes import (
    EXIT_CACHE_PATH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_HASH_FAILED,
    EXIT_INVALID_USAGE,
    EXIT_MANIFEST_NOT_FOUND,
    EXIT_STATE_ERROR,
)


class DepcacheError(Exception):
    """A failure depcache reports to the user rather than as a crash.

    The process exit status is taken from ``exit_code``, which each subclass
    sets from :mod:`depcache.exit_codes`.

    Args:
        message: Shown on stderr as ``Error: <message>``.
        exit_code: Replaces the subclass default for this one instance.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DepcacheError):
    """Raised for invalid CLI arguments or missing required inputs."""

    exit_code = EXIT_INVALID_USAGE


class UnknownPackageManagerError(DepcacheError):
    """Raised when the package-manager identifier is not in the registry."""

    exit_code = EXIT_INVALID_USAGE


class ManifestNotFoundError(DepcacheError):
    """Raised when auto-discovery finds no dependency manifest in the workspace root.

    The message always names the searched directory and the expected
    filename pattern.
    """

    exit_code = EXIT_MANIFEST_NOT_FOUND


class HashComputationError(DepcacheError):
    """Raised when the manifest paths resolve to no hashable content.

    Distinct from :class:`ManifestNotFoundError`: the path was given (or
    found) but produced an empty hash, e.g. a glob that matched nothing.
    """

    exit_code = EXIT_HASH_FAILED


class CachePathError(DepcacheError):
    """Raised when the package manager's cache directories cannot be resolved."""

    exit_code = EXIT_CACHE_PATH_ERROR


class StateError(DepcacheError):
    """Raised when the run state file is missing, invalid, or a value is written twice."""

    exit_code = EXIT_STATE_ERROR


class ConfigError(DepcacheError):
    """Raised for configuration problems (invalid project config JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
