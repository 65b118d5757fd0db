"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~depcache.exceptions.DepcacheError` subclass.
CI scripts can inspect the exit code to tell a missing manifest apart from
an infrastructure failure without parsing stderr.

Example::

    $ depcache restore --runtime-version 1.21.0
    $ echo $?
    3   # EXIT_MANIFEST_NOT_FOUND -- no go.sum in the workspace root
"""

EXIT_SUCCESS = 0
"""The command completed successfully (a cache miss is still a success)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required inputs."""

EXIT_MANIFEST_NOT_FOUND = 3
"""The dependency manifest could not be found in the workspace root."""

EXIT_HASH_FAILED = 4
"""The dependency manifest resolved to no hashable content."""

EXIT_CACHE_PATH_ERROR = 5
"""The package manager's cache directories could not be determined."""

EXIT_STATE_ERROR = 6
"""The persisted run state is missing, unreadable, or was written twice."""
