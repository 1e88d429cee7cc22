"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~manifestapi.exceptions.ManifestApiError` subclass.
Shell wrappers can inspect the exit code of ``manifestapi`` to find the
failure class without parsing stderr.

Example::

    $ manifestapi call charges find -d id=ch_missing
    $ echo $?
    4   # EXIT_NOT_FOUND -- the API answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, an undefined operation, or a rejected parameter set."""

EXIT_AUTH_FAILURE = 3
"""The API key was rejected."""

EXIT_NOT_FOUND = 4
"""The requested object was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_MANIFEST_ERROR = 7
"""A manifest document is missing or malformed."""

EXIT_RATE_LIMITED = 8
"""The API rejected the request because of rate limiting (HTTP 429)."""
