"""Exception hierarchy for manifestapi.

All exceptions inherit from :class:`ManifestApiError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`manifestapi.exit_codes`.
The CLI entry point in :func:`manifestapi.app.main` catches
``ManifestApiError`` and exits with the appropriate code.

Two families exist. Configuration and resolution errors (a missing manifest,
an undefined operation, a malformed document) are raised synchronously and
indicate a programming or configuration mistake. Transport errors come from
the HTTP layer and are classified through the manifest's ``errors`` table.

Subclass hierarchy::

    ManifestApiError (exit 1)
    +-- InvalidUsageError         (exit 2)
    |   +-- UndefinedOperationError (exit 2)
    +-- ConfigError               (exit 1)
    +-- ManifestNotFoundError     (exit 7)
    +-- ManifestParseError        (exit 7)
    +-- TransportError            (exit 1)
        +-- AuthenticationError   (exit 3)
        +-- NotFoundError         (exit 4)
        +-- RateLimitError        (exit 8)
        +-- ValidationError_      (exit 2)
        |   +-- CardError         (exit 2)
        +-- ServerError           (exit 5)
        +-- ConnectionError_      (exit 6)
        +-- TimeoutError_         (exit 6)
"""

from __future__ import annotations

from typing import Any, Optional

from manifestapi.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MANIFEST_ERROR,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class ManifestApiError(Exception):
    """Base exception for all manifestapi errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ManifestApiError):
    """Raised for invalid arguments or missing required operation parameters."""

    exit_code = EXIT_INVALID_USAGE


class UndefinedOperationError(InvalidUsageError):
    """Raised when a symbolic name does not resolve to any known operation.

    The originally requested name (including any ``Iterator`` suffix) is
    kept on :attr:`name` so callers can report exactly what they asked for.
    """

    def __init__(self, name: str, message: str | None = None):
        super().__init__(message or f"Undefined method [{name}] called.")
        self.name = name


class ConfigError(ManifestApiError):
    """Raised for configuration problems (invalid settings file, unresolvable credential)."""

    exit_code = EXIT_GENERIC_FAILURE


class ManifestNotFoundError(ManifestApiError):
    """Raised when no manifest document exists for a (version, resource) pair."""

    exit_code = EXIT_MANIFEST_ERROR

    def __init__(self, version: str, name: str, message: str | None = None):
        super().__init__(
            message or f"No manifest for resource '{name}' (version {version})"
        )
        self.version = version
        self.name = name


class ManifestParseError(ManifestApiError):
    """Raised when a manifest document cannot be parsed or fails validation."""

    exit_code = EXIT_MANIFEST_ERROR


class TransportError(ManifestApiError):
    """Base class for errors surfaced by the HTTP layer.

    Attributes mirror the Stripe error object so callers can branch on
    them without re-parsing the response body.

    Args:
        message: Rendered error message.
        status_code: HTTP status, ``None`` for network-level failures.
        error_type: The ``error.type`` field of the response body.
        code: The ``error.code`` field of the response body.
        param: The ``error.param`` field of the response body.
        body: The decoded response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
        param: Optional[str] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.code = code
        self.param = param
        self.body = body


class AuthenticationError(TransportError):
    """Raised when the API key is missing, invalid or lacks permission (401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class RateLimitError(TransportError):
    """Raised when the API returns HTTP 429."""

    exit_code = EXIT_RATE_LIMITED


class ValidationError_(TransportError):
    """Raised when the API rejects the request parameters (400/402/409/422).

    Named with a trailing underscore to avoid clashing with
    ``pydantic.ValidationError``.
    """

    exit_code = EXIT_INVALID_USAGE


class CardError(ValidationError_):
    """Raised when a card cannot be charged (HTTP 402)."""


class ServerError(TransportError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(TransportError):
    """Raised on network-level failures (DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class TimeoutError_(TransportError):
    """Raised when the transport gives up waiting for the API."""

    exit_code = EXIT_CONNECTION_ERROR
