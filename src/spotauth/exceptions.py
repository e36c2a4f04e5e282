"""Exception hierarchy for spotauth.

All exceptions inherit from :class:`SpotauthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`spotauth.exit_codes`.
The top-level error handler in :func:`spotauth.app.main` catches
``SpotauthError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Two taxonomies cooperate during authorisation:

* :class:`CallbackUrlError` -- the redirect back from the accounts service
  was unusable.  Always recoverable by starting the login again.
* :class:`RequestError` -- the token endpoint or Web API call failed at the
  transport, status, or body level.

:class:`AccessTokenError` wraps either of them so callers of
:func:`~spotauth.authorization.tokens.obtain_credential` handle one type.

Subclass hierarchy::

    SpotauthError (exit 1)
    +-- InvalidUsageError        (exit 2)
    |   +-- RejectedValueError   (exit 2)
    |   +-- NotABaseError        (exit 2)
    +-- AuthError                (exit 3)
    |   +-- CallbackUrlError     (exit 3)
    |   |   +-- CodeMissingError
    |   |   +-- LoginError
    |   |   +-- StateMismatchError
    |   |   +-- StateMissingError
    |   |   +-- UrlMismatchError
    |   +-- NoAuthorizationStateError
    +-- AccessTokenError         (exit of the wrapped error)
    +-- StoreError               (exit 4)
    +-- RequestError             (exit 6)
    |   +-- StatusError
    |   +-- BodyError
    |   +-- TransportError
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

import enum
from typing import Optional, Union

import httpx

from spotauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_STORE_ERROR,
)


class SpotauthError(Exception):
    """Base exception for all spotauth errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`spotauth.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpotauthError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class RejectedValueError(InvalidUsageError):
    """Raised when a pending-authorization setter rejects its input.

    The object the setter was called on is left exactly as it was.
    """


class NotABaseError(InvalidUsageError):
    """Raised when a URL cannot be used as a base URL (e.g. ``mailto:``)."""

    def __init__(self, url: str):
        super().__init__(f"URL is not a base URL: {url!r}")
        self.url = url


class ConfigError(SpotauthError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(SpotauthError):
    """Raised when no usable credential can be produced or kept fresh."""

    exit_code = EXIT_AUTH_FAILURE


# --- Callback URL errors ---


def _mismatch(expected: object, received: object) -> str:
    return f'expected "{expected}", but received "{received}"'


class CallbackUrlError(AuthError):
    """Base class for problems with the redirect URL from the accounts service.

    None of these indicate a defect; the user should start the login again.
    """


class CodeMissingError(CallbackUrlError):
    """The callback URL has no ``code`` query parameter."""

    def __init__(self) -> None:
        super().__init__("the `code` query parameter is missing from the callback URL")


class LoginError(CallbackUrlError):
    """The callback URL carries an ``error`` query parameter."""

    def __init__(self, reason: str):
        super().__init__(
            f'the callback URL contained an `error` query parameter: "{reason}"'
        )
        self.reason = reason


class StateMismatchError(CallbackUrlError):
    """The ``state`` query parameter differs from the one sent with the request."""

    def __init__(self, expected: str, received: str):
        super().__init__(
            "the `state` query parameter in the callback URL doesn't match the "
            f"state from the authorize URL, {_mismatch(expected, received)}"
        )
        self.expected = expected
        self.received = received


class StateMissingError(CallbackUrlError):
    """The callback URL has no ``state`` query parameter."""

    def __init__(self) -> None:
        super().__init__("the `state` query parameter is missing from the callback URL")


class UrlMismatchError(CallbackUrlError):
    """The callback URL does not start with the registered ``redirect_uri``."""

    def __init__(self, expected: str, received: str):
        super().__init__(
            "the callback URL doesn't match the `redirect_uri` of the authorize "
            f"URL, {_mismatch(expected, received)}"
        )
        self.expected = expected
        self.received = received


class NoAuthorizationStateError(AuthError):
    """Raised when a callback arrives but no pending authorization was stored."""

    def __init__(self) -> None:
        super().__init__("authorisation request state is missing")


# --- Request errors ---


class RequestError(SpotauthError):
    """Base class for failures talking to the token endpoint or Web API."""

    exit_code = EXIT_CONNECTION_ERROR


class StatusError(RequestError):
    """The server answered with a status outside 2xx.

    Args:
        status_code: The HTTP status code.
        body: The raw response body, if it could be read.
    """

    def __init__(self, status_code: int, body: Optional[str] = None):
        message = f"HTTP Error: {status_code}"
        reason = httpx.codes.get_reason_phrase(status_code)
        if reason:
            message += f", {reason}"
        if body:
            message += f"\nBody:\n{body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BodyError(RequestError):
    """A 2xx response body could not be decoded into the expected type.

    The raw body is kept for diagnostics.
    """

    def __init__(self, body: str, detail: str):
        super().__init__(f"deserialization error, {detail} in {body}")
        self.body = body
        self.detail = detail


class TransportError(RequestError):
    """A lower-level failure: DNS, connection refused, timeout, TLS."""


# --- Composite errors ---


class AccessTokenError(SpotauthError):
    """Obtaining an access token from a callback URL failed.

    Wraps either a :class:`CallbackUrlError` (restart the login) or a
    :class:`RequestError` (retry, or report the diagnostic text).

    Args:
        error: The underlying failure.
    """

    def __init__(self, error: Union[CallbackUrlError, RequestError]):
        super().__init__(str(error), exit_code=error.exit_code)
        self.error = error

    @property
    def is_callback_error(self) -> bool:
        """``True`` when the user should simply start the login again."""
        return isinstance(self.error, CallbackUrlError)


class StoreErrorKind(str, enum.Enum):
    """Why a key-value store operation failed."""

    ACCESS_DENIED = "access_denied"
    STORAGE_FULL = "storage_full"
    SERIALIZATION = "serialization"
    UNKNOWN = "unknown"


class StoreError(SpotauthError):
    """Raised when the key-value store cannot be read or written.

    Args:
        kind: The failure category.
        detail: Optional text describing the underlying cause.
    """

    exit_code = EXIT_STORE_ERROR

    def __init__(self, kind: StoreErrorKind, detail: str = ""):
        message = f"store error ({kind.value})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.kind = kind
        self.detail = detail
