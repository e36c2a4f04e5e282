"""Validation of the redirect back from the accounts service."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlsplit

from spotauth.exceptions import (
    CodeMissingError,
    LoginError,
    StateMismatchError,
    StateMissingError,
    UrlMismatchError,
)
from spotauth.url import normalize_url

if TYPE_CHECKING:
    from spotauth.authorization.builder import PendingAuthorization


def callback_params(callback_url: str) -> dict[str, str]:
    """Decode the query of *callback_url*.

    When a parameter repeats, the last occurrence wins.  Parameters with
    blank values are kept.
    """
    return dict(parse_qsl(urlsplit(callback_url).query, keep_blank_values=True))


def validate_callback(
    pending: PendingAuthorization, callback_url: str
) -> tuple[str, PendingAuthorization]:
    """Check *callback_url* against *pending* and return the authorization code.

    Checks run in a fixed order and the first failure wins:

    1. an ``error`` parameter, whatever the ``state``
    2. a missing ``state``
    3. a ``state`` different from the one sent
    4. a missing ``code``
    5. a URL that, once normalised, does not start with the
       ``redirect_uri`` sent

    Returns:
        ``(code, pending)``; *pending* is handed back for the exchange.

    Raises:
        CallbackUrlError: One of its subclasses, per the list above.
    """
    params = callback_params(callback_url)

    if "error" in params:
        raise LoginError(params["error"])

    received = params.get("state")
    if received is None:
        raise StateMissingError()
    if received != pending.session_state:
        raise StateMismatchError(pending.session_state, received)

    code = params.get("code")
    if code is None:
        raise CodeMissingError()

    if not normalize_url(callback_url).startswith(pending.callback_url):
        raise UrlMismatchError(pending.callback_url, callback_url)

    return code, pending
