"""The login flow across a store: start, complete, and remember.

Starting a login persists the :class:`PendingAuthorization` so that a later
process (or request handler) receiving the callback can pick it up.
Completing it removes the pending state before anything else, so a callback
URL can be redeemed at most once.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from spotauth.authorization.builder import PendingAuthorization
from spotauth.authorization.tokens import Credential, obtain_credential
from spotauth.client.transport import HttpTransport
from spotauth.exceptions import (
    AccessTokenError,
    NoAuthorizationStateError,
    SpotauthError,
    StoreError,
)
from spotauth.models import DEFAULT_APP_URL, DEFAULT_CALLBACK_PATH, Scope
from spotauth.output import get_output
from spotauth.store import KeyValueStore, StoreKey


async def begin_authorization(
    store: KeyValueStore,
    client_id: str,
    scopes: Iterable[Scope] = (),
    location: str = DEFAULT_APP_URL,
    callback_path: Sequence[str] = DEFAULT_CALLBACK_PATH,
    ttl: Optional[float] = None,
) -> tuple[PendingAuthorization, str]:
    """Create and persist a pending authorization.

    Any login started earlier and not completed is replaced.

    Args:
        store: Where the pending state is kept until the callback.
        client_id: Spotify application client ID.
        scopes: Scopes to request.
        location: Application URL whose origin hosts the callback.
        callback_path: Path segments of the callback below the origin.
        ttl: Seconds the pending state is kept, or ``None`` for no limit.

    Returns:
        ``(pending, authorization_url)``.
    """
    pending = PendingAuthorization.create(client_id, location, callback_path)
    url = await pending.build_authorization_url(scopes)
    previous = store.insert(StoreKey.PENDING_AUTHORIZATION, pending, expire=ttl)
    if previous is not None:
        get_output().debug("Replaced an unfinished login")
    return pending, url


async def complete_authorization(
    store: KeyValueStore, callback_url: str, transport: HttpTransport
) -> Credential:
    """Redeem *callback_url* using the pending state held in *store*.

    Raises:
        NoAuthorizationStateError: If no login was started, or it expired.
        AccessTokenError: If the callback or the exchange fails.
        StoreError: If the store cannot be read.
    """
    pending = store.remove(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization)
    if pending is None:
        raise NoAuthorizationStateError()
    return await obtain_credential(pending, callback_url, transport)


def save_credential(store: KeyValueStore, credential: Credential) -> None:
    """Persist the refreshable part of *credential*."""
    store.insert(StoreKey.CREDENTIAL, credential)


def load_credential(store: KeyValueStore) -> Optional[Credential]:
    """Return the saved credential; it must be refreshed before use."""
    return store.get(StoreKey.CREDENTIAL, Credential)


def forget_credential(store: KeyValueStore) -> bool:
    """Delete the saved credential.  Returns ``False`` if there was none."""
    return store.remove(StoreKey.CREDENTIAL, Credential) is not None


def describe_authorization_error(exc: SpotauthError) -> tuple[str, Optional[str], bool]:
    """Summarise a failed login for the user.

    Returns:
        ``(summary, diagnostic, retry)``: a headline, optional detail text,
        and whether starting the login again is likely to help.
    """
    if isinstance(exc, AccessTokenError):
        if exc.is_callback_error:
            return "the request responded with an error", str(exc.error), True
        return "failed to request authorisation", str(exc.error), True
    if isinstance(exc, NoAuthorizationStateError):
        return str(exc), None, True
    if isinstance(exc, StoreError):
        return "error using the credential store", str(exc), False
    return "authorisation failed", str(exc), False
