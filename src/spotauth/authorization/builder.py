"""Pending authorization state and the authorization URL.

A :class:`PendingAuthorization` is created when a login starts, persisted
while the user is away at the accounts service, and consumed exactly once
when the callback URL comes back.  It holds the two secrets that bind the
callback to this request: the ``state`` nonce and the PKCE
``code_verifier``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Sequence
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field, field_validator

from spotauth.authorization.tokens import Credential, obtain_credential
from spotauth.exceptions import RejectedValueError
from spotauth.models import (
    DEFAULT_APP_URL,
    DEFAULT_CALLBACK_PATH,
    Scope,
    ScopeList,
    serialize_scopes,
    unique_scopes,
)
from spotauth.pkce import (
    CODE_VERIFIER_BYTES,
    MAX_CODE_VERIFIER_BYTES,
    MIN_CODE_VERIFIER_BYTES,
    SESSION_STATE_BYTES,
    base64url,
    compute_challenge,
    random_token,
)
from spotauth.url import (
    AUTHORIZE_URL,
    ensure_base_url,
    is_base_url,
    normalize_url,
    origin,
    with_path,
)

if TYPE_CHECKING:
    from spotauth.client.transport import HttpTransport


def _new_session_state() -> str:
    return random_token(SESSION_STATE_BYTES)


def _new_code_verifier() -> str:
    return random_token(CODE_VERIFIER_BYTES)


class PendingAuthorization(BaseModel):
    """State of an authorization request that has not been completed yet.

    Serialises to JSON with every field, including the verifier, so it can
    be carried across the redirect by a
    :class:`~spotauth.store.KeyValueStore`.

    Setters validate their input and leave the object untouched when they
    raise; on success they return ``self`` so calls can be chained::

        pending = PendingAuthorization.create("client-id")
        pending.set_session_state(b"state").set_code_verifier(b"x" * 32)
        url = await pending.build_authorization_url([Scope.USER_READ_EMAIL])
    """

    client_id: str = Field(frozen=True, description="Spotify application client ID")
    callback_url: str = Field(description="redirect_uri registered with the application")
    scope: ScopeList = Field(default_factory=list)
    session_state: str = Field(default_factory=_new_session_state, repr=False)
    code_verifier: str = Field(default_factory=_new_code_verifier, repr=False)

    @field_validator("callback_url")
    @classmethod
    def callback_url_is_base(cls, value: str) -> str:
        if not is_base_url(value):
            raise ValueError(f"URL is not a base URL: {value!r}")
        return normalize_url(value)

    @classmethod
    def create(
        cls,
        client_id: str,
        location: str = DEFAULT_APP_URL,
        callback_path: Sequence[str] = DEFAULT_CALLBACK_PATH,
    ) -> PendingAuthorization:
        """Start a new request with fresh random state and verifier.

        The callback URL is the origin of *location* followed by
        *callback_path* (``/authorised`` by default).

        Raises:
            NotABaseError: If *location* cannot be used as a base URL.
        """
        callback_url = with_path(origin(location), callback_path)
        return cls(client_id=client_id, callback_url=callback_url)

    def set_session_state(self, data: bytes) -> PendingAuthorization:
        """Replace the ``state`` nonce with *data*, base64url encoded.

        Raises:
            RejectedValueError: If *data* is empty.
        """
        if not data:
            raise RejectedValueError("session state must be at least 1 byte")
        self.session_state = base64url(data)
        return self

    def set_code_verifier(self, data: bytes) -> PendingAuthorization:
        """Replace the code verifier with *data*, base64url encoded.

        Raises:
            RejectedValueError: If *data* is not between 32 and 96 bytes.
        """
        if not MIN_CODE_VERIFIER_BYTES <= len(data) <= MAX_CODE_VERIFIER_BYTES:
            raise RejectedValueError(
                f"code verifier must be {MIN_CODE_VERIFIER_BYTES}-"
                f"{MAX_CODE_VERIFIER_BYTES} bytes, got {len(data)}"
            )
        self.code_verifier = base64url(data)
        return self

    def set_callback_url(self, url: str) -> PendingAuthorization:
        """Use *url*, normalised, as the ``redirect_uri``.

        Raises:
            NotABaseError: If *url* cannot be used as a base URL.
        """
        self.callback_url = ensure_base_url(str(url))
        return self

    def set_callback_path(
        self, *segments: str, location: str = DEFAULT_APP_URL
    ) -> PendingAuthorization:
        """Use the origin of *location* followed by *segments* as the ``redirect_uri``.

        Raises:
            NotABaseError: If *location* cannot be used as a base URL.
        """
        self.callback_url = with_path(origin(location), segments)
        return self

    async def build_authorization_url(self, scopes: Iterable[Scope] = ()) -> str:
        """Record *scopes* and render the URL to send the user to.

        Query parameters are always in the same order: ``client_id``,
        ``response_type``, ``redirect_uri``, ``state``,
        ``code_challenge_method``, ``code_challenge``, then ``scope`` only
        when at least one scope was requested.  With no scopes the token
        only grants access to public information.
        """
        self.scope = unique_scopes(Scope(scope) for scope in scopes)
        challenge = await compute_challenge(self.code_verifier)
        params = [
            ("client_id", self.client_id),
            ("response_type", "code"),
            ("redirect_uri", self.callback_url),
            ("state", self.session_state),
            ("code_challenge_method", "S256"),
            ("code_challenge", challenge),
        ]
        if self.scope:
            params.append(("scope", serialize_scopes(self.scope)))
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def build(
        self, callback_url: str | httpx.URL, transport: HttpTransport
    ) -> Credential:
        """Exchange the authorised *callback_url* for a :class:`Credential`.

        Shortcut for :func:`~spotauth.authorization.tokens.obtain_credential`.
        """
        return await obtain_credential(self, str(callback_url), transport)
