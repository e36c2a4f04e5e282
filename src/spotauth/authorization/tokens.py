"""Bearer credentials: the authorization-code exchange and the refresh grant.

Both grants post a form to the token endpoint through an
:class:`~spotauth.client.transport.HttpTransport` and build a new, frozen
:class:`Credential` from the validated response.  A failed request never
yields a partial credential.

Expiry uses :func:`time.monotonic`, so it is unaffected by wall-clock
changes but meaningless across processes.  For that reason only the
refreshable part of a credential is serialised; a restored credential is
already stale and refreshes on first use.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, ConfigDict, Field

from spotauth.authorization.callback import validate_callback
from spotauth.exceptions import AccessTokenError, CallbackUrlError, RequestError
from spotauth.models import RefreshResponse, ScopeList, TokenResponse
from spotauth.output import get_output
from spotauth.url import TOKEN_URL

if TYPE_CHECKING:
    from spotauth.authorization.builder import PendingAuthorization
    from spotauth.client.transport import HttpTransport

Lookahead = Union[timedelta, float]


def _seconds(lookahead: Lookahead) -> float:
    if isinstance(lookahead, timedelta):
        return lookahead.total_seconds()
    return float(lookahead)


class RefreshToken(BaseModel):
    """A refresh token and the client it was issued to."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)
    client_id: str


class Credential(BaseModel):
    """An access token with its expiry, granted scopes, and refresh token.

    Attributes:
        access_token: The bearer secret.  Never serialised.
        expires_at: :func:`time.monotonic` deadline.  Never serialised;
            defaults to "now".
        scope: Scopes granted by the user.
        refresh_token: Used by :meth:`refresh`.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(default="", exclude=True, repr=False)
    expires_at: float = Field(default_factory=lambda: time.monotonic(), exclude=True)
    scope: ScopeList = Field(default_factory=list)
    refresh_token: RefreshToken

    @property
    def client_id(self) -> str:
        return self.refresh_token.client_id

    def is_valid_for(self, lookahead: Lookahead) -> bool:
        """True if the token will still be valid *lookahead* from now.

        An expired token, or one expiring within *lookahead*, is not valid.
        """
        return time.monotonic() < self.expires_at - _seconds(lookahead)

    def remaining(self) -> timedelta:
        """Time left before expiry, never negative."""
        return timedelta(seconds=max(0.0, self.expires_at - time.monotonic()))

    def bearer_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def refresh(self, transport: HttpTransport) -> Credential:
        """Return a new credential from the ``refresh_token`` grant.

        The refresh token, client ID and scopes carry over unless the
        response supplies new ones.  ``self`` is not modified.

        Raises:
            RequestError: If the token endpoint call fails.
        """
        form = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token.token,
            "client_id": self.refresh_token.client_id,
        }
        get_output().debug("Refreshing access token")
        response: RefreshResponse = await transport.request(
            lambda client: client.build_request("POST", TOKEN_URL, data=form),
            RefreshResponse,
        )
        refresh_token = self.refresh_token
        if response.refresh_token:
            refresh_token = RefreshToken(
                token=response.refresh_token, client_id=self.refresh_token.client_id
            )
        return Credential(
            access_token=response.access_token,
            expires_at=time.monotonic() + response.expires_in,
            scope=response.scope if response.scope is not None else self.scope,
            refresh_token=refresh_token,
        )


async def exchange_code(
    pending: PendingAuthorization, code: str, transport: HttpTransport
) -> Credential:
    """Trade an authorization *code* for a :class:`Credential`.

    When the response omits ``scope``, the scopes recorded in *pending* are
    assumed to have been granted.

    Raises:
        RequestError: If the token endpoint call fails.
    """
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": pending.callback_url,
        "client_id": pending.client_id,
        "code_verifier": pending.code_verifier,
    }
    get_output().debug("Exchanging authorization code")
    response: TokenResponse = await transport.request(
        lambda client: client.build_request("POST", TOKEN_URL, data=form),
        TokenResponse,
    )
    return Credential(
        access_token=response.access_token,
        expires_at=time.monotonic() + response.expires_in,
        scope=response.scope if response.scope is not None else pending.scope,
        refresh_token=RefreshToken(
            token=response.refresh_token, client_id=pending.client_id
        ),
    )


async def obtain_credential(
    pending: PendingAuthorization, callback_url: str, transport: HttpTransport
) -> Credential:
    """Validate *callback_url* against *pending*, then exchange the code.

    Raises:
        AccessTokenError: Wrapping the :class:`CallbackUrlError` or
            :class:`RequestError` that stopped the flow.
    """
    try:
        code, pending = validate_callback(pending, callback_url)
        return await exchange_code(pending, code, transport)
    except (CallbackUrlError, RequestError) as exc:
        raise AccessTokenError(exc) from exc
