"""Web API client that keeps its credential fresh.

:class:`AuthenticatedClient` owns a :class:`~spotauth.authorization.tokens.Credential`
and a :class:`~spotauth.client.transport.HttpTransport`.  Before each call
it makes sure the token will outlive the call, refreshing it first if not,
then attaches ``Authorization: Bearer ...`` and sends the request.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, Optional, Union

import httpx

from spotauth.authorization.tokens import Credential
from spotauth.client.transport import BuildRequest, HttpTransport
from spotauth.exceptions import AuthError
from spotauth.output import get_output
from spotauth.url import API_URL


DEFAULT_EXPECTED_DURATION = timedelta(seconds=10)


class AuthenticatedClient:
    """Make authorised Web API requests, refreshing the token on demand.

    Concurrent requests share one refresh: the check-and-refresh step runs
    under an :class:`asyncio.Lock`, so callers queued behind a refresh find
    the new credential and send straight away.

    Args:
        credential: Initial credential; may already be expired.
        transport: Transport used for both refreshes and API calls.

    Example::

        async with HttpTransport() as http:
            client = AuthenticatedClient(credential, http)
            me = await client.call("GET", "me")
            credential = client.credential
    """

    def __init__(self, credential: Credential, transport: HttpTransport) -> None:
        self._credential = credential
        self._transport = transport
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential:
        """The credential currently held; replaced after each refresh.

        Save it once done so a rotated refresh token is not lost.
        """
        return self._credential

    async def _valid_credential(self, expected_duration: Union[timedelta, float]) -> Credential:
        async with self._lock:
            if not self._credential.is_valid_for(expected_duration):
                refreshed = await self._credential.refresh(self._transport)
                self._credential = refreshed
                if not refreshed.is_valid_for(expected_duration):
                    raise AuthError(
                        "refreshed access token expires in "
                        f"{refreshed.remaining().total_seconds():.0f}s, "
                        "before the request is expected to finish"
                    )
            return self._credential

    async def request(
        self,
        build_request: BuildRequest,
        expected_duration: Union[timedelta, float] = DEFAULT_EXPECTED_DURATION,
        response_type: Any = Any,
    ) -> Any:
        """Send the request from *build_request* with a bearer token.

        Args:
            build_request: Callable returning the :class:`httpx.Request`.
            expected_duration: How long the request may take; a token
                expiring sooner is refreshed first.
            response_type: Passed to :meth:`HttpTransport.request`; ``None``
                skips decoding.

        Raises:
            RequestError: If the refresh or the request itself fails.  A
                failed refresh leaves the held credential unchanged.
            AuthError: If even a fresh token cannot cover *expected_duration*.
        """
        credential = await self._valid_credential(expected_duration)

        def authorised(client: httpx.AsyncClient) -> httpx.Request:
            request = build_request(client)
            request.headers.update(credential.bearer_header())
            return request

        return await self._transport.request(authorised, response_type)

    async def call(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        response_type: Any = Any,
        expected_duration: Union[timedelta, float] = DEFAULT_EXPECTED_DURATION,
    ) -> Any:
        """Call the Web API at ``https://api.spotify.com/v1/<path>``.

        Returns the decoded JSON body, or ``None`` for an empty response.
        """
        url = f"{API_URL}/{path.lstrip('/')}"
        get_output().debug(f"Web API {method.upper()} {path}")

        def build(client: httpx.AsyncClient) -> httpx.Request:
            return client.build_request(method.upper(), url, params=params, json=json_body)

        return await self.request(build, expected_duration, response_type)
