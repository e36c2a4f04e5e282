"""Asynchronous HTTP transport with uniform error mapping.

:class:`HttpTransport` wraps :class:`httpx.AsyncClient`.  Callers pass a
*request builder* (a callable that receives the client and returns an
:class:`httpx.Request`) and a *response type*; the transport sends the
request, maps failures into the :class:`~spotauth.exceptions.RequestError`
taxonomy, and validates the body with Pydantic:

* network, DNS, TLS and timeout failures -> :class:`~spotauth.exceptions.TransportError`
* any response outside ``2xx``, redirects included (they are not followed)
  -> :class:`~spotauth.exceptions.StatusError`
* a ``2xx`` body that does not validate -> :class:`~spotauth.exceptions.BodyError`

No retries are attempted; token endpoint calls are not idempotent.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from spotauth.exceptions import BodyError, StatusError, TransportError
from spotauth.models import RequestConfig
from spotauth.output import get_output

BuildRequest = Callable[[httpx.AsyncClient], httpx.Request]
"""Builds the request to send; receives the transport's client."""


class HttpTransport:
    """Send requests built by callers and decode their JSON responses.

    Can be used as an async context manager, which closes the underlying
    client on exit.  Outside a context the client is created on first use
    and released by :meth:`aclose`.

    Args:
        config: Timeout and SSL settings.
        transport: Optional :class:`httpx.AsyncBaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        async with HttpTransport(RequestConfig(timeout=10)) as http:
            me = await http.request(
                lambda client: client.build_request("GET", "https://api.spotify.com/v1/me"),
                dict,
            )
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, build_request: BuildRequest, response_type: Any) -> Any:
        """Send the request from *build_request* and decode the response.

        ``Accept: application/json`` is always set.  An empty body is
        validated as JSON ``null``.

        Args:
            build_request: Callable returning the :class:`httpx.Request`.
            response_type: Type the body is validated against.  ``None``
                skips decoding entirely and returns ``None``.

        Returns:
            The validated body.

        Raises:
            TransportError: If the request could not be completed.
            StatusError: On any response outside ``2xx``.
            BodyError: If the body does not validate against *response_type*.
        """
        client = self.client
        request = build_request(client)
        request.headers["Accept"] = "application/json"

        output = get_output()
        output.debug(f"{request.method} {request.url.host}{request.url.path}")
        try:
            response = await client.send(request)
        except httpx.HTTPError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        output.debug(f"HTTP {response.status_code} {response.reason_phrase}")

        if not response.is_success:
            raise StatusError(response.status_code, response.text or None)

        if response_type is None:
            return None

        body = response.text
        try:
            return TypeAdapter(response_type).validate_json(body or "null")
        except ValidationError as exc:
            raise BodyError(body, str(exc)) from exc
