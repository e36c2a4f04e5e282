"""The ``spotauth api`` command -- authorised Web API calls.

Loads the stored credential, refreshes it (a restored credential is always
stale), sends the request, and saves the credential back so a rotated
refresh token is not lost, even when the call itself fails.

Example::

    spotauth api GET me
    spotauth api GET me/top/tracks --param limit=5 --param time_range=short_term
    spotauth api PUT me/player/volume --param volume_percent=40
"""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from typing import Any, Optional

import typer

from spotauth.authorization import load_credential, save_credential
from spotauth.client import AuthenticatedClient, HttpTransport
from spotauth.commands import effective_config, make_transport
from spotauth.exceptions import AuthError, InvalidUsageError, SpotauthError
from spotauth.output import error, format_response, suggest
from spotauth.store import open_store

_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


def _parse_params(values: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected key=value, got: {item!r}")
        params[key] = value
    return params


def _parse_body(body: Optional[str]) -> Any:
    if body is None:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"--body is not valid JSON: {exc}") from exc


async def _call(
    http: HttpTransport,
    client: AuthenticatedClient,
    method: str,
    path: str,
    params: dict[str, str],
    body: Any,
    expected_duration: timedelta,
) -> Any:
    async with http:
        return await client.call(
            method,
            path,
            params=params or None,
            json_body=body,
            expected_duration=expected_duration,
        )


def api_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method: GET, POST, PUT, PATCH, DELETE."),
    path: str = typer.Argument(help="Path below https://api.spotify.com/v1, e.g. 'me'."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter as key=value; repeatable."
    ),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="JSON request body."),
) -> None:
    """Call the Spotify Web API with the stored credential."""
    method = method.upper()
    try:
        if method not in _METHODS:
            raise InvalidUsageError(f"Unsupported method: {method}")
        params = _parse_params(param or [])
        json_body = _parse_body(body)

        config = effective_config(ctx.obj)
        expected = timedelta(seconds=config.request.expected_duration)
        with open_store(config.store) as store:
            credential = load_credential(store)
            if credential is None:
                raise AuthError("Not logged in.")
            http = make_transport(config.request)
            client = AuthenticatedClient(credential, http)
            try:
                result = asyncio.run(
                    _call(http, client, method, path, params, json_body, expected)
                )
            finally:
                save_credential(store, client.credential)
    except SpotauthError as exc:
        error(str(exc))
        if isinstance(exc, AuthError):
            suggest("Log in: spotauth auth login")
        raise typer.Exit(code=exc.exit_code) from None

    format_response(result)
