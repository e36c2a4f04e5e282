"""Auth commands -- log in to Spotify and manage the stored credential.

Provides the ``spotauth auth`` sub-command group.  A login is split over
two invocations because the user finishes it in a browser:

    spotauth auth login --scope user-read-email   # prints the authorize URL
    spotauth auth callback 'http://127.0.0.1:8888/authorised?code=...&state=...'
    spotauth auth status

Between the two steps the pending authorization lives in the store; it
expires after ``store.pending_ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import webbrowser
from typing import Optional

import typer

from spotauth.authorization import (
    Credential,
    PendingAuthorization,
    begin_authorization,
    complete_authorization,
    describe_authorization_error,
    forget_credential,
    load_credential,
    save_credential,
)
from spotauth.commands import effective_config, make_transport
from spotauth.config import resolve_client_id
from spotauth.exceptions import SpotauthError
from spotauth.exit_codes import EXIT_AUTH_FAILURE, EXIT_INVALID_USAGE
from spotauth.models import GlobalConfig, Scope
from spotauth.output import (
    error,
    info,
    print_data,
    print_record,
    print_table,
    success,
    suggest,
)
from spotauth.store import StoreKey, open_store


auth_app = typer.Typer(no_args_is_help=True)


def _parse_scope_options(values: list[str]) -> list[Scope]:
    scopes: list[Scope] = []
    for value in values:
        for token in value.split():
            try:
                scopes.append(Scope(token))
            except ValueError:
                error(f"Unknown scope: {token}")
                suggest("List valid scopes: spotauth auth scopes")
                raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    return scopes


def _credential_record(credential: Credential) -> dict[str, object]:
    return {
        "client_id": credential.client_id,
        "scope": [scope.value for scope in credential.scope],
        "expires_in": int(credential.remaining().total_seconds()),
    }


async def _refresh(config: GlobalConfig, credential: Credential) -> Credential:
    async with make_transport(config.request) as http:
        return await credential.refresh(http)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    scope: Optional[list[str]] = typer.Option(
        None,
        "--scope",
        "-s",
        help="Scope to request; repeatable or space-separated. Defaults to config scopes.",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the URL without opening a browser."
    ),
) -> None:
    """Start a login and print the Spotify authorization URL.

    The pending authorization (state nonce and PKCE verifier) is saved so
    that ``spotauth auth callback`` can complete it.
    """
    try:
        config = effective_config(ctx.obj)
        client_id = resolve_client_id(config)
        scopes = _parse_scope_options(scope) if scope else list(config.scopes)
        with open_store(config.store) as store:
            _, url = asyncio.run(
                begin_authorization(
                    store,
                    client_id,
                    scopes,
                    location=config.app_url,
                    callback_path=config.callback_path,
                    ttl=config.store.pending_ttl_seconds,
                )
            )
    except SpotauthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_data(url)
    if not no_browser:
        webbrowser.open(url)
    suggest("After authorising, run: spotauth auth callback '<redirected URL>'")


@auth_app.command("callback")
def auth_callback(
    ctx: typer.Context,
    url: str = typer.Argument(help="The full URL Spotify redirected the browser to."),
) -> None:
    """Complete the login with the redirected callback URL."""

    async def _complete(config: GlobalConfig) -> Credential:
        with open_store(config.store) as store:
            async with make_transport(config.request) as http:
                credential = await complete_authorization(store, url, http)
            save_credential(store, credential)
        return credential

    try:
        config = effective_config(ctx.obj)
        credential = asyncio.run(_complete(config))
    except SpotauthError as exc:
        summary, diagnostic, retry = describe_authorization_error(exc)
        error(summary)
        if diagnostic:
            info(diagnostic)
        if retry:
            suggest("Login to try again: spotauth auth login")
        raise typer.Exit(code=exc.exit_code) from None

    success("Authorised successfully.")
    print_record(_credential_record(credential), title="Credential")


@auth_app.command("status")
def auth_status(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False, "--refresh", help="Refresh the access token to verify the credential."
    ),
) -> None:
    """Show the stored credential (client ID and granted scopes)."""
    try:
        config = effective_config(ctx.obj)
        with open_store(config.store) as store:
            credential = load_credential(store)
            if credential is None:
                error("Not logged in.")
                suggest("Log in: spotauth auth login")
                raise typer.Exit(code=EXIT_AUTH_FAILURE)
            if refresh:
                credential = asyncio.run(_refresh(config, credential))
                save_credential(store, credential)
                success("Credential refreshed.")
    except SpotauthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    record = _credential_record(credential)
    if not refresh:
        record.pop("expires_in")
    print_record(record, title="Credential")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Delete the stored credential and any unfinished login."""
    try:
        config = effective_config(ctx.obj)
        with open_store(config.store) as store:
            had_credential = forget_credential(store)
            store.remove(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization)
    except SpotauthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if had_credential:
        success("Logged out.")
    else:
        info("No stored credential.")


@auth_app.command("scopes")
def auth_scopes(ctx: typer.Context) -> None:
    """List every scope and whether the stored credential grants it."""
    try:
        config = effective_config(ctx.obj)
        with open_store(config.store) as store:
            credential = load_credential(store)
    except SpotauthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    granted = set(credential.scope) if credential is not None else set()
    rows = [[scope.value, "yes" if scope in granted else "no"] for scope in Scope]
    print_table(["scope", "granted"], rows)
