"""Tests for the login flow across a store."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import RecordingHandler, form_of, token_body

from spotauth.authorization import (
    Credential,
    PendingAuthorization,
    RefreshToken,
    begin_authorization,
    complete_authorization,
    describe_authorization_error,
    forget_credential,
    load_credential,
    save_credential,
)
from spotauth.exceptions import (
    AccessTokenError,
    ConfigError,
    LoginError,
    NoAuthorizationStateError,
    StatusError,
    StoreError,
    StoreErrorKind,
)
from spotauth.models import Scope
from spotauth.store import MemoryStore, StoreKey


async def _complete(store: MemoryStore, url: str, handler: RecordingHandler) -> Credential:
    async with handler.transport() as http:
        return await complete_authorization(store, url, http)


def _callback(pending: PendingAuthorization) -> str:
    return f"{pending.callback_url}?code=abc&state={pending.session_state}"


class TestBeginAuthorization:
    def test_persists_pending_state(self) -> None:
        store = MemoryStore()
        pending, url = asyncio.run(begin_authorization(store, "client-123", [Scope.STREAMING]))

        stored = store.get(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization)
        assert stored == pending
        assert stored.scope == [Scope.STREAMING]
        assert f"state={pending.session_state}" in url

    def test_custom_location_and_path(self) -> None:
        pending, _ = asyncio.run(
            begin_authorization(
                MemoryStore(),
                "c",
                location="http://localhost:5000/home",
                callback_path=["auth", "spotify"],
            )
        )
        assert pending.callback_url == "http://localhost:5000/auth/spotify"

    def test_replaces_unfinished_login(self) -> None:
        store = MemoryStore()
        first, _ = asyncio.run(begin_authorization(store, "c"))
        second, _ = asyncio.run(begin_authorization(store, "c"))

        assert store.get(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization) == second
        assert first.session_state != second.session_state

    def test_ttl_expires_pending_state(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [0.0]
        store = MemoryStore()
        monkeypatch.setattr("spotauth.store.memory.time.monotonic", lambda: now[0])
        asyncio.run(begin_authorization(store, "c", ttl=600))
        now[0] = 601.0
        assert store.get(StoreKey.PENDING_AUTHORIZATION, PendingAuthorization) is None


class TestCompleteAuthorization:
    def test_success(self) -> None:
        store = MemoryStore()
        pending, _ = asyncio.run(begin_authorization(store, "client-123", [Scope.USER_TOP_READ]))
        handler = RecordingHandler(httpx.Response(200, json=token_body()))

        credential = asyncio.run(_complete(store, _callback(pending), handler))

        assert credential.scope == [Scope.USER_TOP_READ]
        assert form_of(handler.requests[0])["code_verifier"] == pending.code_verifier
        assert len(store) == 0

    def test_no_pending_state(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        with pytest.raises(NoAuthorizationStateError):
            asyncio.run(_complete(MemoryStore(), "http://127.0.0.1:8888/authorised?code=a&state=b", handler))
        assert handler.requests == []

    def test_callback_redeemable_once(self) -> None:
        store = MemoryStore()
        pending, _ = asyncio.run(begin_authorization(store, "c"))
        handler = RecordingHandler(httpx.Response(200, json=token_body()))

        asyncio.run(_complete(store, _callback(pending), handler))
        with pytest.raises(NoAuthorizationStateError):
            asyncio.run(_complete(store, _callback(pending), handler))

    def test_failure_still_consumes_pending_state(self) -> None:
        store = MemoryStore()
        pending, _ = asyncio.run(begin_authorization(store, "c"))
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        url = f"{pending.callback_url}?error=access_denied&state={pending.session_state}"

        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_complete(store, url, handler))
        assert isinstance(exc_info.value.error, LoginError)
        assert len(store) == 0


class TestCredentialPersistence:
    def _credential(self) -> Credential:
        return Credential(
            access_token="secret-access",
            expires_at=10**9,
            scope=[Scope.STREAMING],
            refresh_token=RefreshToken(token="r", client_id="c"),
        )

    def test_save_and_load(self) -> None:
        store = MemoryStore()
        save_credential(store, self._credential())
        loaded = load_credential(store)
        assert loaded.refresh_token == RefreshToken(token="r", client_id="c")
        assert loaded.scope == [Scope.STREAMING]
        assert loaded.access_token == ""

    def test_load_missing(self) -> None:
        assert load_credential(MemoryStore()) is None

    def test_forget(self) -> None:
        store = MemoryStore()
        save_credential(store, self._credential())
        assert forget_credential(store) is True
        assert forget_credential(store) is False
        assert load_credential(store) is None


class TestDescribeAuthorizationError:
    def test_callback_error(self) -> None:
        summary, diagnostic, retry = describe_authorization_error(
            AccessTokenError(LoginError("access_denied"))
        )
        assert summary == "the request responded with an error"
        assert "access_denied" in diagnostic
        assert retry is True

    def test_request_error(self) -> None:
        summary, diagnostic, retry = describe_authorization_error(
            AccessTokenError(StatusError(503, "unavailable"))
        )
        assert summary == "failed to request authorisation"
        assert "503" in diagnostic
        assert retry is True

    def test_missing_state(self) -> None:
        summary, diagnostic, retry = describe_authorization_error(NoAuthorizationStateError())
        assert summary == "authorisation request state is missing"
        assert diagnostic is None
        assert retry is True

    def test_store_error(self) -> None:
        summary, _, retry = describe_authorization_error(
            StoreError(StoreErrorKind.ACCESS_DENIED, "denied")
        )
        assert summary == "error using the credential store"
        assert retry is False

    def test_other_error(self) -> None:
        summary, diagnostic, retry = describe_authorization_error(ConfigError("bad"))
        assert summary == "authorisation failed"
        assert diagnostic == "bad"
        assert retry is False
