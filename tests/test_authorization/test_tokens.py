"""Tests for Credential, the code exchange, and the refresh grant."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest
from pydantic import ValidationError
from conftest import RecordingHandler, form_of, token_body

from spotauth.authorization import (
    Credential,
    PendingAuthorization,
    RefreshToken,
    exchange_code,
    obtain_credential,
)
from spotauth.exceptions import (
    AccessTokenError,
    BodyError,
    CodeMissingError,
    StateMismatchError,
    StatusError,
    TransportError,
)
from spotauth.models import Scope


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_credential(
    expires_at: float = 0.0,
    scope: list[Scope] | None = None,
    refresh_token: str = "refresh-0",
) -> Credential:
    return Credential(
        access_token="access-0",
        expires_at=expires_at,
        scope=scope if scope is not None else [Scope.USER_READ_EMAIL],
        refresh_token=RefreshToken(token=refresh_token, client_id="client-123"),
    )


def _make_pending() -> PendingAuthorization:
    pending = PendingAuthorization.create("client-123").set_session_state(b"state")
    asyncio.run(pending.build_authorization_url([Scope.USER_TOP_READ]))
    return pending


def _callback(pending: PendingAuthorization, code: str = "the-code") -> str:
    return f"{pending.callback_url}?code={code}&state={pending.session_state}"


async def _refresh(credential: Credential, handler: RecordingHandler) -> Credential:
    async with handler.transport() as http:
        return await credential.refresh(http)


async def _exchange(pending: PendingAuthorization, handler: RecordingHandler) -> Credential:
    async with handler.transport() as http:
        return await exchange_code(pending, "the-code", http)


async def _obtain(pending: PendingAuthorization, url: str, handler: RecordingHandler) -> Credential:
    async with handler.transport() as http:
        return await obtain_credential(pending, url, http)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Controllable monotonic clock for expiry checks."""
    now = [1000.0]
    monkeypatch.setattr("spotauth.authorization.tokens.time.monotonic", lambda: now[0])
    return now


# ---------------------------------------------------------------------------
# Credential
# ---------------------------------------------------------------------------


class TestCredentialValidity:
    def test_valid_well_before_expiry(self, clock) -> None:
        credential = _make_credential(expires_at=clock[0] + 3600)
        assert credential.is_valid_for(timedelta(seconds=10))

    def test_invalid_within_lookahead(self, clock) -> None:
        credential = _make_credential(expires_at=clock[0] + 5)
        assert not credential.is_valid_for(10)
        assert credential.is_valid_for(4)

    def test_expired(self, clock) -> None:
        credential = _make_credential(expires_at=clock[0] - 1)
        assert not credential.is_valid_for(0)

    def test_remaining_never_negative(self, clock) -> None:
        assert _make_credential(expires_at=clock[0] - 50).remaining() == timedelta(0)
        assert _make_credential(expires_at=clock[0] + 50).remaining() == timedelta(seconds=50)

    def test_bearer_header(self) -> None:
        assert _make_credential().bearer_header() == {"Authorization": "Bearer access-0"}

    def test_client_id(self) -> None:
        assert _make_credential().client_id == "client-123"

    def test_frozen(self) -> None:
        credential = _make_credential()
        with pytest.raises(ValidationError):
            credential.access_token = "other"


class TestCredentialSerialisation:
    def test_access_token_and_expiry_not_serialised(self) -> None:
        data = _make_credential(expires_at=99999.0).model_dump(mode="json")
        assert data == {
            "scope": "user-read-email",
            "refresh_token": {"token": "refresh-0", "client_id": "client-123"},
        }

    def test_restored_credential_is_stale(self, clock) -> None:
        raw = _make_credential(expires_at=clock[0] + 3600).model_dump_json()
        restored = Credential.model_validate_json(raw)
        assert restored.access_token == ""
        assert restored.expires_at == clock[0]
        assert not restored.is_valid_for(0)
        assert restored.refresh_token.token == "refresh-0"
        assert restored.scope == [Scope.USER_READ_EMAIL]

    def test_empty_scope_round_trips(self) -> None:
        raw = _make_credential(scope=[]).model_dump_json()
        assert Credential.model_validate_json(raw).scope == []

    def test_refresh_token_hidden_from_repr(self) -> None:
        assert "refresh-0" not in repr(_make_credential())


# ---------------------------------------------------------------------------
# Refresh grant
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_posts_refresh_grant(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body(refresh_token=None)))
        asyncio.run(_refresh(_make_credential(), handler))

        (request,) = handler.requests
        assert request.method == "POST"
        assert str(request.url) == "https://accounts.spotify.com/api/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["accept"] == "application/json"
        assert form_of(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-0",
            "client_id": "client-123",
        }

    def test_keeps_refresh_token_and_scope_when_absent(self, clock) -> None:
        handler = RecordingHandler(
            httpx.Response(200, json=token_body(access_token="new", expires_in=60, refresh_token=None))
        )
        old = _make_credential()
        new = asyncio.run(_refresh(old, handler))

        assert new.access_token == "new"
        assert new.expires_at == clock[0] + 60
        assert new.refresh_token == old.refresh_token
        assert new.scope == old.scope
        assert old.access_token == "access-0"

    def test_adopts_rotated_refresh_token_and_scope(self) -> None:
        handler = RecordingHandler(
            httpx.Response(200, json=token_body(refresh_token="refresh-1", scope="streaming"))
        )
        new = asyncio.run(_refresh(_make_credential(), handler))
        assert new.refresh_token == RefreshToken(token="refresh-1", client_id="client-123")
        assert new.scope == [Scope.STREAMING]

    def test_status_error(self) -> None:
        handler = RecordingHandler(httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(StatusError) as exc_info:
            asyncio.run(_refresh(_make_credential(), handler))
        assert exc_info.value.status_code == 400
        assert "invalid_grant" in exc_info.value.body

    def test_body_error(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json={"access_token": "a"}))
        with pytest.raises(BodyError):
            asyncio.run(_refresh(_make_credential(), handler))


# ---------------------------------------------------------------------------
# Code exchange
# ---------------------------------------------------------------------------


class TestExchangeCode:
    def test_posts_authorization_code_grant(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        asyncio.run(_exchange(pending, handler))

        assert form_of(handler.requests[0]) == {
            "grant_type": "authorization_code",
            "code": "the-code",
            "redirect_uri": "http://127.0.0.1:8888/authorised",
            "client_id": "client-123",
            "code_verifier": pending.code_verifier,
        }

    def test_builds_credential(self, clock) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body(scope="user-top-read")))
        credential = asyncio.run(_exchange(_make_pending(), handler))
        assert credential.access_token == "access-1"
        assert credential.expires_at == clock[0] + 3600
        assert credential.refresh_token == RefreshToken(token="refresh-1", client_id="client-123")
        assert credential.scope == [Scope.USER_TOP_READ]

    def test_scope_falls_back_to_requested(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        credential = asyncio.run(_exchange(_make_pending(), handler))
        assert credential.scope == [Scope.USER_TOP_READ]

    def test_empty_scope_string_means_none_granted(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body(scope="")))
        credential = asyncio.run(_exchange(_make_pending(), handler))
        assert credential.scope == []

    def test_missing_refresh_token_is_body_error(self) -> None:
        handler = RecordingHandler(httpx.Response(200, json=token_body(refresh_token=None)))
        with pytest.raises(BodyError):
            asyncio.run(_exchange(_make_pending(), handler))


class TestObtainCredential:
    def test_success(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        credential = asyncio.run(_obtain(pending, _callback(pending), handler))
        assert credential.access_token == "access-1"
        assert form_of(handler.requests[0])["code"] == "the-code"

    def test_callback_error_wrapped_without_request(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        url = f"{pending.callback_url}?code=x&state=wrong"
        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_obtain(pending, url, handler))
        assert isinstance(exc_info.value.error, StateMismatchError)
        assert exc_info.value.is_callback_error
        assert handler.requests == []

    def test_request_error_wrapped(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(500, text="oops"))
        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_obtain(pending, _callback(pending), handler))
        assert isinstance(exc_info.value.error, StatusError)
        assert not exc_info.value.is_callback_error
        assert exc_info.value.exit_code == 6

    def test_redirect_from_token_endpoint_wrapped(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(302, text="moved"))
        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_obtain(pending, _callback(pending), handler))
        assert isinstance(exc_info.value.error, StatusError)
        assert exc_info.value.error.status_code == 302

    def test_transport_error_wrapped(self) -> None:
        pending = _make_pending()

        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_obtain(pending, _callback(pending), RecordingHandler(fail)))
        assert isinstance(exc_info.value.error, TransportError)

    def test_build_shortcut(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(200, json=token_body()))

        async def run() -> Credential:
            async with handler.transport() as http:
                return await pending.build(httpx.URL(_callback(pending)), http)

        assert asyncio.run(run()).refresh_token.token == "refresh-1"

    def test_missing_code_wrapped(self) -> None:
        pending = _make_pending()
        handler = RecordingHandler(httpx.Response(200, json=token_body()))
        url = f"{pending.callback_url}?state={pending.session_state}"
        with pytest.raises(AccessTokenError) as exc_info:
            asyncio.run(_obtain(pending, url, handler))
        assert isinstance(exc_info.value.error, CodeMissingError)


class TestLookaheadWindow:
    def test_ten_seconds_left(self, clock) -> None:
        credential = _make_credential(expires_at=clock[0] + 10)
        assert credential.is_valid_for(timedelta(seconds=5))
        assert not credential.is_valid_for(timedelta(seconds=20))

    def test_expires_now(self, clock) -> None:
        assert not _make_credential(expires_at=clock[0]).is_valid_for(0)
