"""Fixtures and helpers shared by the spotauth test suite.

Test modules import the plain helpers directly
(``from conftest import RecordingHandler, form_of, token_body``); the
fixtures are picked up by pytest as usual.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Union
from urllib.parse import parse_qsl

import httpx
import pytest
from typer.testing import CliRunner

from spotauth.client.transport import HttpTransport
from spotauth.output import reset_output


@pytest.fixture(autouse=True)
def _fresh_output_manager():
    # CliRunner swaps sys.stdout/sys.stderr; a manager created inside one
    # invocation must not outlive it.
    yield
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every spotauth directory at *tmp_path* and run from there.

    The ``SPOTAUTH_*`` variables are removed so the developer's own
    settings cannot leak into a test.
    """
    monkeypatch.setattr("spotauth.config._is_xdg_platform", lambda: True)
    for env_var, folder in (("XDG_CONFIG_HOME", "config"), ("XDG_DATA_HOME", "data")):
        monkeypatch.setenv(env_var, str(tmp_path / folder))
    monkeypatch.delenv("SPOTAUTH_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTAUTH_APP_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


# -- token endpoint ---------------------------------------------------- #


def token_body(
    access_token: str = "access-1",
    expires_in: int = 3600,
    refresh_token: str | None = "refresh-1",
    scope: str | None = None,
) -> dict[str, Any]:
    """JSON body as Spotify's token endpoint would send it."""
    optional = {"refresh_token": refresh_token, "scope": scope}
    return {
        "access_token": access_token,
        "token_type": "Bearer",
        "expires_in": expires_in,
        **{key: value for key, value in optional.items() if value is not None},
    }


def form_of(request: httpx.Request) -> dict[str, str]:
    return dict(parse_qsl(request.content.decode("ascii")))


Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class RecordingHandler:
    """Answers requests from a script of replies and keeps what it was sent.

    A reply is a response or a function of the request.  Once the script
    runs out the final reply is repeated.
    """

    def __init__(self, *replies: Reply):
        self.responses = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if not isinstance(reply, httpx.Response):
            return reply(request)
        # responses are single use
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)

    def transport(self) -> HttpTransport:
        return HttpTransport(transport=httpx.MockTransport(self))
