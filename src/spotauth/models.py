"""Canonical Pydantic models shared across spotauth modules.

The models fall into three groups:

**Scopes** -- :class:`Scope` and the :data:`ScopeList` annotated type that
serialises a list of scopes as the space-joined identifiers the accounts
service expects, and parses them back.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig`, :class:`StoreConfig`, and
:class:`GlobalConfig`.

**Token endpoint responses** -- :class:`TokenResponse` (authorization code
exchange) and :class:`RefreshResponse` (refresh grant).  Validation
failures surface as :class:`~spotauth.exceptions.BodyError` from the
transport, never as partially built credentials.

The stateful models, :class:`~spotauth.authorization.builder.PendingAuthorization`
and :class:`~spotauth.authorization.tokens.Credential`, live next to the
operations that mutate them.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Iterable, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, PlainSerializer


DEFAULT_APP_URL = "http://127.0.0.1:8888"
DEFAULT_CALLBACK_PATH = ("authorised",)


# --- Scopes ---


class Scope(str, enum.Enum):
    """Permission scopes documented by the Spotify Web API.

    Values are the exact identifiers sent in the ``scope`` query parameter.
    Requesting no scope at all grants access to public information only.
    """

    APP_REMOTE_CONTROL = "app-remote-control"
    PLAYLIST_MODIFY_PRIVATE = "playlist-modify-private"
    PLAYLIST_MODIFY_PUBLIC = "playlist-modify-public"
    PLAYLIST_READ_COLLABORATIVE = "playlist-read-collaborative"
    PLAYLIST_READ_PRIVATE = "playlist-read-private"
    STREAMING = "streaming"
    UGC_IMAGE_UPLOAD = "ugc-image-upload"
    USER_FOLLOW_MODIFY = "user-follow-modify"
    USER_FOLLOW_READ = "user-follow-read"
    USER_LIBRARY_MODIFY = "user-library-modify"
    USER_LIBRARY_READ = "user-library-read"
    USER_MODIFY_PLAYBACK_STATE = "user-modify-playback-state"
    USER_READ_CURRENTLY_PLAYING = "user-read-currently-playing"
    USER_READ_EMAIL = "user-read-email"
    USER_READ_PLAYBACK_POSITION = "user-read-playback-position"
    USER_READ_PLAYBACK_STATE = "user-read-playback-state"
    USER_READ_PRIVATE = "user-read-private"
    USER_READ_RECENTLY_PLAYED = "user-read-recently-played"
    USER_TOP_READ = "user-top-read"

    def __str__(self) -> str:
        return self.value


def unique_scopes(scopes: Iterable[Scope]) -> list[Scope]:
    """Drop repeated scopes, keeping the first occurrence of each."""
    return list(dict.fromkeys(scopes))


def serialize_scopes(scopes: Iterable[Scope]) -> str:
    """Join scope identifiers with a single space, preserving order.

    Example::

        >>> serialize_scopes([Scope.APP_REMOTE_CONTROL, Scope.STREAMING])
        'app-remote-control streaming'
    """
    return " ".join(Scope(scope).value for scope in scopes)


def parse_scopes(text: str) -> list[Scope]:
    """Parse a space-separated scope string.

    The empty string yields an empty list.

    Raises:
        ValueError: If any token is not a known scope.  The whole string is
            rejected; no partial result is returned.
    """
    if not text:
        return []
    scopes: list[Scope] = []
    for token in text.split(" "):
        try:
            scopes.append(Scope(token))
        except ValueError:
            raise ValueError(f"unknown scope {token!r}") from None
    return unique_scopes(scopes)


def _coerce_scopes(value: Any) -> Any:
    if isinstance(value, str):
        return parse_scopes(value)
    return value


ScopeList = Annotated[
    list[Scope],
    BeforeValidator(_coerce_scopes),
    AfterValidator(unique_scopes),
    PlainSerializer(serialize_scopes, return_type=str),
]
"""A list of :class:`Scope` that round-trips through a space-joined string."""


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP behaviour for the token endpoint and Web API calls."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    expected_duration: float = Field(
        default=10.0,
        ge=0,
        description="Seconds an API call may take; tokens expiring sooner are refreshed first",
    )


class StoreConfig(BaseModel):
    """Where pending authorisations and refresh tokens are kept."""

    backend: Literal["disk", "memory"] = Field(
        default="disk", description="Store backend: disk or memory"
    )
    pending_ttl_seconds: int = Field(
        default=600,
        ge=1,
        description="Seconds a started login may wait for its callback",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/spotauth/config.json``.

    Loaded and saved by :func:`~spotauth.config.load_global_config` and
    :func:`~spotauth.config.save_global_config`.  Fields here have the
    lowest precedence; see :func:`~spotauth.config.resolve_config` for the
    full chain.

    Example::

        GlobalConfig(
            client_id_source="env:SPOTIFY_CLIENT_ID",
            scopes="user-read-email user-top-read",
        )
    """

    client_id: Optional[str] = Field(
        default=None, description="Spotify application client ID"
    )
    client_id_source: Optional[str] = Field(
        default=None,
        description="Credential source for the client ID: env:VAR, file:/path, prompt",
    )
    app_url: str = Field(
        default=DEFAULT_APP_URL,
        description="Origin of this application; the callback URL is built from it",
    )
    callback_path: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CALLBACK_PATH),
        description="Path segments appended to app_url for the callback URL",
    )
    scopes: ScopeList = Field(
        default_factory=list, description="Scopes requested by default on login"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


# --- Token endpoint responses ---


class TokenResponse(BaseModel):
    """Token endpoint response to an ``authorization_code`` grant."""

    access_token: str
    token_type: Literal["Bearer"]
    expires_in: int = Field(
        strict=True, ge=0, description="Lifetime of the access token in seconds"
    )
    scope: Optional[ScopeList] = None
    refresh_token: str


class RefreshResponse(BaseModel):
    """Token endpoint response to a ``refresh_token`` grant.

    ``scope`` and ``refresh_token`` are optional: when absent, the values
    held by the refreshed credential are kept.
    """

    access_token: str
    token_type: Literal["Bearer"]
    expires_in: int = Field(
        strict=True, ge=0, description="Lifetime of the access token in seconds"
    )
    scope: Optional[ScopeList] = None
    refresh_token: Optional[str] = None
