"""Tests for spotauth.url."""

from __future__ import annotations

import pytest

from spotauth.exceptions import NotABaseError
from spotauth.url import (
    AUTHORIZE_URL,
    TOKEN_URL,
    ensure_base_url,
    is_base_url,
    normalize_url,
    origin,
    with_path,
)


class TestEndpoints:
    def test_authorize_url(self) -> None:
        assert AUTHORIZE_URL == "https://accounts.spotify.com/authorize"

    def test_token_url(self) -> None:
        assert TOKEN_URL == "https://accounts.spotify.com/api/token"


class TestIsBaseUrl:
    @pytest.mark.parametrize(
        "url",
        ["http://127.0.0.1:8888", "https://example.com/a/b", "file:///tmp/x"],
    )
    def test_base_urls(self, url: str) -> None:
        assert is_base_url(url)

    @pytest.mark.parametrize(
        "url",
        ["mailto:user@example.com", "data:text/plain,hi", "example.com/path", ""],
    )
    def test_not_base_urls(self, url: str) -> None:
        assert not is_base_url(url)

    def test_ensure_raises(self) -> None:
        with pytest.raises(NotABaseError) as exc_info:
            ensure_base_url("mailto:user@example.com")
        assert exc_info.value.url == "mailto:user@example.com"


class TestWithPath:
    def test_appends_to_origin(self) -> None:
        assert with_path("http://127.0.0.1:8888", ["authorised"]) == (
            "http://127.0.0.1:8888/authorised"
        )

    def test_replaces_trailing_empty_segment(self) -> None:
        assert with_path("https://example.com/app/", ["cb"]) == "https://example.com/app/cb"

    def test_nested_segments(self) -> None:
        assert with_path("https://example.com", ["a", "b"]) == "https://example.com/a/b"

    def test_segment_slash_is_encoded(self) -> None:
        assert with_path("https://example.com", ["a/b"]) == "https://example.com/a%2Fb"

    def test_no_segments_is_unchanged(self) -> None:
        assert with_path("https://example.com/x/", []) == "https://example.com/x/"

    def test_keeps_query(self) -> None:
        assert with_path("https://example.com/a?x=1", ["b"]) == "https://example.com/a/b?x=1"

    def test_rejects_non_base(self) -> None:
        with pytest.raises(NotABaseError):
            with_path("mailto:a@b", ["x"])


class TestOrigin:
    def test_drops_path_and_query(self) -> None:
        assert origin("http://localhost:3000/some/page?q=1#f") == "http://localhost:3000"

    def test_rejects_non_base(self) -> None:
        with pytest.raises(NotABaseError):
            origin("data:text/plain,hi")


class TestNormalizeUrl:
    def test_empty_path_becomes_slash(self) -> None:
        assert normalize_url("http://localhost") == "http://localhost/"

    def test_scheme_and_host_lower_cased(self) -> None:
        assert normalize_url("HTTP://LocalHost:8888/Path") == "http://localhost:8888/Path"

    def test_userinfo_kept(self) -> None:
        assert normalize_url("https://User@Example.com") == "https://User@example.com/"

    def test_query_kept(self) -> None:
        assert normalize_url("https://example.com?x=1") == "https://example.com/?x=1"

    def test_ensure_base_url_normalises(self) -> None:
        assert ensure_base_url("https://Example.com") == "https://example.com/"

    def test_with_path_without_segments_normalises(self) -> None:
        assert with_path("http://127.0.0.1:8888", []) == "http://127.0.0.1:8888/"
