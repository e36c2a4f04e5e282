"""Helpers for deriving endpoint URLs from a single base URL.

A *base URL* is one that relative paths can be resolved against: the
scheme and ``:`` delimiter are followed by ``/``.  ``mailto:`` and
``data:`` URLs are not base URLs.

URLs handed out by this module are normalised (see :func:`normalize_url`)
so that comparing them by prefix is meaningful.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import quote, urlsplit, urlunsplit

from spotauth.exceptions import NotABaseError

ACCOUNTS_URL = "https://accounts.spotify.com"
API_URL = "https://api.spotify.com/v1"


def is_base_url(url: str) -> bool:
    scheme = urlsplit(url).scheme
    if not scheme:
        return False
    return url[len(scheme) + 1 :].startswith("/")


def normalize_url(url: str) -> str:
    """Lower-case the scheme and host, and give an authority an explicit path.

    ``HTTP://LocalHost:8888`` becomes ``http://localhost:8888/``, so a
    callback URL always ends its host part with ``/`` and cannot be a
    prefix of a longer host name.  User info, port, path, query and
    fragment are kept as they are.

    Example::

        >>> normalize_url("HTTP://Example.COM?x=1")
        'http://example.com/?x=1'
    """
    parts = urlsplit(url)
    userinfo, at, hostport = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{at}{hostport.lower()}"
    path = parts.path
    if netloc and not path:
        path = "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def ensure_base_url(url: str) -> str:
    """Return *url*, normalised, if it is a base URL.

    Raises:
        NotABaseError: If *url* has no scheme or is not hierarchical.
    """
    if not is_base_url(url):
        raise NotABaseError(url)
    return normalize_url(url)


def with_path(url: str, segments: Iterable[str]) -> str:
    """Return *url* with *segments* appended to its path.

    Each segment is percent-encoded, so ``/`` inside a segment does not
    introduce a new level.  A trailing empty segment (a path ending in
    ``/``) is replaced rather than kept.  The result is normalised.

    Example::

        >>> with_path("https://accounts.spotify.com", ["api", "token"])
        'https://accounts.spotify.com/api/token'
    """
    url = ensure_base_url(url)
    segments = list(segments)
    if not segments:
        return url
    parts = urlsplit(url)
    path = parts.path
    if path.endswith("/"):
        path = path[:-1]
    for segment in segments:
        path += "/" + quote(segment, safe="")
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def origin(url: str) -> str:
    """Return ``scheme://host[:port]`` of *url*."""
    parts = urlsplit(ensure_base_url(url))
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


AUTHORIZE_URL = with_path(ACCOUNTS_URL, ["authorize"])
TOKEN_URL = with_path(ACCOUNTS_URL, ["api", "token"])
