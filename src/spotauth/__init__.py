"""spotauth -- Spotify Web API authorisation with OAuth 2.0 + PKCE.

This package implements the Authorization Code grant with Proof Key for
Code Exchange (:rfc:`7636`) for public clients that cannot keep a client
secret.  It covers the whole credential lifecycle: building the
authorisation URL, validating the redirect callback, exchanging the code
for tokens, and refreshing the access token just before it is needed.

Typical workflow::

    spotauth --client-id <id> auth login   # open the authorisation URL
    spotauth auth callback '<redirect url>'
    spotauth api GET /me                   # refreshes transparently

Modules:
    authorization: PKCE request builder, callback validation, tokens, flow.
    client: HTTP transport and the authenticated Web API client.
    store: Typed key-value stores for state that survives the redirect.
    models: Pydantic models and the :class:`~spotauth.models.Scope` enum.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer application factory and CLI entry point.
"""

__version__ = "0.3.0"
