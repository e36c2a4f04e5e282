"""OAuth 2.0 authorization code flow with PKCE against the Spotify accounts service.

Typical use::

    pending = PendingAuthorization.create("client-id")
    url = await pending.build_authorization_url([Scope.USER_READ_EMAIL])
    # ... the user visits url and is redirected back ...
    credential = await pending.build(callback_url, transport)
"""

from spotauth.authorization.builder import PendingAuthorization
from spotauth.authorization.callback import validate_callback
from spotauth.authorization.flow import (
    begin_authorization,
    complete_authorization,
    describe_authorization_error,
    forget_credential,
    load_credential,
    save_credential,
)
from spotauth.authorization.tokens import (
    Credential,
    RefreshToken,
    exchange_code,
    obtain_credential,
)

__all__ = [
    "Credential",
    "PendingAuthorization",
    "RefreshToken",
    "begin_authorization",
    "complete_authorization",
    "describe_authorization_error",
    "exchange_code",
    "forget_credential",
    "load_credential",
    "obtain_credential",
    "save_credential",
    "validate_callback",
]
