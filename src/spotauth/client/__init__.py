"""HTTP transport and the authenticated Web API client."""

from spotauth.client.authenticated import AuthenticatedClient
from spotauth.client.transport import BuildRequest, HttpTransport

__all__ = ["AuthenticatedClient", "BuildRequest", "HttpTransport"]
