"""Built-in CLI sub-commands for spotauth.

* :mod:`~spotauth.commands.auth` -- start and complete a login, inspect or
  drop the stored credential, list scopes.
* :mod:`~spotauth.commands.api` -- call the Web API with the stored
  credential, refreshing it as needed.
* :mod:`~spotauth.commands.config` -- view and modify global settings.
"""

from __future__ import annotations

from typing import Any, Optional

from spotauth.client.transport import HttpTransport
from spotauth.config import resolve_config
from spotauth.models import GlobalConfig, RequestConfig


def make_transport(config: RequestConfig) -> HttpTransport:
    """Create the transport used by CLI commands."""
    return HttpTransport(config)


def effective_config(obj: Optional[dict[str, Any]]) -> GlobalConfig:
    """Resolve configuration using the root options stored in ``ctx.obj``."""
    obj = obj or {}
    return resolve_config(cli_client_id=obj.get("client_id"), cli_app_url=obj.get("app_url"))
