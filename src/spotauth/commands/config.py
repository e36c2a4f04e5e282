"""Config commands -- view and modify global configuration.

Provides the ``spotauth config`` sub-command group for the user's global
configuration file (:class:`~spotauth.models.GlobalConfig`): the client
ID, application URL, default scopes, and request and store settings.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from spotauth.config import global_config_path, load_global_config, save_global_config
from spotauth.exceptions import ConfigError
from spotauth.exit_codes import EXIT_INVALID_USAGE
from spotauth.models import GlobalConfig
from spotauth.output import error, info, print_record, success


config_app = typer.Typer(no_args_is_help=True)


def _load() -> GlobalConfig:
    try:
        return load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@config_app.command("show")
def config_show() -> None:
    """Show the global configuration file.

    Example::

        spotauth config show
        spotauth --json config show
    """
    config = _load()
    info(f"Config file: {global_config_path()}")
    record = {}
    for key, value in config.model_dump(mode="json").items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                record[f"{key}.{sub_key}"] = sub_value
        else:
            record[key] = value
    print_record(record, title="Configuration")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'request.timeout')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Nested keys use dot notation.  List fields take space-separated values:
    ``scopes`` as scope identifiers, ``callback_path`` as path segments.
    The result is validated against :class:`~spotauth.models.GlobalConfig`
    before saving; Pydantic coerces numbers and booleans.

    Example::

        spotauth config set client_id 0123456789abcdef
        spotauth config set scopes "user-read-email user-top-read"
        spotauth config set store.pending_ttl_seconds 300
    """
    config = _load()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for part in keys[:-1]:
        if not isinstance(target.get(part), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[part]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    if isinstance(target[final_key], list):
        target[final_key] = value.split()
    else:
        target[final_key] = value

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {value}")
