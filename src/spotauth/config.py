"""Where spotauth keeps its files, and how its settings are layered.

Two directories are used:

* the *config* directory holds ``config.json``, the user's
  :class:`~spotauth.models.GlobalConfig`;
* the *data* directory holds the credential store and crash logs.

On Linux and the BSDs they follow the XDG Base Directory layout
(``$XDG_CONFIG_HOME/spotauth``, ``$XDG_DATA_HOME/spotauth``).  Elsewhere both
live under ``~/.spotauth``.

Settings are merged by :func:`resolve_config`; the client ID itself may be
indirect (``client_id_source``) and is read by :func:`resolve_client_id`.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from spotauth.exceptions import ConfigError
from spotauth.models import GlobalConfig

_APP_NAME = "spotauth"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "spotauth.json"

ENV_CLIENT_ID = "SPOTAUTH_CLIENT_ID"
ENV_APP_URL = "SPOTAUTH_APP_URL"

# kind -> (XDG variable, default below $HOME, subdirectory of ~/.spotauth)
_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("data",)),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, xdg_default, fallback = _DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or Path.home().joinpath(*xdg_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Directory holding the store and crash logs; created on first use."""
    return _app_dir("data")


def get_store_dir() -> Path:
    """Return the directory backing :class:`~spotauth.store.DiskStore`."""
    path = get_data_dir() / "store"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Writing ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers never see a partial file.

    The data goes to a sibling temporary file which is synced, restricted
    to ``0o600`` and renamed over *path*.  On any failure the temporary
    file is removed and the original left alone.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- User config ---


def global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Read ``config.json``, or return defaults if there is none.

    Raises:
        ConfigError: If the file is not JSON or does not validate.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(global_config_path(), text)


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./spotauth.json`` if the working directory has one.

    A repository can use it to pin the Spotify application (``client_id``)
    or the default ``scopes`` for everyone working in it.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Layering ---


def resolve_config(
    cli_client_id: Optional[str] = None,
    cli_app_url: Optional[str] = None,
) -> GlobalConfig:
    """Merge every settings layer into one :class:`GlobalConfig`.

    Later layers win:

    1. built-in defaults
    2. ``config.json`` in the config directory
    3. ``./spotauth.json``
    4. ``SPOTAUTH_CLIENT_ID`` and ``SPOTAUTH_APP_URL``
    5. ``--client-id`` and ``--app-url``

    Raises:
        ConfigError: If a file layer is invalid.
    """
    config = load_global_config()

    project = load_project_config()
    if project:
        merged = {**config.model_dump(mode="json"), **project}
        try:
            config = GlobalConfig.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    overrides = {
        "client_id": cli_client_id or os.environ.get(ENV_CLIENT_ID) or None,
        "app_url": cli_app_url or os.environ.get(ENV_APP_URL) or None,
    }
    for field, value in overrides.items():
        if value is not None:
            setattr(config, field, value)
    return config


def resolve_client_id(config: GlobalConfig) -> str:
    """Return the client ID, following ``client_id_source`` if needed.

    Raises:
        ConfigError: If no client ID is configured or its source fails.
    """
    if config.client_id:
        return config.client_id
    if config.client_id_source:
        return resolve_credential(config.client_id_source)
    raise ConfigError(
        "No client ID configured. Pass --client-id, set "
        f"{ENV_CLIENT_ID}, or run 'spotauth config set client_id <id>'."
    )


def resolve_credential(source: str) -> str:
    """Read a value from a source descriptor.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped), and ``prompt`` asks on the terminal.

    Raises:
        ConfigError: If the source is unknown or yields nothing.
    """
    kind, _, target = source.partition(":")

    if kind == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value

    if kind == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass("Enter client ID: ")

    raise ConfigError(f"Unknown credential source format: {source}")
