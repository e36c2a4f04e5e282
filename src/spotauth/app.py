"""The ``spotauth`` command line.

``auth`` drives a login and manages the stored credential, ``api`` calls the
Web API with it, and ``config`` edits settings.  :func:`main` is what the
console script runs.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from spotauth import __version__
from spotauth.commands.api import api_command
from spotauth.commands.auth import auth_app
from spotauth.commands.config import config_app
from spotauth.exceptions import SpotauthError
from spotauth.exit_codes import EXIT_GENERIC_FAILURE
from spotauth.output import OutputFormat, OutputManager, error, set_output

_INTERRUPTED = 130

app = typer.Typer(
    name="spotauth",
    help="Log in to Spotify with OAuth 2.0 and PKCE, then call the Web API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(auth_app, name="auth", help="Start or finish a login and manage the credential.")
app.add_typer(config_app, name="config", help="Show or change settings.")
app.command("api", help="Call a Web API endpoint with the stored credential.")(api_command)


def _print_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"spotauth {__version__}")
    raise typer.Exit()


@app.callback()
def root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Print the version."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="Client ID of your Spotify application."
    ),
    app_url: Optional[str] = typer.Option(
        None, "--app-url", help="URL whose origin receives the redirect."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and problems."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print HTTP and flow details."),
) -> None:
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    ctx.obj = {"client_id": client_id, "app_url": app_url}


def _on_sigint(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(_INTERRUPTED)


def _crash_log() -> Path:
    from spotauth.config import get_data_dir

    folder = get_data_dir() / "logs"
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / datetime.now().strftime("crash-%Y%m%d-%H%M%S.log")
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(_INTERRUPTED)
    except SpotauthError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Details were written to {_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
