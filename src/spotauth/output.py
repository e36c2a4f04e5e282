"""Everything spotauth prints goes through here.

Results (the authorization URL, Web API bodies, credential records) are
written to stdout so they can be piped.  Progress and problems are written
to stderr.  Rich styling is used only when stdout is an interactive
terminal and neither ``NO_COLOR``, ``TERM=dumb`` nor ``--no-color`` asks
otherwise.

The CLI installs one :class:`OutputManager` with :func:`set_output`; the
rest of the package reaches it through :func:`get_output` or the helper
functions at the bottom of this module.  Never hand a token or a code
verifier to any of them.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    style: str
    quiet_hides: bool
    verbose_only: bool = False


_LEVELS = {
    "info": _Level("", "", True),
    "success": _Level("", "green", True),
    "warning": _Level("Warning: ", "yellow", False),
    "error": _Level("Error: ", "bold red", False),
    "suggest": _Level("→ ", "dim", True),
    "debug": _Level("[debug] ", "dim", False, verbose_only=True),
}


class OutputManager:
    """Writes results to stdout and diagnostics to stderr.

    ``format=AUTO`` picks ``RICH`` for a colour terminal and ``PLAIN`` for
    anything else.  ``quiet`` drops info, success and suggestion lines;
    warnings and errors always get through.  ``verbose`` enables
    :meth:`debug`.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = _resolve_format(format, self._no_color)

        rich = self._format == OutputFormat.RICH
        self._out = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._err = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # -- results -------------------------------------------------------- #

    def print_data(self, text: str) -> None:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def format_response(self, data: Any) -> None:
        """Show a decoded Web API body; an empty body shows nothing."""
        if data is None:
            return
        if isinstance(data, str):
            self.print_data(data)
            return
        text = _to_json(data)
        if self._format == OutputFormat.RICH and isinstance(data, (dict, list)):
            self._out.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def print_record(self, record: Mapping[str, Any], title: Optional[str] = None) -> None:
        """Show one record as a JSON object, tab-separated lines or a table."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(dict(record)))
            return
        pairs = [(key, _as_text(value)) for key, value in record.items()]
        if self._format == OutputFormat.PLAIN:
            for key, text in pairs:
                self.print_data(f"{key}\t{text}")
            return
        grid = Table(title=title, show_header=False)
        grid.add_column(style="bold cyan")
        grid.add_column()
        for key, text in pairs:
            grid.add_row(key, text)
        self._out.print(grid)

    def print_table(self, headers: list[str], rows: list[list[str]]) -> None:
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for row in rows:
                self.print_data("\t".join(row))
            return
        grid = Table(*headers, header_style="bold cyan")
        for row in rows:
            grid.add_row(*row)
        self._out.print(grid)

    # -- diagnostics ---------------------------------------------------- #

    def _emit(self, level: str, message: str) -> None:
        lvl = _LEVELS[level]
        if lvl.verbose_only and not self._verbose:
            return
        if lvl.quiet_hides and self._quiet:
            return
        if self._no_color:
            sys.stderr.write(f"{lvl.prefix}{message}\n")
            sys.stderr.flush()
            return
        prefix = escape(lvl.prefix)
        message = escape(message)
        if level in ("warning", "error"):
            markup = f"[{lvl.style}]{prefix.rstrip()}[/{lvl.style}] {message}"
        elif lvl.style:
            markup = f"[{lvl.style}]{prefix}{message}[/{lvl.style}]"
        else:
            markup = message
        self._err.print(markup)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def suggest(self, message: str) -> None:
        self._emit("suggest", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    if _is_tty() and not no_color:
        return OutputFormat.RICH
    return OutputFormat.PLAIN


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(map(str, value))
    return str(value)


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _should_disable_color() -> bool:
    # NO_COLOR counts when present, even if empty
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# -- installed manager ------------------------------------------------- #

_current: Optional[OutputManager] = None


def get_output() -> OutputManager:
    global _current
    if _current is None:
        _current = OutputManager()
    return _current


def set_output(output: OutputManager) -> None:
    global _current
    _current = output


def reset_output() -> None:
    global _current
    _current = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_record(record: Mapping[str, Any], title: Optional[str] = None) -> None:
    get_output().print_record(record, title)


def print_table(headers: list[str], rows: list[list[str]]) -> None:
    get_output().print_table(headers, rows)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
