"""Output helpers for rendering command results."""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any
from rich.console import Console
from rich.markup import escape
from .http import REDACTED


def to_json(value: Any, indent: int | None) -> str:
    """Serialise ``value`` the way command results are printed."""
    return json.dumps(value, indent=indent or None, ensure_ascii=False, default=str)


def render_error(console: Console, message: str) -> None:
    """Print ``message`` as an error on ``console``."""
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)


class Output:
    """Destination for command results.

    Results go to the console unless a file path is configured, in which case
    they are collected and written once by :meth:`flush`. The API key is
    replaced by ``<API-KEY>`` in everything emitted.
    """

    def __init__(
        self,
        *,
        console: Console | None = None,
        error_console: Console | None = None,
        indent: int | None = 2,
        api_key: str | None = None,
        path: str | Path | None = None,
    ) -> None:
        """Configure where and how results are emitted."""
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.indent = indent
        self.path = Path(path) if path else None
        self._api_key = api_key
        self._lines: list[str] = []

    def redact(self, text: str) -> str:
        """Hide the API key in ``text``."""
        if not self._api_key:
            return text
        return text.replace(self._api_key, REDACTED)

    def _format(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, BaseException):
            return f"<Error: {value}>"
        return to_json(value, self.indent)

    def print(self, *values: Any) -> None:
        """Emit ``values`` separated by spaces."""
        text = self.redact(" ".join(self._format(value) for value in values))
        if self.path is not None:
            self._lines.append(f"{text}\n")
            return
        self.console.out(text, highlight=False)

    def show(self, value: Any) -> None:
        """Emit ``value`` as indented JSON."""
        self.print(to_json(value, self.indent))

    def error(self, message: str) -> None:
        """Report a failure to stderr, or into the output file when set."""
        text = self.redact(message)
        if self.path is not None:
            self._lines.append(f"Error: {text}\n")
            return
        render_error(self.error_console, text)

    def flush(self) -> None:
        """Write collected results to the output file."""
        if self.path is None:
            return
        self.path.write_text("".join(self._lines), encoding="utf-8")


__all__ = ["Output", "render_error", "to_json"]
