"""Helpers shared by the command handlers."""

from __future__ import annotations
import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any
from zotero_cli.cli.errors import CLIError, CommandUsageError
from zotero_cli.cli.output import Output


def read_text_file(path: str | Path) -> str:
    """Return the UTF-8 text stored at ``path``."""
    location = Path(path)
    try:
        return location.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CommandUsageError(f"{location} does not exist") from exc
    except UnicodeDecodeError as exc:
        raise CommandUsageError(f"{location} is not UTF-8 text") from exc


def read_json_file(path: str | Path) -> Any:
    """Load the JSON document stored at ``path``."""
    location = Path(path)
    text = read_text_file(location)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CommandUsageError(f"{location} is not valid JSON: {exc.msg}") from exc


def query_params(value: Any) -> dict[str, Any]:
    """Return the ``--filter`` value as query parameters."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CommandUsageError("--filter must be a JSON object")
    return dict(value)


async def run_batch(
    output: Output,
    label: str,
    keys: Sequence[str],
    operation: Callable[[str], Awaitable[Any]],
) -> None:
    """Run ``operation`` for every key concurrently.

    Failures are reported per key and do not undo the operations that
    succeeded. A :class:`CLIError` summarising the failures is raised once all
    operations have finished.
    """
    results = await asyncio.gather(
        *(operation(key) for key in keys), return_exceptions=True
    )
    failed: list[str] = []
    for key, result in zip(keys, results, strict=True):
        if not isinstance(result, BaseException):
            continue
        if not isinstance(result, CLIError):
            raise result
        output.error(f"{label} {key}: {result}")
        failed.append(key)
    if failed:
        msg = f"{len(failed)} of {len(keys)} {label} operations failed"
        raise CLIError(msg)


__all__ = ["query_params", "read_json_file", "read_text_file", "run_batch"]
