"""Runtime state handed to command handlers."""

from __future__ import annotations
from dataclasses import dataclass
from .http import ApiClient
from .output import Output
from .resolver import ResolvedArguments


@dataclass(slots=True)
class CommandContext:
    """Everything a command handler needs for one invocation."""

    command: str
    args: ResolvedArguments
    client: ApiClient
    output: Output


__all__ = ["CommandContext"]
