"""Layered resolution of command options.

Sources, highest precedence first:

1. values given explicitly on the command line;
2. the ``[command]`` table of the configuration file;
3. ``ZOTERO_CLI_<NAME>`` then ``ZOTERO_<NAME>`` environment variables;
4. top-level keys of the configuration file.

The first source that defines a value wins. Values taken from the
configuration file or the environment are coerced according to the option
descriptor; command line values were already converted by click.
"""

from __future__ import annotations
import json
import logging
import os
from collections.abc import Awaitable, Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any
from .config import ConfigDocument, env_names
from .errors import (
    CLIConfigurationError,
    InvalidChoice,
    MissingRequiredOption,
    TypeCoercionError,
)
from .options import Multiplicity, OptionDescriptor, OptionKind, OptionRegistry
from .scope import LibraryScope


logger = logging.getLogger(__name__)

DEFAULT_INDENT = 2
SELF_USER_ID = 0

UserIdLookup = Callable[[str], Awaitable[int]]

_FLAG_VALUES: dict[str, bool] = {
    "true": True,
    "yes": True,
    "on": True,
    "false": False,
    "no": False,
    "off": False,
}
_NOT_CONFIGURABLE = frozenset({"config"})
_SCOPE_OPTIONS = ("user_id", "group_id")
_UNSET: Any = object()


class ResolvedArguments(Mapping[str, Any]):
    """Immutable mapping of option names to their resolved values."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        """Freeze a copy of ``values``."""
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        shown = {
            key: ("<API-KEY>" if key == "api_key" else value)
            for key, value in self._values.items()
        }
        return f"ResolvedArguments({shown!r})"

    @property
    def scope(self) -> LibraryScope:
        """Library scope selected by the user or group id."""
        return LibraryScope.from_arguments(self.get("user_id"), self.get("group_id"))


def coerce_value(descriptor: OptionDescriptor, raw: Any) -> Any:
    """Convert a configured ``raw`` value according to ``descriptor``."""
    if not descriptor.multiple:
        return _coerce_single(descriptor, raw)
    items = list(raw) if isinstance(raw, list | tuple) else [raw]
    if descriptor.multiplicity is Multiplicity.ONE_OR_MORE and not items:
        raise TypeCoercionError(descriptor.name, raw, "needs at least one value")
    return tuple(_coerce_single(descriptor, item) for item in items)


def _coerce_single(descriptor: OptionDescriptor, raw: Any) -> Any:
    name = descriptor.name
    kind = descriptor.kind
    if kind is OptionKind.INTEGER:
        if isinstance(raw, bool):
            raise TypeCoercionError(name, raw, "is not an integer")
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str):
            try:
                return int(raw.strip(), 10)
            except ValueError as exc:
                raise TypeCoercionError(name, raw, "is not an integer") from exc
        raise TypeCoercionError(name, raw, "is not an integer")
    if kind is OptionKind.EXISTING_PATH:
        if not os.path.exists(str(raw)):
            raise TypeCoercionError(name, raw, "does not exist")
        return str(raw)
    if kind is OptionKind.EXISTING_FILE:
        if not os.path.isfile(str(raw)):
            raise TypeCoercionError(name, raw, "is not a file")
        return str(raw)
    if kind is OptionKind.JSON:
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TypeCoercionError(name, raw, "is not valid JSON") from exc
    if kind is OptionKind.CHOICE:
        if raw not in descriptor.choices:
            raise InvalidChoice(name, raw, descriptor.choices)
        return raw
    if kind is OptionKind.FLAG:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw in _FLAG_VALUES:
            return _FLAG_VALUES[raw]
        raise TypeCoercionError(name, raw, "is not a boolean")
    return raw


def _lookup(
    descriptor: OptionDescriptor,
    command: str,
    config: ConfigDocument,
    environment: Mapping[str, str],
    *,
    commands: tuple[str, ...],
    use_config: bool = True,
) -> Any:
    key = descriptor.external_name
    section = config.command_section(command) if use_config else {}
    if key in section:
        return section[key]
    for variable in env_names(descriptor.name):
        if variable in environment:
            return environment[variable]
    global_section = config.global_section(commands) if use_config else {}
    if key in global_section:
        return global_section[key]
    return _UNSET


def resolve_options(
    command: str,
    explicit: Mapping[str, Any],
    config: ConfigDocument,
    environment: Mapping[str, str],
    *,
    registry: OptionRegistry,
) -> dict[str, Any]:
    """Merge every source into one value per option, without network access."""
    explicit_scope = any(explicit.get(name) is not None for name in _SCOPE_OPTIONS)
    commands = registry.commands()
    values: dict[str, Any] = {}
    for descriptor in registry.describe(command):
        name = descriptor.name
        given = explicit.get(name)
        if given is not None:
            values[name] = given
            continue
        if name in _NOT_CONFIGURABLE or descriptor.positional:
            continue
        # A scope given on the command line replaces the configured one, but
        # the environment still takes part in the user xor group check.
        raw = _lookup(
            descriptor,
            command,
            config,
            environment,
            commands=commands,
            use_config=not (name in _SCOPE_OPTIONS and explicit_scope),
        )
        if raw is _UNSET:
            if descriptor.required:
                raise MissingRequiredOption(name)
            continue
        values[name] = coerce_value(descriptor, raw)
    return values


async def finalize(
    values: Mapping[str, Any], *, user_id_lookup: UserIdLookup | None = None
) -> ResolvedArguments:
    """Apply the cross-option rules and freeze the result."""
    resolved = dict(values)
    LibraryScope.from_arguments(resolved.get("user_id"), resolved.get("group_id"))
    if resolved.get("user_id") == SELF_USER_ID:
        if user_id_lookup is None:
            msg = "user-id 0 requires looking up the owner of the API key."
            raise CLIConfigurationError(msg)
        resolved["user_id"] = await user_id_lookup(resolved["api_key"])
        logger.info("Resolved user-id 0 to %s", resolved["user_id"])
    if resolved.get("indent") is None:
        resolved["indent"] = DEFAULT_INDENT
    return ResolvedArguments(resolved)


async def resolve(
    command: str,
    explicit: Mapping[str, Any],
    config: ConfigDocument,
    environment: Mapping[str, str],
    *,
    registry: OptionRegistry,
    user_id_lookup: UserIdLookup | None = None,
) -> ResolvedArguments:
    """Resolve the arguments of one ``command`` invocation."""
    values = resolve_options(
        command, explicit, config, environment, registry=registry
    )
    return await finalize(values, user_id_lookup=user_id_lookup)


__all__ = [
    "DEFAULT_INDENT",
    "SELF_USER_ID",
    "ResolvedArguments",
    "UserIdLookup",
    "coerce_value",
    "finalize",
    "resolve",
    "resolve_options",
]
