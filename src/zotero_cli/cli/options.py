"""Option descriptors declared by the CLI commands.

Descriptors are plain metadata: they name an option, its kind and how many
values it takes. Conversion and validation live in :mod:`.resolver`, and the
click parameters are generated from the descriptors in :mod:`.main`.
"""

from __future__ import annotations
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from .errors import DuplicateOptionError


class OptionKind(Enum):
    """Value type of an option."""

    INTEGER = "integer"
    EXISTING_FILE = "file"
    EXISTING_PATH = "path"
    JSON = "json"
    STRING = "string"
    FLAG = "flag"
    CHOICE = "choice"


class Multiplicity(Enum):
    """Number of values an option accepts."""

    SINGLE = "single"
    ZERO_OR_MORE = "zero_or_more"
    ONE_OR_MORE = "one_or_more"


@dataclass(frozen=True, slots=True)
class OptionDescriptor:
    """Declaration of a single command line option."""

    name: str
    kind: OptionKind = OptionKind.STRING
    multiplicity: Multiplicity = Multiplicity.SINGLE
    required: bool = False
    choices: tuple[str, ...] = ()
    help: str = ""
    positional: bool = False

    @property
    def external_name(self) -> str:
        """Name used on the command line and in configuration files."""
        return self.name.replace("_", "-")

    @property
    def flag(self) -> str:
        """Command line spelling of the option."""
        return f"--{self.external_name}"

    @property
    def multiple(self) -> bool:
        """Whether the option collects several values."""
        return self.multiplicity is not Multiplicity.SINGLE


@dataclass(frozen=True, slots=True)
class OptionSet:
    """Options that apply to one command invocation."""

    command_options: tuple[OptionDescriptor, ...]
    global_options: tuple[OptionDescriptor, ...]

    def __iter__(self) -> Iterator[OptionDescriptor]:
        yield from self.command_options
        yield from self.global_options

    def get(self, name: str) -> OptionDescriptor | None:
        """Return the descriptor called ``name`` if present."""
        return next((option for option in self if option.name == name), None)


GLOBAL_OPTIONS: tuple[OptionDescriptor, ...] = (
    OptionDescriptor(
        "api_key", required=True, help="The API key to access the Zotero API."
    ),
    OptionDescriptor(
        "config",
        OptionKind.EXISTING_FILE,
        help=(
            "Configuration file (toml format). ./zotero-cli.toml and "
            "~/.config/zotero-cli/zotero-cli.toml are picked up automatically."
        ),
    ),
    OptionDescriptor(
        "user_id",
        OptionKind.INTEGER,
        help="The id of the user library. Use 0 for the owner of the API key.",
    ),
    OptionDescriptor(
        "group_id", OptionKind.INTEGER, help="The id of the group library."
    ),
    OptionDescriptor(
        "indent", OptionKind.INTEGER, help="Indentation for json output."
    ),
    OptionDescriptor("out", help="Output to file."),
    OptionDescriptor("verbose", OptionKind.FLAG, help="Log requests."),
)


class OptionRegistry:
    """Per-command option declarations plus the global options."""

    def __init__(
        self, global_options: Sequence[OptionDescriptor] = GLOBAL_OPTIONS
    ) -> None:
        """Create a registry seeded with ``global_options``."""
        names = [option.name for option in global_options]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            msg = f"Duplicate global options: {', '.join(sorted(duplicates))}"
            raise DuplicateOptionError(msg)
        self._global_options = tuple(global_options)
        self._commands: dict[str, list[OptionDescriptor]] = {}

    @property
    def global_options(self) -> tuple[OptionDescriptor, ...]:
        """Options accepted by every command."""
        return self._global_options

    def add_command(self, command: str) -> None:
        """Declare ``command`` even when it takes no options of its own."""
        self._commands.setdefault(command, [])

    def register(self, command: str, descriptor: OptionDescriptor) -> None:
        """Register ``descriptor`` for ``command``."""
        options = self._commands.setdefault(command, [])
        taken = {option.name for option in options}
        taken.update(option.name for option in self._global_options)
        if descriptor.name in taken:
            msg = f"Option '{descriptor.name}' is already registered for '{command}'"
            raise DuplicateOptionError(msg)
        options.append(descriptor)

    def register_all(
        self, command: str, descriptors: Iterable[OptionDescriptor]
    ) -> None:
        """Register every descriptor in ``descriptors`` for ``command``."""
        self.add_command(command)
        for descriptor in descriptors:
            self.register(command, descriptor)

    def describe(self, command: str) -> OptionSet:
        """Return the options of ``command`` followed by the global ones."""
        if command not in self._commands:
            msg = f"Unknown command '{command}'"
            raise KeyError(msg)
        return OptionSet(
            command_options=tuple(self._commands[command]),
            global_options=self._global_options,
        )

    def commands(self) -> tuple[str, ...]:
        """Return the registered command names in registration order."""
        return tuple(self._commands)


def option(
    name: str,
    kind: OptionKind = OptionKind.STRING,
    *,
    multiplicity: Multiplicity = Multiplicity.SINGLE,
    required: bool = False,
    choices: Iterable[str] = (),
    help: str = "",
) -> OptionDescriptor:
    """Shorthand for declaring a named option."""
    return OptionDescriptor(
        name,
        kind,
        multiplicity,
        required=required,
        choices=tuple(choices),
        help=help,
    )


def flag(name: str, *, help: str = "") -> OptionDescriptor:
    """Shorthand for declaring a boolean switch."""
    return OptionDescriptor(name, OptionKind.FLAG, help=help)


def argument(
    name: str,
    kind: OptionKind = OptionKind.STRING,
    *,
    multiplicity: Multiplicity = Multiplicity.SINGLE,
    help: str = "",
) -> OptionDescriptor:
    """Shorthand for declaring a positional argument."""
    return OptionDescriptor(name, kind, multiplicity, help=help, positional=True)


__all__ = [
    "GLOBAL_OPTIONS",
    "Multiplicity",
    "OptionDescriptor",
    "OptionKind",
    "OptionRegistry",
    "OptionSet",
    "argument",
    "flag",
    "option",
]
