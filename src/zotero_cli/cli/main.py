"""Zotero CLI entrypoint.

The click command tree is generated from the command table: every option
descriptor becomes a click parameter. Click only parses and type checks what
was typed; defaults, required options and configuration layering are applied
by :mod:`.resolver` once the command is known.
"""

from __future__ import annotations
import asyncio
import json
import logging
import sys
from collections.abc import Callable, Mapping
from typing import Any
import click
from click.core import ParameterSource
from rich.console import Console
from zotero_cli import __version__
from zotero_cli.cli.commands import COMMANDS, Command, build_registry
from zotero_cli.cli.config import find_config_file, load_config, load_environment
from zotero_cli.cli.errors import CLIConfigurationError, CLIError
from zotero_cli.cli.http import REDACTED, ApiClient, lookup_user_id
from zotero_cli.cli.log import configure_logging
from zotero_cli.cli.options import (
    Multiplicity,
    OptionDescriptor,
    OptionKind,
    OptionRegistry,
)
from zotero_cli.cli.output import Output, render_error
from zotero_cli.cli.resolver import finalize, resolve_options
from zotero_cli.cli.state import CommandContext


logger = logging.getLogger(__name__)


class JsonParamType(click.ParamType):
    """Click type accepting a JSON document."""

    name = "json"

    def convert(
        self, value: Any, param: click.Parameter | None, ctx: click.Context | None
    ) -> Any:
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            self.fail(f"{value!r} is not valid JSON: {exc.msg}", param, ctx)


JSON = JsonParamType()


def _click_type(descriptor: OptionDescriptor) -> click.ParamType:
    kind = descriptor.kind
    if kind is OptionKind.INTEGER:
        return click.INT
    if kind is OptionKind.EXISTING_FILE:
        return click.Path(exists=True, dir_okay=False)
    if kind is OptionKind.EXISTING_PATH:
        return click.Path(exists=True)
    if kind is OptionKind.JSON:
        return JSON
    if kind is OptionKind.CHOICE:
        return click.Choice(descriptor.choices)
    return click.STRING


def to_click_param(descriptor: OptionDescriptor) -> click.Parameter:
    """Translate ``descriptor`` into a click option or argument."""
    if descriptor.positional:
        return click.Argument(
            [descriptor.name],
            type=_click_type(descriptor),
            nargs=-1 if descriptor.multiple else 1,
            required=descriptor.multiplicity is not Multiplicity.ZERO_OR_MORE,
        )
    if descriptor.kind is OptionKind.FLAG:
        return click.Option(
            [descriptor.flag, descriptor.name],
            is_flag=True,
            default=False,
            help=descriptor.help,
        )
    help_text = descriptor.help
    if descriptor.required:
        help_text = f"{help_text} [required]".strip()
    return click.Option(
        [descriptor.flag, descriptor.name],
        type=_click_type(descriptor),
        multiple=descriptor.multiple,
        default=None,
        help=help_text,
    )


def explicit_values(ctx: click.Context) -> dict[str, Any]:
    """Return the values typed on the command line for ``ctx`` and its parent.

    Positional arguments are always included; options only when their value
    came from the command line rather than a click default.
    """
    values: dict[str, Any] = {}
    for current in (ctx.parent, ctx):
        if current is None:
            continue
        for param in current.command.params:
            name = param.name
            if name is None or name not in current.params:
                continue
            typed = current.get_parameter_source(name) is ParameterSource.COMMANDLINE
            if typed or isinstance(param, click.Argument):
                values[name] = current.params[name]
    return values


def _redact(message: str, api_key: Any) -> str:
    if isinstance(api_key, str) and api_key:
        return message.replace(api_key, REDACTED)
    return message


async def execute(
    command: Command, values: Mapping[str, Any], *, error_console: Console
) -> int:
    """Finalize the arguments, run the handler and flush its output."""
    try:
        args = await finalize(values, user_id_lookup=lookup_user_id)
    except CLIError as exc:
        render_error(error_console, _redact(str(exc), values.get("api_key")))
        return 1

    output = Output(
        error_console=error_console,
        indent=args["indent"],
        api_key=args["api_key"],
        path=args.get("out"),
    )
    try:
        async with ApiClient(api_key=args["api_key"], scope=args.scope) as client:
            context = CommandContext(
                command=command.name, args=args, client=client, output=output
            )
            await command.handler(context)
    except (CLIError, OSError) as exc:
        output.error(str(exc))
        output.flush()
        return 1
    except Exception as exc:
        logger.debug("Command %s failed", command.name, exc_info=True)
        output.error(f"Unexpected {type(exc).__name__}: {exc}")
        output.flush()
        return 1
    output.flush()
    return 0


def _command_callback(
    command: Command, registry: OptionRegistry
) -> Callable[..., None]:
    @click.pass_context
    def callback(ctx: click.Context, /, **_: Any) -> None:
        error_console = Console(stderr=True)
        explicit = explicit_values(ctx)
        try:
            config = load_config(find_config_file(explicit.get("config")))
            values = resolve_options(
                command.name,
                explicit,
                config,
                load_environment(),
                registry=registry,
            )
        except CLIConfigurationError as exc:
            render_error(error_console, _redact(str(exc), explicit.get("api_key")))
            ctx.exit(1)
        configure_logging(bool(values.get("verbose")))
        ctx.exit(asyncio.run(execute(command, values, error_console=error_console)))

    return callback


def build_cli(commands: Mapping[str, Command] = COMMANDS) -> click.Group:
    """Build the click group exposing every command in ``commands``."""
    registry = build_registry(commands)
    group = click.Group(
        name="zotero-cli",
        help="Command line interface for the Zotero web API.",
        params=[to_click_param(option) for option in registry.global_options],
        context_settings={"help_option_names": ["-h", "--help"]},
        no_args_is_help=True,
    )
    click.version_option(__version__, prog_name="zotero-cli")(group)
    for command in commands.values():
        options = registry.describe(command.name).command_options
        group.add_command(
            click.Command(
                command.name,
                help=command.help,
                params=[to_click_param(option) for option in options],
                callback=_command_callback(command, registry),
            )
        )
    return group


app = build_cli()


def run() -> None:
    """Entry point used by console scripts."""
    console = Console(stderr=True)
    try:
        code = app.main(prog_name="zotero-cli", standalone_mode=False)
    except click.UsageError as exc:
        render_error(console, exc.format_message())
        if exc.ctx and exc.ctx.command_path:
            help_cmd = f"{exc.ctx.command_path} --help"
            console.print(f"\nRun '[cyan]{help_cmd}[/cyan]' for usage information.")
        sys.exit(exc.exit_code)
    except click.ClickException as exc:
        render_error(console, exc.format_message())
        sys.exit(exc.exit_code)
    except click.Abort:
        sys.exit(1)
    except CLIError as exc:
        render_error(console, str(exc))
        sys.exit(1)
    sys.exit(code if isinstance(code, int) else 0)


__all__ = ["JSON", "app", "build_cli", "execute", "explicit_values", "run"]
