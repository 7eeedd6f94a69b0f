"""Library level listings and schema lookups."""

from __future__ import annotations
from zotero_cli.cli.commands.common import read_json_file
from zotero_cli.cli.options import OptionKind, option
from zotero_cli.cli.state import CommandContext


FIELDS_OPTIONS = (option("type", help="Display field types for TYPE."),)

SEARCHES_OPTIONS = (
    option(
        "create",
        OptionKind.EXISTING_FILE,
        help="Path of a JSON file containing saved search definitions.",
    ),
)


async def show_key(context: CommandContext) -> None:
    """Show details about the API key."""
    context.output.show(await context.client.key_info())


async def list_publications(context: CommandContext) -> None:
    """List the items in My Publications."""
    context.output.show(await context.client.get("/publications/items"))


async def list_trash(context: CommandContext) -> None:
    """List the items in the trash."""
    context.output.show(await context.client.get("/items/trash"))


async def list_groups(context: CommandContext) -> None:
    """List the groups the user belongs to."""
    context.output.show(await context.client.get("/groups"))


async def list_types(context: CommandContext) -> None:
    """List every item type."""
    context.output.show(await context.client.get("/itemTypes", scoped=False))


async def show_fields(context: CommandContext) -> None:
    """Show the fields of one item type, or every item field."""
    client = context.client
    item_type = context.args.get("type")
    if not item_type:
        context.output.show(await client.get("/itemFields", scoped=False))
        return
    params = {"itemType": item_type}
    context.output.show(
        await client.get("/itemTypeFields", scoped=False, params=params)
    )
    context.output.show(
        await client.get("/itemTypeCreatorTypes", scoped=False, params=params)
    )


async def searches(context: CommandContext) -> None:
    """List saved searches, or create them from a definitions file."""
    definitions_path = context.args.get("create")
    if not definitions_path:
        context.output.show(await context.client.get("/searches"))
        return
    definitions = read_json_file(definitions_path)
    if not isinstance(definitions, list):
        definitions = [definitions]
    await context.client.post("/searches", definitions)
    context.output.print("Saved search(s) created successfully.")


__all__ = [
    "FIELDS_OPTIONS",
    "SEARCHES_OPTIONS",
    "list_groups",
    "list_publications",
    "list_trash",
    "list_types",
    "searches",
    "show_fields",
    "show_key",
]
