"""Collection commands."""

from __future__ import annotations
from collections.abc import Callable
from zotero_cli.cli.commands.common import run_batch
from zotero_cli.cli.errors import CommandUsageError
from zotero_cli.cli.http import ApiClient
from zotero_cli.cli.options import Multiplicity, argument, flag, option
from zotero_cli.cli.state import CommandContext


COLLECTION_OPTIONS = (
    option("key", required=True, help="The key of the collection."),
    flag("tags", help="Display tags present in the collection."),
    flag("add", help="Add the ITEMKEYS to this collection."),
    argument("itemkeys", multiplicity=Multiplicity.ZERO_OR_MORE),
    option(
        "remove",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Remove an item from this collection (repeatable).",
    ),
)

COLLECTIONS_OPTIONS = (
    flag("top", help="Show only collections at the top level."),
    option("key", help="Show all the child collections of this collection."),
    option(
        "create_child",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help=(
            "Create a child collection of --key (or a top level collection) "
            "with this name (repeatable)."
        ),
    ),
)


async def _update_membership(
    client: ApiClient,
    item_key: str,
    change: Callable[[list[str]], list[str]],
) -> None:
    item = await client.get(f"/items/{item_key}")
    current = list(item["data"].get("collections", []))
    updated = change(current)
    if updated == current:
        return
    await client.patch(
        f"/items/{item_key}", {"collections": updated}, item["version"]
    )


async def collection(context: CommandContext) -> None:
    """Show a collection, adding or removing items first when requested."""
    args = context.args
    key = args["key"]
    item_keys = tuple(args.get("itemkeys") or ())
    adding = bool(args.get("add"))

    if args.get("tags") and adding:
        raise CommandUsageError("--tags cannot be combined with --add")
    if adding and not item_keys:
        raise CommandUsageError("--add requires item keys")
    if not adding and item_keys:
        raise CommandUsageError("unexpected item keys")

    client = context.client
    if adding:
        await run_batch(
            context.output,
            "add",
            item_keys,
            lambda item_key: _update_membership(
                client,
                item_key,
                lambda current: current if key in current else [*current, key],
            ),
        )

    removed = tuple(args.get("remove") or ())
    if removed:
        await run_batch(
            context.output,
            "remove",
            removed,
            lambda item_key: _update_membership(
                client,
                item_key,
                lambda current: [entry for entry in current if entry != key],
            ),
        )

    suffix = "/tags" if args.get("tags") else ""
    context.output.show(await client.get(f"/collections/{key}{suffix}"))


async def collections(context: CommandContext) -> None:
    """List collections, or create child collections."""
    args = context.args
    parent = args.get("key")
    names = args.get("create_child")
    if names:
        payload = []
        for name in names:
            entry: dict[str, str] = {"name": name}
            if parent:
                entry["parentCollection"] = parent
            payload.append(entry)
        response = await context.client.post("/collections", payload)
        created = response.get("successful") if isinstance(response, dict) else response
        context.output.print("Collections created:", created)
        return

    if parent:
        path = f"/collections/{parent}/collections"
    elif args.get("top"):
        path = "/collections/top"
    else:
        path = "/collections"
    context.output.show(await context.client.fetch_all(path))


__all__ = [
    "COLLECTIONS_OPTIONS",
    "COLLECTION_OPTIONS",
    "collection",
    "collections",
]
