"""Tag listing."""

from __future__ import annotations
from urllib.parse import quote
from zotero_cli.cli.options import flag, option
from zotero_cli.cli.state import CommandContext


TAGS_OPTIONS = (
    option("filter", help="Tags of all types matching a specific name."),
    flag("count", help="Count the items carrying each tag."),
)


async def tags(context: CommandContext) -> None:
    """Show the sorted tag names, optionally with item counts."""
    client = context.client
    name = context.args.get("filter")
    path = f"/tags/{quote(name, safe='')}" if name else "/tags"
    names = sorted(entry["tag"] for entry in await client.fetch_all(path))

    if not context.args.get("count"):
        context.output.show(names)
        return
    counts: dict[str, int] = {}
    for tag in names:
        counts[tag] = await client.count("/items", {"tag": tag})
    context.output.show(counts)


__all__ = ["TAGS_OPTIONS", "tags"]
