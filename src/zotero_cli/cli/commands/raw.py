"""Raw requests against arbitrary API paths."""

from __future__ import annotations
from zotero_cli.cli.options import Multiplicity, argument, flag, option
from zotero_cli.cli.state import CommandContext


GET_OPTIONS = (
    flag("root", help="Do not prefix the uri with the user or group library."),
    argument("uri", multiplicity=Multiplicity.ONE_OR_MORE),
)

POST_OPTIONS = (
    argument("uri"),
    option("data", required=True, help="JSON string sent as the request body."),
)

PUT_OPTIONS = POST_OPTIONS

DELETE_OPTIONS = (argument("uri", multiplicity=Multiplicity.ONE_OR_MORE),)


async def get(context: CommandContext) -> None:
    """Show the response of each uri, scoped to the library unless ``--root``."""
    scoped = not context.args.get("root")
    for uri in context.args["uri"]:
        context.output.show(await context.client.get(uri, scoped=scoped))


async def post(context: CommandContext) -> None:
    """Send ``--data`` to uri and print any response."""
    args = context.args
    response = await context.client.post(args["uri"], args["data"])
    if response is not None:
        context.output.print(response)


async def put(context: CommandContext) -> None:
    """Replace uri with ``--data`` and print any response."""
    args = context.args
    response = await context.client.put(args["uri"], args["data"])
    if response is not None:
        context.output.print(response)


async def delete(context: CommandContext) -> None:
    """Delete each uri at its current version."""
    client = context.client
    for uri in context.args["uri"]:
        current = await client.get(uri)
        version = current.get("version") if isinstance(current, dict) else None
        await client.delete(uri, version)


__all__ = [
    "DELETE_OPTIONS",
    "GET_OPTIONS",
    "POST_OPTIONS",
    "PUT_OPTIONS",
    "delete",
    "get",
    "post",
    "put",
]
