"""Item commands."""

from __future__ import annotations
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for
from zotero_cli.cli.commands.attachments import save_attachments, upload_attachment
from zotero_cli.cli.commands.common import (
    query_params,
    read_json_file,
    read_text_file,
)
from zotero_cli.cli.errors import CommandUsageError
from zotero_cli.cli.options import Multiplicity, OptionKind, argument, flag, option
from zotero_cli.cli.output import Output
from zotero_cli.cli.state import CommandContext


FILTER_HELP = 'Query parameters as a JSON object, e.g. \'{"tag": "to-read"}\'.'

ITEMS_OPTIONS = (
    flag("count", help="Return the number of items."),
    flag("all", help="Fetch every page, even when --filter sets a limit."),
    option("filter", OptionKind.JSON, help=FILTER_HELP),
    option("collection", help="Retrieve the items of this collection."),
    flag("top", help="Retrieve top-level items only."),
    option(
        "validate",
        OptionKind.EXISTING_PATH,
        help=(
            "JSON schema file, or a directory holding one '<itemType>.json' "
            "schema per item type, to validate the items against."
        ),
    ),
)

ITEM_OPTIONS = (
    option("key", required=True, help="The key of the item."),
    flag("children", help="Retrieve the children of the item."),
    option("filter", OptionKind.JSON, help=FILTER_HELP),
    option(
        "addfile",
        OptionKind.EXISTING_FILE,
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Upload an attachment to the item (repeatable).",
    ),
    flag("savefiles", help="Download all attachments of the item."),
    option(
        "addtocollection",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Add the item to a collection (repeatable).",
    ),
    option(
        "removefromcollection",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Remove the item from a collection (repeatable).",
    ),
    option(
        "addtags",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Add a tag to the item (repeatable).",
    ),
    option(
        "removetags",
        multiplicity=Multiplicity.ZERO_OR_MORE,
        help="Remove a tag from the item (repeatable).",
    ),
)

CREATE_ITEM_OPTIONS = (
    option("template", help="Show the template for an item of this type."),
    argument(
        "items", OptionKind.EXISTING_FILE, multiplicity=Multiplicity.ZERO_OR_MORE
    ),
)

UPDATE_ITEM_OPTIONS = (
    option("key", required=True, help="The key of the item."),
    flag("replace", help="Replace the item with the submitted JSON."),
    argument(
        "items", OptionKind.EXISTING_FILE, multiplicity=Multiplicity.ONE_OR_MORE
    ),
)


def load_validator(path: Path) -> Validator:
    """Build a validator for the JSON schema stored at ``path``."""
    schema = read_json_file(path)
    cls = validator_for(schema)
    try:
        cls.check_schema(schema)
    except SchemaError as exc:
        msg = f"{path} is not a valid JSON schema: {exc.message}"
        raise CommandUsageError(msg) from exc
    return cls(schema)


def validate_items(output: Output, items: Iterable[Any], location: str | Path) -> int:
    """Validate ``items`` and report each invalid one.

    ``location`` is either a single schema file or a directory with one
    schema per item type. Returns the number of invalid items.
    """
    location = Path(location)
    shared = load_validator(location) if location.is_file() else None
    by_type: dict[str, Validator] = {}
    invalid = 0
    for item in items:
        validator = shared
        if validator is None:
            item_type = _item_type(item)
            if item_type not in by_type:
                by_type[item_type] = load_validator(location / f"{item_type}.json")
            validator = by_type[item_type]
        errors = [
            {
                "path": "/".join(str(part) for part in error.absolute_path),
                "message": error.message,
            }
            for error in validator.iter_errors(item)
        ]
        if errors:
            invalid += 1
            key = item.get("key") if isinstance(item, Mapping) else None
            output.show({"key": key, "errors": errors})
    return invalid


def _item_type(item: Any) -> str:
    data = item.get("data", item) if isinstance(item, Mapping) else {}
    item_type = data.get("itemType") if isinstance(data, Mapping) else None
    if not item_type:
        raise CommandUsageError("Cannot validate an item without an itemType")
    return str(item_type)


async def items(context: CommandContext) -> None:
    """List, count or validate items."""
    args = context.args
    client = context.client
    if args.get("count") and args.get("validate"):
        raise CommandUsageError("--count cannot be combined with --validate")

    collection = args.get("collection")
    prefix = f"/collections/{collection}" if collection else ""
    path = f"{prefix}/items/top" if args.get("top") else f"{prefix}/items"
    params = query_params(args.get("filter"))

    if args.get("count"):
        context.output.print(await client.count(path, params))
        return

    if not args.get("all") and (args.get("top") or "limit" in params):
        records = await client.get(path, params=params)
    else:
        records = await client.fetch_all(path, params)

    if args.get("validate"):
        validate_items(context.output, records, args["validate"])
    else:
        context.output.show(records)


def item_changes(data: Mapping[str, Any], args: Mapping[str, Any]) -> dict[str, Any]:
    """Return the collection and tag changes requested for one item."""
    changes: dict[str, Any] = {}

    current = list(data.get("collections", []))
    updated = list(current)
    for key in args.get("addtocollection") or ():
        if key not in updated:
            updated.append(key)
    removed = set(args.get("removefromcollection") or ())
    updated = [key for key in updated if key not in removed]
    if updated != current:
        changes["collections"] = updated

    current_tags = list(data.get("tags", []))
    tags = list(current_tags)
    names = {tag.get("tag") for tag in tags}
    for name in args.get("addtags") or ():
        if name not in names:
            tags.append({"tag": name})
            names.add(name)
    dropped = set(args.get("removetags") or ())
    tags = [tag for tag in tags if tag.get("tag") not in dropped]
    if tags != current_tags:
        changes["tags"] = tags
    return changes


async def item(context: CommandContext) -> None:
    """Show one item after applying the requested changes."""
    args = context.args
    client = context.client
    key = args["key"]
    current = await client.get(f"/items/{key}")

    if args.get("savefiles"):
        await save_attachments(context, key)
    for path in args.get("addfile") or ():
        await upload_attachment(context, key, Path(path))

    changes = item_changes(current.get("data", {}), args)
    if changes:
        await client.patch(f"/items/{key}", changes, current["version"])

    path = f"/items/{key}/children" if args.get("children") else f"/items/{key}"
    params = query_params(args.get("filter"))
    context.output.show(await client.get(path, params=params))


async def create_item(context: CommandContext) -> None:
    """Create items from JSON files, or show an item template."""
    args = context.args
    client = context.client
    template = args.get("template")
    if template:
        context.output.show(
            await client.get("/items/new", scoped=False, params={"itemType": template})
        )
        return

    files = args.get("items") or ()
    if not files:
        raise CommandUsageError("Need at least one item (JSON file) to create")
    payload = [read_json_file(path) for path in files]
    context.output.show(await client.post("/items", payload))


async def update_item(context: CommandContext) -> None:
    """Update an item from JSON files, patching unless ``--replace`` is set.

    Each patch is guarded by the version read just before it.
    """
    args = context.args
    client = context.client
    key = args["key"]
    for path in args["items"]:
        body = read_text_file(path)
        if args.get("replace"):
            await client.put(f"/items/{key}", body)
            continue
        current = await client.get(f"/items/{key}")
        await client.patch(f"/items/{key}", body, current["version"])


__all__ = [
    "CREATE_ITEM_OPTIONS",
    "ITEMS_OPTIONS",
    "ITEM_OPTIONS",
    "UPDATE_ITEM_OPTIONS",
    "create_item",
    "item",
    "item_changes",
    "items",
    "load_validator",
    "update_item",
    "validate_items",
]
