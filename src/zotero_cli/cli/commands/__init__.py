"""Command table mapping subcommand names to their options and handlers."""

from __future__ import annotations
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from zotero_cli.cli.commands import (
    attachments,
    collections,
    items,
    library,
    raw,
    tags,
)
from zotero_cli.cli.options import GLOBAL_OPTIONS, OptionDescriptor, OptionRegistry
from zotero_cli.cli.state import CommandContext


Handler = Callable[[CommandContext], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Command:
    """A subcommand: its name, help text, options and handler."""

    name: str
    help: str
    handler: Handler
    options: tuple[OptionDescriptor, ...] = ()


COMMANDS: dict[str, Command] = {
    command.name: command
    for command in (
        Command(
            "attachment",
            "Retrieve and save the file of an attachment item.",
            attachments.save_attachment,
            attachments.ATTACHMENT_OPTIONS,
        ),
        Command(
            "collection",
            "Show a collection, optionally adding or removing items.",
            collections.collection,
            collections.COLLECTION_OPTIONS,
        ),
        Command(
            "collections",
            "List collections, or create child collections.",
            collections.collections,
            collections.COLLECTIONS_OPTIONS,
        ),
        Command(
            "create-item",
            "Create items from JSON files, or show an item template.",
            items.create_item,
            items.CREATE_ITEM_OPTIONS,
        ),
        Command(
            "delete",
            "Delete the objects at the given uris.",
            raw.delete,
            raw.DELETE_OPTIONS,
        ),
        Command(
            "fields",
            "List item fields, or the fields of one item type.",
            library.show_fields,
            library.FIELDS_OPTIONS,
        ),
        Command(
            "get", "Make a direct GET request to the API.", raw.get, raw.GET_OPTIONS
        ),
        Command("groups", "List the groups of the user.", library.list_groups),
        Command(
            "item",
            "Show an item after applying attachment, collection and tag changes.",
            items.item,
            items.ITEM_OPTIONS,
        ),
        Command(
            "items",
            "List, count or validate items.",
            items.items,
            items.ITEMS_OPTIONS,
        ),
        Command("key", "Show details about the API key.", library.show_key),
        Command(
            "post",
            "Make a direct POST request to the API.",
            raw.post,
            raw.POST_OPTIONS,
        ),
        Command(
            "publications",
            "List the items in My Publications.",
            library.list_publications,
        ),
        Command(
            "put", "Make a direct PUT request to the API.", raw.put, raw.PUT_OPTIONS
        ),
        Command(
            "searches",
            "List saved searches, or create them from a file.",
            library.searches,
            library.SEARCHES_OPTIONS,
        ),
        Command("tags", "List tags.", tags.tags, tags.TAGS_OPTIONS),
        Command("trash", "List the items in the trash.", library.list_trash),
        Command("types", "List item types.", library.list_types),
        Command(
            "update-item",
            "Update an item from JSON files.",
            items.update_item,
            items.UPDATE_ITEM_OPTIONS,
        ),
    )
}


def build_registry(
    commands: Mapping[str, Command] = COMMANDS,
    global_options: tuple[OptionDescriptor, ...] = GLOBAL_OPTIONS,
) -> OptionRegistry:
    """Register the options of every command in ``commands``."""
    registry = OptionRegistry(global_options)
    for command in commands.values():
        registry.register_all(command.name, command.options)
    return registry


__all__ = ["COMMANDS", "Command", "Handler", "build_registry"]
