"""Attachment download and upload."""

from __future__ import annotations
import hashlib
import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlencode
from zotero_cli.cli.commands.common import run_batch
from zotero_cli.cli.errors import ApiRequestError
from zotero_cli.cli.options import option
from zotero_cli.cli.state import CommandContext


logger = logging.getLogger(__name__)

ATTACHMENT_OPTIONS = (
    option("key", required=True, help="The key of the attachment item."),
    option("save", required=True, help="Filename to save the attachment to."),
)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "If-None-Match": "*",
}


async def save_attachment(context: CommandContext) -> None:
    """Download the file of attachment ``--key`` to ``--save``."""
    args = context.args
    content = await context.client.get(f"/items/{args['key']}/file", raw=True)
    Path(args["save"]).write_bytes(content)


async def save_attachments(context: CommandContext, item_key: str) -> None:
    """Download every attachment of ``item_key`` into the working directory."""
    client = context.client
    children = await client.get(f"/items/{item_key}/children")
    attachments = {
        child["key"]: child
        for child in children or []
        if child.get("data", {}).get("itemType") == "attachment"
    }

    async def download(key: str) -> None:
        data = attachments[key]["data"]
        # Only the final component, server side names may contain separators.
        filename = Path(data.get("filename") or key).name
        logger.info("Downloading file %s", filename)
        content = await client.get(f"/items/{key}/file", raw=True)
        Path(filename).write_bytes(content)

    await run_batch(context.output, "download", list(attachments), download)


def _created_key(response: Any) -> str:
    successful = response.get("successful") if isinstance(response, dict) else None
    if successful:
        first = successful.get("0") or next(iter(successful.values()))
        return first["key"]
    failed = response.get("failed") if isinstance(response, dict) else response
    msg = f"The attachment item was not created: {failed}"
    raise ApiRequestError(msg)


async def upload_attachment(
    context: CommandContext, parent_key: str, path: Path
) -> None:
    """Create an attachment item under ``parent_key`` and upload ``path``."""
    client = context.client
    name = path.name
    template = await client.get(
        "/items/new",
        scoped=False,
        params={"itemType": "attachment", "linkMode": "imported_file"},
    )
    attachment = dict(template)
    attachment.update(
        title=name,
        filename=name,
        contentType=f"application/{path.suffix.lstrip('.')}",
        parentItem=parent_key,
    )
    item_key = _created_key(await client.post("/items", [attachment]))

    content = path.read_bytes()
    stat = path.stat()
    form = urlencode(
        {
            "md5": hashlib.md5(content).hexdigest(),
            "filename": name,
            "filesize": stat.st_size,
            "mtime": int(stat.st_mtime * 1000),
        }
    )
    authorization = await client.post(f"/items/{item_key}/file", form, FORM_HEADERS)
    if authorization.get("exists") == 1:
        context.output.print(f"File {name} already exists")
        return

    body = (
        authorization["prefix"].encode()
        + content
        + authorization["suffix"].encode()
    )
    await client.upload(authorization["url"], body, authorization["contentType"])
    await client.post(
        f"/items/{item_key}/file",
        urlencode({"upload": authorization["uploadKey"]}),
        FORM_HEADERS,
    )
    logger.info("Uploaded %s as attachment %s", name, item_key)
    context.output.print(f"Uploaded {name}")


__all__ = [
    "ATTACHMENT_OPTIONS",
    "save_attachment",
    "save_attachments",
    "upload_attachment",
]
