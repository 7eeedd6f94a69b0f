"""Allow ``python -m zotero_cli``."""

from __future__ import annotations
from zotero_cli.cli import run


if __name__ == "__main__":
    run()
