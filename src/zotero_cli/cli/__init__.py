"""Command line interface for the Zotero web API."""

from __future__ import annotations
from .main import app, build_cli, run


__all__ = ["app", "build_cli", "run"]
