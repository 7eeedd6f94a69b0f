"""Shared fixtures for CLI tests."""

from __future__ import annotations
import os
from pathlib import Path
import pytest
from click.testing import CliRunner
from zotero_cli.cli.commands import build_registry


API_KEY = "secret-key"


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep real configuration files and variables out of the tests."""
    for name in list(os.environ):
        if name.startswith("ZOTERO_"):
            monkeypatch.delenv(name)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return workdir


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def env() -> dict[str, str]:
    return {
        "ZOTERO_API_KEY": API_KEY,
        "ZOTERO_USER_ID": "42",
        "NO_COLOR": "1",
    }


@pytest.fixture()
def registry():
    return build_registry()
