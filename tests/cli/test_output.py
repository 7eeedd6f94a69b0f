"""Tests for the output sink and logging setup."""

from __future__ import annotations
import io
import logging
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler
from zotero_cli.cli.log import LOGGER_NAME, configure_logging
from zotero_cli.cli.output import Output, to_json


def _consoles() -> tuple[Console, io.StringIO, Console, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    return (
        Console(file=out, width=200, color_system=None),
        out,
        Console(file=err, width=200, color_system=None),
        err,
    )


def test_to_json_indentation() -> None:
    assert to_json({"a": [1]}, 2) == '{\n  "a": [\n    1\n  ]\n}'
    assert to_json({"a": [1]}, 0) == '{"a": [1]}'
    assert to_json("é", None) == '"é"'


def test_show_prints_indented_json() -> None:
    console, out, error_console, _ = _consoles()
    output = Output(console=console, error_console=error_console, indent=4)
    output.show({"key": "A"})
    assert out.getvalue() == '{\n    "key": "A"\n}\n'


def test_print_redacts_api_key() -> None:
    console, out, error_console, err = _consoles()
    output = Output(console=console, error_console=error_console, api_key="s3cr3t")
    output.print("key", {"url": "/keys/s3cr3t"})
    output.error("request to /keys/s3cr3t failed")
    assert "s3cr3t" not in out.getvalue()
    assert "<API-KEY>" in out.getvalue()
    assert err.getvalue() == "Error: request to /keys/<API-KEY> failed\n"


def test_file_output_is_written_on_flush(tmp_path: Path) -> None:
    console, out, error_console, err = _consoles()
    target = tmp_path / "result.json"
    output = Output(
        console=console, error_console=error_console, indent=0, path=target
    )
    output.show([1, 2])
    output.error("partial failure")
    assert not target.exists()

    output.flush()
    assert target.read_text(encoding="utf-8") == "[1, 2]\nError: partial failure\n"
    assert out.getvalue() == ""
    assert err.getvalue() == ""


def test_error_markup_is_escaped() -> None:
    console, _, error_console, err = _consoles()
    Output(console=console, error_console=error_console).error("bad [value]")
    assert err.getvalue() == "Error: bad [value]\n"


def test_configure_logging_levels() -> None:
    logger = configure_logging(verbose=True)
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)

    logger = configure_logging()
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
