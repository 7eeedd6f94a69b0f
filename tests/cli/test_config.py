"""Tests for configuration file discovery and the environment layer."""

from __future__ import annotations
from pathlib import Path
import pytest
from zotero_cli.cli.config import (
    CONFIG_FILENAME,
    ConfigDocument,
    config_candidates,
    env_names,
    find_config_file,
    get_config_dir,
    load_config,
    load_environment,
)
from zotero_cli.cli.errors import CLIConfigurationError


def test_get_config_dir_honours_xdg(tmp_path: Path) -> None:
    assert get_config_dir({"XDG_CONFIG_HOME": str(tmp_path)}) == (
        tmp_path / "zotero-cli"
    )


def test_get_config_dir_defaults_to_home(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: Path("/home/test")))
    assert get_config_dir({}) == Path("/home/test/.config/zotero-cli")


def test_config_candidates_order(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.toml"
    cwd = tmp_path / "cwd"
    env = {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}
    assert config_candidates(explicit, cwd=cwd, env=env) == [
        explicit,
        cwd / CONFIG_FILENAME,
        tmp_path / "xdg" / "zotero-cli" / CONFIG_FILENAME,
    ]


def test_find_config_file_prefers_working_directory(tmp_path: Path) -> None:
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    user_dir = tmp_path / "xdg" / "zotero-cli"
    user_dir.mkdir(parents=True)
    (user_dir / CONFIG_FILENAME).write_text("indent = 4\n", encoding="utf-8")
    env = {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}

    assert find_config_file(cwd=cwd, env=env) == user_dir / CONFIG_FILENAME

    (cwd / CONFIG_FILENAME).write_text("indent = 0\n", encoding="utf-8")
    assert find_config_file(cwd=cwd, env=env) == cwd / CONFIG_FILENAME


def test_find_config_file_returns_none_without_files(tmp_path: Path) -> None:
    env = {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}
    assert find_config_file(cwd=tmp_path, env=env) is None


def test_load_config_splits_sections(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text(
        'api-key = "abc"\nuser-id = 7\n\n[items]\ntop = true\n',
        encoding="utf-8",
    )
    document = load_config(path)
    assert document.path == path
    assert document.global_section(("items",)) == {"api-key": "abc", "user-id": 7}
    assert document.command_section("items") == {"top": True}
    assert document.command_section("tags") == {}


def test_load_config_without_path_is_empty() -> None:
    document = load_config(None)
    assert document == ConfigDocument()
    assert document.global_section() == {}


def test_load_config_reports_invalid_toml(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text("api-key = \n", encoding="utf-8")
    with pytest.raises(CLIConfigurationError, match="Invalid TOML"):
        load_config(path)


def test_command_section_ignores_scalar_with_command_name() -> None:
    document = ConfigDocument({"tags": "not-a-table"})
    assert document.command_section("tags") == {}
    assert document.global_section() == {"tags": "not-a-table"}


def test_tables_not_named_after_a_command_are_global_values() -> None:
    document = ConfigDocument({"filter": {"tag": "y"}, "items": {"top": True}})
    assert document.global_section(("items", "tags")) == {"filter": {"tag": "y"}}


def test_load_environment_merges_dotenv_under_process(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "ZOTERO_API_KEY=from-file\nZOTERO_USER_ID=1\n", encoding="utf-8"
    )
    merged = load_environment({"ZOTERO_API_KEY": "from-process"}, env_file=env_file)
    assert merged["ZOTERO_API_KEY"] == "from-process"
    assert merged["ZOTERO_USER_ID"] == "1"


def test_load_environment_reads_dotenv_from_working_directory(
    isolated_environment: Path,
) -> None:
    (isolated_environment / ".env").write_text(
        "ZOTERO_GROUP_ID=9\n", encoding="utf-8"
    )
    assert load_environment({})["ZOTERO_GROUP_ID"] == "9"


def test_env_names_checks_cli_prefix_first() -> None:
    assert env_names("api_key") == ("ZOTERO_CLI_API_KEY", "ZOTERO_API_KEY")
