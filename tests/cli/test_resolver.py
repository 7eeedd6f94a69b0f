"""Tests for layered option resolution."""

from __future__ import annotations
from pathlib import Path
import pytest
from zotero_cli.cli.config import ConfigDocument
from zotero_cli.cli.errors import (
    CLIConfigurationError,
    InvalidChoice,
    MissingRequiredOption,
    ScopeConflictError,
    TypeCoercionError,
)
from zotero_cli.cli.options import (
    Multiplicity,
    OptionKind,
    OptionRegistry,
    flag,
    option,
)
from zotero_cli.cli.resolver import (
    DEFAULT_INDENT,
    ResolvedArguments,
    coerce_value,
    finalize,
    resolve,
    resolve_options,
)
from zotero_cli.cli.scope import LibraryScope


def _registry() -> OptionRegistry:
    registry = OptionRegistry()
    registry.register_all(
        "items",
        [
            flag("top"),
            option("filter", OptionKind.JSON),
            option("limit", OptionKind.INTEGER),
            option("mode", OptionKind.CHOICE, choices=("a", "b")),
            option("tag", multiplicity=Multiplicity.ZERO_OR_MORE),
        ],
    )
    return registry


def _resolve(
    explicit: dict | None = None,
    config: dict | None = None,
    environment: dict | None = None,
) -> dict:
    return resolve_options(
        "items",
        {"api_key": "k", **(explicit or {})},
        ConfigDocument(config or {}),
        environment or {},
        registry=_registry(),
    )


def test_explicit_value_beats_every_layer() -> None:
    values = _resolve(
        explicit={"limit": 1},
        config={"limit": 4, "items": {"limit": 2}},
        environment={"ZOTERO_CLI_LIMIT": "3"},
    )
    assert values["limit"] == 1


_FOUR_LAYERS = {
    "config": {
        "limit": 4,
        "filter": {"layer": "global"},
        "items": {"limit": 2, "filter": {"layer": "section"}},
    },
    "environment": {
        "ZOTERO_CLI_LIMIT": "3",
        "ZOTERO_CLI_FILTER": '{"layer": "environment"}',
    },
}


def test_four_layers_explicit_wins() -> None:
    explicit = {"limit": 1, "filter": {"layer": "cli"}}
    values = _resolve(explicit=explicit, **_FOUR_LAYERS)
    assert values["limit"] == 1
    assert values["filter"] == {"layer": "cli"}


def test_four_layers_without_explicit_values() -> None:
    values = _resolve(**_FOUR_LAYERS)
    assert values["limit"] == 2
    assert values["filter"] == {"layer": "section"}


def test_four_layers_without_command_section() -> None:
    values = _resolve(
        config={"limit": 4, "filter": {"layer": "global"}},
        environment=_FOUR_LAYERS["environment"],
    )
    assert values["limit"] == 3
    assert values["filter"] == {"layer": "environment"}


def test_global_table_is_an_option_value_unless_named_after_a_command() -> None:
    values = _resolve(config={"filter": {"tag": "y"}, "items": {"top": True}})
    assert values["filter"] == {"tag": "y"}
    assert values["top"] is True
    assert "items" not in values


def test_command_section_beats_environment_and_global() -> None:
    values = _resolve(
        config={"limit": 4, "items": {"limit": 2}},
        environment={"ZOTERO_CLI_LIMIT": "3"},
    )
    assert values["limit"] == 2


def test_environment_beats_global_section() -> None:
    values = _resolve(config={"limit": 4}, environment={"ZOTERO_LIMIT": "3"})
    assert values["limit"] == 3


def test_cli_prefix_beats_api_prefix() -> None:
    values = _resolve(environment={"ZOTERO_CLI_LIMIT": "5", "ZOTERO_LIMIT": "6"})
    assert values["limit"] == 5


def test_global_section_is_the_last_resort() -> None:
    assert _resolve(config={"limit": 4})["limit"] == 4


def test_unset_optional_options_are_absent() -> None:
    values = _resolve()
    assert "limit" not in values
    assert "top" not in values


def test_falsy_layer_value_still_wins() -> None:
    values = _resolve(config={"items": {"top": False}, "top": True})
    assert values["top"] is False


def test_missing_required_option() -> None:
    with pytest.raises(MissingRequiredOption) as excinfo:
        resolve_options(
            "items", {}, ConfigDocument(), {}, registry=_registry()
        )
    assert excinfo.value.option == "api_key"
    assert "api-key" in str(excinfo.value)


def test_required_option_satisfied_by_environment() -> None:
    values = resolve_options(
        "items",
        {},
        ConfigDocument(),
        {"ZOTERO_API_KEY": "from-env"},
        registry=_registry(),
    )
    assert values["api_key"] == "from-env"


def test_explicit_group_suppresses_configured_user() -> None:
    values = _resolve(explicit={"group_id": 5}, config={"user-id": 7})
    assert values["group_id"] == 5
    assert "user_id" not in values


def test_explicit_scope_keeps_environment_scope() -> None:
    values = _resolve(
        explicit={"user_id": 5},
        config={"group-id": 8, "items": {"group-id": 9}},
        environment={"ZOTERO_GROUP_ID": "7"},
    )
    assert values["user_id"] == 5
    assert values["group_id"] == 7


@pytest.mark.asyncio
async def test_explicit_user_with_environment_group_conflicts() -> None:
    with pytest.raises(ScopeConflictError):
        await resolve(
            "items",
            {"api_key": "k", "user_id": 5},
            ConfigDocument(),
            {"ZOTERO_GROUP_ID": "7"},
            registry=_registry(),
        )


def test_configured_user_and_group_are_both_kept() -> None:
    values = _resolve(config={"user-id": 7}, environment={"ZOTERO_GROUP_ID": "5"})
    assert values["user_id"] == 7
    assert values["group_id"] == 5


def test_config_option_is_never_looked_up() -> None:
    values = _resolve(config={"config": "elsewhere.toml"})
    assert "config" not in values


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("off", False), ("no", False), ("true", True), ("on", True), (True, True)],
)
def test_flag_strings(raw: object, expected: bool) -> None:
    assert _resolve(environment={"ZOTERO_TOP": raw})["top"] is expected


def test_flag_rejects_unknown_string() -> None:
    with pytest.raises(TypeCoercionError) as excinfo:
        _resolve(environment={"ZOTERO_TOP": "maybe"})
    assert excinfo.value.option == "top"
    assert excinfo.value.value == "maybe"


def test_integer_rejects_text_and_booleans() -> None:
    with pytest.raises(TypeCoercionError, match="limit"):
        _resolve(config={"limit": "ten"})
    with pytest.raises(TypeCoercionError):
        _resolve(config={"limit": True})


def test_json_is_parsed_only_when_textual() -> None:
    assert _resolve(environment={"ZOTERO_FILTER": '{"tag": "x"}'})["filter"] == {
        "tag": "x"
    }
    assert _resolve(config={"filter": {"tag": "y"}})["filter"] == {"tag": "y"}
    with pytest.raises(TypeCoercionError, match="JSON"):
        _resolve(environment={"ZOTERO_FILTER": "{nope"})


def test_choice_lists_allowed_values() -> None:
    assert _resolve(config={"mode": "b"})["mode"] == "b"
    with pytest.raises(InvalidChoice, match="a, b"):
        _resolve(config={"mode": "c"})


def test_multi_valued_option_from_list_and_scalar() -> None:
    assert _resolve(config={"tag": ["a", "b"]})["tag"] == ("a", "b")
    assert _resolve(environment={"ZOTERO_TAG": "solo"})["tag"] == ("solo",)


def test_existing_path_kinds(tmp_path: Path) -> None:
    existing = tmp_path / "schema.json"
    existing.write_text("{}", encoding="utf-8")
    file_option = option("schema", OptionKind.EXISTING_FILE)
    path_option = option("folder", OptionKind.EXISTING_PATH)

    assert coerce_value(file_option, str(existing)) == str(existing)
    assert coerce_value(path_option, str(tmp_path)) == str(tmp_path)
    with pytest.raises(TypeCoercionError, match="not a file"):
        coerce_value(file_option, str(tmp_path))
    with pytest.raises(TypeCoercionError, match="does not exist"):
        coerce_value(path_option, str(tmp_path / "missing"))


def test_one_or_more_requires_a_value() -> None:
    descriptor = option("uri", multiplicity=Multiplicity.ONE_OR_MORE)
    with pytest.raises(TypeCoercionError):
        coerce_value(descriptor, [])


@pytest.mark.asyncio
async def test_finalize_requires_exactly_one_scope() -> None:
    with pytest.raises(ScopeConflictError):
        await finalize({"api_key": "k"})
    with pytest.raises(ScopeConflictError):
        await finalize({"api_key": "k", "user_id": 1, "group_id": 2})


@pytest.mark.asyncio
async def test_finalize_defaults_indent_and_builds_scope() -> None:
    args = await finalize({"api_key": "k", "group_id": 3})
    assert args["indent"] == DEFAULT_INDENT
    assert args.scope == LibraryScope.group(3)


@pytest.mark.asyncio
async def test_finalize_looks_up_self_user_id() -> None:
    seen: list[str] = []

    async def lookup(api_key: str) -> int:
        seen.append(api_key)
        return 1234

    args = await finalize({"api_key": "k", "user_id": 0}, user_id_lookup=lookup)
    assert args["user_id"] == 1234
    assert args.scope.prefix == "/users/1234"
    assert seen == ["k"]


@pytest.mark.asyncio
async def test_self_user_id_without_lookup_is_an_error() -> None:
    with pytest.raises(CLIConfigurationError):
        await finalize({"api_key": "k", "user_id": 0})


@pytest.mark.asyncio
async def test_resolve_returns_immutable_arguments() -> None:
    args = await resolve(
        "items",
        {"top": True},
        ConfigDocument({"api-key": "secret", "user-id": 9}),
        {},
        registry=_registry(),
    )
    assert isinstance(args, ResolvedArguments)
    assert dict(args) == {
        "top": True,
        "api_key": "secret",
        "user_id": 9,
        "indent": DEFAULT_INDENT,
    }
    with pytest.raises(TypeError):
        args["top"] = False  # type: ignore[index]
    assert "secret" not in repr(args)
