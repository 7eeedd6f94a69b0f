"""Configuration sources for the Zotero CLI."""

from __future__ import annotations
import os
import tomllib
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from dotenv import dotenv_values
from .errors import CLIConfigurationError


CONFIG_FILENAME = "zotero-cli.toml"
ENV_FILENAME = ".env"
CLI_ENV_PREFIX = "ZOTERO_CLI_"
API_ENV_PREFIX = "ZOTERO_"


def get_config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Return the per-user configuration directory."""
    env = os.environ if env is None else env
    config_home = env.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "zotero-cli"


def config_candidates(
    explicit: str | Path | None = None,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Path]:
    """Return the locations searched for a configuration file, in order."""
    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit))
    candidates.append((cwd or Path.cwd()) / CONFIG_FILENAME)
    candidates.append(get_config_dir(env) / CONFIG_FILENAME)
    return candidates


def find_config_file(
    explicit: str | Path | None = None,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path | None:
    """Return the first existing configuration file."""
    for candidate in config_candidates(explicit, cwd=cwd, env=env):
        if candidate.is_file():
            return candidate
    return None


@dataclass(frozen=True, slots=True)
class ConfigDocument:
    """Parsed configuration file.

    Top-level tables named after a command are sections scoped to that
    command. Every other top-level key, tables included, is a global value.
    """

    data: Mapping[str, Any] = field(default_factory=dict)
    path: Path | None = None

    def command_section(self, command: str) -> Mapping[str, Any]:
        """Return the table configured for ``command``."""
        section = self.data.get(command)
        if isinstance(section, Mapping):
            return section
        return {}

    def global_section(self, commands: Collection[str] = ()) -> Mapping[str, Any]:
        """Return the top-level values that are not sections of ``commands``."""
        return {
            key: value
            for key, value in self.data.items()
            if not (key in commands and isinstance(value, Mapping))
        }


def load_config(path: Path | None) -> ConfigDocument:
    """Parse the TOML document stored at ``path``."""
    if path is None:
        return ConfigDocument()
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise CLIConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise CLIConfigurationError(f"Unable to read {path}: {exc}") from exc
    return ConfigDocument(data=data, path=path)


def load_environment(
    environ: Mapping[str, str] | None = None,
    *,
    env_file: Path | None = None,
) -> dict[str, str]:
    """Return the process environment merged over a ``.env`` file.

    Variables set in the process take precedence over the file. The process
    environment itself is left untouched.
    """
    env_file = env_file or Path.cwd() / ENV_FILENAME
    merged: dict[str, str] = {}
    if env_file.is_file():
        merged.update(
            {
                key: value
                for key, value in dotenv_values(env_file).items()
                if value is not None
            }
        )
    merged.update(os.environ if environ is None else environ)
    return merged


def env_names(option: str) -> tuple[str, str]:
    """Return the environment variable names consulted for ``option``."""
    suffix = option.upper().replace("-", "_")
    return f"{CLI_ENV_PREFIX}{suffix}", f"{API_ENV_PREFIX}{suffix}"


__all__ = [
    "API_ENV_PREFIX",
    "CLI_ENV_PREFIX",
    "CONFIG_FILENAME",
    "ConfigDocument",
    "config_candidates",
    "env_names",
    "find_config_file",
    "get_config_dir",
    "load_config",
    "load_environment",
]
