"""Error types raised by the Zotero CLI."""

from __future__ import annotations
from collections.abc import Iterable
from typing import Any


class CLIError(RuntimeError):
    """Base error for user facing CLI failures."""


class CLIConfigurationError(CLIError):
    """Raised when the CLI configuration cannot be resolved."""


class MissingRequiredOption(CLIConfigurationError):
    """Raised when a required option is absent from every source."""

    def __init__(self, option: str) -> None:
        """Record the missing option name."""
        self.option = option
        super().__init__(f"Missing required option '{_external(option)}'.")


class TypeCoercionError(CLIConfigurationError):
    """Raised when a configured value cannot be converted to the option type."""

    def __init__(self, option: str, value: Any, reason: str) -> None:
        """Record the option, its raw value and why it was rejected."""
        self.option = option
        self.value = value
        super().__init__(f"{_external(option)}: {value!r} {reason}.")


class InvalidChoice(CLIConfigurationError):
    """Raised when a configured value is not one of the allowed choices."""

    def __init__(self, option: str, value: Any, choices: Iterable[str]) -> None:
        """Record the rejected value and the allowed set."""
        self.option = option
        self.value = value
        self.choices = tuple(choices)
        allowed = ", ".join(self.choices)
        super().__init__(
            f"{_external(option)} must be one of {allowed}, not {value!r}."
        )


class ScopeConflictError(CLIConfigurationError):
    """Raised unless exactly one of user id and group id is configured."""

    def __init__(self, user_id: Any = None, group_id: Any = None) -> None:
        """Record the conflicting scope values."""
        self.user_id = user_id
        self.group_id = group_id
        super().__init__(
            "You must provide exactly one of --user-id or --group-id "
            f"(user-id={user_id!r}, group-id={group_id!r})."
        )


class CommandUsageError(CLIError):
    """Raised when a command receives an invalid combination of options."""


class ApiRequestError(CLIError):
    """Raised when the Zotero API rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialise the error with optional HTTP response context."""
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConflictError(ApiRequestError):
    """Raised when a versioned write fails its precondition."""


class PaginationAnomaly(CLIError):
    """Raised when a response announces a next page without a usable link."""


class DuplicateOptionError(ValueError):
    """Raised when an option name is registered twice for one command."""


def _external(option: str) -> str:
    return option.replace("_", "-")


__all__ = [
    "ApiRequestError",
    "CLIConfigurationError",
    "CLIError",
    "CommandUsageError",
    "ConflictError",
    "DuplicateOptionError",
    "InvalidChoice",
    "MissingRequiredOption",
    "PaginationAnomaly",
    "ScopeConflictError",
    "TypeCoercionError",
]
