"""Library scope used to prefix resource paths."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Literal
from .errors import ScopeConflictError


LibraryKind = Literal["users", "groups"]


@dataclass(frozen=True, slots=True)
class LibraryScope:
    """Either a user library or a group library, never both."""

    kind: LibraryKind
    id: int

    @classmethod
    def user(cls, user_id: int) -> LibraryScope:
        """Scope requests to the library of ``user_id``."""
        return cls("users", int(user_id))

    @classmethod
    def group(cls, group_id: int) -> LibraryScope:
        """Scope requests to the library of ``group_id``."""
        return cls("groups", int(group_id))

    @classmethod
    def from_arguments(
        cls, user_id: int | None, group_id: int | None
    ) -> LibraryScope:
        """Build the scope, requiring exactly one of the two ids."""
        if (user_id is None) == (group_id is None):
            raise ScopeConflictError(user_id, group_id)
        if user_id is not None:
            return cls.user(user_id)
        return cls.group(group_id)  # type: ignore[arg-type]

    @property
    def prefix(self) -> str:
        """Path prefix applied to scoped requests."""
        return f"/{self.kind}/{self.id}"


__all__ = ["LibraryKind", "LibraryScope"]
