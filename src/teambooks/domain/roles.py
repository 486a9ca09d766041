"""Roles, the acting user and access verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..errors import BadInputError

if TYPE_CHECKING:  # pragma: no cover
    from ..models.user import User


class Role(str, Enum):
    """Team membership roles ordered by privilege admin > collaborator > viewer."""

    ADMIN = "admin"
    COLLABORATOR = "collaborator"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: "str | Role | None") -> "Role":
        """Return the role for ``value`` or raise ``BadInputError``."""

        if isinstance(value, Role):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise BadInputError(
                "Valid role is required (admin, collaborator, or viewer)"
            ) from None


_RANKS = {Role.VIEWER: 1, Role.COLLABORATOR: 2, Role.ADMIN: 3}


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a core operation runs."""

    user_id: int
    superadmin: bool = False

    @classmethod
    def of(cls, user: "User") -> "Actor":
        if user.id is None:
            raise ValueError("Cannot act as an unsaved user")
        return cls(user_id=user.id, superadmin=bool(user.superadmin))


# Maintenance identity used by the CLI; it never matches a real user row.
SYSTEM_ACTOR = Actor(user_id=0, superadmin=True)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed
