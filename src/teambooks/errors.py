"""Typed business-rule errors raised by the teambooks core.

Each error carries a stable HTTP-style ``status_code`` and a short machine
``code`` so a boundary layer can translate it without inspecting messages.
Storage failures are never wrapped; they propagate as SQLAlchemy errors once
the session has rolled back.
"""

from __future__ import annotations


class TeambooksError(Exception):
    """Base class for every rule violation reported by the core."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class NotFoundError(TeambooksError):
    """A resource or one of its dependencies is missing."""

    status_code = 404
    code = "not_found"


class ForbiddenError(TeambooksError):
    """The role resolver denied the acting user."""

    status_code = 403
    code = "forbidden"


class BadInputError(TeambooksError, ValueError):
    """Malformed date, missing required field or invalid enum value."""

    status_code = 400
    code = "bad_input"


class InvalidHierarchyError(TeambooksError):
    """A category nesting or type-inheritance rule was violated."""

    status_code = 400
    code = "invalid_hierarchy"


class ConflictError(TeambooksError):
    """The operation clashes with existing state."""

    status_code = 409
    code = "conflict"


class PreconditionFailedError(TeambooksError):
    """The aggregate is not in the lifecycle state the operation needs."""

    status_code = 412
    code = "precondition_failed"


__all__ = [
    "BadInputError",
    "ConflictError",
    "ForbiddenError",
    "InvalidHierarchyError",
    "NotFoundError",
    "PreconditionFailedError",
    "TeambooksError",
]
