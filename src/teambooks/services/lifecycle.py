"""Soft delete, restore and permanent delete of teams and books.

Each aggregate moves ``Active -> SoftDeleted -> Active`` or
``SoftDeleted -> Purged``. Purging runs an ordered delete plan from
``domain.cascade`` inside the single transaction of the caller's session, so
a failure at any step leaves every row in place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Union

from sqlalchemy import delete
from sqlmodel import Session

from ..domain.cascade import DeleteStep, book_cascade, team_cascade
from ..domain.roles import Actor
from ..errors import BadInputError, NotFoundError, PreconditionFailedError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import Book, Team
from .permissions import can_admin, can_superadmin, require

logger = get_logger(__name__)

MUST_SOFT_DELETE = "must be soft-deleted first"


class Entity(str, Enum):
    TEAM = "team"
    BOOK = "book"

    @classmethod
    def parse(cls, value: "str | Entity") -> "Entity":
        if isinstance(value, Entity):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise BadInputError(f"Unknown entity: {value!r}") from None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def run_cascade(session: Session, steps: Iterable[DeleteStep]) -> list[tuple[str, int]]:
    """Execute delete steps in order and return ``(step name, rows deleted)`` pairs."""

    counts = []
    for step in steps:
        statement = (
            delete(step.model)
            .where(step.where)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(statement)
        counts.append((step.name, result.rowcount or 0))
    return counts


def _load_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


def _load_book(session: Session, book_id: int) -> Book:
    book = session.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return book


def _book_admin(session: Session, actor: Actor, book_id: int) -> Book:
    book = _load_book(session, book_id)
    require(can_admin(session, book.team_id, actor))
    return book


# -- soft delete ----------------------------------------------------------------


def soft_delete(
    actor: Actor,
    entity: Union[Entity, str],
    entity_id: int,
    *,
    session_factory: SessionFactory,
) -> None:
    """Mark a team or book as deleted without removing any data."""

    entity = Entity.parse(entity)
    with session_factory() as session:
        if entity is Entity.TEAM:
            target = _load_team(session, entity_id)
            if target.is_deleted:
                raise PreconditionFailedError("Team is already deleted")
            require(can_admin(session, entity_id, actor))
        else:
            target = _book_admin(session, actor, entity_id)
            if target.is_deleted:
                raise PreconditionFailedError("Book is already deleted")
        target.deleted_at = _now()
        session.add(target)
        session.commit()

    logger.info(
        "Soft-deleted %s", entity.value,
        extra={"entity": entity.value, "entity_id": entity_id, "actor": actor.user_id},
    )


# -- restore --------------------------------------------------------------------


def restore(
    actor: Actor,
    entity: Union[Entity, str],
    entity_id: int,
    *,
    session_factory: SessionFactory,
) -> Union[Team, Book]:
    """Bring a soft-deleted team or book back; active targets are rejected.

    Teams can only be restored by superadmins. Books need admin rights on
    their team, which in turn must be active.
    """

    entity = Entity.parse(entity)
    with session_factory() as session:
        if entity is Entity.TEAM:
            require(can_superadmin(actor))
            target = _load_team(session, entity_id)
            if not target.is_deleted:
                raise PreconditionFailedError("Team is not deleted")
        else:
            target = _book_admin(session, actor, entity_id)
            if not target.is_deleted:
                raise PreconditionFailedError("Book is already active")
        target.deleted_at = None
        session.add(target)
        session.commit()
        session.refresh(target)
        session.expunge(target)

    logger.info(
        "Restored %s", entity.value,
        extra={"entity": entity.value, "entity_id": entity_id, "actor": actor.user_id},
    )
    return target


# -- permanent delete -----------------------------------------------------------


def permanent_delete(
    actor: Actor,
    entity: Union[Entity, str],
    entity_id: int,
    *,
    session_factory: SessionFactory,
) -> None:
    """Irreversibly purge a soft-deleted team or book and everything it contains.

    Teams can only be purged by superadmins; books by admins of their team.
    """

    entity = Entity.parse(entity)
    with session_factory() as session:
        if entity is Entity.TEAM:
            require(can_superadmin(actor))
            target = _load_team(session, entity_id)
            steps = team_cascade(entity_id)
        else:
            target = _book_admin(session, actor, entity_id)
            steps = book_cascade(entity_id)
        if not target.is_deleted:
            raise PreconditionFailedError(
                f"{entity.value.capitalize()} {MUST_SOFT_DELETE}"
            )

        # Bulk deletes bypass the identity map; drop the loaded row first.
        session.expunge(target)
        counts = run_cascade(session, steps)
        if counts[-1][1] != 1:
            raise NotFoundError(f"{entity.value.capitalize()} not found")
        session.commit()

    logger.info(
        "Permanently deleted %s", entity.value,
        extra={
            "entity": entity.value,
            "entity_id": entity_id,
            "actor": actor.user_id,
            "deleted_rows": dict(counts),
        },
    )
