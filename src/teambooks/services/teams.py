"""Team and book management (creation, settings, listing)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case
from sqlmodel import Session, col, func, select

from ..domain.roles import Actor, Role
from ..errors import BadInputError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import Book, Team, TeamUser
from .permissions import (
    can_admin,
    can_read,
    can_superadmin,
    can_write,
    require,
    resolve_team_for_book,
)

logger = get_logger(__name__)

WEEK_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_UNSET = object()


def _clean_name(name: Optional[str], label: str = "Name") -> str:
    name = (name or "").strip()
    if not name:
        raise BadInputError(f"{label} is required")
    return name


def _clean_week_start(week_start: str) -> str:
    value = (week_start or "").strip().lower()
    if value not in WEEK_DAYS:
        raise BadInputError(f"Invalid week start: {week_start!r}")
    return value


def _detach(session: Session, obj):
    session.refresh(obj)
    session.expunge(obj)
    return obj


# -- teams --------------------------------------------------------------------


def create_team(actor: Actor, name: str, *, session_factory: SessionFactory) -> Team:
    """Create a team; the creator becomes its first admin in the same transaction."""

    name = _clean_name(name, "Team name")
    with session_factory() as session:
        team = Team(name=name)
        session.add(team)
        session.flush()
        session.add(TeamUser(team_id=team.id, user_id=actor.user_id, role=Role.ADMIN.value))
        session.commit()
        team = _detach(session, team)
    logger.info("Team created", extra={"team_id": team.id, "actor": actor.user_id})
    return team


def get_team(actor: Actor, team_id: int, *, session_factory: SessionFactory) -> Team:
    """Fetch a team; superadmins can also see soft-deleted teams."""

    with session_factory() as session:
        team = session.get(Team, team_id)
        if team is None or (team.is_deleted and not actor.superadmin):
            raise NotFoundError("Team not found")
        require(can_read(session, team_id, actor))
        session.expunge(team)
        return team


def list_teams(actor: Actor, *, session_factory: SessionFactory) -> list[tuple[Team, Role]]:
    """Return the actor's active teams with the actor's role in each."""

    with session_factory() as session:
        rows = session.exec(
            select(Team, TeamUser.role)
            .join(TeamUser, col(TeamUser.team_id) == col(Team.id))
            .where(TeamUser.user_id == actor.user_id)
            .where(col(Team.deleted_at).is_(None))
            .order_by(Team.name)
        ).all()
        session.expunge_all()
        return [(team, Role(role)) for team, role in rows]


@dataclass(frozen=True)
class TeamSummary:
    """A team with membership and active-book counts, for superadmin listings."""

    team: Team
    member_count: int = 0
    admin_count: int = 0
    collaborator_count: int = 0
    viewer_count: int = 0
    book_count: int = 0


def _role_total(role: Role):
    return func.coalesce(func.sum(case((col(TeamUser.role) == role.value, 1), else_=0)), 0)


def list_all_teams(
    actor: Actor, *, deleted: bool = False, session_factory: SessionFactory
) -> list[TeamSummary]:
    """List every team ordered by name (superadmin only).

    ``deleted`` switches to the recycle bin of soft-deleted teams. Book counts
    only include active books.
    """

    require(can_superadmin(actor))
    with session_factory() as session:
        marker = col(Team.deleted_at)
        teams = list(
            session.exec(
                select(Team)
                .where(marker.is_not(None) if deleted else marker.is_(None))
                .order_by(Team.name)
            ).all()
        )
        team_ids = [team.id for team in teams]

        members = {}
        books = {}
        if team_ids:
            member_rows = session.exec(
                select(
                    TeamUser.team_id,
                    func.count(func.distinct(TeamUser.user_id)),
                    _role_total(Role.ADMIN),
                    _role_total(Role.COLLABORATOR),
                    _role_total(Role.VIEWER),
                )
                .where(col(TeamUser.team_id).in_(team_ids))
                .group_by(TeamUser.team_id)
            ).all()
            members = {row[0]: tuple(row[1:]) for row in member_rows}
            book_rows = session.exec(
                select(Book.team_id, func.count(Book.id))
                .where(col(Book.team_id).in_(team_ids))
                .where(col(Book.deleted_at).is_(None))
                .group_by(Book.team_id)
            ).all()
            books = dict(book_rows)
        session.expunge_all()

    summaries = []
    for team in teams:
        member_count, admins, collaborators, viewers = members.get(team.id, (0, 0, 0, 0))
        summaries.append(
            TeamSummary(
                team=team,
                member_count=member_count,
                admin_count=admins,
                collaborator_count=collaborators,
                viewer_count=viewers,
                book_count=books.get(team.id, 0),
            )
        )
    return summaries


def rename_team(actor: Actor, team_id: int, name: str, *, session_factory: SessionFactory) -> Team:
    name = _clean_name(name, "Team name")
    with session_factory() as session:
        team = session.get(Team, team_id)
        if team is None or team.is_deleted:
            raise NotFoundError("Team not found")
        require(can_admin(session, team_id, actor))
        team.name = name
        session.add(team)
        session.commit()
        return _detach(session, team)


# -- books --------------------------------------------------------------------


def create_book(
    actor: Actor,
    team_id: int,
    name: str,
    *,
    note: Optional[str] = None,
    currency_symbol: str = "$",
    week_start: str = "monday",
    session_factory: SessionFactory,
) -> Book:
    """Create a book inside an active team (write access required)."""

    name = _clean_name(name)
    week_start = _clean_week_start(week_start)
    with session_factory() as session:
        team = session.get(Team, team_id)
        if team is None or team.is_deleted:
            raise NotFoundError("Team not found")
        require(can_write(session, team_id, actor))
        book = Book(
            team_id=team_id,
            name=name,
            note=note,
            currency_symbol=currency_symbol,
            week_start=week_start,
        )
        session.add(book)
        session.commit()
        book = _detach(session, book)
    logger.info("Book created", extra={"book_id": book.id, "team_id": team_id})
    return book


def get_book(actor: Actor, book_id: int, *, session_factory: SessionFactory) -> Book:
    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_read(session, team_id, actor))
        book = session.get(Book, book_id)
        session.expunge(book)
        return book


def list_books(
    actor: Actor, team_id: int, *, deleted: bool = False, session_factory: SessionFactory
) -> list[Book]:
    """List a team's active books, or its recycle bin when ``deleted`` is set."""

    with session_factory() as session:
        team = session.get(Team, team_id)
        if team is None or team.is_deleted:
            raise NotFoundError("Team not found")
        if deleted:
            require(can_admin(session, team_id, actor))
        else:
            require(can_read(session, team_id, actor))
        marker = col(Book.deleted_at)
        statement = (
            select(Book)
            .where(Book.team_id == team_id)
            .where(marker.is_not(None) if deleted else marker.is_(None))
            .order_by(Book.name)
        )
        books = list(session.exec(statement).all())
        session.expunge_all()
        return books


def update_book(
    actor: Actor,
    book_id: int,
    *,
    name: Optional[str] = None,
    note=_UNSET,
    currency_symbol: Optional[str] = None,
    week_start: Optional[str] = None,
    session_factory: SessionFactory,
) -> Book:
    """Partially update book settings; omitted fields keep their values."""

    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_write(session, team_id, actor))
        book = session.get(Book, book_id)
        if name is not None:
            book.name = _clean_name(name)
        if note is not _UNSET:
            book.note = note
        if currency_symbol is not None:
            book.currency_symbol = currency_symbol
        if week_start is not None:
            book.week_start = _clean_week_start(week_start)
        session.add(book)
        session.commit()
        return _detach(session, book)
