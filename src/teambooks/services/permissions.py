"""Role resolution and access decisions for the team containment chain.

This module is the single policy entry point: it is the only place that
looks at ``Actor.superadmin``. Callers resolve the owning team of a resource
with one of the ``resolve_team_for_*`` helpers, ask for a verdict with
``can_read``/``can_write``/``can_admin`` and convert a deny into
``ForbiddenError`` with ``require``.
"""

from __future__ import annotations

from typing import Optional

from sqlmodel import Session, col, select

from ..domain.roles import AccessDecision, Actor, Role
from ..errors import ForbiddenError, NotFoundError
from ..models import Account, Book, Category, Team, TeamUser, Transaction

NO_ACCESS = "access denied to this team"
INSUFFICIENT = "insufficient permissions"
TEAM_DELETED = "team is deleted"
TEAM_MISSING = "team not found"
SUPERADMIN = "superadmin override"
GRANTED = "access granted"


def resolve_role(session: Session, team_id: int, user_id: int) -> Optional[Role]:
    """Return the user's role in an active team, or ``None``."""

    row = session.exec(
        select(TeamUser.role)
        .join(Team, col(Team.id) == col(TeamUser.team_id))
        .where(TeamUser.team_id == team_id)
        .where(TeamUser.user_id == user_id)
        .where(col(Team.deleted_at).is_(None))
    ).first()
    if row is None:
        return None
    try:
        return Role(row)
    except ValueError:
        return None


def _decide(session: Session, team_id: int, actor: Actor, minimum: Role) -> AccessDecision:
    if actor.superadmin:
        return AccessDecision(True, SUPERADMIN)
    role = resolve_role(session, team_id, actor.user_id)
    if role is None:
        return AccessDecision(False, NO_ACCESS)
    if role.rank < minimum.rank:
        return AccessDecision(False, INSUFFICIENT)
    return AccessDecision(True, GRANTED)


def can_read(session: Session, team_id: int, actor: Actor) -> AccessDecision:
    return _decide(session, team_id, actor, Role.VIEWER)


def can_write(session: Session, team_id: int, actor: Actor) -> AccessDecision:
    return _decide(session, team_id, actor, Role.COLLABORATOR)


def can_admin(session: Session, team_id: int, actor: Actor) -> AccessDecision:
    return _decide(session, team_id, actor, Role.ADMIN)


def can_manage_members(session: Session, team_id: int, actor: Actor) -> AccessDecision:
    """Decide whether ``actor`` may add, remove or re-role members of a team.

    Soft-deleted teams only accept membership changes from superadmins.
    """

    team = session.get(Team, team_id)
    if team is None:
        return AccessDecision(False, TEAM_MISSING)
    if actor.superadmin:
        return AccessDecision(True, SUPERADMIN)
    if team.is_deleted:
        return AccessDecision(False, TEAM_DELETED)
    return can_admin(session, team_id, actor)


def can_superadmin(actor: Actor) -> AccessDecision:
    if actor.superadmin:
        return AccessDecision(True, SUPERADMIN)
    return AccessDecision(False, "superadmin privileges required")


def bypasses_admin_floor(actor: Actor) -> bool:
    """Return True when ``actor`` may leave a team without any admin."""

    return actor.superadmin


def require(decision: AccessDecision) -> None:
    """Raise ``ForbiddenError`` for a denied decision."""

    if not decision.allowed:
        raise ForbiddenError(decision.reason or INSUFFICIENT)


# -- containment chain --------------------------------------------------------


def resolve_team_for_book(session: Session, book_id: int, *, include_deleted: bool = False) -> int:
    """Return the id of the team owning ``book_id``.

    Unless ``include_deleted`` is set, soft-deleted books and books of
    soft-deleted teams are treated as missing.
    """

    statement = (
        select(Book.team_id)
        .join(Team, col(Team.id) == col(Book.team_id))
        .where(Book.id == book_id)
    )
    if not include_deleted:
        statement = statement.where(col(Book.deleted_at).is_(None)).where(
            col(Team.deleted_at).is_(None)
        )
    team_id = session.exec(statement).first()
    if team_id is None:
        raise NotFoundError("Book not found")
    return team_id


def resolve_team_for_account(
    session: Session, account_id: int, *, include_deleted: bool = False
) -> int:
    account = session.get(Account, account_id)
    if account is None:
        raise NotFoundError("Account not found")
    try:
        return resolve_team_for_book(session, account.book_id, include_deleted=include_deleted)
    except NotFoundError:
        raise NotFoundError("Account not found") from None


def resolve_team_for_category(
    session: Session, category_id: int, *, include_deleted: bool = False
) -> int:
    category = session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    try:
        return resolve_team_for_book(session, category.book_id, include_deleted=include_deleted)
    except NotFoundError:
        raise NotFoundError("Category not found") from None


def resolve_team_for_transaction(
    session: Session, transaction_id: int, *, include_deleted: bool = False
) -> int:
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    try:
        return resolve_team_for_account(
            session, transaction.account_id, include_deleted=include_deleted
        )
    except NotFoundError:
        raise NotFoundError("Transaction not found") from None
