"""Team membership management and the last-admin invariant.

Every non-deleted team keeps at least one admin after any change made by a
non-superadmin. The admin rows of the team are read in the same transaction
as the write, locked with ``FOR UPDATE`` where the backend supports it and
by the ``BEGIN IMMEDIATE`` write lock on SQLite, so two concurrent demotions
cannot both see "one other admin left" and drop the team to zero admins.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlmodel import Session, col, select

from ..domain.roles import Actor, Role
from ..errors import ConflictError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import Team, TeamUser, User
from .permissions import bypasses_admin_floor, can_manage_members, can_read, require

logger = get_logger(__name__)

LAST_ADMIN = "cannot remove last admin"


@dataclass(frozen=True)
class Member:
    """A team member as exposed to callers."""

    user_id: int
    username: str
    role: Role
    active: bool


def _members(session: Session, team_id: int) -> list[Member]:
    rows = session.exec(
        select(TeamUser, User)
        .join(User, col(User.id) == col(TeamUser.user_id))
        .where(TeamUser.team_id == team_id)
        .order_by(User.username)
    ).all()
    return [
        Member(user_id=user.id, username=user.username, role=Role(link.role), active=user.active)
        for link, user in rows
    ]


def _require_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


def _get_membership(session: Session, team_id: int, user_id: int) -> TeamUser:
    membership = session.exec(
        select(TeamUser)
        .where(TeamUser.team_id == team_id)
        .where(TeamUser.user_id == user_id)
        .with_for_update()
    ).first()
    if membership is None:
        raise NotFoundError("User not found in team")
    return membership


def _guard_admin_floor(session: Session, actor: Actor, membership: TeamUser) -> None:
    """Reject removing the team's only remaining admin."""

    if membership.role != Role.ADMIN.value or bypasses_admin_floor(actor):
        return
    admin_ids = session.exec(
        select(TeamUser.user_id)
        .where(TeamUser.team_id == membership.team_id)
        .where(TeamUser.role == Role.ADMIN.value)
        .with_for_update()
    ).all()
    remaining = [uid for uid in admin_ids if uid != membership.user_id]
    if not remaining:
        raise ConflictError(LAST_ADMIN)


def list_members(actor: Actor, team_id: int, *, session_factory: SessionFactory) -> list[Member]:
    """Return the members of a team ordered by username."""

    with session_factory() as session:
        team = _require_team(session, team_id)
        if team.is_deleted and not actor.superadmin:
            raise NotFoundError("Team not found")
        require(can_read(session, team_id, actor))
        return _members(session, team_id)


def add_member(
    actor: Actor,
    team_id: int,
    user_id: int,
    role: "Role | str",
    *,
    session_factory: SessionFactory,
) -> list[Member]:
    """Add ``user_id`` to the team with ``role``; returns the updated member list."""

    role = Role.parse(role)
    with session_factory() as session:
        _require_team(session, team_id)
        require(can_manage_members(session, team_id, actor))
        if session.get(User, user_id) is None:
            raise NotFoundError("User not found")
        existing = session.exec(
            select(TeamUser)
            .where(TeamUser.team_id == team_id)
            .where(TeamUser.user_id == user_id)
        ).first()
        if existing is not None:
            raise ConflictError("User already in team")
        session.add(TeamUser(team_id=team_id, user_id=user_id, role=role.value))
        session.commit()
        members = _members(session, team_id)

    logger.info(
        "Member added",
        extra={"team_id": team_id, "user_id": user_id, "role": role.value, "actor": actor.user_id},
    )
    return members


def change_role(
    actor: Actor,
    team_id: int,
    user_id: int,
    role: "Role | str",
    *,
    session_factory: SessionFactory,
) -> list[Member]:
    """Change a member's role; demoting the last admin is rejected."""

    role = Role.parse(role)
    with session_factory() as session:
        _require_team(session, team_id)
        require(can_manage_members(session, team_id, actor))
        membership = _get_membership(session, team_id, user_id)
        if role is not Role.ADMIN:
            _guard_admin_floor(session, actor, membership)
        previous = membership.role
        membership.role = role.value
        session.add(membership)
        session.commit()
        members = _members(session, team_id)

    logger.info(
        "Member role changed",
        extra={
            "team_id": team_id,
            "user_id": user_id,
            "from_role": previous,
            "to_role": role.value,
            "actor": actor.user_id,
        },
    )
    return members


def remove_member(
    actor: Actor, team_id: int, user_id: int, *, session_factory: SessionFactory
) -> list[Member]:
    """Remove a member; removing the last admin is rejected."""

    with session_factory() as session:
        _require_team(session, team_id)
        require(can_manage_members(session, team_id, actor))
        membership = _get_membership(session, team_id, user_id)
        _guard_admin_floor(session, actor, membership)
        session.delete(membership)
        session.commit()
        members = _members(session, team_id)

    logger.info(
        "Member removed",
        extra={"team_id": team_id, "user_id": user_id, "actor": actor.user_id},
    )
    return members
