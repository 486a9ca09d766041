"""Tests for role resolution and access decisions."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from teambooks.domain.roles import AccessDecision, Actor, Role
from teambooks.errors import BadInputError, ForbiddenError, NotFoundError
from teambooks.services import permissions


@pytest.fixture
def team_with_roles(user_factory, team_factory):
    admin = user_factory("alice")
    collaborator = user_factory("bob")
    viewer = user_factory("carol")
    outsider = user_factory("dave")
    superadmin = user_factory("root", superadmin=True)
    team = team_factory(
        members=[(admin, "admin"), (collaborator, "collaborator"), (viewer, "viewer")]
    )
    return {
        "team": team,
        "admin": admin,
        "collaborator": collaborator,
        "viewer": viewer,
        "outsider": outsider,
        "superadmin": superadmin,
    }


@pytest.mark.parametrize(
    "who, read, write, admin",
    [
        ("admin", True, True, True),
        ("collaborator", True, True, False),
        ("viewer", True, False, False),
        ("outsider", False, False, False),
        ("superadmin", True, True, True),
    ],
)
def test_capability_matrix(session_factory, actor_of, team_with_roles, who, read, write, admin):
    team = team_with_roles["team"]
    actor = actor_of(team_with_roles[who])
    with session_factory() as session:
        assert permissions.can_read(session, team.id, actor).allowed is read
        assert permissions.can_write(session, team.id, actor).allowed is write
        assert permissions.can_admin(session, team.id, actor).allowed is admin


def test_viewer_write_denied_with_reason(session_factory, actor_of, team_with_roles):
    team = team_with_roles["team"]
    with session_factory() as session:
        decision = permissions.can_write(session, team.id, actor_of(team_with_roles["viewer"]))
    assert decision == AccessDecision(False, "insufficient permissions")
    assert not decision


def test_outsider_gets_no_access_reason(session_factory, actor_of, team_with_roles):
    team = team_with_roles["team"]
    with session_factory() as session:
        decision = permissions.can_read(session, team.id, actor_of(team_with_roles["outsider"]))
    assert decision.reason == permissions.NO_ACCESS


def test_superadmin_allowed_without_membership(session_factory, team_with_roles):
    actor = Actor(user_id=team_with_roles["superadmin"].id, superadmin=True)
    with session_factory() as session:
        decision = permissions.can_admin(session, team_with_roles["team"].id, actor)
    assert decision.allowed
    assert decision.reason == permissions.SUPERADMIN


def test_resolve_role(session_factory, team_with_roles):
    team = team_with_roles["team"]
    with session_factory() as session:
        assert permissions.resolve_role(session, team.id, team_with_roles["admin"].id) is Role.ADMIN
        assert permissions.resolve_role(session, team.id, team_with_roles["viewer"].id) is Role.VIEWER
        assert permissions.resolve_role(session, team.id, team_with_roles["outsider"].id) is None


def test_deleted_team_resolves_no_role(session_factory, persist, actor_of, team_with_roles):
    team = team_with_roles["team"]
    team.deleted_at = datetime.now(timezone.utc)
    persist(team)

    with session_factory() as session:
        assert permissions.resolve_role(session, team.id, team_with_roles["admin"].id) is None
        assert not permissions.can_read(session, team.id, actor_of(team_with_roles["admin"]))
        assert permissions.can_read(session, team.id, actor_of(team_with_roles["superadmin"]))


def test_manage_members_on_deleted_team(session_factory, persist, actor_of, team_with_roles):
    team = team_with_roles["team"]
    team.deleted_at = datetime.now(timezone.utc)
    persist(team)

    with session_factory() as session:
        decision = permissions.can_manage_members(session, team.id, actor_of(team_with_roles["admin"]))
        assert decision == AccessDecision(False, permissions.TEAM_DELETED)
        assert permissions.can_manage_members(
            session, team.id, actor_of(team_with_roles["superadmin"])
        ).allowed


def test_require_raises_forbidden_with_reason():
    with pytest.raises(ForbiddenError, match="insufficient permissions"):
        permissions.require(AccessDecision(False, permissions.INSUFFICIENT))
    permissions.require(AccessDecision(True))


def test_containment_chain(session_factory, populated_book):
    book = populated_book["book"]
    account = populated_book["accounts"][0]
    category = populated_book["categories"][1]
    with session_factory() as session:
        assert permissions.resolve_team_for_book(session, book.id) == book.team_id
        assert permissions.resolve_team_for_account(session, account.id) == book.team_id
        assert permissions.resolve_team_for_category(session, category.id) == book.team_id
        with pytest.raises(NotFoundError):
            permissions.resolve_team_for_book(session, 9999)
        with pytest.raises(NotFoundError, match="Account not found"):
            permissions.resolve_team_for_account(session, 9999)


def test_soft_deleted_book_is_hidden_unless_requested(session_factory, persist, populated_book):
    book = populated_book["book"]
    book.deleted_at = datetime.now(timezone.utc)
    persist(book)

    with session_factory() as session:
        with pytest.raises(NotFoundError):
            permissions.resolve_team_for_book(session, book.id)
        assert permissions.resolve_team_for_book(session, book.id, include_deleted=True) == book.team_id


def test_role_parse():
    assert Role.parse(" Admin ") is Role.ADMIN
    assert Role.parse(Role.VIEWER) is Role.VIEWER
    with pytest.raises(BadInputError, match="Valid role is required"):
        Role.parse("owner")
    assert Role.ADMIN.rank > Role.COLLABORATOR.rank > Role.VIEWER.rank
