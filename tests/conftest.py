"""Pytest configuration and shared fixtures for teambooks tests.

Every test gets its own SQLite file under ``tmp_path`` with the production
engine options (foreign keys on), plus factories that persist rows directly
so service tests only exercise the operation under test.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlmodel import func, select

from teambooks.config import BaseConfig
from teambooks.domain.roles import Actor, Role
from teambooks.infra.database import create_db_engine, create_session_factory, init_database
from teambooks.models import Account, Book, Category, Team, TeamUser, Transaction, User

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch) -> BaseConfig:
    """Configuration pointing at an isolated data directory."""

    monkeypatch.setenv("TEAMBOOKS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TEAMBOOKS_DEV_MODE", "true")
    monkeypatch.delenv("TEAMBOOKS_DATABASE_URL", raising=False)
    monkeypatch.delenv("TEAMBOOKS_SECRET_KEY", raising=False)
    return BaseConfig()


@pytest.fixture
def db_engine(config):
    """Create a fresh database for each test.

    Yields:
        Engine: engine connected to the test database file
    """
    engine = create_db_engine(config)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory services are called with."""

    return create_session_factory(db_engine)


@pytest.fixture
def persist(session_factory):
    """Save (or update) rows in their own transaction and return them detached.

    Each call commits and releases its connection, so seeding never holds the
    SQLite write lock while a service runs.
    """

    def _persist(*rows):
        with session_factory() as session:
            session.add_all(rows)
            session.commit()
        return rows[0] if len(rows) == 1 else rows

    return _persist


@pytest.fixture
def count_rows(session_factory):
    """Count rows of a model in a fresh session, optionally filtered."""

    def _count(model, *criteria) -> int:
        with session_factory() as session:
            statement = select(func.count()).select_from(model)
            for criterion in criteria:
                statement = statement.where(criterion)
            return session.exec(statement).one()

    return _count


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(persist):
    """Factory for creating users; returns the persisted row."""

    counter = {"n": 0}

    def _create_user(username: str | None = None, *, superadmin: bool = False, active: bool = True) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        return persist(
            User(
                username=username,
                password_hash="dummy-hash",
                superadmin=superadmin,
                active=active,
            ),
        )

    return _create_user


@pytest.fixture
def actor_of():
    """Build the acting identity for a persisted user."""

    return Actor.of


@pytest.fixture
def team_factory(persist):
    """Factory for creating teams with memberships.

    ``members`` is a list of ``(user, role)`` pairs; the team is created active.
    """

    def _create_team(name: str = "Test Team", members: list | None = None) -> Team:
        team = persist(Team(name=name))
        links = [
            TeamUser(team_id=team.id, user_id=member.id, role=Role.parse(role).value)
            for member, role in members or ()
        ]
        if links:
            persist(*links)
        return team

    return _create_team


@pytest.fixture
def book_factory(persist):
    def _create_book(team: Team, name: str = "Household") -> Book:
        return persist(Book(team_id=team.id, name=name))

    return _create_book


@pytest.fixture
def account_factory(persist):
    def _create_account(book: Book, name: str = "Checking", account_type: str = "debit") -> Account:
        return persist(Account(book_id=book.id, name=name, type=account_type))

    return _create_account


@pytest.fixture
def category_factory(persist):
    """Factory for categories; children copy the parent's type unless told otherwise."""

    def _create_category(
        book: Book,
        name: str = "Food",
        category_type: str | None = None,
        parent: Category | None = None,
    ) -> Category:
        if category_type is None:
            category_type = parent.type if parent is not None else "expense"
        return persist(
            Category(
                book_id=book.id,
                name=name,
                type=category_type,
                parent_category_id=parent.id if parent is not None else None,
            ),
        )

    return _create_category


@pytest.fixture
def transaction_factory(persist):
    def _create_transaction(
        account: Account,
        amount: float = 10.0,
        *,
        occurred_on: date = date(2024, 1, 15),
        exercised: bool = False,
        category: Category | None = None,
        description: str = "Test transaction",
    ) -> Transaction:
        return persist(
            Transaction(
                account_id=account.id,
                category_id=category.id if category is not None else None,
                description=description,
                amount=amount,
                date=occurred_on,
                exercised=exercised,
            ),
        )

    return _create_transaction


@pytest.fixture
def populated_book(user_factory, team_factory, book_factory, account_factory,
                   category_factory, transaction_factory):
    """A team with one admin and a book holding accounts, categories and transactions."""

    admin = user_factory("owner")
    team = team_factory(members=[(admin, "admin")])
    book = book_factory(team)
    checking = account_factory(book, "Checking")
    savings = account_factory(book, "Savings")
    food = category_factory(book, "Food")
    groceries = category_factory(book, "Groceries", parent=food)
    transaction_factory(checking, -25.0, category=groceries)
    transaction_factory(savings, 200.0, exercised=True)
    return {
        "admin": admin,
        "team": team,
        "book": book,
        "accounts": [checking, savings],
        "categories": [food, groceries],
    }
