"""Tests for the management commands."""

from __future__ import annotations

import logging
from datetime import date

import pytest

from teambooks.extensions import get_session_factory
from teambooks.models import Account, Book, Team, Transaction
from teambooks.services import users
from teambooks.web import create_app


@pytest.fixture
def app(config):
    app = create_app(config)
    app.config.update(TESTING=True)
    yield app
    root = logging.getLogger("teambooks")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def seeded_account(app):
    with get_session_factory(app)() as session:
        team = Team(name="Ops")
        session.add(team)
        session.flush()
        book = Book(team_id=team.id, name="Main")
        session.add(book)
        session.flush()
        account = Account(book_id=book.id, name="Cash")
        session.add(account)
        session.flush()
        session.add(Transaction(account_id=account.id, description="in", amount=100.0,
                                date=date(2024, 1, 1), exercised=True))
        session.add(Transaction(account_id=account.id, description="out", amount=-30.0,
                                date=date(2024, 1, 2)))
        session.commit()
        return {"team_id": team.id, "book_id": book.id, "account_id": account.id}


def test_init_db(runner, config):
    result = runner.invoke(args=["init-db"])
    assert result.exit_code == 0
    assert config.DATABASE_URL in result.output


def test_create_user(runner, app):
    result = runner.invoke(args=["create-user", "root", "--password", "pw", "--superadmin"])

    assert result.exit_code == 0, result.output
    created = users.get_user_by_username("root", session_factory=get_session_factory(app))
    assert created.superadmin is True

    duplicate = runner.invoke(args=["create-user", "root", "--password", "pw"])
    assert duplicate.exit_code != 0
    assert "Username already exists" in duplicate.output


def test_balance(runner, seeded_account):
    result = runner.invoke(args=["balance", str(seeded_account["account_id"]), "--as-of", "2024-01-31"])
    assert result.exit_code == 0, result.output
    assert "exercised=100.00 projected=70.00" in result.output

    bad = runner.invoke(args=["balance", str(seeded_account["account_id"]), "--as-of", "31/01/2024"])
    assert bad.exit_code != 0


def test_purge_requires_soft_delete(runner, app, seeded_account):
    book_id = seeded_account["book_id"]
    refused = runner.invoke(args=["purge", "book", str(book_id)])
    assert refused.exit_code != 0
    assert "must be soft-deleted first" in refused.output

    with get_session_factory(app)() as session:
        book = session.get(Book, book_id)
        book.deleted_at = book.created_at
        session.add(book)
        session.commit()

    result = runner.invoke(args=["purge", "book", str(book_id)])
    assert result.exit_code == 0, result.output
    with get_session_factory(app)() as session:
        assert session.get(Book, book_id) is None
