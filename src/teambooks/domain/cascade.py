"""Ordered delete plans for permanently purging books and teams.

Foreign keys run transaction -> account/category -> book -> team, and child
categories reference root categories, so every plan lists children before
their parents. Plans are plain data; ``services.lifecycle.run_cascade``
executes them inside one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col

from ..models import Account, Book, Category, Team, TeamUser, Total, Transaction


@dataclass(frozen=True)
class DeleteStep:
    """Delete every ``model`` row matching ``where``."""

    name: str
    model: Any
    where: ColumnElement[bool]

    @property
    def table(self) -> str:
        return self.model.__tablename__


def _content_steps(books_filter: ColumnElement[bool]) -> list[DeleteStep]:
    """Steps removing everything stored inside the books selected by ``books_filter``."""

    book_ids = select(Book.id).where(books_filter)
    account_ids = select(Account.id).where(col(Account.book_id).in_(book_ids))
    return [
        DeleteStep("transactions", Transaction, col(Transaction.account_id).in_(account_ids)),
        DeleteStep("totals", Total, col(Total.account_id).in_(account_ids)),
        DeleteStep(
            "child categories",
            Category,
            and_(
                col(Category.book_id).in_(book_ids),
                col(Category.parent_category_id).is_not(None),
            ),
        ),
        DeleteStep(
            "root categories",
            Category,
            and_(
                col(Category.book_id).in_(book_ids),
                col(Category.parent_category_id).is_(None),
            ),
        ),
        DeleteStep("accounts", Account, col(Account.book_id).in_(book_ids)),
    ]


def book_cascade(book_id: int) -> list[DeleteStep]:
    """Return the ordered steps purging one book and its contents."""

    steps = _content_steps(col(Book.id) == book_id)
    steps.append(DeleteStep("book", Book, col(Book.id) == book_id))
    return steps


def team_cascade(team_id: int) -> list[DeleteStep]:
    """Return the ordered steps purging a team, its books and memberships."""

    steps = _content_steps(col(Book.team_id) == team_id)
    steps.extend(
        [
            DeleteStep("books", Book, col(Book.team_id) == team_id),
            DeleteStep("memberships", TeamUser, col(TeamUser.team_id) == team_id),
            DeleteStep("team", Team, col(Team.id) == team_id),
        ]
    )
    return steps
