"""Accounts and transactions inside a book."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlmodel import Session, col, select

from ..domain.dates import DateLike, parse_date
from ..domain.roles import Actor
from ..errors import BadInputError, ConflictError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import ACCOUNT_TYPES, Account, Category, Transaction
from .permissions import (
    can_read,
    can_write,
    require,
    resolve_team_for_account,
    resolve_team_for_book,
    resolve_team_for_transaction,
)

logger = get_logger(__name__)

_UNSET = object()


@dataclass
class TransactionFilters:
    """Filters applied to book transaction listings."""

    account_id: Optional[int] = None
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None


def _clean_account_type(account_type: str) -> str:
    value = (account_type or "").strip().lower()
    if value not in ACCOUNT_TYPES:
        raise BadInputError(f"Invalid account type: {account_type!r}")
    return value


def _clean_text(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise BadInputError(f"{label} is required")
    return value


def _detach(session: Session, obj):
    session.refresh(obj)
    session.expunge(obj)
    return obj


# -- accounts -----------------------------------------------------------------


def create_account(
    actor: Actor,
    book_id: int,
    name: str,
    *,
    account_type: str = "debit",
    note: Optional[str] = None,
    session_factory: SessionFactory,
) -> Account:
    name = _clean_text(name, "Name")
    account_type = _clean_account_type(account_type)
    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_write(session, team_id, actor))
        account = Account(book_id=book_id, name=name, type=account_type, note=note)
        session.add(account)
        session.commit()
        return _detach(session, account)


def get_account(actor: Actor, account_id: int, *, session_factory: SessionFactory) -> Account:
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_read(session, team_id, actor))
        account = session.get(Account, account_id)
        session.expunge(account)
        return account


def list_accounts(actor: Actor, book_id: int, *, session_factory: SessionFactory) -> list[Account]:
    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_read(session, team_id, actor))
        accounts = list(
            session.exec(
                select(Account).where(Account.book_id == book_id).order_by(Account.name)
            ).all()
        )
        session.expunge_all()
        return accounts


def update_account(
    actor: Actor,
    account_id: int,
    *,
    name: Optional[str] = None,
    account_type: Optional[str] = None,
    note=_UNSET,
    session_factory: SessionFactory,
) -> Account:
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_write(session, team_id, actor))
        account = session.get(Account, account_id)
        if name is not None:
            account.name = _clean_text(name, "Name")
        if account_type is not None:
            account.type = _clean_account_type(account_type)
        if note is not _UNSET:
            account.note = note
        session.add(account)
        session.commit()
        return _detach(session, account)


def delete_account(actor: Actor, account_id: int, *, session_factory: SessionFactory) -> None:
    """Delete an account that no transaction references."""

    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_write(session, team_id, actor))
        referenced = session.exec(
            select(Transaction.id).where(Transaction.account_id == account_id).limit(1)
        ).first()
        if referenced is not None:
            raise ConflictError("Cannot delete account with transactions (has transactions)")
        account = session.get(Account, account_id)
        session.delete(account)
        session.commit()
    logger.info("Account deleted", extra={"account_id": account_id, "actor": actor.user_id})


# -- transactions -------------------------------------------------------------


def _check_category(session: Session, account: Account, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    category = session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    if category.book_id != account.book_id:
        raise BadInputError("Category and account must belong to the same book")


def create_transaction(
    actor: Actor,
    account_id: int,
    *,
    description: str,
    amount: float,
    date: DateLike,
    exercised: bool = False,
    category_id: Optional[int] = None,
    note: Optional[str] = None,
    session_factory: SessionFactory,
) -> Transaction:
    """Record a transaction on ``account_id``.

    ``amount`` is signed; the optional category must live in the account's book.
    """

    description = _clean_text(description, "Description")
    if amount is None:
        raise BadInputError("Amount is required")
    occurred_on = parse_date(date)
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_write(session, team_id, actor))
        account = session.get(Account, account_id)
        _check_category(session, account, category_id)
        transaction = Transaction(
            account_id=account_id,
            category_id=category_id,
            description=description,
            amount=float(amount),
            date=occurred_on,
            exercised=bool(exercised),
            note=note,
        )
        session.add(transaction)
        session.commit()
        return _detach(session, transaction)


def get_transaction(
    actor: Actor, transaction_id: int, *, session_factory: SessionFactory
) -> Transaction:
    with session_factory() as session:
        team_id = resolve_team_for_transaction(session, transaction_id)
        require(can_read(session, team_id, actor))
        transaction = session.get(Transaction, transaction_id)
        session.expunge(transaction)
        return transaction


def update_transaction(
    actor: Actor,
    transaction_id: int,
    *,
    description: Optional[str] = None,
    amount: Optional[float] = None,
    date: Optional[DateLike] = None,
    exercised: Optional[bool] = None,
    account_id: Optional[int] = None,
    category_id=_UNSET,
    note=_UNSET,
    session_factory: SessionFactory,
) -> Transaction:
    """Partially update a transaction. Moving it keeps account and category in one book."""

    with session_factory() as session:
        team_id = resolve_team_for_transaction(session, transaction_id)
        require(can_write(session, team_id, actor))
        transaction = session.get(Transaction, transaction_id)

        if account_id is not None and account_id != transaction.account_id:
            target_team = resolve_team_for_account(session, account_id)
            require(can_write(session, target_team, actor))
            transaction.account_id = account_id
        if category_id is not _UNSET:
            transaction.category_id = category_id
        account = session.get(Account, transaction.account_id)
        _check_category(session, account, transaction.category_id)

        if description is not None:
            transaction.description = _clean_text(description, "Description")
        if amount is not None:
            transaction.amount = float(amount)
        if date is not None:
            transaction.date = parse_date(date)
        if exercised is not None:
            transaction.exercised = bool(exercised)
        if note is not _UNSET:
            transaction.note = note
        session.add(transaction)
        session.commit()
        return _detach(session, transaction)


def delete_transaction(actor: Actor, transaction_id: int, *, session_factory: SessionFactory) -> None:
    with session_factory() as session:
        team_id = resolve_team_for_transaction(session, transaction_id)
        require(can_write(session, team_id, actor))
        session.delete(session.get(Transaction, transaction_id))
        session.commit()


def list_transactions(
    actor: Actor,
    book_id: int,
    filters: Optional[TransactionFilters] = None,
    *,
    session_factory: SessionFactory,
) -> list[Transaction]:
    """List a book's transactions ordered by date, oldest first.

    The date range only applies when both ends are given and is inclusive.
    """

    filters = filters or TransactionFilters()
    start: Optional[date] = None
    end: Optional[date] = None
    if filters.start_date is not None and filters.end_date is not None:
        start = parse_date(filters.start_date, "start_date")
        end = parse_date(filters.end_date, "end_date")

    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_read(session, team_id, actor))

        statement = (
            select(Transaction)
            .join(Account, col(Account.id) == col(Transaction.account_id))
            .where(Account.book_id == book_id)
        )
        if filters.account_id is not None:
            account = session.get(Account, filters.account_id)
            if account is None or account.book_id != book_id:
                raise NotFoundError("Account not found in this book")
            statement = statement.where(Transaction.account_id == filters.account_id)
        if start is not None and end is not None:
            statement = statement.where(col(Transaction.date) >= start).where(
                col(Transaction.date) <= end
            )
        statement = statement.order_by(col(Transaction.date), col(Transaction.id))
        rows = list(session.exec(statement).all())
        session.expunge_all()
        return rows
