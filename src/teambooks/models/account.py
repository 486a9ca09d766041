"""Accounts and their persisted balance snapshots."""

from __future__ import annotations

import datetime as dt
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

ACCOUNT_TYPES = ("debit", "credit")


class Account(SQLModel, table=True):
    __tablename__: ClassVar[str] = "account"

    id: Optional[int] = Field(default=None, primary_key=True)
    book_id: int = Field(foreign_key="book.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=255)
    type: str = Field(default="debit", nullable=False, max_length=8)
    note: Optional[str] = Field(default=None)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )


class Total(SQLModel, table=True):
    """Projected balance of an account captured on a given date."""

    __tablename__: ClassVar[str] = "total"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    amount: float = Field(default=0.0, nullable=False)
    date: dt.date = Field(nullable=False)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )
