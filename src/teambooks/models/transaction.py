"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

import datetime as dt
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class Transaction(SQLModel, table=True):
    """A single ledger entry; ``exercised`` marks it as cleared."""

    __tablename__: ClassVar[str] = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    description: str = Field(nullable=False, max_length=255)
    amount: float = Field(default=0.0, nullable=False, description="Signed amount")
    date: dt.date = Field(nullable=False, index=True)
    exercised: bool = Field(default=False, nullable=False)
    note: Optional[str] = Field(default=None)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
    )
