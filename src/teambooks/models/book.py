"""Ledger book owned by a team."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class Book(SQLModel, table=True):
    """A ledger scoped to a team; access is inherited from the team."""

    __tablename__: ClassVar[str] = "book"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=255)
    note: Optional[str] = Field(default=None)
    currency_symbol: str = Field(default="$", nullable=False, max_length=8)
    week_start: str = Field(default="monday", nullable=False, max_length=16)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
