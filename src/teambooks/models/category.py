"""Book-scoped categories forming trees at most two levels deep."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

CATEGORY_TYPES = ("expense", "income")


class Category(SQLModel, table=True):
    """Transaction category; children always share their parent's type."""

    __tablename__: ClassVar[str] = "category"

    id: Optional[int] = Field(default=None, primary_key=True)
    book_id: int = Field(foreign_key="book.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=255)
    note: Optional[str] = Field(default=None)
    type: str = Field(default="expense", nullable=False, max_length=16)
    parent_category_id: Optional[int] = Field(
        default=None, foreign_key="category.id", index=True
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def is_root(self) -> bool:
        return self.parent_category_id is None
