"""Parsing of ISO calendar dates supplied by callers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from ..errors import BadInputError

DateLike = Union[date, str]


def parse_date(value: DateLike, field: str = "date") -> date:
    """Return ``value`` as a ``date``; strings must be ISO ``YYYY-MM-DD``."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise BadInputError(f"{field} is required")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise BadInputError(f"Invalid {field}: {value!r} (expected YYYY-MM-DD)") from None


def today() -> date:
    """Server-local calendar date."""
    return date.today()
