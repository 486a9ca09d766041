"""SQLModel table exports."""

from .account import ACCOUNT_TYPES, Account, Total
from .book import Book
from .category import CATEGORY_TYPES, Category
from .team import Team, TeamUser
from .transaction import Transaction
from .user import User

__all__ = [
    "ACCOUNT_TYPES",
    "Account",
    "Book",
    "CATEGORY_TYPES",
    "Category",
    "Team",
    "TeamUser",
    "Total",
    "Transaction",
    "User",
]
