"""Pure domain structures shared by the service layer."""

from .cascade import DeleteStep, book_cascade, team_cascade
from .category_tree import CategoryNode, CategoryTree
from .roles import Actor, AccessDecision, Role

__all__ = [
    "AccessDecision",
    "Actor",
    "CategoryNode",
    "CategoryTree",
    "DeleteStep",
    "Role",
    "book_cascade",
    "team_cascade",
]
