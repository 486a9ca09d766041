"""Category hierarchy engine.

Categories of a book form trees at most two levels deep. A child always has
its parent's type: a type supplied for a child is ignored, and changing a
root's type rewrites its children in the same transaction. Promoting a child
to the root level ends the inheritance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlmodel import Session, select

from ..domain.category_tree import CategoryTree, ForeignLookup
from ..domain.roles import Actor
from ..errors import BadInputError, ConflictError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import CATEGORY_TYPES, Category, Transaction
from .permissions import (
    can_read,
    can_write,
    require,
    resolve_team_for_book,
    resolve_team_for_category,
)

logger = get_logger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass
class CategoryPatch:
    """Fields to change on a category; ``UNSET`` leaves a field alone.

    ``parent_id=None`` promotes the category to the root level.
    """

    name: Optional[str] = None
    type: Optional[str] = None
    note: Any = UNSET
    parent_id: Any = UNSET


def _clean_type(category_type: Optional[str]) -> str:
    value = (category_type or "").strip().lower()
    if value not in CATEGORY_TYPES:
        raise BadInputError(f"Invalid category type: {category_type!r}")
    return value


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise BadInputError("Name is required")
    return name


def _load_tree(session: Session, book_id: int) -> CategoryTree:
    rows = session.exec(select(Category).where(Category.book_id == book_id)).all()
    return CategoryTree.from_categories(book_id, rows)


def _foreign_lookup(session: Session) -> ForeignLookup:
    def lookup(category_id: int) -> Optional[int]:
        category = session.get(Category, category_id)
        return category.book_id if category is not None else None

    return lookup


def _detach(session: Session, category: Category) -> Category:
    session.refresh(category)
    session.expunge(category)
    return category


def get_category(actor: Actor, category_id: int, *, session_factory: SessionFactory) -> Category:
    with session_factory() as session:
        team_id = resolve_team_for_category(session, category_id)
        require(can_read(session, team_id, actor))
        category = session.get(Category, category_id)
        session.expunge(category)
        return category


def list_categories(actor: Actor, book_id: int, *, session_factory: SessionFactory) -> list[Category]:
    """List a book's categories ordered by name."""

    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_read(session, team_id, actor))
        rows = list(
            session.exec(
                select(Category).where(Category.book_id == book_id).order_by(Category.name)
            ).all()
        )
        session.expunge_all()
        return rows


def load_category_tree(actor: Actor, book_id: int, *, session_factory: SessionFactory) -> CategoryTree:
    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_read(session, team_id, actor))
        return _load_tree(session, book_id)


def create_category(
    actor: Actor,
    book_id: int,
    name: str,
    *,
    category_type: str = "expense",
    parent_id: Optional[int] = None,
    note: Optional[str] = None,
    session_factory: SessionFactory,
) -> Category:
    """Create a category, inheriting the parent's type when nested."""

    name = _clean_name(name)
    category_type = _clean_type(category_type)
    with session_factory() as session:
        team_id = resolve_team_for_book(session, book_id)
        require(can_write(session, team_id, actor))

        if parent_id is not None:
            tree = _load_tree(session, book_id)
            parent = tree.validate_parent(parent_id, foreign_lookup=_foreign_lookup(session))
            category_type = parent.type

        category = Category(
            book_id=book_id,
            name=name,
            type=category_type,
            parent_category_id=parent_id,
            note=note,
        )
        session.add(category)
        session.commit()
        category = _detach(session, category)

    logger.info(
        "Category created",
        extra={"category_id": category.id, "book_id": book_id, "parent_id": parent_id},
    )
    return category


def update_category(
    actor: Actor,
    category_id: int,
    patch: CategoryPatch,
    *,
    session_factory: SessionFactory,
) -> Category:
    """Apply ``patch`` and keep the hierarchy invariants.

    A root's type change is written to all of its children before the single
    commit, so readers never observe a parent and child with different types.
    """

    requested_type = _clean_type(patch.type) if patch.type is not None else None
    new_name = _clean_name(patch.name) if patch.name is not None else None

    with session_factory() as session:
        team_id = resolve_team_for_category(session, category_id)
        require(can_write(session, team_id, actor))
        category = session.get(Category, category_id)
        tree = _load_tree(session, category.book_id)

        parent_id = category.parent_category_id if patch.parent_id is UNSET else patch.parent_id
        if new_name is not None:
            category.name = new_name
        if patch.note is not UNSET:
            category.note = patch.note

        rewritten = []
        if parent_id is not None:
            parent = tree.validate_parent(
                parent_id, category_id=category_id, foreign_lookup=_foreign_lookup(session)
            )
            tree.set_parent(category_id, parent_id)
            tree.set_type(category_id, parent.type)
            category.parent_category_id = parent_id
            category.type = parent.type
        else:
            new_type = requested_type or category.type
            tree.set_parent(category_id, None)
            rewritten = tree.set_type(category_id, new_type)
            category.parent_category_id = None
            category.type = new_type
            for node in rewritten:
                child = session.get(Category, node.id)
                child.type = new_type
                session.add(child)

        session.add(category)
        session.commit()
        category = _detach(session, category)

    if rewritten:
        logger.info(
            "Category type cascaded to children",
            extra={"category_id": category_id, "type": category.type, "children": len(rewritten)},
        )
    return category


def delete_category(actor: Actor, category_id: int, *, session_factory: SessionFactory) -> None:
    """Delete a category that has neither transactions nor child categories."""

    with session_factory() as session:
        team_id = resolve_team_for_category(session, category_id)
        require(can_write(session, team_id, actor))

        referenced = session.exec(
            select(Transaction.id).where(Transaction.category_id == category_id).limit(1)
        ).first()
        if referenced is not None:
            raise ConflictError("Cannot delete category with transactions (has transactions)")
        child = session.exec(
            select(Category.id).where(Category.parent_category_id == category_id).limit(1)
        ).first()
        if child is not None:
            raise ConflictError("Cannot delete category with child categories (has children)")

        category = session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        session.delete(category)
        session.commit()

    logger.info("Category deleted", extra={"category_id": category_id, "actor": actor.user_id})
