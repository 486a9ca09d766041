"""In-memory arena for one book's category hierarchy.

Categories are stored by id; parent/child relations are resolved through a
secondary ``parent_id -> [child ids]`` index instead of object references.
The arena enforces the hierarchy rules:

* nesting is at most two levels deep,
* a category that has children never acquires a parent,
* a child's type always equals its parent's type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from ..errors import InvalidHierarchyError, NotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from ..models.category import Category

# Returns the book id of a category outside the arena, or None when no such
# category exists anywhere.
ForeignLookup = Callable[[int], Optional[int]]

MAX_DEPTH = 2


@dataclass
class CategoryNode:
    id: int
    book_id: int
    name: str
    type: str
    parent_id: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_category(cls, category: "Category") -> "CategoryNode":
        if category.id is None:
            raise ValueError("Category must be persisted before entering the tree")
        return cls(
            id=category.id,
            book_id=category.book_id,
            name=category.name,
            type=category.type,
            parent_id=category.parent_category_id,
        )


class CategoryTree:
    """Arena of the categories belonging to a single book."""

    def __init__(self, book_id: int, nodes: Iterable[CategoryNode] = ()) -> None:
        self.book_id = book_id
        self._nodes: dict[int, CategoryNode] = {}
        self._children: dict[int, list[int]] = {}
        for node in nodes:
            self.add(node)

    @classmethod
    def from_categories(cls, book_id: int, categories: Iterable["Category"]) -> "CategoryTree":
        return cls(book_id, (CategoryNode.from_category(c) for c in categories))

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._nodes

    def __iter__(self) -> Iterator[CategoryNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, category_id: int) -> Optional[CategoryNode]:
        return self._nodes.get(category_id)

    def require(self, category_id: int) -> CategoryNode:
        node = self._nodes.get(category_id)
        if node is None:
            raise NotFoundError("Category not found")
        return node

    def children_of(self, category_id: int) -> list[CategoryNode]:
        return [self._nodes[child_id] for child_id in self._children.get(category_id, [])]

    def has_children(self, category_id: int) -> bool:
        return bool(self._children.get(category_id))

    def roots(self) -> list[CategoryNode]:
        return [node for node in self._nodes.values() if node.is_root]

    def depth(self, category_id: int) -> int:
        depth = 1
        node = self.require(category_id)
        while node.parent_id is not None:
            depth += 1
            node = self.require(node.parent_id)
        return depth

    # -- mutation -----------------------------------------------------------

    def add(self, node: CategoryNode) -> None:
        if node.book_id != self.book_id:
            raise InvalidHierarchyError("Category belongs to a different book")
        self._nodes[node.id] = node
        self._children.setdefault(node.id, [])
        if node.parent_id is not None:
            siblings = self._children.setdefault(node.parent_id, [])
            if node.id not in siblings:
                siblings.append(node.id)

    def remove(self, category_id: int) -> CategoryNode:
        node = self.require(category_id)
        if self.has_children(category_id):
            raise InvalidHierarchyError("Category has child categories")
        if node.parent_id is not None:
            self._children[node.parent_id].remove(category_id)
        self._children.pop(category_id, None)
        return self._nodes.pop(category_id)

    def set_parent(self, category_id: int, parent_id: Optional[int]) -> None:
        """Move a node under ``parent_id`` (or to the root level) without validation."""

        node = self.require(category_id)
        if node.parent_id is not None:
            self._children[node.parent_id].remove(category_id)
        node.parent_id = parent_id
        if parent_id is not None:
            self._children.setdefault(parent_id, []).append(category_id)

    def set_type(self, category_id: int, category_type: str) -> list[CategoryNode]:
        """Set a node's type and propagate it to its direct children.

        Returns the children whose type was rewritten.
        """

        node = self.require(category_id)
        node.type = category_type
        rewritten = []
        for child in self.children_of(category_id):
            if child.type != category_type:
                child.type = category_type
                rewritten.append(child)
        return rewritten

    # -- rules --------------------------------------------------------------

    def validate_parent(
        self,
        parent_id: int,
        *,
        category_id: Optional[int] = None,
        foreign_lookup: Optional[ForeignLookup] = None,
    ) -> CategoryNode:
        """Check that ``parent_id`` may become the parent of ``category_id``.

        ``category_id`` is ``None`` when a new category is being created.
        Returns the parent node whose type the child must inherit.
        """

        if category_id is not None and parent_id == category_id:
            raise InvalidHierarchyError("A category cannot be its own parent (self parent)")

        parent = self._nodes.get(parent_id)
        if parent is None:
            foreign_book = foreign_lookup(parent_id) if foreign_lookup else None
            if foreign_book is None:
                raise NotFoundError("Parent category not found")
            raise InvalidHierarchyError("Parent category must belong to the same book")

        if parent.parent_id is not None:
            raise InvalidHierarchyError(
                f"Categories can only be nested {MAX_DEPTH} levels deep (max depth)"
            )

        if category_id is not None and self.has_children(category_id):
            raise InvalidHierarchyError(
                "A category with child categories cannot be assigned a parent (has children)"
            )
        return parent

    def violations(self) -> list[str]:
        """Describe every broken hierarchy invariant; empty when the tree is sound."""

        problems = []
        for node in self._nodes.values():
            if node.parent_id is None:
                continue
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                problems.append(f"category {node.id} references missing parent {node.parent_id}")
                continue
            if parent.parent_id is not None:
                problems.append(f"category {node.id} is nested deeper than {MAX_DEPTH} levels")
            if node.type != parent.type:
                problems.append(f"category {node.id} type differs from parent {parent.id}")
        return problems
