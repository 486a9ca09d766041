"""Unit tests for the in-memory category hierarchy."""

from __future__ import annotations

import pytest

from teambooks.domain.category_tree import CategoryNode, CategoryTree
from teambooks.errors import InvalidHierarchyError, NotFoundError


@pytest.fixture
def tree() -> CategoryTree:
    return CategoryTree(
        1,
        [
            CategoryNode(1, 1, "Food", "expense"),
            CategoryNode(2, 1, "Groceries", "expense", parent_id=1),
            CategoryNode(3, 1, "Salary", "income"),
            CategoryNode(4, 1, "Misc", "expense"),
        ],
    )


def test_structure(tree):
    assert len(tree) == 4
    assert [n.name for n in tree.roots()] == ["Food", "Salary", "Misc"]
    assert [n.id for n in tree.children_of(1)] == [2]
    assert tree.depth(2) == 2
    assert tree.has_children(1)
    assert not tree.has_children(3)
    assert tree.violations() == []


def test_self_parent_is_checked_first(tree):
    with pytest.raises(InvalidHierarchyError, match="self parent"):
        tree.validate_parent(1, category_id=1)


def test_parent_must_be_root(tree):
    with pytest.raises(InvalidHierarchyError, match="max depth"):
        tree.validate_parent(2)


def test_category_with_children_cannot_be_nested(tree):
    with pytest.raises(InvalidHierarchyError, match="has children"):
        tree.validate_parent(3, category_id=1)


def test_missing_and_foreign_parents(tree):
    with pytest.raises(NotFoundError):
        tree.validate_parent(42, foreign_lookup=lambda _id: None)
    with pytest.raises(InvalidHierarchyError, match="same book"):
        tree.validate_parent(42, foreign_lookup=lambda _id: 7)


def test_validate_parent_returns_parent(tree):
    assert tree.validate_parent(3, category_id=4).name == "Salary"


def test_set_type_rewrites_children(tree):
    rewritten = tree.set_type(1, "income")
    assert [n.id for n in rewritten] == [2]
    assert tree.get(2).type == "income"
    assert tree.violations() == []


def test_set_parent_moves_between_indexes(tree):
    tree.set_parent(2, None)
    assert not tree.has_children(1)
    tree.set_parent(4, 3)
    assert [n.id for n in tree.children_of(3)] == [4]


def test_violations_reports_type_mismatch(tree):
    tree.get(2).type = "income"
    assert tree.violations() == ["category 2 type differs from parent 1"]


def test_add_rejects_other_books(tree):
    with pytest.raises(InvalidHierarchyError):
        tree.add(CategoryNode(9, 2, "Other", "expense"))


def test_remove_parent_with_children_fails(tree):
    with pytest.raises(InvalidHierarchyError):
        tree.remove(1)
    tree.remove(2)
    tree.remove(1)
    assert 1 not in tree
