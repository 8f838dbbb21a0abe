"""
Category tree construction.

Turns the flat parent-pointer rows of the categories table into a forest
of CategoryTreeNode objects.

Policy:
    - Siblings (and roots) are ordered by (sort_order, id).
    - Hidden categories are filtered at every level: a hidden node takes its
      whole subtree out of the public tree, whatever the descendants' flags.
    - Rows whose parent_id points at a missing category are dropped, as is
      anything only reachable through a parent cycle. Traversal starts from
      real roots, so a cycle can never be entered.
"""

from collections import defaultdict
from typing import Iterable

from ..models import Category
from ..schemas import CategoryResponse, CategoryTreeNode


def sibling_key(category: Category) -> tuple[int, int]:
    """Sort key among siblings; ties on sort_order fall back to id."""
    return (category.sort_order or 0, category.id)


def index_by_parent(categories: Iterable[Category]) -> dict[int | None, list[Category]]:
    """Group categories by parent_id, each group in sibling order."""
    index: dict[int | None, list[Category]] = defaultdict(list)
    for category in categories:
        index[category.parent_id].append(category)
    for siblings in index.values():
        siblings.sort(key=sibling_key)
    return index


def build_tree(
    categories: Iterable[Category],
    include_hidden: bool = False,
) -> list[CategoryTreeNode]:
    """
    Build the category forest.

    With include_hidden=False (the public tree) hidden nodes and their
    subtrees are omitted. The admin view passes include_hidden=True.
    """
    index = index_by_parent(categories)

    def build_level(parent_id: int | None, level: int) -> list[CategoryTreeNode]:
        nodes = []
        for category in index.get(parent_id, []):
            if not include_hidden and not category.is_visible:
                continue
            data = CategoryResponse.model_validate(category).model_dump()
            nodes.append(CategoryTreeNode(
                **data,
                level=level,
                children=build_level(category.id, level + 1),
            ))
        return nodes

    return build_level(None, 0)
