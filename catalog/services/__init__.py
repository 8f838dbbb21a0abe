from .category_tree import build_tree, index_by_parent, sibling_key
from .category_service import CategoryService, slugify

__all__ = [
    "build_tree",
    "index_by_parent",
    "sibling_key",
    "CategoryService",
    "slugify",
]
