from .category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryTreeNode,
    SortOrderUpdate,
    MoveResult,
)
from .common import Envelope, Page, PageMeta, build_page_meta

__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryTreeNode",
    "SortOrderUpdate",
    "MoveResult",
    "Envelope",
    "Page",
    "PageMeta",
    "build_page_meta",
]
