from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field

SLUG_PATTERN = r"^[a-z0-9-]+$"


class CategoryBase(BaseModel):
    """Base category fields."""
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    parent_id: int | None = None
    sort_order: int = Field(default=0, ge=0)
    is_visible: bool = True
    icon: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=255)


class CategoryCreate(CategoryBase):
    """Fields for creating a category. slug is derived from name when omitted."""
    slug: str | None = Field(default=None, max_length=100, pattern=SLUG_PATTERN)


class CategoryUpdate(BaseModel):
    """Fields for updating a category (all optional)."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: str | None = None
    parent_id: int | None = None
    sort_order: int | None = Field(default=None, ge=0)
    is_visible: bool | None = None
    icon: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=255)


class CategoryResponse(CategoryBase):
    """Category response with all fields."""
    id: int
    slug: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryTreeNode(CategoryResponse):
    """A category with its depth and ordered children."""
    level: int = 0
    children: list[CategoryTreeNode] = []


class SortOrderUpdate(BaseModel):
    """Request body for setting a category's sort order directly."""
    sort_order: int = Field(ge=0)


class MoveResult(BaseModel):
    """Result of a move-up / move-down request."""
    moved: bool
