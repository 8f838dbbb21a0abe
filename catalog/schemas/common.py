"""
Response wrappers shared by every endpoint.

All API responses, including errors, are returned as
{"code": <http status>, "message": <text>, "data": <payload or null>}.
"""

import math
from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform response envelope."""
    code: int = 200
    message: str = "OK"
    data: T | None = None


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""
    total: int
    page: int
    page_size: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    """A page of items plus pagination metadata."""
    items: list[T]
    meta: PageMeta


def build_page_meta(total: int, page: int | None, page_size: int | None) -> PageMeta:
    """Compute page metadata. Without a page, the whole result is one page."""
    if page is None or not page_size:
        return PageMeta(total=total, page=1, page_size=total, total_pages=1 if total else 0)
    return PageMeta(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )
