from .base import Base, TimestampMixin, utcnow
from .category import Category

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Category",
]
