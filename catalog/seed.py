"""
Demo category hierarchy for fresh databases.
"""

import logging
from sqlalchemy.orm import Session

from .models import Category

logger = logging.getLogger(__name__)

# (name, slug, sort_order, children)
DEMO_CATEGORIES = [
    ("Menswear", "menswear", 1, [
        ("T-Shirts", "mens-t-shirts", 1),
        ("Shirts", "mens-shirts", 2),
    ]),
    ("Womenswear", "womenswear", 2, [
        ("Dresses", "dresses", 1),
    ]),
]


def seed_categories(db: Session) -> int:
    """
    Insert the demo categories if the table is empty.

    Returns the number of rows inserted (0 when data already exists).
    """
    if db.query(Category.id).first() is not None:
        return 0

    inserted = 0
    for name, slug, sort_order, children in DEMO_CATEGORIES:
        parent = Category(name=name, slug=slug, sort_order=sort_order)
        db.add(parent)
        db.flush()
        inserted += 1
        for child_name, child_slug, child_order in children:
            db.add(Category(
                name=child_name,
                slug=child_slug,
                sort_order=child_order,
                parent_id=parent.id,
            ))
            inserted += 1

    db.flush()
    logger.info("Seeded %d demo categories", inserted)
    return inserted
