"""
Category management service.

Owns every write to the categories table: create/update/delete, visibility
toggling and sibling reordering. The table is the only source of truth;
each read goes back to the database.
"""

import logging
import re
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, InvalidInputError, NotFoundError
from ..models import Category
from ..schemas import CategoryCreate, CategoryUpdate, CategoryTreeNode
from .category_tree import build_tree

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "id": Category.id,
    "name": Category.name,
    "sort_order": Category.sort_order,
    "created_at": Category.created_at,
    "updated_at": Category.updated_at,
}

# Columns that may not be cleared through a partial update
_NON_NULLABLE = {"name", "slug", "sort_order", "is_visible"}

# Lookups retried when the sibling pair changes between finding and locking
_SWAP_ATTEMPTS = 3


def slugify(name: str) -> str:
    """Derive a URL slug from a display name."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    # Reads

    def list_categories(
        self,
        search: str | None = None,
        name: str | None = None,
        parent_id: int | None = None,
        is_visible: bool | None = None,
        sort_by: str = "sort_order",
        order: str = "asc",
        page: int | None = None,
        page_size: int | None = None,
    ) -> tuple[list[Category], int]:
        """Filtered, sorted flat list plus the total row count before paging."""
        query = self.db.query(Category)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Category.name.ilike(pattern),
                Category.description.ilike(pattern),
            ))
        if name:
            query = query.filter(Category.name.ilike(f"%{name}%"))
        if parent_id is not None:
            query = query.filter(Category.parent_id == parent_id)
        if is_visible is not None:
            query = query.filter(Category.is_visible == is_visible)

        total = query.count()

        column = SORTABLE_FIELDS.get(sort_by, Category.sort_order)
        if order == "desc":
            query = query.order_by(column.desc(), Category.id.desc())
        else:
            query = query.order_by(column.asc(), Category.id.asc())

        if page is not None and page_size:
            query = query.offset((page - 1) * page_size).limit(page_size)

        return query.all(), total

    def get_category(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    def get_by_slug(self, slug: str) -> Category:
        category = self.db.query(Category).filter(Category.slug == slug).first()
        if not category:
            raise NotFoundError("Category", slug)
        return category

    def get_tree(self, include_hidden: bool = False) -> list[CategoryTreeNode]:
        """Re-query every row and rebuild the forest."""
        return build_tree(self.db.query(Category).all(), include_hidden=include_hidden)

    def get_children(self, category_id: int) -> list[Category]:
        """Direct children of a category in sibling order."""
        self.get_category(category_id)
        return (
            self.db.query(Category)
            .filter(Category.parent_id == category_id)
            .order_by(Category.sort_order, Category.id)
            .all()
        )

    # Writes

    def create_category(self, data: CategoryCreate) -> Category:
        values = data.model_dump()
        slug = values.pop("slug") or slugify(data.name)
        if not slug:
            raise InvalidInputError("slug is required", field="slug")

        self._ensure_slug_available(slug)
        if data.parent_id is not None:
            self._ensure_parent_exists(data.parent_id)

        category = Category(slug=slug, **values)
        self.db.add(category)
        self._flush()
        self.db.refresh(category)
        logger.info("Created category %s (slug=%s, parent=%s)", category.id, slug, category.parent_id)
        return category

    def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        """
        Apply a partial update.

        A parent change is checked for existence and cycles; sort_order is
        left as the caller sent it and the slug is never regenerated.
        """
        category = self.get_category(category_id)
        update_data = data.model_dump(exclude_unset=True)

        for field in _NON_NULLABLE:
            if field in update_data and update_data[field] is None:
                del update_data[field]

        if "slug" in update_data and update_data["slug"] != category.slug:
            self._ensure_slug_available(update_data["slug"])

        if "parent_id" in update_data and update_data["parent_id"] is not None:
            new_parent_id = update_data["parent_id"]
            if new_parent_id == category_id:
                raise InvalidInputError("Category cannot be its own parent", field="parent_id")
            self._ensure_parent_exists(new_parent_id)
            if self._is_descendant(new_parent_id, category_id):
                logger.warning(
                    "Rejected moving category %s under its descendant %s",
                    category_id, new_parent_id,
                )
                raise InvalidInputError(
                    "Category cannot be moved under one of its descendants",
                    field="parent_id",
                )

        for field, value in update_data.items():
            setattr(category, field, value)

        self._flush()
        self.db.refresh(category)
        logger.info("Updated category %s: %s", category_id, sorted(update_data))
        return category

    def delete_category(self, category_id: int) -> bool:
        category = self.get_category(category_id)

        # Check for child categories
        children = self.db.query(Category).filter(Category.parent_id == category_id).count()
        if children > 0:
            logger.warning("Rejected delete of category %s: %d children", category_id, children)
            raise ConflictError("Cannot delete category with children")

        self.db.delete(category)
        self.db.flush()
        logger.info("Deleted category %s", category_id)
        return True

    def toggle_visibility(self, category_id: int) -> Category:
        category = self.get_category(category_id)
        category.is_visible = not category.is_visible
        self.db.flush()
        self.db.refresh(category)
        logger.info("Category %s visibility set to %s", category_id, category.is_visible)
        return category

    def set_sort_order(self, category_id: int, sort_order: int) -> Category:
        """Overwrite sort_order as given; siblings are not renumbered."""
        if sort_order < 0:
            raise InvalidInputError("sort_order must be non-negative", field="sort_order")
        category = self.get_category(category_id)
        category.sort_order = sort_order
        self.db.flush()
        self.db.refresh(category)
        logger.info("Category %s sort_order set to %s", category_id, sort_order)
        return category

    def move_up(self, category_id: int) -> bool:
        """Swap with the closest sibling having a smaller sort_order."""
        return self._swap_with_neighbor(category_id, upward=True)

    def move_down(self, category_id: int) -> bool:
        """Swap with the closest sibling having a larger sort_order."""
        return self._swap_with_neighbor(category_id, upward=False)

    # Helpers

    def _swap_with_neighbor(self, category_id: int, upward: bool) -> bool:
        """
        Exchange sort_order values with the adjacent sibling.

        The neighbour is found first, then both rows are locked in id order
        so two opposite moves on the same pair cannot deadlock. If the pair
        no longer matches once locked, the lookup is retried. Both writes
        happen in the caller's transaction and are committed or rolled back
        together. Returns False without writing anything when there is no
        neighbour in that direction.

        Only strictly smaller / larger values count as neighbours, so when
        siblings share a sort_order a move_up followed by move_down can swap
        with different rows and does not restore the original order.
        """
        for _ in range(_SWAP_ATTEMPTS):
            category = self.get_category(category_id)
            neighbor = self._find_neighbor(category, upward)
            if neighbor is None:
                return False

            locked = (
                self.db.query(Category)
                .filter(Category.id.in_((category.id, neighbor.id)))
                .order_by(Category.id)
                .with_for_update()
                .populate_existing()
                .all()
            )
            if len(locked) < 2:
                continue
            current = self._find_neighbor(category, upward)
            if current is None or current.id != neighbor.id:
                continue

            category.sort_order, neighbor.sort_order = neighbor.sort_order, category.sort_order
            self.db.flush()
            logger.info(
                "Swapped sort_order of categories %s and %s (%s)",
                category.id, neighbor.id, "up" if upward else "down",
            )
            return True

        logger.warning("Gave up moving category %s: siblings kept changing", category_id)
        raise ConflictError("Sibling order changed concurrently, please retry")

    def _find_neighbor(self, category: Category, upward: bool) -> Category | None:
        """Closest sibling with a strictly smaller (upward) or larger sort_order."""
        query = self.db.query(Category).filter(Category.id != category.id)
        if category.parent_id is None:
            query = query.filter(Category.parent_id.is_(None))
        else:
            query = query.filter(Category.parent_id == category.parent_id)

        if upward:
            query = query.filter(Category.sort_order < category.sort_order).order_by(
                Category.sort_order.desc(), Category.id.desc()
            )
        else:
            query = query.filter(Category.sort_order > category.sort_order).order_by(
                Category.sort_order.asc(), Category.id.asc()
            )
        return query.first()

    def _ensure_slug_available(self, slug: str) -> None:
        exists = self.db.query(Category.id).filter(Category.slug == slug).first()
        if exists:
            logger.warning("Rejected duplicate slug '%s'", slug)
            raise ConflictError(f"Duplicate slug '{slug}'")

    def _ensure_parent_exists(self, parent_id: int) -> None:
        parent = self.db.query(Category.id).filter(Category.id == parent_id).first()
        if not parent:
            raise NotFoundError("Parent category", parent_id)

    def _is_descendant(self, candidate_id: int, ancestor_id: int) -> bool:
        """True if candidate_id sits somewhere below ancestor_id."""
        seen: set[int] = set()
        current: int | None = candidate_id
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            current = self.db.query(Category.parent_id).filter(Category.id == current).scalar()
        return False

    def _flush(self) -> None:
        """Flush, turning a constraint race (slug taken, parent gone) into a conflict."""
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Constraint violation on categories: %s", e.orig)
            raise ConflictError("Category conflicts with existing data") from e
