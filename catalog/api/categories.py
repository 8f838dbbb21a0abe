from typing import Literal
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Category
from ..schemas import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryTreeNode,
    SortOrderUpdate,
    MoveResult,
    Envelope,
    Page,
    build_page_meta,
)
from ..services import CategoryService

router = APIRouter()


def _category(category: Category, message: str, code: int = 200) -> Envelope[CategoryResponse]:
    return Envelope[CategoryResponse](
        code=code,
        message=message,
        data=CategoryResponse.model_validate(category),
    )


@router.get("/", response_model=Envelope[Page[CategoryResponse]])
def list_categories(
    search: str | None = None,
    name: str | None = None,
    parent_id: int | None = None,
    is_visible: bool | None = None,
    sort_by: str = "sort_order",
    order: Literal["asc", "desc"] = "asc",
    page: int | None = Query(default=None, ge=1),
    page_size: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Get categories as a flat list, optionally filtered and paginated."""
    items, total = CategoryService(db).list_categories(
        search=search,
        name=name,
        parent_id=parent_id,
        is_visible=is_visible,
        sort_by=sort_by,
        order=order,
        page=page,
        page_size=page_size if page is not None else None,
    )
    return Envelope[Page[CategoryResponse]](
        message="Categories retrieved",
        data=Page[CategoryResponse](
            items=[CategoryResponse.model_validate(c) for c in items],
            meta=build_page_meta(total, page, page_size if page is not None else None),
        ),
    )


@router.get("/tree", response_model=Envelope[list[CategoryTreeNode]])
def get_category_tree(include_hidden: bool = False, db: Session = Depends(get_db)):
    """Get the category forest. Hidden subtrees are left out unless include_hidden."""
    return Envelope[list[CategoryTreeNode]](
        message="Category tree retrieved",
        data=CategoryService(db).get_tree(include_hidden=include_hidden),
    )


@router.get("/slug/{slug}", response_model=Envelope[CategoryResponse])
def get_category_by_slug(slug: str, db: Session = Depends(get_db)):
    """Get a single category by slug."""
    return _category(CategoryService(db).get_by_slug(slug), "Category retrieved")


@router.get("/{category_id}", response_model=Envelope[CategoryResponse])
def get_category(category_id: int, db: Session = Depends(get_db)):
    """Get a single category by ID."""
    return _category(CategoryService(db).get_category(category_id), "Category retrieved")


@router.get("/{category_id}/children", response_model=Envelope[list[CategoryResponse]])
def get_category_children(category_id: int, db: Session = Depends(get_db)):
    """Get the direct children of a category."""
    children = CategoryService(db).get_children(category_id)
    return Envelope[list[CategoryResponse]](
        message="Child categories retrieved",
        data=[CategoryResponse.model_validate(c) for c in children],
    )


@router.post("/", response_model=Envelope[CategoryResponse], status_code=201)
def create_category(category: CategoryCreate, db: Session = Depends(get_db)):
    """Create a new category."""
    return _category(CategoryService(db).create_category(category), "Category created", code=201)


@router.patch("/{category_id}", response_model=Envelope[CategoryResponse])
def update_category(
    category_id: int,
    category: CategoryUpdate,
    db: Session = Depends(get_db)
):
    """Update a category."""
    return _category(CategoryService(db).update_category(category_id, category), "Category updated")


@router.delete("/{category_id}", response_model=Envelope[None])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    """Delete a category. Categories with children cannot be deleted."""
    CategoryService(db).delete_category(category_id)
    return Envelope[None](message="Category deleted")


@router.patch("/{category_id}/toggle", response_model=Envelope[CategoryResponse])
def toggle_category_visibility(category_id: int, db: Session = Depends(get_db)):
    """Flip a category's visibility."""
    return _category(CategoryService(db).toggle_visibility(category_id), "Category visibility toggled")


@router.patch("/{category_id}/sort", response_model=Envelope[CategoryResponse])
def set_category_sort_order(
    category_id: int,
    body: SortOrderUpdate,
    db: Session = Depends(get_db)
):
    """Set a category's sort order directly (drag-and-drop reordering)."""
    category = CategoryService(db).set_sort_order(category_id, body.sort_order)
    return _category(category, "Category sort order updated")


@router.post("/{category_id}/move-up", response_model=Envelope[MoveResult])
def move_category_up(category_id: int, db: Session = Depends(get_db)):
    """Swap a category with its previous sibling."""
    moved = CategoryService(db).move_up(category_id)
    return Envelope[MoveResult](
        message="Category moved up" if moved else "Category is already first",
        data=MoveResult(moved=moved),
    )


@router.post("/{category_id}/move-down", response_model=Envelope[MoveResult])
def move_category_down(category_id: int, db: Session = Depends(get_db)):
    """Swap a category with its next sibling."""
    moved = CategoryService(db).move_down(category_id)
    return Envelope[MoveResult](
        message="Category moved down" if moved else "Category is already last",
        data=MoveResult(moved=moved),
    )
