from fastapi import APIRouter

from .categories import router as categories_router

api_router = APIRouter()

api_router.include_router(categories_router, prefix="/categories", tags=["categories"])
