"""
Router for the category taxonomy.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from db_config import get_db
from schemas.category import CategoryRead, SubcategoryRead
from schemas.common import ApiResponse
from services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])
subcategory_router = APIRouter(prefix="/subcategories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryRead]])
async def list_categories(db: Session = Depends(get_db)):
    """List all categories ordered by display name."""
    return ApiResponse(data=[CategoryRead.model_validate(c) for c in CategoryService(db).list_categories()])


@router.get("/{category_id}", response_model=ApiResponse[CategoryRead])
async def get_category(category_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=CategoryRead.model_validate(CategoryService(db).get_category(category_id)))


@subcategory_router.get("", response_model=ApiResponse[List[SubcategoryRead]])
async def list_subcategories(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    db: Session = Depends(get_db)
):
    """List subcategories, optionally for a single category."""
    subcategories = CategoryService(db).list_subcategories(category_id)
    return ApiResponse(data=[SubcategoryRead.model_validate(s) for s in subcategories])


@subcategory_router.get("/{subcategory_id}", response_model=ApiResponse[SubcategoryRead])
async def get_subcategory(subcategory_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=SubcategoryRead.model_validate(CategoryService(db).get_subcategory(subcategory_id)))
