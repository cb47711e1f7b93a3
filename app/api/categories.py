"""Category API endpoints"""

from typing import List

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_permission
from app.cache import Cache, get_cache
from app.database import get_db
from app.models.product import Category
from app.models.user import User
from app.permissions import VIEW_PRODUCTS, MANAGE_PRODUCTS
from app.schemas.catalog import CategoryCreate, CategoryResponse
from app.services.catalog import invalidate_product_cache

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    current_user: User = Depends(require_permission(VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    """List active categories"""
    result = await db.execute(
        select(Category)
        .where(Category.organization_id == current_user.organization_id, Category.is_active == True)
        .order_by(Category.sort_order, Category.name)
    )
    return result.scalars().all()


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    category_data: CategoryCreate,
    current_user: User = Depends(require_permission(MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Create a category"""
    category = Category(organization_id=current_user.organization_id, **category_data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)

    await invalidate_product_cache(cache, current_user.organization_id)
    logger.info("Category created", category_id=str(category.id), organization_id=str(category.organization_id))
    return category
