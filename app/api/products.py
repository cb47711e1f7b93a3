"""Product catalog API endpoints"""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Response
from pydantic import ValidationError
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.auth import require_permission
from app.cache import Cache, get_cache, product_key, products_key
from app.config import settings
from app.database import get_db
from app.errors import NotFoundError, ValidationFailed
from app.models.order import OrderItem
from app.models.product import (
    Category,
    Product,
    ProductModifier,
    ProductModifierGroup,
    ModifierOption,
)
from app.models.user import User
from app.permissions import VIEW_PRODUCTS, MANAGE_PRODUCTS
from app.realtime.relay import RealtimeRelay, get_relay
from app.schemas.catalog import (
    ModifierGroupResponse,
    ModifierOptionResponse,
    ProductCreate,
    ProductUpdate,
    ProductStatusUpdate,
    ProductResponse,
    ProductDetailResponse,
    ProductListResponse,
)
from app.services.catalog import get_product, invalidate_product_cache, set_product_status

router = APIRouter()
logger = structlog.get_logger()


def serialize_product(product: Product) -> ProductResponse:
    response = ProductResponse.model_validate(product)
    response.category_name = product.category.name if product.category is not None else None
    return response


def serialize_product_detail(product: Product) -> ProductDetailResponse:
    """Product with active modifier groups and their active options"""
    modifiers = []
    for group in product.modifier_groups:
        modifier = group.modifier
        if not modifier.is_active:
            continue
        modifiers.append(ModifierGroupResponse(
            id=modifier.id,
            name=modifier.name,
            type=modifier.type,
            is_required=modifier.is_required,
            min_selections=modifier.min_selections,
            max_selections=modifier.max_selections,
            options=[
                ModifierOptionResponse.model_validate(option)
                for option in modifier.options
                if option.is_active
            ],
        ))
    return ProductDetailResponse(**serialize_product(product).model_dump(), modifiers=modifiers)


async def load_product_detail(db: AsyncSession, organization_id, product_id) -> Product:
    result = await db.execute(
        select(Product)
        .where(
            Product.id == product_id,
            Product.organization_id == organization_id,
            Product.is_active == True,
        )
        .options(
            selectinload(Product.category),
            selectinload(Product.modifier_groups)
            .selectinload(ProductModifierGroup.modifier)
            .selectinload(ProductModifier.options),
        )
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found", error_code="PRODUCT_NOT_FOUND")
    return product


async def ensure_category(db: AsyncSession, organization_id, category_id) -> None:
    if category_id is None:
        return
    found = await db.scalar(
        select(Category.id).where(Category.id == category_id, Category.organization_id == organization_id)
    )
    if found is None:
        raise NotFoundError("Category not found", error_code="CATEGORY_NOT_FOUND")


@router.get("", response_model=ProductListResponse)
async def list_products(
    category_id: Optional[UUID] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(require_permission(VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """List active products, cached per query"""
    organization_id = current_user.organization_id
    if status is not None:
        try:
            status = ProductStatusUpdate(status=status).status
        except ValidationError:
            raise ValidationFailed(f"Invalid product status '{status}'")

    query_key = {
        "category_id": str(category_id) if category_id else None,
        "status": status.value if status else None,
        "search": search,
        "page": page,
        "limit": limit,
    }
    cache_key = products_key(organization_id, query_key)
    cached = await cache.get_json(cache_key)
    if cached:
        return cached

    query = select(Product).where(Product.organization_id == organization_id, Product.is_active == True)
    if category_id:
        query = query.where(Product.category_id == category_id)
    if status:
        query = query.where(Product.status == status)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(
            func.lower(Product.name).like(pattern),
            func.lower(Product.description).like(pattern),
            func.lower(Product.sku).like(pattern),
        ))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.options(selectinload(Product.category))
        .order_by(Product.sort_order, Product.name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    response = ProductListResponse(
        items=[serialize_product(product) for product in result.scalars().all()],
        total=total,
        page=page,
        limit=limit,
    )
    await cache.set_json(cache_key, response.model_dump(mode="json"), ttl=settings.products_cache_ttl_seconds)
    return response


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product_detail(
    product_id: UUID,
    current_user: User = Depends(require_permission(VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Get a product with its modifiers"""
    cached = await cache.get_json(product_key(product_id))
    if cached and cached.get("organization_id") == str(current_user.organization_id):
        return cached

    product = await load_product_detail(db, current_user.organization_id, product_id)
    response = serialize_product_detail(product)
    await cache.set_json(product_key(product_id), response.model_dump(mode="json"), ttl=settings.product_cache_ttl_seconds)
    return response


@router.post("", response_model=ProductDetailResponse, status_code=201)
async def create_product(
    product_data: ProductCreate,
    current_user: User = Depends(require_permission(MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Create a product with optional modifier groups"""
    organization_id = current_user.organization_id
    await ensure_category(db, organization_id, product_data.category_id)

    product = Product(organization_id=organization_id, **product_data.model_dump(exclude={"modifiers"}))
    for position, group_data in enumerate(product_data.modifiers):
        modifier = ProductModifier(
            organization_id=organization_id,
            options=[ModifierOption(**option.model_dump()) for option in group_data.options],
            **group_data.model_dump(exclude={"options"}),
        )
        product.modifier_groups.append(ProductModifierGroup(modifier=modifier, sort_order=position))
    db.add(product)
    await db.commit()

    await invalidate_product_cache(cache, organization_id)
    logger.info("Product created", product_id=str(product.id), organization_id=str(organization_id))

    product = await load_product_detail(db, organization_id, product.id)
    return serialize_product_detail(product)


@router.put("/{product_id}", response_model=ProductDetailResponse)
async def update_product(
    product_id: UUID,
    product_data: ProductUpdate,
    current_user: User = Depends(require_permission(MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Update a product"""
    organization_id = current_user.organization_id
    product = await get_product(db, organization_id, product_id)

    updates = product_data.model_dump(exclude_unset=True)
    if "category_id" in updates:
        await ensure_category(db, organization_id, updates["category_id"])

    for field, value in updates.items():
        setattr(product, field, value)
    await db.commit()

    await invalidate_product_cache(cache, organization_id, product_id)
    logger.info("Product updated", product_id=str(product_id), fields=sorted(updates))

    product = await load_product_detail(db, organization_id, product_id)
    return serialize_product_detail(product)


@router.patch("/{product_id}/status", response_model=ProductResponse)
async def update_product_status(
    product_id: UUID,
    status_data: ProductStatusUpdate,
    current_user: User = Depends(require_permission(MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Mark a product available, unavailable or withdrawn"""
    await set_product_status(
        db, cache, relay, current_user.organization_id, product_id, status_data.status, current_user
    )
    product = await load_product_detail(db, current_user.organization_id, product_id)
    return serialize_product(product)


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: UUID,
    current_user: User = Depends(require_permission(MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Delete a product; products already ordered are only deactivated"""
    organization_id = current_user.organization_id
    product = await get_product(db, organization_id, product_id)

    referenced = await db.scalar(select(OrderItem.id).where(OrderItem.product_id == product.id).limit(1))
    if referenced is not None:
        product.is_active = False
        logger.info("Product deactivated", product_id=str(product_id))
    else:
        await db.delete(product)
        logger.info("Product deleted", product_id=str(product_id))
    await db.commit()

    await invalidate_product_cache(cache, organization_id, product_id)
    return Response(status_code=204)
