"""Product availability and catalog cache invalidation"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import Cache, product_key, products_pattern
from app.errors import NotFoundError
from app.models.product import Product, ProductStatus
from app.models.user import User
from app.realtime.relay import RealtimeRelay

logger = structlog.get_logger()


async def get_product(db: AsyncSession, organization_id, product_id, include_inactive: bool = False) -> Product:
    query = select(Product).where(Product.id == product_id, Product.organization_id == organization_id)
    if not include_inactive:
        query = query.where(Product.is_active == True)
    result = await db.execute(query)
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found", error_code="PRODUCT_NOT_FOUND")
    return product


async def invalidate_product_cache(cache: Cache, organization_id, product_id=None) -> None:
    """Drop the product's detail entry and every cached list of the organization"""
    if product_id is not None:
        await cache.delete(product_key(product_id))
    await cache.delete_pattern(products_pattern(organization_id))


async def set_product_status(
    db: AsyncSession,
    cache: Cache,
    relay: RealtimeRelay,
    organization_id,
    product_id,
    status: ProductStatus,
    user: Optional[User] = None,
) -> Product:
    """Change availability, refresh caches and notify the organization"""
    try:
        product = await get_product(db, organization_id, product_id)
        product.status = ProductStatus(status)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await invalidate_product_cache(cache, organization_id, product.id)
    logger.info(
        "Product status updated",
        product_id=str(product.id),
        organization_id=str(organization_id),
        status=product.status.value,
    )
    await relay.emit_to_organization(organization_id, "productStatusChanged", {
        "productId": str(product.id),
        "productName": product.name,
        "status": product.status.value,
        "updatedBy": str(user.id) if user else None,
    })
    return product
