"""Daily sales summaries"""

from datetime import date, datetime, time, timedelta

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import Cache, daily_summary_key
from app.config import settings
from app.models.order import Order, OrderStatus
from app.schemas.report import DailySummary

logger = structlog.get_logger()


async def compute_daily_summary(db: AsyncSession, organization_id, day: date) -> DailySummary:
    """Totals over paid orders created on ``day`` (UTC)"""
    start = datetime.combine(day, time.min)
    result = await db.execute(
        select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_cents), 0),
            func.coalesce(func.sum(Order.guest_count), 0),
        ).where(
            Order.organization_id == organization_id,
            Order.status == OrderStatus.PAID,
            Order.created_at >= start,
            Order.created_at < start + timedelta(days=1),
        )
    )
    count, revenue, guests = result.one()
    return DailySummary(
        organization_id=organization_id,
        day=day,
        order_count=count,
        revenue_cents=int(revenue),
        average_order_cents=int(revenue) // count if count else 0,
        guest_count=int(guests),
    )


async def get_daily_summary(db: AsyncSession, cache: Cache, organization_id, day: date) -> DailySummary:
    """Cached summary, computed and stored on a miss

    The current business day is computed live and never stored.
    """
    if day >= datetime.utcnow().date():
        return await compute_daily_summary(db, organization_id, day)

    key = daily_summary_key(organization_id, day.isoformat())
    cached = await cache.get_json(key)
    if cached:
        return DailySummary(**cached)

    summary = await compute_daily_summary(db, organization_id, day)
    await cache.set_json(key, summary.model_dump(mode="json"), ttl=settings.daily_summary_ttl_seconds)
    logger.info("Daily summary computed", organization_id=str(organization_id), day=day.isoformat())
    return summary


async def invalidate_daily_summary(cache: Cache, organization_id, day: date) -> None:
    """Drop a stored summary, e.g. when an order from that day is settled late"""
    await cache.delete(daily_summary_key(organization_id, day.isoformat()))
