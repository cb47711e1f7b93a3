"""Background job tasks"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
import asyncio
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.cache import Cache, daily_summary_key
from app.config import settings
from app.jobs.celery_app import celery_app
from app.models.order import Order, OrderStatus
from app.models.organization import Organization
from app.realtime.relay import RealtimeRelay
from app.services.reports import compute_daily_summary

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


@asynccontextmanager
async def task_resources():
    """Session, cache and relay publisher scoped to one task run"""
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    cache = Cache.from_url(settings.redis_url)
    relay = RealtimeRelay(redis_client=cache.client, channel=settings.realtime_channel)
    try:
        async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as db:
            yield db, cache, relay
    finally:
        await cache.close()
        await engine.dispose()


async def generate_daily_summaries_for(db: AsyncSession, cache: Cache, day) -> int:
    """Compute and cache the day's summary for every active organization"""
    result = await db.execute(select(Organization.id, Organization.name).where(Organization.is_active == True))
    organizations = result.all()

    for organization_id, name in organizations:
        summary = await compute_daily_summary(db, organization_id, day)
        await cache.set_json(
            daily_summary_key(organization_id, day.isoformat()),
            summary.model_dump(mode="json"),
            ttl=settings.daily_summary_ttl_seconds,
        )
        logger.info(
            "Generated daily summary",
            organization=name,
            organization_id=str(organization_id),
            day=day.isoformat(),
            order_count=summary.order_count,
            revenue_cents=summary.revenue_cents,
        )
    return len(organizations)


async def notify_overdue_orders_for(db: AsyncSession, relay: RealtimeRelay, now: Optional[datetime] = None) -> int:
    """Publish orderOverdue for preparing orders past their estimated ready time"""
    now = now or datetime.utcnow()
    result = await db.execute(
        select(Order).where(
            Order.status == OrderStatus.PREPARING,
            Order.estimated_ready_time.is_not(None),
            Order.estimated_ready_time < now,
        )
    )
    overdue = result.scalars().all()

    for order in overdue:
        await relay.emit_to_organization(order.organization_id, "orderOverdue", {
            "orderId": str(order.id),
            "orderNumber": order.order_number,
            "tableId": str(order.table_id) if order.table_id else None,
            "estimatedReadyTime": order.estimated_ready_time.isoformat(),
            "minutesOverdue": int((now - order.estimated_ready_time).total_seconds() // 60),
        })
    if overdue:
        logger.info("Overdue orders notified", count=len(overdue))
    return len(overdue)


@celery_app.task(name="generate_daily_summaries")
def generate_daily_summaries():
    """Pre-compute yesterday's sales summary"""
    day = (datetime.utcnow() - timedelta(days=1)).date()
    logger.info("Generating daily sales summaries", day=day.isoformat())

    async def _generate():
        async with task_resources() as (db, cache, _):
            return await generate_daily_summaries_for(db, cache, day)

    return run_async(_generate())


@celery_app.task(name="notify_overdue_orders")
def notify_overdue_orders():
    """Notify organizations about orders running late"""

    async def _notify():
        async with task_resources() as (db, _, relay):
            return await notify_overdue_orders_for(db, relay)

    return run_async(_notify())
