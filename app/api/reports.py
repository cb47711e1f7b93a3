"""Reporting API endpoints"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_permission
from app.cache import Cache, get_cache
from app.database import get_db
from app.models.user import User
from app.permissions import VIEW_REPORTS
from app.schemas.report import DailySummary
from app.services.reports import get_daily_summary

router = APIRouter()


@router.get("/daily-summary", response_model=DailySummary)
async def daily_summary(
    day: Optional[date] = None,
    current_user: User = Depends(require_permission(VIEW_REPORTS)),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Paid-order totals for a UTC business day (today by default)"""
    day = day or datetime.utcnow().date()
    return await get_daily_summary(db, cache, current_user.organization_id, day)
