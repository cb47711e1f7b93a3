"""Report schemas"""

from datetime import date
from uuid import UUID
from pydantic import BaseModel


class DailySummary(BaseModel):
    """Paid-order totals for one business day"""
    organization_id: UUID
    day: date
    order_count: int
    revenue_cents: int
    average_order_cents: int
    guest_count: int
