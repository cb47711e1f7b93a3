"""Table schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.table import TableStatus
from app.models.order import OrderStatus


class TableCreate(BaseModel):
    """Create table request"""
    number: str = Field(..., min_length=1, max_length=20)
    name: Optional[str] = None
    capacity: int = Field(4, ge=1)


class TableStatusUpdate(BaseModel):
    """Table status change"""
    status: TableStatus


class TableOrderSummary(BaseModel):
    """Open order seated at a table"""
    id: UUID
    order_number: str
    status: OrderStatus
    total_cents: int
    created_at: datetime

    class Config:
        from_attributes = True


class TableResponse(BaseModel):
    """Table response"""
    id: UUID
    number: str
    name: Optional[str]
    capacity: int
    status: TableStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime
    current_orders: List[TableOrderSummary] = []

    class Config:
        from_attributes = True
