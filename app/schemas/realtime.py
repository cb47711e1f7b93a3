"""Realtime client event payloads"""

from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.order import OrderItemStatus
from app.models.product import ProductStatus
from app.models.table import TableStatus
from app.schemas.catalog import normalize_product_status


class ClientMessage(BaseModel):
    """Envelope sent by clients"""
    event: str
    data: Dict[str, Any] = {}


class OrderItemStatusEvent(BaseModel):
    order_item_id: UUID = Field(..., alias="orderItemId")
    status: OrderItemStatus


class TableStatusEvent(BaseModel):
    table_id: UUID = Field(..., alias="tableId")
    status: TableStatus


class ProductAvailabilityEvent(BaseModel):
    product_id: UUID = Field(..., alias="productId")
    status: ProductStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return normalize_product_status(value)


class CallWaiterEvent(BaseModel):
    table_id: UUID = Field(..., alias="tableId")
    message: Optional[str] = Field(None, max_length=500)


class InventoryAlertEvent(BaseModel):
    product_id: Optional[UUID] = Field(None, alias="productId")
    item_name: Optional[str] = Field(None, alias="itemName")
    level: str = "low"
    message: Optional[str] = Field(None, max_length=500)
