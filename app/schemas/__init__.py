"""Pydantic schemas for request/response validation"""

from app.schemas.auth import (
    Token,
    AccessToken,
    TokenPayload,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    UserResponse,
)
from app.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    ModifierGroupCreate,
    ModifierOptionCreate,
    ProductCreate,
    ProductUpdate,
    ProductStatusUpdate,
    ProductResponse,
    ProductDetailResponse,
    ProductListResponse,
)
from app.schemas.table import (
    TableCreate,
    TableStatusUpdate,
    TableResponse,
)
from app.schemas.order import (
    OrderCreate,
    OrderItemCreate,
    OrderItemModifierCreate,
    OrderStatusUpdate,
    OrderItemStatusUpdate,
    OrderResponse,
    OrderDetailResponse,
    OrderListResponse,
    PaymentCreate,
    PaymentResponse,
)
from app.schemas.report import DailySummary

__all__ = [
    "Token",
    "AccessToken",
    "TokenPayload",
    "LoginRequest",
    "LoginResponse",
    "RefreshRequest",
    "UserResponse",
    "CategoryCreate",
    "CategoryResponse",
    "ModifierGroupCreate",
    "ModifierOptionCreate",
    "ProductCreate",
    "ProductUpdate",
    "ProductStatusUpdate",
    "ProductResponse",
    "ProductDetailResponse",
    "ProductListResponse",
    "TableCreate",
    "TableStatusUpdate",
    "TableResponse",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemModifierCreate",
    "OrderStatusUpdate",
    "OrderItemStatusUpdate",
    "OrderResponse",
    "OrderDetailResponse",
    "OrderListResponse",
    "PaymentCreate",
    "PaymentResponse",
    "DailySummary",
]
