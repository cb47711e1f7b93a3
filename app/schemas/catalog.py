"""Catalog schemas: categories, products and modifiers"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.models.product import ProductStatus, ProductType


# Bar slang for "withdrawn" accepted on input
STATUS_ALIASES = {"86ed": ProductStatus.WITHDRAWN.value, "86": ProductStatus.WITHDRAWN.value}


def normalize_product_status(value):
    if isinstance(value, str):
        return STATUS_ALIASES.get(value.lower(), value)
    return value


class CategoryCreate(BaseModel):
    """Create category request"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    sort_order: int = 0


class CategoryResponse(BaseModel):
    """Category response"""
    id: UUID
    name: str
    description: Optional[str]
    color: Optional[str]
    sort_order: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ModifierOptionCreate(BaseModel):
    """Create modifier option"""
    name: str = Field(..., min_length=1, max_length=100)
    price_adjustment_cents: int = 0  # may be negative
    is_default: bool = False
    sort_order: int = 0


class ModifierOptionResponse(BaseModel):
    """Modifier option response"""
    id: UUID
    name: str
    price_adjustment_cents: int
    is_default: bool
    sort_order: int

    class Config:
        from_attributes = True


class ModifierGroupCreate(BaseModel):
    """Create a modifier group with its options"""
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field("single", pattern="^(single|multiple)$")
    is_required: bool = False
    min_selections: int = Field(0, ge=0)
    max_selections: int = Field(1, ge=1)
    options: List[ModifierOptionCreate] = []


class ModifierGroupResponse(BaseModel):
    """Modifier group with active options"""
    id: UUID
    name: str
    type: str
    is_required: bool
    min_selections: int
    max_selections: int
    options: List[ModifierOptionResponse] = []


class ProductCreate(BaseModel):
    """Create product request"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    sku: Optional[str] = None
    type: ProductType = ProductType.FOOD
    price_cents: int = Field(..., ge=0)
    cost_cents: Optional[int] = Field(None, ge=0)
    prep_time: Optional[int] = Field(None, ge=0)
    calories: Optional[int] = Field(None, ge=0)
    allergens: List[str] = []
    is_spicy: bool = False
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    sort_order: int = 0
    status: ProductStatus = ProductStatus.AVAILABLE
    modifiers: List[ModifierGroupCreate] = []

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return normalize_product_status(value)


class ProductUpdate(BaseModel):
    """Update product request"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    sku: Optional[str] = None
    type: Optional[ProductType] = None
    price_cents: Optional[int] = Field(None, ge=0)
    cost_cents: Optional[int] = Field(None, ge=0)
    prep_time: Optional[int] = Field(None, ge=0)
    calories: Optional[int] = Field(None, ge=0)
    allergens: Optional[List[str]] = None
    is_spicy: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    sort_order: Optional[int] = None


class ProductStatusUpdate(BaseModel):
    """Availability change; "86ed" means withdrawn"""
    status: ProductStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return normalize_product_status(value)


class ProductResponse(BaseModel):
    """Product response"""
    id: UUID
    organization_id: UUID
    category_id: Optional[UUID]
    category_name: Optional[str] = None
    sku: Optional[str]
    name: str
    description: Optional[str]
    type: ProductType
    price_cents: int
    cost_cents: Optional[int]
    prep_time: Optional[int]
    calories: Optional[int]
    allergens: List[str] = []
    is_spicy: bool
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    image_url: Optional[str]
    status: ProductStatus
    sort_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductDetailResponse(ProductResponse):
    """Product with its modifier groups"""
    modifiers: List[ModifierGroupResponse] = []


class ProductListResponse(BaseModel):
    """Paginated product list"""
    items: List[ProductResponse]
    total: int
    page: int
    limit: int
