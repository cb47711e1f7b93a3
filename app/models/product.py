"""Catalog models: categories, products and modifiers"""

import uuid
from datetime import datetime
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base, enum_type


class ProductStatus(str, enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    WITHDRAWN = "withdrawn"  # 86'd


class ProductType(str, enum.Enum):
    FOOD = "food"
    BEVERAGE = "beverage"
    COMBO = "combo"
    SERVICE = "service"


class Category(Base):
    """Menu categories"""
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    color = Column(String(7))  # #RRGGBB
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = relationship("Product", back_populates="category")


class Product(Base):
    """Products sold by the organization"""
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"))
    sku = Column(String(64))
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(enum_type(ProductType, "product_type"), nullable=False, default=ProductType.FOOD)
    price_cents = Column(Integer, nullable=False)  # Price in cents to avoid float issues
    cost_cents = Column(Integer)
    prep_time = Column(Integer)  # minutes
    calories = Column(Integer)
    allergens = Column(JSON, default=list)  # ["nuts", "dairy", ...]
    is_spicy = Column(Boolean, default=False)
    is_vegetarian = Column(Boolean, default=False)
    is_vegan = Column(Boolean, default=False)
    is_gluten_free = Column(Boolean, default=False)
    image_url = Column(String(500))
    status = Column(enum_type(ProductStatus, "product_status"), nullable=False, default=ProductStatus.AVAILABLE)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)  # False once soft-deleted
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="products")
    category = relationship("Category", back_populates="products")
    modifier_groups = relationship(
        "ProductModifierGroup",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductModifierGroup.sort_order",
    )


class ProductModifier(Base):
    """Modifier group such as "Size" or "Ice" """
    __tablename__ = "product_modifiers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), default="single")  # single, multiple
    is_required = Column(Boolean, default=False)
    min_selections = Column(Integer, default=0)
    max_selections = Column(Integer, default=1)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    options = relationship(
        "ModifierOption",
        back_populates="modifier",
        cascade="all, delete-orphan",
        order_by="ModifierOption.sort_order",
    )


class ModifierOption(Base):
    """Selectable value of a modifier group, e.g. "Large" +150"""
    __tablename__ = "modifier_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    modifier_id = Column(UUID(as_uuid=True), ForeignKey("product_modifiers.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price_adjustment_cents = Column(Integer, nullable=False, default=0)
    is_default = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    modifier = relationship("ProductModifier", back_populates="options")


class ProductModifierGroup(Base):
    """Attaches modifier groups to products"""
    __tablename__ = "product_modifier_groups"

    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    modifier_id = Column(UUID(as_uuid=True), ForeignKey("product_modifiers.id"), primary_key=True)
    sort_order = Column(Integer, default=0)

    product = relationship("Product", back_populates="modifier_groups")
    modifier = relationship("ProductModifier")
