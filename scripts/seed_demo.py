#!/usr/bin/env python3
"""
Seed script to create a demo sport bar with staff, tables and menu
"""

import asyncio
import uuid
from decimal import Decimal

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from app.database import SessionLocal, engine, Base
    from app.models import (
        Organization,
        User,
        UserRole,
        Category,
        Product,
        ProductType,
        ProductModifier,
        ProductModifierGroup,
        ModifierOption,
        DiningTable,
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo organization already exists
        result = await db.execute(
            select(Organization).where(Organization.name == "The Penalty Box")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo organization...")

        organization = Organization(
            id=uuid.uuid4(),
            name="The Penalty Box",
            timezone="America/New_York",
            currency="USD",
            tax_rate=Decimal("0.0800"),
            service_charge_rate=Decimal("0.1000"),
        )
        db.add(organization)
        await db.flush()

        print(f"Created organization: {organization.name} (ID: {organization.id})")

        # Staff, one per role
        staff = [
            ("admin@penaltybox.example", "admin123", "Alex", "Admin", UserRole.ADMIN),
            ("manager@penaltybox.example", "manager123", "Morgan", "Reyes", UserRole.MANAGER),
            ("cashier@penaltybox.example", "cashier123", "Casey", "Lee", UserRole.CASHIER),
            ("waiter@penaltybox.example", "waiter123", "Jordan", "Kim", UserRole.WAITER),
            ("kitchen@penaltybox.example", "kitchen123", "Sam", "Ortiz", UserRole.KITCHEN),
            ("bar@penaltybox.example", "bar123", "Riley", "Nash", UserRole.BARTENDER),
        ]
        for email, password, first_name, last_name, role in staff:
            db.add(User(
                organization_id=organization.id,
                email=email,
                hashed_password=pwd_context.hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_active=True,
            ))

        print("Creating tables...")
        for number in range(1, 13):
            db.add(DiningTable(
                organization_id=organization.id,
                number=str(number),
                name=f"Table {number}" if number <= 8 else f"Bar {number - 8}",
                capacity=4 if number <= 8 else 2,
            ))

        print("Creating menu...")

        categories = {}
        for position, (name, color) in enumerate([
            ("Starters", "#F59E0B"),
            ("Burgers", "#EF4444"),
            ("Wings", "#F97316"),
            ("Beer", "#EAB308"),
            ("Soft Drinks", "#3B82F6"),
        ]):
            category = Category(organization_id=organization.id, name=name, color=color, sort_order=position)
            db.add(category)
            categories[name] = category
        await db.flush()

        sauce = ProductModifier(
            organization_id=organization.id,
            name="Wing Sauce",
            is_required=True,
            min_selections=1,
            max_selections=1,
            options=[
                ModifierOption(name="Buffalo", price_adjustment_cents=0, is_default=True, sort_order=0),
                ModifierOption(name="BBQ", price_adjustment_cents=0, sort_order=1),
                ModifierOption(name="Ghost Pepper", price_adjustment_cents=100, sort_order=2),
            ],
        )
        burger_extras = ProductModifier(
            organization_id=organization.id,
            name="Extras",
            type="multiple",
            max_selections=3,
            options=[
                ModifierOption(name="Bacon", price_adjustment_cents=200, sort_order=0),
                ModifierOption(name="Extra Cheese", price_adjustment_cents=150, sort_order=1),
                ModifierOption(name="No Bun", price_adjustment_cents=-100, sort_order=2),
            ],
        )
        ice = ProductModifier(
            organization_id=organization.id,
            name="Ice",
            options=[
                ModifierOption(name="Regular Ice", price_adjustment_cents=0, is_default=True, sort_order=0),
                ModifierOption(name="Extra Ice", price_adjustment_cents=0, sort_order=1),
                ModifierOption(name="No Ice", price_adjustment_cents=0, sort_order=2),
            ],
        )
        db.add_all([sauce, burger_extras, ice])

        menu = [
            # Starters
            {"name": "Loaded Nachos", "price_cents": 1199, "category": "Starters", "prep_time": 10},
            {"name": "Mozzarella Sticks", "price_cents": 899, "category": "Starters", "prep_time": 8},
            {"name": "Pretzel Bites", "price_cents": 799, "category": "Starters", "prep_time": 6},

            # Burgers
            {"name": "Classic Burger", "price_cents": 1299, "category": "Burgers", "prep_time": 15, "modifiers": [burger_extras]},
            {"name": "Smokehouse Burger", "price_cents": 1599, "category": "Burgers", "prep_time": 18, "modifiers": [burger_extras]},

            # Wings
            {"name": "Wings (10)", "price_cents": 1399, "category": "Wings", "prep_time": 20, "modifiers": [sauce]},
            {"name": "Wings (20)", "price_cents": 2499, "category": "Wings", "prep_time": 22, "modifiers": [sauce]},

            # Beer
            {"name": "House Lager (Pint)", "price_cents": 699, "category": "Beer", "type": ProductType.BEVERAGE},
            {"name": "IPA (Pint)", "price_cents": 799, "category": "Beer", "type": ProductType.BEVERAGE},
            {"name": "Pitcher of Lager", "price_cents": 1899, "category": "Beer", "type": ProductType.BEVERAGE},

            # Soft drinks
            {"name": "Cola", "price_cents": 299, "category": "Soft Drinks", "type": ProductType.BEVERAGE, "modifiers": [ice]},
            {"name": "Lemonade", "price_cents": 349, "category": "Soft Drinks", "type": ProductType.BEVERAGE, "modifiers": [ice]},
        ]

        for position, item_data in enumerate(menu):
            product = Product(
                organization_id=organization.id,
                category_id=categories[item_data["category"]].id,
                name=item_data["name"],
                type=item_data.get("type", ProductType.FOOD),
                price_cents=item_data["price_cents"],
                prep_time=item_data.get("prep_time"),
                sort_order=position,
            )
            for group_position, modifier in enumerate(item_data.get("modifiers", [])):
                product.modifier_groups.append(ProductModifierGroup(modifier=modifier, sort_order=group_position))
            db.add(product)

        await db.commit()

        print(f"""
Demo data created successfully!

Organization: {organization.name}
  ID: {organization.id}
  Tax: 8%  Service charge: 10%

Users (email / password):
""" + "\n".join(f"  {role.value:<10} {email} / {password}" for email, password, _, _, role in staff) + f"""

Tables: 12 created
Menu: {len(menu)} products created
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
