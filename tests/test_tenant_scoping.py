"""Tests for organization scoping and isolation"""

import pytest
from httpx import AsyncClient
from uuid import uuid4

from app.models import Product, DiningTable, UserRole
from conftest import auth_headers


@pytest.mark.asyncio
async def test_organization_isolation_products(test_db, other_organization, catalog, waiter_headers, client: AsyncClient):
    """Products of another organization never show up"""
    test_db.add(Product(
        id=uuid4(),
        organization_id=other_organization.id,
        name="Sushi Roll",
        price_cents=1899,
    ))
    await test_db.commit()

    response = await client.get("/api/v1/products", params={"search": "sushi"}, headers=waiter_headers)

    assert response.status_code == 200
    assert response.json()["items"] == []


@pytest.mark.asyncio
async def test_cached_product_detail_is_not_shared(
    make_user, other_organization, catalog, waiter_headers, client: AsyncClient
):
    """A detail cached for one organization is not served to another"""
    burger_id = catalog["burger"]
    outsider = await make_user(UserRole.MANAGER, organization_id=other_organization.id)
    outsider_headers = auth_headers(outsider)

    response = await client.get(f"/api/v1/products/{burger_id}", headers=waiter_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/v1/products/{burger_id}", headers=outsider_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_organization_isolation_tables(test_db, other_organization, table, waiter_headers, client: AsyncClient):
    """Tables are listed and changed within the caller's organization only"""
    foreign = DiningTable(id=uuid4(), organization_id=other_organization.id, number="5")
    test_db.add(foreign)
    await test_db.commit()
    foreign_id = foreign.id

    response = await client.get("/api/v1/tables", headers=waiter_headers)
    assert [t["id"] for t in response.json()] == [str(table.id)]

    response = await client.patch(
        f"/api/v1/tables/{foreign_id}/status", json={"status": "cleaning"}, headers=waiter_headers
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "TABLE_NOT_FOUND"


@pytest.mark.asyncio
async def test_orders_cannot_seat_foreign_tables(test_db, other_organization, catalog, waiter_headers, client: AsyncClient):
    foreign = DiningTable(id=uuid4(), organization_id=other_organization.id, number="9")
    test_db.add(foreign)
    await test_db.commit()

    response = await client.post("/api/v1/orders", json={
        "table_id": str(foreign.id),
        "items": [{"product_id": str(catalog["burger"]), "quantity": 1}],
    }, headers=waiter_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "TABLE_NOT_FOUND"


@pytest.mark.asyncio
async def test_order_lists_are_scoped(make_user, other_organization, catalog, waiter_headers, client: AsyncClient):
    outsider = await make_user(UserRole.MANAGER, organization_id=other_organization.id)
    outsider_headers = auth_headers(outsider)

    response = await client.post("/api/v1/orders", json={
        "items": [{"product_id": str(catalog["burger"]), "quantity": 1}],
    }, headers=waiter_headers)
    assert response.status_code == 201

    response = await client.get("/api/v1/orders", headers=outsider_headers)
    assert response.json()["total"] == 0
