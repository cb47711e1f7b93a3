"""Tests for daily summaries and background jobs"""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from app.cache import daily_summary_key
from app.jobs.tasks import generate_daily_summaries_for, notify_overdue_orders_for
from app.models import Order, OrderStatus


def make_order(organization, waiter, number, status, total_cents, created_at, guests=2, **extra) -> Order:
    return Order(
        organization_id=organization.id,
        order_number=f"ORD-{created_at:%Y%m%d}-{number:04d}",
        waiter_id=waiter.id,
        status=status,
        guest_count=guests,
        subtotal_cents=total_cents,
        total_cents=total_cents,
        created_at=created_at,
        **extra,
    )


@pytest.fixture
async def business_day(test_db, organization, waiter):
    """Two paid orders, one cancelled, one paid the day before"""
    day = datetime(2024, 3, 1, 12, 0)
    test_db.add_all([
        make_order(organization, waiter, 1, OrderStatus.PAID, 3419, day, guests=3),
        make_order(organization, waiter, 2, OrderStatus.PAID, 1581, day + timedelta(hours=6), guests=1),
        make_order(organization, waiter, 3, OrderStatus.CANCELLED, 999, day + timedelta(hours=7)),
        make_order(organization, waiter, 1, OrderStatus.PAID, 5000, day - timedelta(days=1)),
    ])
    await test_db.commit()
    return day.date()


@pytest.mark.asyncio
async def test_daily_summary_counts_paid_orders(client: AsyncClient, manager_headers, business_day):
    response = await client.get(
        "/api/v1/reports/daily-summary", params={"day": business_day.isoformat()}, headers=manager_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["day"] == "2024-03-01"
    assert data["order_count"] == 2
    assert data["revenue_cents"] == 5000
    assert data["average_order_cents"] == 2500
    assert data["guest_count"] == 4


@pytest.mark.asyncio
async def test_daily_summary_is_cached(client: AsyncClient, test_cache, organization, manager_headers, business_day):
    organization_id = organization.id
    await client.get("/api/v1/reports/daily-summary", params={"day": "2024-03-01"}, headers=manager_headers)

    cached = await test_cache.get_json(daily_summary_key(organization_id, "2024-03-01"))
    assert cached["revenue_cents"] == 5000


@pytest.mark.asyncio
async def test_empty_day(client: AsyncClient, manager_headers, organization):
    response = await client.get("/api/v1/reports/daily-summary", params={"day": "2023-12-25"}, headers=manager_headers)

    assert response.json()["order_count"] == 0
    assert response.json()["average_order_cents"] == 0


@pytest.mark.asyncio
async def test_reports_need_permission(client: AsyncClient, waiter_headers):
    response = await client.get("/api/v1/reports/daily-summary", headers=waiter_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_generate_daily_summaries_job(test_db, test_cache, organization, other_organization, business_day):
    organization_id = organization.id

    count = await generate_daily_summaries_for(test_db, test_cache, business_day)

    assert count == 2
    cached = await test_cache.get_json(daily_summary_key(organization_id, "2024-03-01"))
    assert cached["order_count"] == 2
    other = await test_cache.get_json(daily_summary_key(other_organization.id, "2024-03-01"))
    assert other["order_count"] == 0


@pytest.mark.asyncio
async def test_notify_overdue_orders_job(test_db, organization, waiter, relay):
    now = datetime(2024, 3, 1, 20, 0)
    test_db.add_all([
        make_order(organization, waiter, 1, OrderStatus.PREPARING, 1000, now - timedelta(minutes=40),
                   estimated_ready_time=now - timedelta(minutes=25)),
        make_order(organization, waiter, 2, OrderStatus.PREPARING, 1000, now - timedelta(minutes=5),
                   estimated_ready_time=now + timedelta(minutes=10)),
        make_order(organization, waiter, 3, OrderStatus.READY, 1000, now - timedelta(minutes=40),
                   estimated_ready_time=now - timedelta(minutes=25)),
    ])
    await test_db.commit()

    count = await notify_overdue_orders_for(test_db, relay, now=now)

    assert count == 1
    overdue = relay.named("orderOverdue")
    assert len(overdue) == 1
    assert overdue[0]["orderNumber"] == "ORD-20240301-0001"
    assert overdue[0]["minutesOverdue"] == 25


@pytest.mark.asyncio
async def test_todays_summary_includes_new_payments(
    client: AsyncClient, test_cache, organization, catalog, waiter_headers, cashier_headers, manager_headers
):
    organization_id = organization.id
    before = (await client.get("/api/v1/reports/daily-summary", headers=manager_headers)).json()
    assert before["order_count"] == 0

    response = await client.post("/api/v1/orders", json={
        "items": [{"product_id": str(catalog["burger"]), "quantity": 1}],
    }, headers=waiter_headers)
    order = response.json()
    await client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "ready"}, headers=waiter_headers)
    response = await client.post(f"/api/v1/orders/{order['id']}/payments", json={
        "method": "card",
        "amount_cents": order["total_cents"],
    }, headers=cashier_headers)
    assert response.status_code == 201

    after = (await client.get("/api/v1/reports/daily-summary", headers=manager_headers)).json()
    assert after["order_count"] == 1
    assert after["revenue_cents"] == order["total_cents"]
    assert await test_cache.get_json(daily_summary_key(organization_id, after["day"])) is None


@pytest.mark.asyncio
async def test_late_payment_refreshes_a_closed_day(
    client: AsyncClient, test_db, organization, waiter, cashier_headers, manager_headers
):
    day = datetime(2024, 3, 1, 23, 30)
    order = make_order(organization, waiter, 1, OrderStatus.SERVED, 1500, day)
    test_db.add(order)
    await test_db.commit()
    order_id = order.id

    before = await client.get("/api/v1/reports/daily-summary", params={"day": "2024-03-01"}, headers=manager_headers)
    assert before.json()["order_count"] == 0

    response = await client.post(f"/api/v1/orders/{order_id}/payments", json={
        "method": "cash",
        "amount_cents": 1500,
        "tendered_cents": 2000,
    }, headers=cashier_headers)
    assert response.status_code == 201

    after = await client.get("/api/v1/reports/daily-summary", params={"day": "2024-03-01"}, headers=manager_headers)
    assert after.json()["order_count"] == 1
    assert after.json()["revenue_cents"] == 1500
