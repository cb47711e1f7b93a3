"""Tests for order creation, status changes and payments"""

from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert, select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderNumberSequence,
    OrderStatus,
    Product,
    ProductStatus,
    UserRole,
)
from app.services import orders as order_service
from app.services.orders import allocate_order_number
from conftest import auth_headers


API = "/api/v1"


def order_payload(catalog, table_id=None, **extra) -> dict:
    payload = {
        "items": [
            {"product_id": str(catalog["burger"]), "quantity": 2},
            {"product_id": str(catalog["cola"]), "quantity": 1},
        ],
        **extra,
    }
    if table_id is not None:
        payload["table_id"] = str(table_id)
    return payload


async def place_order(client: AsyncClient, headers: dict, catalog, table_id=None, **extra) -> dict:
    response = await client.post(f"{API}/orders", json=order_payload(catalog, table_id, **extra), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def set_status(client: AsyncClient, headers: dict, order_id, status: str):
    return await client.patch(f"{API}/orders/{order_id}/status", json={"status": status}, headers=headers)


async def table_status(client: AsyncClient, headers: dict, table_id) -> dict:
    response = await client.get(f"{API}/tables", headers=headers)
    assert response.status_code == 200
    return next(t for t in response.json() if t["id"] == str(table_id))


@pytest.mark.asyncio
async def test_create_order_prices_and_numbers(client: AsyncClient, waiter_headers, catalog, table, relay):
    table_id = table.id
    order = await place_order(client, waiter_headers, catalog, table_id, guest_count=3)

    assert order["status"] == "pending"
    assert order["subtotal_cents"] == 2897
    assert order["tax_cents"] == 232
    assert order["service_charge_cents"] == 290
    assert order["total_cents"] == 3419
    assert order["guest_count"] == 3
    assert order["table_number"] == "5"
    assert order["order_number"] == f"ORD-{datetime.utcnow():%Y%m%d}-0001"
    assert len(order["items"]) == 2
    assert {item["product_name"] for item in order["items"]} == {"Burger", "Cola"}
    assert all(item["status"] == "pending" for item in order["items"])

    # Longest prep time wins: the burger takes 20 minutes
    created = datetime.fromisoformat(order["created_at"])
    ready = datetime.fromisoformat(order["estimated_ready_time"])
    assert ready - created == timedelta(minutes=20)

    seated = await table_status(client, waiter_headers, table_id)
    assert seated["status"] == "occupied"
    assert [o["id"] for o in seated["current_orders"]] == [order["id"]]

    new_orders = relay.named("newOrder")
    assert len(new_orders) == 1
    assert new_orders[0]["order_number"] == order["order_number"]


@pytest.mark.asyncio
async def test_create_order_with_modifiers(client: AsyncClient, waiter_headers, catalog):
    response = await client.post(f"{API}/orders", json={
        "type": "takeout",
        "items": [{
            "product_id": str(catalog["cola"]),
            "quantity": 2,
            "modifiers": [{"option_id": str(catalog["lime"])}],
        }],
    }, headers=waiter_headers)

    assert response.status_code == 201, response.text
    order = response.json()
    item = order["items"][0]
    assert item["unit_price_cents"] == 299
    assert item["total_price_cents"] == 698
    assert item["modifiers"][0]["name"] == "Lime"
    assert item["modifiers"][0]["unit_price_cents"] == 50
    assert order["subtotal_cents"] == 698
    assert order["type"] == "takeout"
    assert order["table_id"] is None


@pytest.mark.asyncio
async def test_modifier_not_offered_by_product(client: AsyncClient, waiter_headers, catalog):
    response = await client.post(f"{API}/orders", json={
        "items": [{
            "product_id": str(catalog["burger"]),
            "quantity": 1,
            "modifiers": [{"option_id": str(catalog["lime"])}],
        }],
    }, headers=waiter_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "MODIFIER_UNAVAILABLE"


@pytest.mark.asyncio
async def test_withdrawn_product_cannot_be_ordered(client: AsyncClient, test_db, waiter_headers, catalog, relay):
    response = await client.post(f"{API}/orders", json={
        "items": [
            {"product_id": str(catalog["burger"]), "quantity": 1},
            {"product_id": str(catalog["nachos"]), "quantity": 1},
        ],
    }, headers=waiter_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "PRODUCT_UNAVAILABLE"
    assert body["errors"]["product_ids"] == [str(catalog["nachos"])]

    assert await test_db.scalar(select(func.count(Order.id))) == 0
    assert relay.named("newOrder") == []


@pytest.mark.parametrize("change", [{"is_active": False}, {"status": ProductStatus.UNAVAILABLE}])
@pytest.mark.asyncio
async def test_unorderable_product_leaves_nothing_behind(
    client: AsyncClient, test_db, organization, waiter_headers, catalog, table, relay, change
):
    table_id = table.id
    product = Product(id=uuid4(), organization_id=organization.id, name="Wings", price_cents=1099, **change)
    test_db.add(product)
    await test_db.commit()
    product_id = product.id

    response = await client.post(f"{API}/orders", json={
        "table_id": str(table_id),
        "items": [
            {"product_id": str(catalog["burger"]), "quantity": 1},
            {"product_id": str(product_id), "quantity": 1},
        ],
    }, headers=waiter_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "PRODUCT_UNAVAILABLE"
    assert response.json()["errors"]["product_ids"] == [str(product_id)]

    assert await test_db.scalar(select(func.count(Order.id))) == 0
    assert await test_db.scalar(select(func.count(OrderItem.id))) == 0
    assert (await table_status(client, waiter_headers, table_id))["status"] == "available"
    assert relay.named("newOrder") == []


@pytest.mark.asyncio
async def test_order_requires_items(client: AsyncClient, waiter_headers, catalog):
    response = await client.post(f"{API}/orders", json={"items": []}, headers=waiter_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_table_is_rejected(client: AsyncClient, waiter_headers, catalog):
    response = await client.post(f"{API}/orders", json=order_payload(catalog, uuid4()), headers=waiter_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "TABLE_NOT_FOUND"


@pytest.mark.asyncio
async def test_order_numbers_increment_per_day(client: AsyncClient, waiter_headers, catalog):
    first = await place_order(client, waiter_headers, catalog)
    second = await place_order(client, waiter_headers, catalog)

    today = f"{datetime.utcnow():%Y%m%d}"
    assert first["order_number"] == f"ORD-{today}-0001"
    assert second["order_number"] == f"ORD-{today}-0002"


@pytest.mark.asyncio
async def test_order_number_skips_numbers_already_taken(client: AsyncClient, test_db, waiter, waiter_headers, catalog):
    organization_id = waiter.organization_id
    waiter_id = waiter.id
    today = f"{datetime.utcnow():%Y%m%d}"

    first = await place_order(client, waiter_headers, catalog)
    assert first["order_number"] == f"ORD-{today}-0001"

    # A number handed out outside the counter
    test_db.add(Order(
        organization_id=organization_id,
        order_number=f"ORD-{today}-0002",
        waiter_id=waiter_id,
        status=OrderStatus.PENDING,
    ))
    await test_db.commit()

    second = await place_order(client, waiter_headers, catalog)
    assert second["order_number"] == f"ORD-{today}-0003"


@pytest.mark.asyncio
async def test_order_number_when_counter_is_seeded_concurrently(test_db, organization, monkeypatch):
    """Another order seeds the day's counter between our count and our insert"""
    organization_id = organization.id
    now = datetime(2024, 3, 1, 18, 30)
    scalar = test_db.scalar
    seeded = []

    async def scalar_then_seed(statement, *args, **kwargs):
        result = await scalar(statement, *args, **kwargs)
        if not seeded:
            seeded.append(True)
            await test_db.execute(insert(OrderNumberSequence).values(
                organization_id=organization_id,
                business_date=now.date(),
                last_value=1,
            ))
        return result

    monkeypatch.setattr(test_db, "scalar", scalar_then_seed)

    number = await allocate_order_number(test_db, organization_id, now)

    assert seeded
    assert number == "ORD-20240301-0002"
    sequence = await test_db.get(OrderNumberSequence, (organization_id, now.date()))
    assert sequence.last_value == 2


@pytest.mark.asyncio
async def test_status_update_sets_timestamp_and_broadcasts(client: AsyncClient, waiter_headers, catalog, relay):
    order = await place_order(client, waiter_headers, catalog)

    response = await set_status(client, waiter_headers, order["id"], "confirmed")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["confirmed_at"] is not None

    events = relay.named("orderStatusChanged")
    assert events[-1]["orderId"] == order["id"]
    assert events[-1]["status"] == "confirmed"
    assert events[-1]["previousStatus"] == "pending"


@pytest.mark.asyncio
async def test_invalid_status_transition(client: AsyncClient, waiter_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)

    response = await set_status(client, waiter_headers, order["id"], "served")

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "INVALID_STATUS_TRANSITION"
    assert body["errors"] == {"current": "pending", "requested": "served"}


@pytest.mark.asyncio
async def test_paid_cannot_be_set_directly(client: AsyncClient, waiter_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)
    await set_status(client, waiter_headers, order["id"], "ready")

    response = await set_status(client, waiter_headers, order["id"], "paid")

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_serving_releases_table(client: AsyncClient, waiter_headers, catalog, table, relay):
    table_id = table.id
    order = await place_order(client, waiter_headers, catalog, table_id)

    await set_status(client, waiter_headers, order["id"], "ready")
    response = await set_status(client, waiter_headers, order["id"], "served")
    assert response.status_code == 200
    assert response.json()["served_at"] is not None

    assert (await table_status(client, waiter_headers, table_id))["status"] == "available"
    released = relay.named("tableStatusChanged")[-1]
    assert released["tableId"] == str(table_id)
    assert released["tableNumber"] == "5"
    assert released["status"] == "available"


@pytest.mark.asyncio
async def test_table_stays_occupied_while_another_order_is_open(client: AsyncClient, waiter_headers, catalog, table):
    table_id = table.id
    first = await place_order(client, waiter_headers, catalog, table_id)
    second = await place_order(client, waiter_headers, catalog, table_id)

    await set_status(client, waiter_headers, first["id"], "cancelled")
    assert (await table_status(client, waiter_headers, table_id))["status"] == "occupied"

    await set_status(client, waiter_headers, second["id"], "cancelled")
    assert (await table_status(client, waiter_headers, table_id))["status"] == "available"


@pytest.mark.asyncio
async def test_all_items_ready_marks_order_ready(client: AsyncClient, waiter_headers, kitchen_headers, catalog, relay):
    order = await place_order(client, waiter_headers, catalog)
    first, second = order["items"]

    response = await client.patch(
        f"{API}/orders/{order['id']}/items/{first['id']}/status",
        json={"status": "preparing"},
        headers=kitchen_headers,
    )
    assert response.status_code == 200
    assert response.json()["started_at"] is not None

    await client.patch(
        f"{API}/orders/{order['id']}/items/{first['id']}/status", json={"status": "ready"}, headers=kitchen_headers
    )
    detail = (await client.get(f"{API}/orders/{order['id']}", headers=waiter_headers)).json()
    assert detail["status"] == "pending"

    response = await client.patch(
        f"{API}/orders/{order['id']}/items/{second['id']}/status", json={"status": "ready"}, headers=kitchen_headers
    )
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None

    detail = (await client.get(f"{API}/orders/{order['id']}", headers=waiter_headers)).json()
    assert detail["status"] == "ready"
    assert detail["ready_at"] is not None

    item_events = relay.named("orderItemStatusChanged")
    assert len(item_events) == 3
    status_events = relay.named("orderStatusChanged")
    assert len(status_events) == 1
    assert status_events[0]["status"] == "ready"


@pytest.mark.asyncio
async def test_item_status_cannot_go_backwards(client: AsyncClient, waiter_headers, kitchen_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)
    item_id = order["items"][0]["id"]
    url = f"{API}/orders/{order['id']}/items/{item_id}/status"

    await client.patch(url, json={"status": "ready"}, headers=kitchen_headers)
    response = await client.patch(url, json={"status": "preparing"}, headers=kitchen_headers)

    assert response.status_code == 409
    assert response.json()["error_code"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.asyncio
async def test_item_update_in_a_fresh_session(client: AsyncClient, test_db, waiter_headers, kitchen, catalog, relay):
    response = await client.post(f"{API}/orders", json={
        "items": [{"product_id": str(catalog["burger"]), "quantity": 1}],
    }, headers=waiter_headers)
    order = response.json()
    organization_id = kitchen.organization_id
    item_id = UUID(order["items"][0]["id"])

    sessions = async_sessionmaker(test_db.bind, class_=AsyncSession, expire_on_commit=False)
    async with sessions() as db:
        item = await order_service.update_order_item_status(
            db, relay, organization_id, item_id, OrderItemStatus.READY, kitchen
        )
        assert OrderItemStatus(item.status) == OrderItemStatus.READY

    async with sessions() as db:
        stored = await db.get(Order, UUID(order["id"]))
        assert OrderStatus(stored.status) == OrderStatus.READY

    assert relay.named("orderStatusChanged")[0]["status"] == "ready"


@pytest.mark.asyncio
async def test_items_of_cancelled_order_are_frozen(client: AsyncClient, waiter_headers, kitchen_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)
    await set_status(client, waiter_headers, order["id"], "cancelled")

    response = await client.patch(
        f"{API}/orders/{order['id']}/items/{order['items'][0]['id']}/status",
        json={"status": "preparing"},
        headers=kitchen_headers,
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ORDER_CLOSED"


@pytest.mark.asyncio
async def test_unknown_item_is_not_found(client: AsyncClient, waiter_headers, kitchen_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)

    response = await client.patch(
        f"{API}/orders/{order['id']}/items/{uuid4()}/status", json={"status": "ready"}, headers=kitchen_headers
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "ORDER_ITEM_NOT_FOUND"


@pytest.mark.asyncio
async def test_payment_requires_ready_or_served(client: AsyncClient, waiter_headers, cashier_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)

    response = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={"method": "card", "amount_cents": 3419},
        headers=cashier_headers,
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "PAYMENT_NOT_ALLOWED"


@pytest.mark.asyncio
async def test_split_payment_closes_order(client: AsyncClient, waiter_headers, cashier_headers, catalog, table, relay):
    table_id = table.id
    order = await place_order(client, waiter_headers, catalog, table_id)
    await set_status(client, waiter_headers, order["id"], "ready")
    url = f"{API}/orders/{order['id']}/payments"

    response = await client.post(url, json={"method": "card", "amount_cents": 2000}, headers=cashier_headers)
    assert response.status_code == 201
    assert response.json()["change_cents"] == 0

    detail = (await client.get(f"{API}/orders/{order['id']}", headers=cashier_headers)).json()
    assert detail["status"] == "ready"

    response = await client.post(url, json={
        "method": "cash",
        "amount_cents": 1419,
        "tip_cents": 100,
        "tendered_cents": 2000,
    }, headers=cashier_headers)
    assert response.status_code == 201
    payment = response.json()
    assert payment["change_cents"] == 481
    assert payment["tip_cents"] == 100

    detail = (await client.get(f"{API}/orders/{order['id']}", headers=cashier_headers)).json()
    assert detail["status"] == "paid"
    assert detail["paid_at"] is not None
    assert sum(p["amount_cents"] for p in detail["payments"]) == detail["total_cents"]

    assert (await table_status(client, waiter_headers, table_id))["status"] == "available"
    assert relay.named("orderStatusChanged")[-1]["status"] == "paid"

    response = await client.post(url, json={"method": "card", "amount_cents": 1}, headers=cashier_headers)
    assert response.status_code == 409
    assert response.json()["error_code"] == "PAYMENT_NOT_ALLOWED"


@pytest.mark.asyncio
async def test_payment_over_balance_is_rejected(client: AsyncClient, waiter_headers, cashier_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)
    await set_status(client, waiter_headers, order["id"], "ready")

    response = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={"method": "card", "amount_cents": 5000},
        headers=cashier_headers,
    )

    assert response.status_code == 400
    assert response.json()["errors"] == {"balance_cents": 3419}


@pytest.mark.asyncio
async def test_cash_tendered_must_cover_amount_and_tip(client: AsyncClient, waiter_headers, cashier_headers, catalog):
    order = await place_order(client, waiter_headers, catalog)
    await set_status(client, waiter_headers, order["id"], "ready")

    response = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={"method": "cash", "amount_cents": 3419, "tip_cents": 500, "tendered_cents": 3500},
        headers=cashier_headers,
    )

    assert response.status_code == 400
    assert response.json()["errors"] == {"due_cents": 3919}


@pytest.mark.asyncio
async def test_list_orders_filters_and_counts_items(client: AsyncClient, waiter_headers, catalog, table):
    table_id = table.id
    seated = await place_order(client, waiter_headers, catalog, table_id)
    takeout = await place_order(client, waiter_headers, catalog)
    await set_status(client, waiter_headers, takeout["id"], "cancelled")

    response = await client.get(f"{API}/orders", headers=waiter_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["page"] == 1
    assert all(order["item_count"] == 2 for order in body["items"])

    response = await client.get(f"{API}/orders", params={"status": "pending"}, headers=waiter_headers)
    body = response.json()
    assert [order["id"] for order in body["items"]] == [seated["id"]]
    assert body["items"][0]["table_number"] == "5"

    response = await client.get(f"{API}/orders", params={"table_id": str(table_id)}, headers=waiter_headers)
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_role_permissions_on_orders(client: AsyncClient, waiter_headers, kitchen_headers, cashier_headers, catalog):
    response = await client.post(f"{API}/orders", json=order_payload(catalog), headers=kitchen_headers)
    assert response.status_code == 403
    assert response.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"

    order = await place_order(client, cashier_headers, catalog)
    response = await set_status(client, cashier_headers, order["id"], "confirmed")
    assert response.status_code == 403

    response = await client.post(
        f"{API}/orders/{order['id']}/payments", json={"method": "card", "amount_cents": 100}, headers=waiter_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_orders_require_authentication(client: AsyncClient, catalog):
    response = await client.get(f"{API}/orders")

    assert response.status_code == 401
    assert response.json()["error_code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_order_of_other_organization_is_not_found(
    client: AsyncClient, make_user, other_organization, waiter_headers, catalog
):
    order = await place_order(client, waiter_headers, catalog)
    outsider = await make_user(UserRole.MANAGER, organization_id=other_organization.id)
    headers = auth_headers(outsider)

    response = await client.get(f"{API}/orders/{order['id']}", headers=headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    response = await set_status(client, headers, order["id"], "cancelled")
    assert response.status_code == 404

    response = await client.post(f"{API}/orders", json=order_payload(catalog), headers=headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "PRODUCT_UNAVAILABLE"
