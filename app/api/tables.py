"""Table API endpoints"""

from typing import List
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_permission
from app.database import get_db
from app.models.order import Order, ACTIVE_ORDER_STATUSES
from app.models.table import DiningTable
from app.models.user import User
from app.permissions import VIEW_TABLES, MANAGE_TABLES
from app.realtime.relay import RealtimeRelay, get_relay
from app.schemas.table import TableCreate, TableStatusUpdate, TableResponse, TableOrderSummary
from app.services.tables import set_table_status

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[TableResponse])
async def list_tables(
    current_user: User = Depends(require_permission(VIEW_TABLES)),
    db: AsyncSession = Depends(get_db),
):
    """List active tables with their open orders"""
    organization_id = current_user.organization_id
    result = await db.execute(
        select(DiningTable)
        .where(DiningTable.organization_id == organization_id, DiningTable.is_active == True)
        .order_by(DiningTable.number)
    )
    tables = result.scalars().all()

    orders_result = await db.execute(
        select(Order)
        .where(
            Order.organization_id == organization_id,
            Order.table_id.is_not(None),
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
        .order_by(Order.created_at)
    )
    open_orders = {}
    for order in orders_result.scalars().all():
        open_orders.setdefault(order.table_id, []).append(TableOrderSummary.model_validate(order))

    response = []
    for table in tables:
        item = TableResponse.model_validate(table)
        item.current_orders = open_orders.get(table.id, [])
        response.append(item)
    return response


@router.post("", response_model=TableResponse, status_code=201)
async def create_table(
    table_data: TableCreate,
    current_user: User = Depends(require_permission(MANAGE_TABLES)),
    db: AsyncSession = Depends(get_db),
):
    """Create a table"""
    table = DiningTable(organization_id=current_user.organization_id, **table_data.model_dump())
    db.add(table)
    await db.commit()
    await db.refresh(table)

    logger.info("Table created", table_id=str(table.id), number=table.number)
    return TableResponse.model_validate(table)


@router.patch("/{table_id}/status", response_model=TableResponse)
async def update_table_status(
    table_id: UUID,
    status_data: TableStatusUpdate,
    current_user: User = Depends(require_permission(MANAGE_TABLES)),
    db: AsyncSession = Depends(get_db),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Set a table's status"""
    table = await set_table_status(
        db, relay, current_user.organization_id, table_id, status_data.status, current_user
    )
    return TableResponse.model_validate(table)
