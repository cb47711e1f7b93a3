"""Table status changes"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError
from app.models.table import DiningTable, TableStatus
from app.models.user import User
from app.realtime.relay import RealtimeRelay

logger = structlog.get_logger()


async def get_table(db: AsyncSession, organization_id, table_id) -> DiningTable:
    result = await db.execute(
        select(DiningTable).where(
            DiningTable.id == table_id,
            DiningTable.organization_id == organization_id,
            DiningTable.is_active == True,
        )
    )
    table = result.scalar_one_or_none()
    if not table:
        raise NotFoundError("Table not found", error_code="TABLE_NOT_FOUND")
    return table


async def set_table_status(
    db: AsyncSession,
    relay: RealtimeRelay,
    organization_id,
    table_id,
    status: TableStatus,
    user: Optional[User] = None,
) -> DiningTable:
    try:
        table = await get_table(db, organization_id, table_id)
        table.status = TableStatus(status)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Table status updated", table_id=str(table.id), status=table.status.value)
    await relay.emit_to_organization(organization_id, "tableStatusChanged", {
        "tableId": str(table.id),
        "tableNumber": table.number,
        "status": table.status.value,
        "updatedBy": str(user.id) if user else None,
    })
    return table
