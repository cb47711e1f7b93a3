"""Role based capability checks

One table maps each staff role to its permissions. REST dependencies and
realtime handlers both go through ``ensure_permission``.
"""

from typing import FrozenSet

from app.errors import PermissionDenied
from app.models.user import User, UserRole


VIEW_ORDERS = "view_orders"
CREATE_ORDERS = "create_orders"
UPDATE_ORDER_STATUS = "update_order_status"
PROCESS_PAYMENTS = "process_payments"
VIEW_PRODUCTS = "view_products"
MANAGE_PRODUCTS = "manage_products"
VIEW_TABLES = "view_tables"
MANAGE_TABLES = "manage_tables"
VIEW_REPORTS = "view_reports"
MANAGE_INVENTORY = "manage_inventory"
MANAGE_USERS = "manage_users"
MANAGE_SETTINGS = "manage_settings"

ALL_PERMISSIONS: FrozenSet[str] = frozenset({
    VIEW_ORDERS,
    CREATE_ORDERS,
    UPDATE_ORDER_STATUS,
    PROCESS_PAYMENTS,
    VIEW_PRODUCTS,
    MANAGE_PRODUCTS,
    VIEW_TABLES,
    MANAGE_TABLES,
    VIEW_REPORTS,
    MANAGE_INVENTORY,
    MANAGE_USERS,
    MANAGE_SETTINGS,
})

ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN: ALL_PERMISSIONS,
    UserRole.ADMIN: ALL_PERMISSIONS,
    UserRole.MANAGER: ALL_PERMISSIONS,
    UserRole.CASHIER: frozenset({
        VIEW_ORDERS, CREATE_ORDERS, PROCESS_PAYMENTS, VIEW_PRODUCTS, VIEW_TABLES,
    }),
    UserRole.WAITER: frozenset({
        VIEW_ORDERS, CREATE_ORDERS, UPDATE_ORDER_STATUS, VIEW_PRODUCTS, VIEW_TABLES, MANAGE_TABLES,
    }),
    UserRole.KITCHEN: frozenset({
        VIEW_ORDERS, UPDATE_ORDER_STATUS, VIEW_PRODUCTS, MANAGE_INVENTORY,
    }),
    UserRole.BARTENDER: frozenset({
        VIEW_ORDERS, CREATE_ORDERS, UPDATE_ORDER_STATUS, VIEW_PRODUCTS, VIEW_TABLES, MANAGE_INVENTORY,
    }),
}


def has_permission(role, permission: str) -> bool:
    """Check whether a role grants a permission"""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def ensure_permission(user: User, permission: str) -> None:
    """Raise PermissionDenied unless the user's role grants the permission"""
    if not has_permission(user.role, permission):
        raise PermissionDenied(
            "Insufficient permissions",
            details={"required": permission, "role": UserRole(user.role).value},
        )
