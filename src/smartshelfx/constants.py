"""Enumerations and lookup tables shared across SmartShelfX modules.

Centralises domain constants so that the persistent store, the state
container, the forecast gateway and the CLI rely on a single source of truth
for roles, statuses, store keys and screen permissions.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple


class UserRole(str, Enum):
    """Enumerate the closed set of roles a user can hold."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VENDOR = "VENDOR"


class TransactionType(str, Enum):
    """Direction of a stock movement."""

    IN = "IN"
    OUT = "OUT"


class OrderStatus(str, Enum):
    """Lifecycle states of a purchase order."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class RiskLevel(str, Enum):
    """Stock-out risk attached to a demand forecast."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class StoreKey(str, Enum):
    """Keys under which each collection snapshot is persisted."""

    CURRENT_USER = "ssx_user"
    USERS = "ssx_users"
    PRODUCTS = "ssx_products"
    TRANSACTIONS = "ssx_transactions"
    ORDERS = "ssx_orders"


class Screen(str, Enum):
    """Logical screens addressable through the navigation path."""

    LOGIN = "/login"
    DASHBOARD = "/dashboard"
    INVENTORY = "/inventory"
    TRANSACTIONS = "/transactions"
    FORECAST = "/forecast"
    RESTOCK = "/restock"
    ORDERS = "/orders"
    REPORTS = "/reports"
    PROFILE = "/profile"
    GUIDE = "/guide"
    USERS = "/users"


ALL_ROLES: FrozenSet[UserRole] = frozenset(UserRole)
STAFF_ROLES: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.MANAGER})

# Which roles may open each protected screen.
SCREEN_ROLES: Dict[Screen, FrozenSet[UserRole]] = {
    Screen.DASHBOARD: ALL_ROLES,
    Screen.INVENTORY: ALL_ROLES,
    Screen.TRANSACTIONS: STAFF_ROLES,
    Screen.FORECAST: STAFF_ROLES,
    Screen.RESTOCK: STAFF_ROLES,
    Screen.ORDERS: ALL_ROLES,
    Screen.REPORTS: STAFF_ROLES,
    Screen.USERS: STAFF_ROLES,
    Screen.PROFILE: ALL_ROLES,
    Screen.GUIDE: ALL_ROLES,
}

# (role, current status) -> statuses the screen layer offers as next steps.
ORDER_ACTIONS: Dict[Tuple[UserRole, OrderStatus], Tuple[OrderStatus, ...]] = {
    (UserRole.VENDOR, OrderStatus.PENDING): (OrderStatus.APPROVED, OrderStatus.CANCELLED),
    (UserRole.VENDOR, OrderStatus.APPROVED): (OrderStatus.SHIPPED,),
    (UserRole.ADMIN, OrderStatus.PENDING): (OrderStatus.CANCELLED,),
    (UserRole.ADMIN, OrderStatus.SHIPPED): (OrderStatus.DELIVERED,),
    (UserRole.MANAGER, OrderStatus.PENDING): (OrderStatus.CANCELLED,),
    (UserRole.MANAGER, OrderStatus.SHIPPED): (OrderStatus.DELIVERED,),
}

ROLE_CAPABILITIES: Dict[UserRole, Tuple[str, ...]] = {
    UserRole.ADMIN: (
        "Full System Access",
        "Manage Inventory (Add, Edit, Delete)",
        "Perform Stock In/Out Transactions",
        "View AI Forecasts & Predictions",
        "Generate & Approve Purchase Orders",
        "Access Financial & Activity Reports",
        "User Management",
    ),
    UserRole.MANAGER: (
        "Manage Inventory (Add, Edit)",
        "Perform Stock In/Out Transactions",
        "View AI Forecasts",
        "Generate Purchase Orders (Approval required by Admin)",
        "Access Activity Reports",
    ),
    UserRole.VENDOR: (
        "View Products supplied by you",
        "View Inventory Levels (Read-only)",
        "Receive Purchase Orders",
        "Update Dispatch Status",
    ),
}

AUTO_RESTOCK_HANDLER = "Auto-Restock System"
DEMO_USER_NAME = "Demo User"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
ORDER_ID_PREFIX = "PO-"
ORDER_ID_RANGE = 10000

# Products at or below ``reorderLevel * RESTOCK_TRIGGER_FACTOR`` are sent to
# the model for restock analysis.
RESTOCK_TRIGGER_FACTOR = 1.5
RESTOCK_FALLBACK_MULTIPLIER = 3
RESTOCK_FALLBACK_REASON = "Stock fell below reorder level threshold."
FORECAST_FALLBACK_CONFIDENCE = 85
FORECAST_FALLBACK_DEMAND_RANGE = (1, 20)
ASSISTANT_SAMPLE_SIZE = 10
ASSISTANT_NO_CREDENTIAL_REPLY = "I cannot access the AI service right now. Please check your API key."
ASSISTANT_FAILURE_REPLY = "I'm having trouble analyzing the inventory right now. Please try again later."


__all__ = [
    "UserRole",
    "TransactionType",
    "OrderStatus",
    "RiskLevel",
    "StoreKey",
    "Screen",
    "ALL_ROLES",
    "STAFF_ROLES",
    "SCREEN_ROLES",
    "ORDER_ACTIONS",
    "ROLE_CAPABILITIES",
    "AUTO_RESTOCK_HANDLER",
    "DEMO_USER_NAME",
    "TIMESTAMP_FORMAT",
    "ORDER_ID_PREFIX",
    "ORDER_ID_RANGE",
    "RESTOCK_TRIGGER_FACTOR",
    "RESTOCK_FALLBACK_MULTIPLIER",
    "RESTOCK_FALLBACK_REASON",
    "FORECAST_FALLBACK_CONFIDENCE",
    "FORECAST_FALLBACK_DEMAND_RANGE",
    "ASSISTANT_SAMPLE_SIZE",
    "ASSISTANT_NO_CREDENTIAL_REPLY",
    "ASSISTANT_FAILURE_REPLY",
]
