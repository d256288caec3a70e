"""
Shared constants and enumerations for the bistro services.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def all_values(cls) -> list[str]:
        return [status.value for status in cls]


class TableStatus(str, Enum):
    EMPTY = "empty"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"

    @classmethod
    def all_values(cls) -> list[str]:
        return [status.value for status in cls]


class Roles(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def all_values(cls) -> list[str]:
        return [role.value for role in cls]


class ReportGrouping(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


ACTIVE_ORDER_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY}
)
TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Kitchen screen priority: ready orders first, then preparing, then pending
ACTIVE_ORDER_PRIORITY = {
    OrderStatus.READY: 0,
    OrderStatus.PREPARING: 1,
    OrderStatus.PENDING: 2,
}

# Tables that can receive a new order
OPEN_TABLE_STATUSES = frozenset({TableStatus.EMPTY, TableStatus.RESERVED})


def _standard_transitions() -> dict[OrderStatus, frozenset[OrderStatus]]:
    # Any open status may move anywhere (staff can step back to fix mistakes);
    # completed and cancelled are final.
    transitions = {}
    for status in OrderStatus:
        if status in TERMINAL_ORDER_STATUSES:
            transitions[status] = frozenset()
        else:
            transitions[status] = frozenset(set(OrderStatus) - {status})
    return transitions


def _permissive_transitions() -> dict[OrderStatus, frozenset[OrderStatus]]:
    return {status: frozenset(set(OrderStatus) - {status}) for status in OrderStatus}


ORDER_TRANSITIONS: dict[str, dict[OrderStatus, frozenset[OrderStatus]]] = {
    "standard": _standard_transitions(),
    "permissive": _permissive_transitions(),
}

DEFAULT_TRANSITION_POLICY = "standard"

DEFAULT_TABLE_SECTION = "Main"
DEFAULT_TABLE_CAPACITY = 4
DEFAULT_DISPLAY_ORDER = 100
UNCATEGORIZED_LABEL = "Uncategorized"
CANCELLATION_NOTE_PREFIX = "Cancellation reason: "

DEFAULT_REPORT_TOP_N = 10
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
