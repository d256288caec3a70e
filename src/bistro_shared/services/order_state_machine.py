"""
Order state machine.

Keeps the status transition rules out of the order service. The transition
table is chosen by policy name (see ``ORDER_TRANSITIONS``):

- ``standard``: open orders (pending, preparing, ready) may move to any other
  status, including back a step; completed and cancelled are final.
- ``permissive``: any status may move to any other status.

Setting an order to the status it already has is always accepted and changes
nothing. Side effects on the owning table happen only when an order crosses
between open and final statuses.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import object_session

from ..constants import (
    ACTIVE_ORDER_STATUSES,
    DEFAULT_TRANSITION_POLICY,
    ORDER_TRANSITIONS,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    TableStatus,
)
from ..datetime_utils import utcnow
from ..errors import ConflictError
from ..logging_config import get_logger
from ..models import Order, Table

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    previous_status: OrderStatus
    status: OrderStatus
    changed: bool
    table_released: bool = False
    table_occupied: bool = False


class OrderStateMachine:
    """
    Validates and applies order status transitions.

    Responsibilities:
    - decide whether a transition is allowed under the configured policy
    - stamp ``completed_at`` on the first move into completed
    - free the table when an open order becomes final
    - re-occupy the table when a final order is reopened (permissive policy)
    """

    def __init__(self, policy: str = DEFAULT_TRANSITION_POLICY):
        if policy not in ORDER_TRANSITIONS:
            raise ValueError(
                f"Unknown transition policy '{policy}'. Expected one of: "
                f"{', '.join(sorted(ORDER_TRANSITIONS))}"
            )
        self.policy = policy
        self._transitions = ORDER_TRANSITIONS[policy]
        self._handlers: dict[str, Callable[[Order, OrderStatus], bool]] = {
            "close": self._handle_close,
            "reopen": self._handle_reopen,
        }

    def can_transition(self, current: OrderStatus | str, target: OrderStatus | str) -> bool:
        current, target = OrderStatus(current), OrderStatus(target)
        if current is target:
            return True
        return target in self._transitions[current]

    def validate_transition(self, current: OrderStatus | str, target: OrderStatus | str) -> None:
        if not self.can_transition(current, target):
            raise ConflictError(
                f"Order cannot move from '{OrderStatus(current).value}' to "
                f"'{OrderStatus(target).value}'"
            )

    def apply_transition(self, order: Order, target: OrderStatus | str) -> TransitionResult:
        """Apply a validated transition to ``order`` inside the caller's session."""
        target = OrderStatus(target)
        previous = OrderStatus(order.status)
        self.validate_transition(previous, target)

        if previous is target:
            return TransitionResult(previous, target, changed=False)

        now = utcnow()
        order.status = target.value
        order.updated_at = now
        if target is OrderStatus.COMPLETED and order.completed_at is None:
            order.completed_at = now

        released = occupied = False
        was_final = previous in TERMINAL_ORDER_STATUSES
        is_final = target in TERMINAL_ORDER_STATUSES
        if is_final and not was_final:
            released = self._handlers["close"](order, target)
        elif was_final and not is_final:
            occupied = self._handlers["reopen"](order, target)

        logger.info(
            "Order status changed",
            extra={
                "order_id": order.id,
                "from_status": previous.value,
                "to_status": target.value,
                "policy": self.policy,
            },
        )
        return TransitionResult(
            previous, target, changed=True, table_released=released, table_occupied=occupied
        )

    def _handle_close(self, order: Order, target: OrderStatus) -> bool:
        return release_table(order.table)

    def _handle_reopen(self, order: Order, target: OrderStatus) -> bool:
        table = order.table
        session = object_session(order)
        other_open = session.scalar(
            select(Order.id)
            .where(
                Order.table_id == table.id,
                Order.id != order.id,
                Order.status.in_([status.value for status in ACTIVE_ORDER_STATUSES]),
            )
            .limit(1)
        )
        if other_open is not None:
            raise ConflictError(
                f"Table '{table.name}' already has open order {other_open}; "
                "this order cannot be reopened"
            )
        if table.status == TableStatus.OCCUPIED.value:
            return False
        table.status = TableStatus.OCCUPIED.value
        return True


def release_table(table: Table) -> bool:
    """Mark the table empty. Returns False when it already was."""
    if table.status == TableStatus.EMPTY.value:
        return False
    previous = table.status
    table.status = TableStatus.EMPTY.value
    logger.info(
        "Table released",
        extra={"table_id": table.id, "from_status": previous},
    )
    return True


# Default instance used when no policy is configured
order_state_machine = OrderStateMachine()


def get_state_machine(policy: str | None = None) -> OrderStateMachine:
    if policy is None or policy == order_state_machine.policy:
        return order_state_machine
    return OrderStateMachine(policy)
