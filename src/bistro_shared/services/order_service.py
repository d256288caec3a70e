"""
Order lifecycle engine.

Every mutation runs inside a single ``store.transaction()`` block: input is
validated before the block opens, preconditions are checked before the first
write, and any failure afterwards rolls back the order rows, the order lines
and the table status together.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import case, select
from sqlalchemy.orm import Session, joinedload, selectinload

from ..constants import (
    ACTIVE_ORDER_PRIORITY,
    ACTIVE_ORDER_STATUSES,
    CANCELLATION_NOTE_PREFIX,
    OPEN_TABLE_STATUSES,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    TableStatus,
)
from ..datetime_utils import parse_datetime, utcnow
from ..db import Store
from ..errors import ConflictError, NotFoundError, ValidationError
from ..logging_config import LoggerAdapter, get_logger
from ..models import MenuItem, Order, OrderItem, Table
from ..schemas import (
    AddOrderItemsRequest,
    CreateOrderRequest,
    OrderFilters,
    OrderItemInput,
    UpdateOrderItemsRequest,
    UpdateOrderStatusRequest,
)
from ..serializers import money, serialize_order, serialize_order_item
from ..validation import parse_payload, validate_id, validate_limit
from .menu_service import load_menu_items
from .order_state_machine import OrderStateMachine, order_state_machine, release_table
from .price_service import quantize, recompute_total
from .staff_service import get_staff
from .table_service import get_table, table_has_active_order

logger = get_logger(__name__)

_ACTIVE_VALUES = [status.value for status in ACTIVE_ORDER_STATUSES]


def _order_log(order: Order) -> LoggerAdapter:
    return LoggerAdapter(logger, {"order_id": order.id, "table_id": order.table_id})


def _order_options():
    return (
        joinedload(Order.table),
        joinedload(Order.staff),
        selectinload(Order.items).joinedload(OrderItem.menu_item).joinedload(MenuItem.category),
    )


def _get_order(session: Session, order_id: int) -> Order:
    order = session.execute(
        select(Order).options(*_order_options()).where(Order.id == validate_id(order_id, "order_id"))
    ).unique().scalar_one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _resolve_menu_items(session: Session, lines: list[OrderItemInput]) -> dict[int, MenuItem]:
    menu = load_menu_items(session, [line.menu_item_id for line in lines])
    for line in lines:
        item = menu.get(line.menu_item_id)
        if item is None:
            raise NotFoundError(f"Menu item {line.menu_item_id} not found")
        if not item.is_available:
            raise ConflictError(f"Menu item '{item.name}' is not available")
    return menu


def _snapshot_line(line: OrderItemInput, menu_item: MenuItem) -> OrderItem:
    # caller-supplied price wins, otherwise the menu price at this moment
    price = quantize(line.price if line.price is not None else menu_item.price)
    return OrderItem(
        menu_item=menu_item,
        quantity=line.quantity,
        price=price,
        notes=line.notes,
        created_at=utcnow(),
    )


def _occupy_table(session: Session, table: Table) -> None:
    table.status = TableStatus.OCCUPIED.value
    session.flush()


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def create_order(store: Store, payload: Any) -> dict[str, Any]:
    """
    Open a new order on a free table.

    The table must be empty or reserved and have no open order. Each input
    line becomes one order line priced at the caller's price or the current
    menu price. The table becomes occupied in the same transaction.
    """
    request = parse_payload(CreateOrderRequest, payload)

    with store.transaction() as session:
        table = get_table(session, request.table_id)
        if TableStatus(table.status) not in OPEN_TABLE_STATUSES:
            logger.warning(
                "Refused order on unavailable table",
                extra={"table_id": table.id, "table_status": table.status},
            )
            raise ConflictError(f"Table '{table.name}' is {table.status} and cannot take a new order")
        if table_has_active_order(session, table.id):
            raise ConflictError(f"Table '{table.name}' already has an open order")
        menu = _resolve_menu_items(session, request.items)

        now = utcnow()
        order = Order(
            table=table,
            status=request.status.value,
            notes=request.notes or None,
            created_at=now,
            updated_at=now,
        )
        for line in request.items:
            order.items.append(_snapshot_line(line, menu[line.menu_item_id]))
        order.total_amount = recompute_total(order.items)
        session.add(order)
        session.flush()

        _occupy_table(session, table)

        _order_log(order).info(
            "Order created",
            extra={"item_count": len(order.items), "total_amount": money(order.total_amount)},
        )
        return serialize_order(order)


def add_order_items(store: Store, order_id: int, items: Any) -> dict[str, Any]:
    """
    Add lines to an open order.

    A menu item already on the order has its quantity increased instead of
    getting a second line; merged quantities keep the price captured on the
    existing line. The stored total is recomputed from the resulting lines.
    """
    request = parse_payload(AddOrderItemsRequest, {"items": items})

    with store.transaction() as session:
        order = _get_order(session, order_id)
        if OrderStatus(order.status) in TERMINAL_ORDER_STATUSES:
            raise ConflictError(f"Order {order.id} is {order.status}; items can no longer be added")
        if order.table.status != TableStatus.OCCUPIED.value:
            raise ConflictError(
                f"Table '{order.table.name}' is not occupied; order {order.id} is out of sync"
            )
        menu = _resolve_menu_items(session, request.items)

        previous_total = recompute_total(order.items)
        lines: dict[int, OrderItem] = {}
        for existing in order.items:
            lines.setdefault(existing.menu_item_id, existing)

        for line in request.items:
            current = lines.get(line.menu_item_id)
            if current is not None:
                current.quantity += line.quantity
                if line.notes:
                    current.notes = f"{current.notes}; {line.notes}" if current.notes else line.notes
            else:
                new_line = _snapshot_line(line, menu[line.menu_item_id])
                order.items.append(new_line)
                lines[line.menu_item_id] = new_line

        new_total = recompute_total(order.items)
        order.total_amount = new_total
        order.updated_at = utcnow()
        session.flush()

        additional = new_total - previous_total
        _order_log(order).info(
            "Items added to order",
            extra={"items_added": len(request.items), "additional_amount": money(additional)},
        )
        return {
            "order_id": order.id,
            "items_added": len(request.items),
            "additional_amount": money(additional),
            "new_total": money(new_total),
        }


def update_order_status(
    store: Store,
    order_id: int,
    status: str,
    staff_id: int | None = None,
    *,
    state_machine: OrderStateMachine | None = None,
) -> dict[str, Any]:
    """
    Move an order to ``status``, optionally attributing it to a staff member.

    Completing stamps ``completed_at``; completing or cancelling frees the
    table. Which moves are allowed depends on the state machine's policy.
    """
    request = parse_payload(UpdateOrderStatusRequest, {"status": status, "staff_id": staff_id})
    machine = state_machine or order_state_machine

    with store.transaction() as session:
        order = _get_order(session, order_id)
        if request.staff_id is not None:
            order.staff = get_staff(session, request.staff_id)
        result = machine.apply_transition(order, request.status)
        if not result.changed:
            order.updated_at = utcnow()
        session.flush()
        return {
            "id": order.id,
            "status": order.status,
            "previous_status": result.previous_status.value,
            "staff_id": order.staff_id,
            "completed_at": order.completed_at.isoformat() if order.completed_at else None,
            "table_released": result.table_released,
        }


def cancel_order(
    store: Store,
    order_id: int,
    reason: str | None = None,
    *,
    state_machine: OrderStateMachine | None = None,
) -> dict[str, Any]:
    """
    Cancel an open order and free its table.

    The reason is kept on ``cancellation_reason`` and also written into the
    notes as ``Cancellation reason: <reason>``.
    """
    reason = (reason or "").strip() or None
    machine = state_machine or order_state_machine

    with store.transaction() as session:
        order = _get_order(session, order_id)
        if OrderStatus(order.status) in TERMINAL_ORDER_STATUSES:
            raise ConflictError(f"Order {order.id} is already {order.status}")
        if reason:
            order.cancellation_reason = reason
            order.notes = append_cancellation_note(order.notes, reason)
        result = machine.apply_transition(order, OrderStatus.CANCELLED)
        session.flush()
        _order_log(order).info("Order cancelled", extra={"reason": reason})
        return {
            "id": order.id,
            "status": order.status,
            "cancellation_reason": order.cancellation_reason,
            "table_released": result.table_released,
        }


def append_cancellation_note(notes: str | None, reason: str) -> str:
    entry = f"{CANCELLATION_NOTE_PREFIX}{reason}"
    if not notes or not notes.strip():
        return entry
    return f"{notes}\n{entry}"


def update_order_items(
    store: Store,
    order_id: int,
    items: Any,
    *,
    state_machine: OrderStateMachine | None = None,
) -> dict[str, Any]:
    """
    Bulk edit the lines of a pending order.

    A quantity of zero or less removes the line. The total is recomputed from
    the surviving lines; if none survive the order is cancelled and its table
    freed.
    """
    request = parse_payload(UpdateOrderItemsRequest, {"items": items})
    machine = state_machine or order_state_machine
    ids = [change.id for change in request.items]
    if len(ids) != len(set(ids)):
        raise ValidationError("Each order item may appear only once per update")

    with store.transaction() as session:
        order = _get_order(session, order_id)
        if order.status != OrderStatus.PENDING.value:
            raise ConflictError(
                f"Order {order.id} is {order.status}; lines can only be edited while pending"
            )
        lines = {line.id: line for line in order.items}
        unknown = [item_id for item_id in ids if item_id not in lines]
        if unknown:
            raise NotFoundError(
                f"Order item(s) {', '.join(map(str, unknown))} do not belong to order {order.id}"
            )

        updated = removed = 0
        for change in request.items:
            line = lines[change.id]
            if change.quantity <= 0:
                order.items.remove(line)
                removed += 1
                continue
            line.quantity = change.quantity
            if change.notes is not None:
                line.notes = change.notes or None
            updated += 1

        order.total_amount = recompute_total(order.items)
        order.updated_at = utcnow()
        auto_cancelled = False
        if not order.items:
            machine.apply_transition(order, OrderStatus.CANCELLED)
            auto_cancelled = True
        session.flush()

        _order_log(order).info(
            "Order lines updated",
            extra={"updated": updated, "removed": removed, "auto_cancelled": auto_cancelled},
        )
        return {
            "id": order.id,
            "status": order.status,
            "total_amount": money(order.total_amount),
            "item_count": len(order.items),
            "items_updated": updated,
            "items_removed": removed,
            "auto_cancelled": auto_cancelled,
        }


def delete_order(store: Store, order_id: int) -> dict[str, Any]:
    """Hard delete a pending or cancelled order together with its lines."""
    with store.transaction() as session:
        order = _get_order(session, order_id)
        status = OrderStatus(order.status)
        if status not in (OrderStatus.PENDING, OrderStatus.CANCELLED):
            raise ConflictError(f"Order {order.id} is {order.status} and cannot be deleted")
        released = release_table(order.table) if status is OrderStatus.PENDING else False
        session.delete(order)
        session.flush()
        logger.info(
            "Order deleted",
            extra={"order_id": order_id, "previous_status": status.value, "table_released": released},
        )
        return {"id": order_id, "deleted": True, "table_released": released}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_order_by_id(store: Store, order_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        return serialize_order(_get_order(session, order_id))


def get_order_items(store: Store, order_id: int) -> list[dict[str, Any]]:
    with store.transaction() as session:
        return [serialize_order_item(line) for line in _get_order(session, order_id).items]


def _list(session: Session, stmt, include_items: bool = True) -> list[dict[str, Any]]:
    orders = session.execute(stmt.options(*_order_options())).unique().scalars().all()
    return [serialize_order(order, include_items=include_items) for order in orders]


def get_all_orders(
    store: Store, filters: Mapping[str, Any] | None = None, **kwargs: Any
) -> list[dict[str, Any]]:
    """
    List orders newest first.

    Filters: ``status``, ``table_id``, ``staff_id``, ``date_from``, ``date_to``
    (on ``created_at``) and ``limit``.
    """
    criteria = parse_payload(OrderFilters, {**(filters or {}), **kwargs})
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if criteria.status is not None:
        stmt = stmt.where(Order.status == criteria.status.value)
    if criteria.table_id is not None:
        stmt = stmt.where(Order.table_id == criteria.table_id)
    if criteria.staff_id is not None:
        stmt = stmt.where(Order.staff_id == criteria.staff_id)
    stmt = _date_window(stmt, Order.created_at, criteria.date_from, criteria.date_to)
    limit = validate_limit(criteria.limit, default=None)
    if limit:
        stmt = stmt.limit(limit)

    with store.transaction() as session:
        return _list(session, stmt)


def get_orders_by_table(
    store: Store, table_id: int, include_completed: bool = False
) -> list[dict[str, Any]]:
    """Orders for a table, newest first. Only open orders unless ``include_completed``."""
    with store.transaction() as session:
        table = get_table(session, table_id)
        stmt = (
            select(Order)
            .where(Order.table_id == table.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if not include_completed:
            stmt = stmt.where(Order.status.in_(_ACTIVE_VALUES))
        return _list(session, stmt)


def get_orders_by_staff(
    store: Store, staff_id: int, date_from: Any = None, date_to: Any = None
) -> list[dict[str, Any]]:
    with store.transaction() as session:
        staff = get_staff(session, staff_id)
        stmt = (
            select(Order)
            .where(Order.staff_id == staff.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        stmt = _date_window(stmt, Order.created_at, date_from, date_to)
        return _list(session, stmt)


def get_active_orders(store: Store, limit: int | None = None) -> list[dict[str, Any]]:
    """Open orders: ready first, then preparing, then pending; oldest first within each."""
    priority = case(
        {status.value: rank for status, rank in ACTIVE_ORDER_PRIORITY.items()},
        value=Order.status,
        else_=len(ACTIVE_ORDER_PRIORITY),
    )
    stmt = (
        select(Order)
        .where(Order.status.in_(_ACTIVE_VALUES))
        .order_by(priority, Order.created_at.asc(), Order.id.asc())
    )
    limit = validate_limit(limit, default=None)
    if limit:
        stmt = stmt.limit(limit)
    with store.transaction() as session:
        return _list(session, stmt)


def get_completed_orders(
    store: Store, date_from: Any = None, date_to: Any = None, limit: int | None = None
) -> list[dict[str, Any]]:
    """Completed orders created in the window, most recently completed first."""
    stmt = (
        select(Order)
        .where(Order.status == OrderStatus.COMPLETED.value)
        .order_by(Order.completed_at.desc(), Order.id.desc())
    )
    stmt = _date_window(stmt, Order.created_at, date_from, date_to)
    limit = validate_limit(limit, default=None)
    if limit:
        stmt = stmt.limit(limit)
    with store.transaction() as session:
        return _list(session, stmt)


def _date_window(stmt, column, date_from: Any, date_to: Any):
    start = parse_datetime(date_from)
    end = parse_datetime(date_to, end_of_day=True)
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt
