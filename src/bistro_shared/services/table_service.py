"""
Table registry.

A table is occupied exactly when an open order (pending, preparing or ready)
references it. :func:`table_has_active_order` is the single occupancy
predicate used by the order engine and by every manual status change here.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..constants import ACTIVE_ORDER_STATUSES, TableStatus
from ..db import Store
from ..errors import ConflictError, NotFoundError, ValidationError
from ..logging_config import get_logger
from ..models import Order, Table
from ..schemas import CreateTableRequest, TableStatusRequest, UpdateTableRequest
from ..serializers import serialize_table
from ..validation import parse_payload, validate_id

logger = get_logger(__name__)

_ACTIVE_VALUES = [status.value for status in ACTIVE_ORDER_STATUSES]


def table_has_active_order(session: Session, table_id: int) -> bool:
    return get_active_order(session, table_id) is not None


def get_active_order(session: Session, table_id: int) -> Order | None:
    return session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.table_id == table_id, Order.status.in_(_ACTIVE_VALUES))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def _active_orders_by_table(session: Session, table_ids: list[int]) -> dict[int, Order]:
    if not table_ids:
        return {}
    orders = session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.table_id.in_(table_ids), Order.status.in_(_ACTIVE_VALUES))
        .order_by(Order.created_at, Order.id)
    ).scalars().all()
    # newest wins if the invariant was ever broken by hand
    return {order.table_id: order for order in orders}


def _serialize_tables(session: Session, tables: list[Table]) -> list[dict[str, Any]]:
    active = _active_orders_by_table(session, [table.id for table in tables])
    return [serialize_table(table, active.get(table.id)) for table in tables]


def get_all_tables(store: Store) -> list[dict[str, Any]]:
    with store.transaction() as session:
        tables = session.execute(select(Table).order_by(Table.section, Table.name)).scalars().all()
        return _serialize_tables(session, list(tables))


def get_table_by_id(store: Store, table_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        table = get_table(session, table_id)
        return serialize_table(table, get_active_order(session, table.id))


def get_tables_by_section(store: Store, section: str) -> list[dict[str, Any]]:
    with store.transaction() as session:
        tables = session.execute(
            select(Table).where(Table.section == section).order_by(Table.name)
        ).scalars().all()
        return _serialize_tables(session, list(tables))


def get_tables_by_status(store: Store, status: str) -> list[dict[str, Any]]:
    status = _parse_status(status)
    with store.transaction() as session:
        tables = session.execute(
            select(Table).where(Table.status == status.value).order_by(Table.section, Table.name)
        ).scalars().all()
        return _serialize_tables(session, list(tables))


def get_table_sections(store: Store) -> list[str]:
    with store.transaction() as session:
        return list(
            session.execute(select(Table.section).distinct().order_by(Table.section)).scalars()
        )


def get_table_status(store: Store, table_id: int) -> str:
    with store.transaction() as session:
        return get_table(session, table_id).status


def add_table(store: Store, payload: Any) -> dict[str, Any]:
    request = parse_payload(CreateTableRequest, payload)
    if request.status is TableStatus.OCCUPIED:
        raise ValidationError("A new table cannot start occupied; create an order for it instead")
    with store.transaction() as session:
        _ensure_unique_name(session, request.name)
        table = Table(
            name=request.name,
            capacity=request.capacity,
            section=request.section,
            status=request.status.value,
        )
        session.add(table)
        session.flush()
        logger.info("Table created", extra={"table_id": table.id, "table_name": table.name})
        return serialize_table(table)


def update_table(store: Store, table_id: int, payload: Any) -> dict[str, Any]:
    request = parse_payload(UpdateTableRequest, payload)
    changes = request.model_dump(exclude_unset=True)
    for field in ("name", "capacity", "section"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")
    with store.transaction() as session:
        table = get_table(session, table_id)
        if changes.get("name") and changes["name"] != table.name:
            _ensure_unique_name(session, changes["name"], exclude_id=table.id)
        status = changes.pop("status", None)
        for field, value in changes.items():
            setattr(table, field, value)
        if status is not None:
            _apply_manual_status(session, table, status)
        session.flush()
        logger.info("Table updated", extra={"table_id": table.id})
        return serialize_table(table, get_active_order(session, table.id))


def update_table_status(store: Store, table_id: int, status: str) -> dict[str, Any]:
    """
    Manual status override from the staff screens.

    Raises ConflictError when the change would contradict the table's open
    order: nothing but ``occupied`` while an order is open, and never
    ``occupied`` without one.
    """
    request = parse_payload(TableStatusRequest, {"status": status})
    with store.transaction() as session:
        table = get_table(session, table_id)
        _apply_manual_status(session, table, request.status)
        return {"id": table.id, "status": table.status}


def _apply_manual_status(session: Session, table: Table, status: TableStatus) -> None:
    status = TableStatus(status)
    if status.value == table.status:
        return
    has_order = table_has_active_order(session, table.id)
    if has_order and status is not TableStatus.OCCUPIED:
        logger.warning(
            "Refused table status change while an order is open",
            extra={"table_id": table.id, "requested": status.value},
        )
        raise ConflictError(
            f"Table '{table.name}' has an open order; complete or cancel it before "
            f"marking the table {status.value}"
        )
    if not has_order and status is TableStatus.OCCUPIED:
        raise ConflictError(
            f"Table '{table.name}' becomes occupied when an order is created for it"
        )
    previous = table.status
    table.status = status.value
    logger.info(
        "Table status changed",
        extra={"table_id": table.id, "from_status": previous, "to_status": status.value},
    )


def delete_table(store: Store, table_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        table = get_table(session, table_id)
        if table_has_active_order(session, table.id):
            raise ConflictError(f"Table '{table.name}' has an open order")
        order_count = session.scalar(select(func.count(Order.id)).where(Order.table_id == table.id))
        if order_count:
            raise ConflictError(
                f"Table '{table.name}' has {order_count} order(s) in its history and cannot be deleted"
            )
        session.delete(table)
        logger.info("Table deleted", extra={"table_id": table_id})
        return {"id": table_id, "deleted": True}


def get_table(session: Session, table_id: int) -> Table:
    table = session.get(Table, validate_id(table_id, "table_id"))
    if table is None:
        raise NotFoundError(f"Table {table_id} not found")
    return table


def _parse_status(status: str) -> TableStatus:
    try:
        return TableStatus(status)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid table status '{status}'. Expected one of: "
            f"{', '.join(TableStatus.all_values())}"
        ) from exc


def _ensure_unique_name(session: Session, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Table.id).where(Table.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Table.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise ConflictError(f"A table named '{name}' already exists")
