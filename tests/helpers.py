"""Helpers shared by the test modules."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from bistro_shared.constants import ACTIVE_ORDER_STATUSES, TableStatus
from bistro_shared.models import Order, Table
from bistro_shared.services import order_service
from bistro_shared.services.price_service import recompute_total


def open_order(store, table, *lines, **extra):
    """Create an order on ``table`` from ``(menu_item, quantity)`` pairs."""
    payload = {
        "table_id": table["id"],
        "items": [{"menu_item_id": item["id"], "quantity": quantity} for item, quantity in lines],
        **extra,
    }
    return order_service.create_order(store, payload)


def backdate(store, order_id: int, when: datetime) -> None:
    with store.transaction() as session:
        order = session.get(Order, order_id)
        order.created_at = when
        if order.completed_at is not None:
            order.completed_at = when


def count_orders(store) -> int:
    with store.transaction() as session:
        return session.scalar(select(func.count(Order.id)))


def assert_store_consistent(store) -> None:
    """Order totals reconcile with lines; occupancy matches open orders one-to-one."""
    active = {status.value for status in ACTIVE_ORDER_STATUSES}
    with store.transaction() as session:
        open_by_table: dict[int, int] = {}
        for order in session.execute(select(Order)).scalars():
            assert Decimal(order.total_amount) == recompute_total(order.items)
            if order.status in active:
                open_by_table[order.table_id] = open_by_table.get(order.table_id, 0) + 1
        for table in session.execute(select(Table)).scalars():
            open_orders = open_by_table.get(table.id, 0)
            assert open_orders <= 1
            if open_orders:
                assert table.status == TableStatus.OCCUPIED.value
            else:
                assert table.status != TableStatus.OCCUPIED.value


def login(client, username: str, password: str) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.get_json()
    token = response.get_json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
