"""
Reporting aggregator.

Read-only projections over completed orders. Orders are selected by
``created_at`` within the requested window; a date-only upper bound covers the
whole day.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from ..constants import (
    ACTIVE_ORDER_STATUSES,
    UNCATEGORIZED_LABEL,
    OrderStatus,
    ReportGrouping,
    TableStatus,
)
from ..datetime_utils import parse_datetime, utcnow
from ..db import Store
from ..errors import ValidationError
from ..logging_config import get_logger
from ..models import MenuCategory, MenuItem, Order, OrderItem, Staff, Table
from ..schemas import SalesReportQuery
from ..serializers import money
from ..validation import parse_payload

logger = get_logger(__name__)

# sqlite strftime / PostgreSQL to_char patterns per bucket
_SQLITE_BUCKETS = {
    ReportGrouping.DAY: "%Y-%m-%d",
    ReportGrouping.WEEK: "%Y-%W",
    ReportGrouping.MONTH: "%Y-%m",
}
_POSTGRES_BUCKETS = {
    ReportGrouping.DAY: "YYYY-MM-DD",
    ReportGrouping.WEEK: "IYYY-IW",
    ReportGrouping.MONTH: "YYYY-MM",
}


def bucket_expression(dialect: str, column, grouping: ReportGrouping):
    """SQL expression turning a timestamp column into its calendar bucket key."""
    if dialect == "sqlite":
        return func.strftime(_SQLITE_BUCKETS[grouping], column)
    if dialect == "postgresql":
        return func.to_char(column, _POSTGRES_BUCKETS[grouping])
    raise ValidationError(f"Sales reports are not supported on the '{dialect}' database")


def _completed_in_window(start: datetime, end: datetime):
    return (
        Order.status == OrderStatus.COMPLETED.value,
        Order.created_at >= start,
        Order.created_at <= end,
    )


def _average(total: Decimal, count: int) -> float:
    return money(total / count) if count else 0.0


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def get_sales_report(
    store: Store,
    date_from: Any,
    date_to: Any,
    group_by: str = ReportGrouping.DAY.value,
    top_n: int | None = None,
) -> dict[str, Any]:
    """
    Sales summary, sales per calendar bucket, sales per category and the
    best-selling items by quantity.
    """
    payload = {"date_from": date_from, "date_to": date_to, "group_by": group_by}
    if top_n is not None:
        payload["top_n"] = top_n
    query = parse_payload(SalesReportQuery, payload)
    start = parse_datetime(query.date_from)
    end = parse_datetime(query.date_to, end_of_day=True)
    if start > end:
        raise ValidationError("date_from must not be after date_to")

    with store.transaction() as session:
        window = _completed_in_window(start, end)
        report = {
            "date_range": {
                "from": start.isoformat(),
                "to": end.isoformat(),
                "group_by": query.group_by.value,
            },
            "summary": _summary(session, window),
            "sales_by_date": _sales_by_date(session, store.dialect, window, query.group_by),
            "sales_by_category": _sales_by_category(session, window),
            "top_selling_items": _top_selling_items(session, window, query.top_n),
        }
    logger.info(
        "Sales report generated",
        extra={
            "group_by": query.group_by.value,
            "total_orders": report["summary"]["total_orders"],
        },
    )
    return report


def _summary(session: Session, window) -> dict[str, Any]:
    count, revenue, tables = session.execute(
        select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.count(distinct(Order.table_id)),
        ).where(*window)
    ).one()
    revenue = _decimal(revenue)
    return {
        "total_orders": count,
        "total_revenue": money(revenue),
        "average_order_value": _average(revenue, count),
        "tables_served": tables,
    }


def _sales_by_date(session: Session, dialect: str, window, grouping: ReportGrouping):
    bucket = bucket_expression(dialect, Order.created_at, grouping).label("date_group")
    rows = session.execute(
        select(bucket, func.count(Order.id), func.sum(Order.total_amount))
        .where(*window)
        .group_by(bucket)
        .order_by(bucket)
    ).all()
    result = []
    for date_group, count, total in rows:
        total = _decimal(total)
        result.append(
            {
                "date_group": date_group,
                "order_count": count,
                "total_sales": money(total),
                "average_order_value": _average(total, count),
            }
        )
    return result


def _sales_by_category(session: Session, window) -> list[dict[str, Any]]:
    category_name = func.coalesce(MenuCategory.name, UNCATEGORIZED_LABEL).label("category_name")
    sales = func.sum(OrderItem.price * OrderItem.quantity).label("total_sales")
    rows = session.execute(
        select(category_name, sales, func.sum(OrderItem.quantity))
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .outerjoin(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .where(*window)
        .group_by(category_name)
        .order_by(sales.desc(), category_name)
    ).all()
    return [
        {"category_name": name, "total_sales": money(_decimal(total)), "items_sold": int(sold)}
        for name, total, sold in rows
    ]


def _top_selling_items(session: Session, window, limit: int) -> list[dict[str, Any]]:
    quantity = func.sum(OrderItem.quantity).label("quantity_sold")
    sales = func.sum(OrderItem.price * OrderItem.quantity).label("total_sales")
    category_name = func.coalesce(MenuCategory.name, UNCATEGORIZED_LABEL)
    rows = session.execute(
        select(MenuItem.name, category_name, quantity, sales)
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .outerjoin(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .where(*window)
        .group_by(MenuItem.id, MenuItem.name, MenuCategory.name)
        .order_by(quantity.desc(), sales.desc(), MenuItem.name)
        .limit(limit)
    ).all()
    return [
        {
            "item_name": name,
            "category_name": category,
            "quantity_sold": int(sold),
            "total_sales": money(_decimal(total)),
        }
        for name, category, sold, total in rows
    ]


def get_dashboard_summary(store: Store, today: date | None = None) -> dict[str, Any]:
    """Figures for the admin dashboard: floor state, today's sales and the last week."""
    today = today or utcnow().date()
    week_start = today - timedelta(days=6)

    with store.transaction() as session:
        table_counts = {status.value: 0 for status in TableStatus}
        for status, count in session.execute(
            select(Table.status, func.count(Table.id)).group_by(Table.status)
        ).all():
            table_counts[status] = count

        active_orders = session.scalar(
            select(func.count(Order.id)).where(
                Order.status.in_([status.value for status in ACTIVE_ORDER_STATUSES])
            )
        )
        start = parse_datetime(today)
        end = parse_datetime(today, end_of_day=True)
        today_count, today_revenue = session.execute(
            select(
                func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0)
            ).where(*_completed_in_window(start, end))
        ).one()
        menu_items = session.scalar(select(func.count(MenuItem.id)))
        available_items = session.scalar(
            select(func.count(MenuItem.id)).where(MenuItem.is_available.is_(True))
        )
        staff_count = session.scalar(select(func.count(Staff.id)))

    weekly = get_sales_report(store, week_start, today, ReportGrouping.DAY.value)
    return {
        "date": today.isoformat(),
        "tables": {"total": sum(table_counts.values()), "by_status": table_counts},
        "active_orders": active_orders,
        "today": {
            "completed_orders": today_count,
            "revenue": money(_decimal(today_revenue)),
        },
        "week": {
            "from": week_start.isoformat(),
            "to": today.isoformat(),
            "total_revenue": weekly["summary"]["total_revenue"],
            "sales_by_date": weekly["sales_by_date"],
        },
        "menu": {"total_items": menu_items, "available_items": available_items},
        "staff_count": staff_count,
    }
