"""
Serializers for consistent plain-data results and API responses.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .datetime_utils import isoformat
from .models import MenuCategory, MenuItem, Order, OrderItem, Staff, Table


def money(value: Decimal | float | int | None) -> float:
    if value is None:
        return 0.0
    return float(value)


def serialize_staff(staff: Staff) -> dict[str, Any]:
    """Serialize a staff member. The password hash never leaves the store."""
    return {
        "id": staff.id,
        "name": staff.name,
        "username": staff.username,
        "role": staff.role,
        "created_at": isoformat(staff.created_at),
        "updated_at": isoformat(staff.updated_at),
    }


def serialize_table(table: Table, active_order: Order | None = None) -> dict[str, Any]:
    data = {
        "id": table.id,
        "name": table.name,
        "capacity": table.capacity,
        "section": table.section,
        "status": table.status,
        "created_at": isoformat(table.created_at),
        "updated_at": isoformat(table.updated_at),
        "active_order_id": None,
        "active_order_status": None,
        "amount": None,
        "item_count": 0,
        "order_created_at": None,
    }
    if active_order is not None:
        data.update(
            {
                "active_order_id": active_order.id,
                "active_order_status": active_order.status,
                "amount": money(active_order.total_amount),
                "item_count": sum(item.quantity for item in active_order.items),
                "order_created_at": isoformat(active_order.created_at),
            }
        )
    return data


def serialize_menu_category(
    category: MenuCategory, item_count: int | None = None, include_items: bool = False
) -> dict[str, Any]:
    data = {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "image_url": category.image_url,
        "display_order": category.display_order,
    }
    if item_count is not None:
        data["item_count"] = item_count
    if include_items:
        data["items"] = [serialize_menu_item(item) for item in category.items]
    return data


def serialize_menu_item(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": money(item.price),
        "image_url": item.image_url,
        "is_available": item.is_available,
        "category_id": item.category_id,
        "category_name": item.category.name if item.category else None,
        "display_order": item.display_order,
    }


def serialize_order_item(order_item: OrderItem) -> dict[str, Any]:
    menu_item = order_item.menu_item
    category = menu_item.category if menu_item else None
    return {
        "id": order_item.id,
        "order_id": order_item.order_id,
        "menu_item_id": order_item.menu_item_id,
        "name": menu_item.name if menu_item else None,
        "description": menu_item.description if menu_item else None,
        "image_url": menu_item.image_url if menu_item else None,
        "category_name": category.name if category else None,
        "quantity": order_item.quantity,
        "price": money(order_item.price),
        "subtotal": money(order_item.price * order_item.quantity),
        "notes": order_item.notes,
    }


def serialize_order(order: Order, include_items: bool = True) -> dict[str, Any]:
    data = {
        "id": order.id,
        "table_id": order.table_id,
        "table_name": order.table.name if order.table else None,
        "staff_id": order.staff_id,
        "staff_name": order.staff.name if order.staff else None,
        "status": order.status,
        "total_amount": money(order.total_amount),
        "notes": order.notes,
        "cancellation_reason": order.cancellation_reason,
        "created_at": isoformat(order.created_at),
        "updated_at": isoformat(order.updated_at),
        "completed_at": isoformat(order.completed_at),
        "item_count": sum(item.quantity for item in order.items),
    }
    if include_items:
        data["items"] = [serialize_order_item(item) for item in order.items]
    return data


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(error: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"status": "error", "data": None, "error": error}
    if details:
        response["details"] = details
    return response
