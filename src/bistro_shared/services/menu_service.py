"""
Menu catalog: categories and items.

The order engine reads prices and availability through
:func:`load_menu_items`; everything else here is validated CRUD for the admin
screens.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from ..db import Store
from ..errors import ConflictError, NotFoundError, ValidationError
from ..logging_config import get_logger
from ..models import MenuCategory, MenuItem, OrderItem
from ..schemas import (
    CreateCategoryRequest,
    CreateMenuItemRequest,
    UpdateCategoryRequest,
    UpdateMenuItemRequest,
)
from ..serializers import money, serialize_menu_category, serialize_menu_item
from ..validation import parse_payload, validate_id

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def get_all_categories(store: Store) -> list[dict[str, Any]]:
    with store.transaction() as session:
        rows = session.execute(
            select(MenuCategory, func.count(MenuItem.id))
            .outerjoin(MenuItem, MenuItem.category_id == MenuCategory.id)
            .group_by(MenuCategory.id)
            .order_by(MenuCategory.display_order, MenuCategory.name)
        ).all()
        return [serialize_menu_category(category, item_count=count) for category, count in rows]


def get_category_by_id(store: Store, category_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        category = _get_category(session, category_id)
        return serialize_menu_category(
            category, item_count=len(category.items), include_items=True
        )


def add_category(store: Store, payload: Any) -> dict[str, Any]:
    request = parse_payload(CreateCategoryRequest, payload)
    with store.transaction() as session:
        _ensure_unique_category_name(session, request.name)
        category = MenuCategory(
            name=request.name,
            description=request.description,
            image_url=request.image_url,
            display_order=request.display_order,
        )
        session.add(category)
        session.flush()
        logger.info("Menu category created", extra={"category_id": category.id})
        return serialize_menu_category(category, item_count=0)


def update_category(store: Store, category_id: int, payload: Any) -> dict[str, Any]:
    request = parse_payload(UpdateCategoryRequest, payload)
    changes = request.model_dump(exclude_unset=True)
    with store.transaction() as session:
        category = _get_category(session, category_id)
        if "name" in changes and changes["name"] is None:
            raise ValidationError("Category name cannot be empty")
        if changes.get("name") and changes["name"].lower() != category.name.lower():
            _ensure_unique_category_name(session, changes["name"], exclude_id=category.id)
        for field, value in changes.items():
            if field == "display_order" and value is None:
                continue
            setattr(category, field, value)
        session.flush()
        logger.info("Menu category updated", extra={"category_id": category.id})
        return serialize_menu_category(category, item_count=len(category.items))


def delete_category(store: Store, category_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        category = _get_category(session, category_id)
        item_count = session.scalar(
            select(func.count(MenuItem.id)).where(MenuItem.category_id == category.id)
        )
        if item_count:
            raise ConflictError(
                f"Category '{category.name}' still has {item_count} menu item(s); "
                "move or delete them first"
            )
        session.delete(category)
        logger.info("Menu category deleted", extra={"category_id": category_id})
        return {"id": category_id, "deleted": True}


def _get_category(session: Session, category_id: int) -> MenuCategory:
    category = session.get(MenuCategory, validate_id(category_id, "category_id"))
    if category is None:
        raise NotFoundError(f"Menu category {category_id} not found")
    return category


def _ensure_unique_category_name(session: Session, name: str, exclude_id: int | None = None):
    stmt = select(MenuCategory.id).where(func.lower(MenuCategory.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(MenuCategory.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise ConflictError(f"A menu category named '{name}' already exists")


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def _items_query(include_unavailable: bool = True):
    stmt = (
        select(MenuItem)
        .options(joinedload(MenuItem.category))
        .outerjoin(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .order_by(MenuCategory.display_order, MenuItem.display_order, MenuItem.name)
    )
    if not include_unavailable:
        stmt = stmt.where(MenuItem.is_available.is_(True))
    return stmt


def get_all_menu_items(store: Store, include_unavailable: bool = True) -> list[dict[str, Any]]:
    with store.transaction() as session:
        items = session.execute(_items_query(include_unavailable)).scalars().all()
        return [serialize_menu_item(item) for item in items]


def get_menu_items_by_category(
    store: Store, category_id: int, include_unavailable: bool = True
) -> list[dict[str, Any]]:
    with store.transaction() as session:
        _get_category(session, category_id)
        stmt = _items_query(include_unavailable).where(MenuItem.category_id == category_id)
        return [serialize_menu_item(item) for item in session.execute(stmt).scalars().all()]


def get_menu_item_by_id(store: Store, item_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        return serialize_menu_item(_get_item(session, item_id))


def search_menu_items(store: Store, term: str) -> list[dict[str, Any]]:
    """Case-insensitive substring match on name or description."""
    term = (term or "").strip()
    if not term:
        return get_all_menu_items(store)
    pattern = f"%{term.lower()}%"
    with store.transaction() as session:
        stmt = _items_query().where(
            or_(
                func.lower(MenuItem.name).like(pattern),
                func.lower(func.coalesce(MenuItem.description, "")).like(pattern),
            )
        )
        return [serialize_menu_item(item) for item in session.execute(stmt).scalars().all()]


def add_menu_item(store: Store, payload: Any) -> dict[str, Any]:
    request = parse_payload(CreateMenuItemRequest, payload)
    with store.transaction() as session:
        if request.category_id is not None:
            _get_category(session, request.category_id)
        _ensure_unique_item_name(session, request.name)
        item = MenuItem(
            name=request.name,
            description=request.description,
            price=request.price,
            image_url=request.image_url,
            is_available=request.is_available,
            category_id=request.category_id,
            display_order=request.display_order,
        )
        session.add(item)
        session.flush()
        session.refresh(item, attribute_names=["category"])
        logger.info("Menu item created", extra={"menu_item_id": item.id})
        return serialize_menu_item(item)


def update_menu_item(store: Store, item_id: int, payload: Any) -> dict[str, Any]:
    """
    Partially update a menu item.

    Price changes never touch existing order lines, which keep the price
    captured when they were added.
    """
    request = parse_payload(UpdateMenuItemRequest, payload)
    changes = request.model_dump(exclude_unset=True)
    with store.transaction() as session:
        item = _get_item(session, item_id)
        for required in ("name", "price", "is_available", "display_order"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null")
        if changes.get("name") and changes["name"].lower() != item.name.lower():
            _ensure_unique_item_name(session, changes["name"], exclude_id=item.id)
        if changes.get("category_id") is not None:
            _get_category(session, changes["category_id"])
        for field, value in changes.items():
            setattr(item, field, value)
        session.flush()
        session.refresh(item, attribute_names=["category"])
        logger.info("Menu item updated", extra={"menu_item_id": item.id})
        return serialize_menu_item(item)


def update_item_availability(store: Store, item_id: int, is_available: bool) -> dict[str, Any]:
    with store.transaction() as session:
        item = _get_item(session, item_id)
        item.is_available = bool(is_available)
        logger.info(
            "Menu item availability changed",
            extra={"menu_item_id": item.id, "is_available": item.is_available},
        )
        return {"id": item.id, "is_available": item.is_available}


def delete_menu_item(store: Store, item_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        item = _get_item(session, item_id)
        referenced = session.scalar(
            select(func.count(OrderItem.id)).where(OrderItem.menu_item_id == item.id)
        )
        if referenced:
            raise ConflictError(
                f"Menu item '{item.name}' appears in existing orders; "
                "mark it unavailable instead of deleting it"
            )
        session.delete(item)
        logger.info("Menu item deleted", extra={"menu_item_id": item_id})
        return {"id": item_id, "deleted": True}


def get_menu_items_by_ids(store: Store, ids: Iterable[int]) -> dict[int, dict[str, Any]]:
    """Price, availability and name for each requested item that exists."""
    with store.transaction() as session:
        return {
            item_id: {
                "price": money(item.price),
                "is_available": item.is_available,
                "name": item.name,
            }
            for item_id, item in load_menu_items(session, ids).items()
        }


def load_menu_items(session: Session, ids: Iterable[int]) -> dict[int, MenuItem]:
    """Menu item rows keyed by id, loaded in one query inside the caller's session."""
    wanted = {int(item_id) for item_id in ids}
    if not wanted:
        return {}
    items = session.execute(select(MenuItem).where(MenuItem.id.in_(wanted))).scalars().all()
    return {item.id: item for item in items}


def _get_item(session: Session, item_id: int) -> MenuItem:
    item = session.get(MenuItem, validate_id(item_id, "menu_item_id"))
    if item is None:
        raise NotFoundError(f"Menu item {item_id} not found")
    return item


def _ensure_unique_item_name(session: Session, name: str, exclude_id: int | None = None):
    stmt = select(MenuItem.id).where(func.lower(MenuItem.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(MenuItem.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise ConflictError(f"A menu item named '{name}' already exists")
