"""
SQLAlchemy ORM models for the bistro point-of-sale.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .constants import (
    DEFAULT_DISPLAY_ORDER,
    DEFAULT_TABLE_CAPACITY,
    DEFAULT_TABLE_SECTION,
    OrderStatus,
    Roles,
    TableStatus,
)
from .datetime_utils import utcnow


class Base(DeclarativeBase):
    pass


class Staff(Base):
    __tablename__ = "staff"
    __table_args__ = (CheckConstraint("role IN ('admin', 'staff')", name="ck_staff_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    username: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Roles.STAFF.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    orders: Mapped[list[Order]] = relationship("Order", back_populates="staff")


class Table(Base):
    """A physical table; its status follows the order lifecycle."""

    __tablename__ = "tables"
    __table_args__ = (
        Index("ix_tables_status", "status"),
        Index("ix_tables_section", "section"),
        CheckConstraint("capacity > 0", name="ck_tables_capacity_positive"),
        CheckConstraint(
            "status IN ('empty', 'occupied', 'reserved', 'maintenance')", name="ck_tables_status"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_TABLE_CAPACITY)
    section: Mapped[str] = mapped_column(String(80), nullable=False, default=DEFAULT_TABLE_SECTION)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TableStatus.EMPTY.value
    )  # empty, occupied, reserved, maintenance
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    orders: Mapped[list[Order]] = relationship("Order", back_populates="table")


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_DISPLAY_ORDER
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    items: Mapped[list[MenuItem]] = relationship(
        "MenuItem", back_populates="category", order_by="MenuItem.display_order"
    )


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (
        Index("ix_menu_items_category_id", "category_id"),
        CheckConstraint("price > 0", name="ck_menu_items_price_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("menu_categories.id"), nullable=True
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_DISPLAY_ORDER
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    category: Mapped[MenuCategory | None] = relationship("MenuCategory", back_populates="items")
    order_items: Mapped[list[OrderItem]] = relationship("OrderItem", back_populates="menu_item")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_table_status", "table_id", "status"),
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_staff_id", "staff_id"),
        CheckConstraint(
            "status IN ('pending', 'preparing', 'ready', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    table_id: Mapped[int] = mapped_column(ForeignKey("tables.id"), nullable=False)
    staff_id: Mapped[int | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OrderStatus.PENDING.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    table: Mapped[Table] = relationship("Table", back_populates="orders")
    staff: Mapped[Staff | None] = relationship("Staff", back_populates="orders")
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_menu_item_id", "menu_item_id"),
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # snapshot
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    order: Mapped[Order] = relationship("Order", back_populates="items")
    menu_item: Mapped[MenuItem] = relationship("MenuItem", back_populates="order_items")
