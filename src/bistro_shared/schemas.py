"""
Pydantic schemas for operation input validation.

Callers may use either snake_case or the camelCase names the mobile screens
send (``menuItemId``, ``tableId``...).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_DISPLAY_ORDER,
    DEFAULT_REPORT_TOP_N,
    DEFAULT_TABLE_CAPACITY,
    DEFAULT_TABLE_SECTION,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    ReportGrouping,
    Roles,
    TableStatus,
)


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, extra="ignore")


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class OrderItemInput(_Input):
    menu_item_id: int = Field(validation_alias=_alias("menu_item_id", "menuItemId"))
    quantity: int = Field(..., gt=0)
    price: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    notes: str | None = None


class CreateOrderRequest(_Input):
    table_id: int = Field(validation_alias=_alias("table_id", "tableId"))
    items: list[OrderItemInput] = Field(..., min_length=1)
    notes: str | None = None
    status: OrderStatus = OrderStatus.PENDING

    @field_validator("status")
    @classmethod
    def status_must_be_open(cls, v: OrderStatus) -> OrderStatus:
        if v in TERMINAL_ORDER_STATUSES:
            raise ValueError("a new order cannot start in a terminal status")
        return v


class AddOrderItemsRequest(_Input):
    items: list[OrderItemInput] = Field(..., min_length=1)


class UpdateOrderItemInput(_Input):
    id: int = Field(validation_alias=_alias("id", "order_item_id", "orderItemId"))
    # zero or negative removes the line
    quantity: int
    notes: str | None = None


class UpdateOrderItemsRequest(_Input):
    items: list[UpdateOrderItemInput] = Field(..., min_length=1)


class UpdateOrderStatusRequest(_Input):
    status: OrderStatus
    staff_id: int | None = Field(default=None, validation_alias=_alias("staff_id", "staffId"))


class OrderFilters(_Input):
    status: OrderStatus | None = None
    table_id: int | None = Field(default=None, validation_alias=_alias("table_id", "tableId"))
    staff_id: int | None = Field(default=None, validation_alias=_alias("staff_id", "staffId"))
    date_from: datetime | date | str | None = Field(
        default=None, validation_alias=_alias("date_from", "dateFrom")
    )
    date_to: datetime | date | str | None = Field(
        default=None, validation_alias=_alias("date_to", "dateTo")
    )
    limit: int | None = Field(default=None, gt=0)


class CreateTableRequest(_Input):
    name: str = Field(..., min_length=1, max_length=80)
    capacity: int = Field(default=DEFAULT_TABLE_CAPACITY, gt=0)
    section: str = Field(default=DEFAULT_TABLE_SECTION, min_length=1, max_length=80)
    status: TableStatus = TableStatus.EMPTY


class UpdateTableRequest(_Input):
    name: str | None = Field(None, min_length=1, max_length=80)
    capacity: int | None = Field(None, gt=0)
    section: str | None = Field(None, min_length=1, max_length=80)
    status: TableStatus | None = None


class TableStatusRequest(_Input):
    status: TableStatus


class CreateCategoryRequest(_Input):
    name: str = Field(..., min_length=1, max_length=120)
    description: str | None = None
    image_url: str | None = None
    display_order: int = DEFAULT_DISPLAY_ORDER


class UpdateCategoryRequest(_Input):
    name: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = None
    image_url: str | None = None
    display_order: int | None = None


class CreateMenuItemRequest(_Input):
    name: str = Field(..., min_length=1, max_length=160)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    description: str | None = None
    image_url: str | None = None
    category_id: int | None = None
    is_available: bool = True
    display_order: int = DEFAULT_DISPLAY_ORDER


class UpdateMenuItemRequest(_Input):
    name: str | None = Field(None, min_length=1, max_length=160)
    price: Decimal | None = Field(None, gt=0, decimal_places=2)
    description: str | None = None
    image_url: str | None = None
    category_id: int | None = None
    is_available: bool | None = None
    display_order: int | None = None


class AvailabilityRequest(_Input):
    is_available: bool


class CreateStaffRequest(_Input):
    name: str = Field(..., min_length=1, max_length=120)
    username: str = Field(..., min_length=3, max_length=80)
    password: str = Field(..., min_length=4, max_length=128)
    role: Roles = Roles.STAFF

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.lower()


class UpdateStaffRequest(_Input):
    name: str | None = Field(None, min_length=1, max_length=120)
    username: str | None = Field(None, min_length=3, max_length=80)
    role: Roles | None = None

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v


class ChangePasswordRequest(_Input):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=4, max_length=128)


class LoginRequest(_Input):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.lower()


class SalesReportQuery(_Input):
    date_from: datetime | date | str = Field(
        validation_alias=_alias("date_from", "dateFrom", "from")
    )
    date_to: datetime | date | str = Field(
        validation_alias=_alias("date_to", "dateTo", "to")
    )
    group_by: ReportGrouping = Field(
        default=ReportGrouping.DAY, validation_alias=_alias("group_by", "groupBy")
    )
    top_n: int = Field(
        default=DEFAULT_REPORT_TOP_N, gt=0, le=100, validation_alias=_alias("top_n", "topN")
    )
