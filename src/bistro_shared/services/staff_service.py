"""
Staff accounts and authentication.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..constants import Roles
from ..db import Store
from ..errors import AuthenticationError, ConflictError, NotFoundError
from ..logging_config import get_logger
from ..models import Order, Staff
from ..schemas import (
    ChangePasswordRequest,
    CreateStaffRequest,
    LoginRequest,
    UpdateStaffRequest,
)
from ..security import hash_password, verify_password
from ..serializers import serialize_staff
from ..validation import parse_payload, validate_id

logger = get_logger(__name__)


def get_all_staff(store: Store) -> list[dict[str, Any]]:
    with store.transaction() as session:
        staff = session.execute(select(Staff).order_by(Staff.name, Staff.id)).scalars().all()
        return [serialize_staff(member) for member in staff]


def get_staff_by_id(store: Store, staff_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        return serialize_staff(get_staff(session, staff_id))


def staff_exists(store: Store, staff_id: int) -> bool:
    with store.transaction() as session:
        return session.get(Staff, validate_id(staff_id, "staff_id")) is not None


def add_staff(store: Store, payload: Any) -> dict[str, Any]:
    request = parse_payload(CreateStaffRequest, payload)
    with store.transaction() as session:
        _ensure_unique_username(session, request.username)
        staff = Staff(
            name=request.name,
            username=request.username,
            password_hash=hash_password(request.password),
            role=request.role.value,
        )
        session.add(staff)
        session.flush()
        logger.info("Staff account created", extra={"staff_id": staff.id, "role": staff.role})
        return serialize_staff(staff)


def update_staff(store: Store, staff_id: int, payload: Any) -> dict[str, Any]:
    """
    Update profile fields and role.

    Demoting the only remaining admin is refused so the restaurant can never
    lock itself out of the admin screens.
    """
    request = parse_payload(UpdateStaffRequest, payload)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    with store.transaction() as session:
        staff = get_staff(session, staff_id)
        if "username" in changes and changes["username"] != staff.username:
            _ensure_unique_username(session, changes["username"], exclude_id=staff.id)
        role = changes.pop("role", None)
        if role is not None and role.value != staff.role:
            if staff.role == Roles.ADMIN.value and _admin_count(session) <= 1:
                raise ConflictError("Cannot demote the last admin account")
            staff.role = role.value
        for field, value in changes.items():
            setattr(staff, field, value)
        session.flush()
        logger.info("Staff account updated", extra={"staff_id": staff.id})
        return serialize_staff(staff)


def update_staff_password(
    store: Store, staff_id: int, current_password: str, new_password: str
) -> dict[str, Any]:
    request = parse_payload(
        ChangePasswordRequest,
        {"current_password": current_password, "new_password": new_password},
    )
    with store.transaction() as session:
        staff = get_staff(session, staff_id)
        if not verify_password(request.current_password, staff.password_hash):
            raise AuthenticationError("Current password is incorrect")
        staff.password_hash = hash_password(request.new_password)
        logger.info("Staff password changed", extra={"staff_id": staff.id})
        return {"id": staff.id, "updated": True}


def delete_staff(store: Store, staff_id: int) -> dict[str, Any]:
    with store.transaction() as session:
        staff = get_staff(session, staff_id)
        if staff.role == Roles.ADMIN.value and _admin_count(session) <= 1:
            raise ConflictError("Cannot delete the last admin account")
        order_count = session.scalar(select(func.count(Order.id)).where(Order.staff_id == staff.id))
        if order_count:
            raise ConflictError(
                f"Staff member '{staff.username}' is attributed to {order_count} order(s) "
                "and cannot be deleted"
            )
        session.delete(staff)
        logger.info("Staff account deleted", extra={"staff_id": staff_id})
        return {"id": staff_id, "deleted": True}


def authenticate_staff(store: Store, username: str, password: str) -> dict[str, Any]:
    request = parse_payload(LoginRequest, {"username": username, "password": password})
    with store.transaction() as session:
        staff = session.execute(
            select(Staff).where(Staff.username == request.username)
        ).scalar_one_or_none()
        if staff is None or not verify_password(request.password, staff.password_hash):
            logger.warning("Failed login attempt", extra={"username": request.username})
            raise AuthenticationError("Invalid username or password")
        return serialize_staff(staff)


def get_staff(session: Session, staff_id: int) -> Staff:
    staff = session.get(Staff, validate_id(staff_id, "staff_id"))
    if staff is None:
        raise NotFoundError(f"Staff member {staff_id} not found")
    return staff


def _admin_count(session: Session) -> int:
    return session.scalar(select(func.count(Staff.id)).where(Staff.role == Roles.ADMIN.value))


def _ensure_unique_username(session: Session, username: str, exclude_id: int | None = None):
    stmt = select(Staff.id).where(Staff.username == username)
    if exclude_id is not None:
        stmt = stmt.where(Staff.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise ConflictError(f"Username '{username}' is already taken")
