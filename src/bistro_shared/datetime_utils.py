"""
Datetime utilities.

Timestamps are stored as naive UTC so that sqlite and PostgreSQL compare them
the same way.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from .errors import ValidationError


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: str | date | datetime | None, *, end_of_day: bool = False):
    """
    Normalize a date filter into a naive UTC datetime.

    Accepts ``datetime``/``date`` objects or ISO 8601 strings. A bare date used
    as an upper bound covers the whole day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return _date_bound(value, end_of_day)
    else:
        text = str(value).strip()
        try:
            if len(text) == 10:
                return _date_bound(date.fromisoformat(text), end_of_day)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value!r}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _date_bound(value: date, end_of_day: bool) -> datetime:
    if end_of_day:
        return datetime.combine(value + timedelta(days=1), time.min) - timedelta(microseconds=1)
    return datetime.combine(value, time.min)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
