"""KST calendar helpers.

Every user-facing notion of "today", "D-7" or "overdue by N days" in the
application is a Korea Standard Time calendar concept. Timestamps are stored
as naive UTC in the database; these helpers convert between the two worlds so
that day boundaries are computed on the KST calendar rather than by naive UTC
subtraction.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

KST = timezone(timedelta(hours=9), "KST")
DAY = timedelta(days=1)

_DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_kst(value: datetime) -> datetime:
    return as_utc(value).astimezone(KST)


def to_db(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to the naive UTC representation used by the DateTime columns."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def kst_date(value: datetime) -> date:
    return to_kst(value).date()


def kst_start_of_day(base: Optional[datetime] = None, offset_days: int = 0) -> datetime:
    """Return the UTC instant of KST midnight for the day containing ``base``."""
    base = utc_now() if base is None else base
    day = kst_date(base) + timedelta(days=offset_days)
    return datetime.combine(day, time.min, tzinfo=KST).astimezone(timezone.utc)


def kst_day_range(days_from_today: int, base: Optional[datetime] = None) -> tuple[datetime, datetime]:
    start = kst_start_of_day(base, days_from_today)
    return start, start + DAY


def d_day_difference(due_date: datetime, today_start: datetime) -> int:
    """Whole KST calendar days from ``today_start`` to ``due_date``.

    Positive when the due date lies in the future, zero on the due day and
    negative once it has passed.
    """
    return (kst_date(due_date) - kst_date(today_start)).days


def was_notified_today(last_notified_at: Optional[datetime], today_start: datetime) -> bool:
    if last_notified_at is None:
        return False
    return kst_date(last_notified_at) == kst_date(today_start)


def d_day_label(diff_days: int) -> str:
    if diff_days > 0:
        return f"D-{diff_days}"
    if diff_days == 0:
        return "D-day"
    return f"D+{abs(diff_days)}"


def format_kst(value: datetime) -> str:
    return to_kst(value).strftime("%Y-%m-%d %H:%M") + " (KST)"


def format_kst_date(value: datetime) -> str:
    return to_kst(value).strftime("%Y-%m-%d")


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def parse_date_input(value: Optional[str], field_name: str) -> datetime:
    """Parse a client supplied date.

    A bare ``YYYY-MM-DD`` is midnight of that KST calendar day. Anything else
    must be ISO-8601; values without an offset are read as UTC.
    """
    trimmed = value.strip() if isinstance(value, str) else ""
    if not trimmed:
        raise ValueError(f"Invalid {field_name} value")

    if _DATE_ONLY_PATTERN.match(trimmed):
        try:
            day = date.fromisoformat(trimmed)
        except ValueError as exc:
            raise ValueError(f"Invalid {field_name} value") from exc
        return datetime.combine(day, time.min, tzinfo=KST).astimezone(timezone.utc)

    try:
        parsed = datetime.fromisoformat(trimmed.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid {field_name} value") from exc
    return as_utc(parsed)


def is_quiet_hour(now: datetime, start_hour: int, end_hour: int) -> bool:
    """True when the KST hour of ``now`` falls inside ``[start_hour, end_hour)``.

    The window may wrap midnight (20 -> 9). Equal bounds disable quiet hours.
    """
    if start_hour == end_hour:
        return False
    hour = to_kst(now).hour
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour
