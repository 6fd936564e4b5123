"""
Time handling for the ledger and reports.

Everything is stored as UTC without tzinfo. A business "day" is the UTC
calendar day, so a daily report covers [day 00:00, next day 00:00).
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-10", "2026-03-10T09:30", "2026-03-10T09:30:00Z" or an offset form.

    Blank input is None. Offsets are folded into UTC; a bare date is midnight.
    Raises ValueError when the text is not ISO-8601.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_utc_naive(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str | date]) -> Optional[date]:
    """Date part of "YYYY-MM-DD[...]"; date/datetime objects pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = (value or "").strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO string ending in 'Z'; naive values are taken as UTC."""
    if dt is None:
        return None
    stamp = _as_utc_naive(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"
