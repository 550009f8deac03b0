from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD"; None / "" -> None. Raises ValueError on bad input."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# =============================================================================
# Reporting timezone
# =============================================================================

def reporting_zone(name: Optional[str] = None) -> ZoneInfo:
    """Zone used for calendar-day boundaries (sale numbering, report ranges)."""
    if name is None:
        name = current_app.config.get("REPORT_TIMEZONE", "UTC")
    return ZoneInfo(name)


def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert a UTC-naive timestamp into a naive wall-clock time in tz."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz).replace(tzinfo=None)


def local_today(tz: Optional[ZoneInfo] = None) -> date:
    tz = tz or reporting_zone()
    return to_local(utcnow(), tz).date()


def local_midnight_utc(day: date, tz: ZoneInfo) -> datetime:
    """UTC-naive instant at which `day` starts in tz."""
    local = datetime.combine(day, time.min).replace(tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def day_window(start: date, end: date, tz: Optional[ZoneInfo] = None) -> tuple[datetime, datetime]:
    """
    Convert an inclusive [start, end] calendar range into a half-open
    UTC-naive timestamp range [start 00:00, end+1 00:00) in tz.
    """
    tz = tz or reporting_zone()
    return local_midnight_utc(start, tz), local_midnight_utc(end + timedelta(days=1), tz)
