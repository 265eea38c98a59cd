from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from planwise.core.config import settings


@dataclass(frozen=True)
class LocalDateTimeParts:
    """Wall-clock fields of an instant in some zone. weekday: 0 = Sunday ... 6 = Saturday."""
    weekday: int
    year: int
    month: int
    day: int
    hour: int
    minute: int

    @property
    def minutes_of_day(self) -> int:
        return self.hour * 60 + self.minute


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def get_zoneinfo(tz_name: Optional[str]) -> Optional[ZoneInfo]:
    """Resolve an IANA name, or None when it is unknown or malformed."""
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def resolve_timezone_name(raw: Optional[str]) -> str:
    """Stored timezone, or the configured default (UTC) when missing/blank."""
    name = (raw or "").strip()
    return name or settings.DEFAULT_TIMEZONE or "UTC"


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def local_datetime_parts(instant: datetime, tz_name: str) -> Optional[LocalDateTimeParts]:
    """
    Convert an absolute instant to the wall clock of ``tz_name``.

    Returns None if the zone cannot be resolved; callers treat that as
    "no local time known" and skip whatever depended on it.
    """
    tz = get_zoneinfo(tz_name)
    if tz is None:
        return None
    local = to_utc_aware(instant).astimezone(tz)
    return LocalDateTimeParts(
        weekday=(local.weekday() + 1) % 7,
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
    )


def format_instant_iso(dt: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix, e.g. 2026-10-19T14:00:00.000Z."""
    return to_utc_aware(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")
