"""
Eligibility windows and event keys for the reminder jobs.

All timezone handling goes through ``local_datetime_parts``; the checks
below only do arithmetic on its output, so they can be tested with fixed
instants.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Optional, Tuple

from planwise.utils.timezone import (
    LocalDateTimeParts,
    format_instant_iso,
    local_datetime_parts,
    resolve_timezone_name,
    to_utc_aware,
)
from .config import settings

SUNDAY = 0
MONDAY = 1

_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


@dataclass(frozen=True)
class WeeklyWindowInfo:
    timezone: str
    week_starts_on_monday: bool
    week_key: str            # first day of the week, YYYY-MM-DD
    week_range: str          # "dd.MM - dd.MM"
    week_anchor: datetime    # local date at 12:00, UTC-aware


def task_start_window(now: datetime) -> Tuple[datetime, datetime]:
    """[now + lead - tolerance, now + lead + tolerance], both ends inclusive."""
    now = to_utc_aware(now)
    lead = settings.TASK_START_LEAD_MINUTES
    tolerance = settings.TASK_START_TOLERANCE_MINUTES
    return (
        now + timedelta(minutes=lead - tolerance),
        now + timedelta(minutes=lead + tolerance),
    )


def in_task_start_window(due: Optional[datetime], now: datetime) -> bool:
    if due is None:
        return False
    start, end = task_start_window(now)
    return start <= to_utc_aware(due) <= end


def normalize_reminder_time(value: Optional[str], fallback: Optional[str] = None) -> str:
    """Return ``value`` if it is a valid HH:MM time, otherwise the fallback."""
    fallback = fallback or settings.WEEKLY_REVIEW_DEFAULT_TIME
    normalized = (value or "").strip()
    if not _TIME_RE.match(normalized):
        return fallback
    hour, minute = (int(part) for part in normalized.split(":"))
    if hour > 23 or minute > 59:
        return fallback
    return normalized


def week_bounds(anchor: date, week_starts_on_monday: bool) -> Tuple[date, date]:
    """First and last calendar day of the week containing ``anchor``."""
    week_starts_on = MONDAY if week_starts_on_monday else SUNDAY
    weekday = (anchor.weekday() + 1) % 7  # 0 = Sunday
    start = anchor - timedelta(days=(weekday - week_starts_on) % 7)
    return start, start + timedelta(days=6)


def format_week_range(start: date, end: date) -> str:
    return f"{start:%d.%m} - {end:%d.%m}"


def is_weekly_review_due(local_now: LocalDateTimeParts, scheduled_time: str) -> bool:
    """Sunday, and no earlier than the scheduled minute nor later than the tolerance."""
    if local_now.weekday != SUNDAY:
        return False
    hour, minute = (int(part) for part in scheduled_time.split(":"))
    scheduled = hour * 60 + minute
    return scheduled <= local_now.minutes_of_day <= scheduled + settings.WEEKLY_REVIEW_TOLERANCE_MINUTES


def weekly_window_info(
    tz_name: Optional[str],
    review_time: Optional[str],
    week_starts_on_monday: bool,
    now: datetime,
) -> Optional[WeeklyWindowInfo]:
    """
    Window info if the weekly review is due for this user right now, else None.

    A timezone that cannot be resolved yields None (user skipped this run).
    """
    timezone = resolve_timezone_name(tz_name)
    local_now = local_datetime_parts(now, timezone)
    if local_now is None:
        return None

    scheduled_time = normalize_reminder_time(review_time)
    if not is_weekly_review_due(local_now, scheduled_time):
        return None

    local_date = date(local_now.year, local_now.month, local_now.day)
    # Noon keeps the anchor on the same calendar day across DST shifts
    anchor = datetime.combine(local_date, time(12, 0), tzinfo=dt_timezone.utc)
    start, end = week_bounds(local_date, week_starts_on_monday)
    return WeeklyWindowInfo(
        timezone=timezone,
        week_starts_on_monday=week_starts_on_monday,
        week_key=start.isoformat(),
        week_range=format_week_range(start, end),
        week_anchor=anchor,
    )


def task_start_event_key(task_id: str, due: datetime) -> str:
    return f"task-start:{task_id}:{format_instant_iso(due)}"


def weekly_review_event_key(user_id: str, week_key: str) -> str:
    return f"weekly-review:{user_id}:{week_key}"


def task_created_event_key(task_id: str) -> str:
    return f"task-created:{task_id}"
