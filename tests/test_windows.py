from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from planwise.reminders.windows import (
    in_task_start_window,
    is_weekly_review_due,
    normalize_reminder_time,
    task_created_event_key,
    task_start_event_key,
    task_start_window,
    week_bounds,
    weekly_review_event_key,
    weekly_window_info,
)
from planwise.utils.timezone import format_instant_iso, local_datetime_parts

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
# Sunday 2026-10-18, Berlin is on CEST (UTC+2)
SUNDAY_2204_BERLIN = datetime(2026, 10, 18, 20, 4, tzinfo=timezone.utc)


def test_task_start_window_bounds():
    start, end = task_start_window(NOW)
    assert start == NOW + timedelta(minutes=53)
    assert end == NOW + timedelta(minutes=67)


def test_task_start_window_is_inclusive():
    assert in_task_start_window(NOW + timedelta(minutes=53), NOW)
    assert in_task_start_window(NOW + timedelta(minutes=60), NOW)
    assert in_task_start_window(NOW + timedelta(minutes=67), NOW)
    assert not in_task_start_window(NOW + timedelta(minutes=52, seconds=59), NOW)
    assert not in_task_start_window(NOW + timedelta(minutes=69), NOW)
    assert not in_task_start_window(None, NOW)


def test_task_start_window_accepts_naive_utc():
    naive_due = (NOW + timedelta(minutes=60)).replace(tzinfo=None)
    assert in_task_start_window(naive_due, NOW.replace(tzinfo=None))


def test_normalize_reminder_time():
    assert normalize_reminder_time("07:30") == "07:30"
    assert normalize_reminder_time(" 21:45 ") == "21:45"
    assert normalize_reminder_time("7:30") == "22:00"
    assert normalize_reminder_time("24:00") == "22:00"
    assert normalize_reminder_time("23:60") == "22:00"
    assert normalize_reminder_time(None) == "22:00"
    assert normalize_reminder_time("abc", "08:00") == "08:00"


def test_week_bounds_both_conventions():
    sunday = date(2026, 10, 18)
    monday = date(2026, 10, 19)
    assert week_bounds(sunday, True) == (date(2026, 10, 12), date(2026, 10, 18))
    assert week_bounds(sunday, False) == (date(2026, 10, 18), date(2026, 10, 24))
    assert week_bounds(monday, True) == (date(2026, 10, 19), date(2026, 10, 25))
    assert week_bounds(monday, False) == (date(2026, 10, 18), date(2026, 10, 24))


def test_local_datetime_parts_uses_sunday_zero():
    parts = local_datetime_parts(SUNDAY_2204_BERLIN, "Europe/Berlin")
    assert parts.weekday == 0
    assert (parts.year, parts.month, parts.day) == (2026, 10, 18)
    assert (parts.hour, parts.minute) == (22, 4)
    assert local_datetime_parts(SUNDAY_2204_BERLIN, "Mars/Olympus") is None


def test_weekly_review_due_tolerance_edges():
    base = local_datetime_parts(datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc), "Europe/Berlin")
    assert is_weekly_review_due(base, "22:00")
    at_tolerance = local_datetime_parts(datetime(2026, 10, 18, 20, 9, tzinfo=timezone.utc), "Europe/Berlin")
    assert is_weekly_review_due(at_tolerance, "22:00")
    too_late = local_datetime_parts(datetime(2026, 10, 18, 20, 10, tzinfo=timezone.utc), "Europe/Berlin")
    assert not is_weekly_review_due(too_late, "22:00")
    too_early = local_datetime_parts(datetime(2026, 10, 18, 19, 59, tzinfo=timezone.utc), "Europe/Berlin")
    assert not is_weekly_review_due(too_early, "22:00")


def test_weekly_window_info_in_window_monday_start():
    info = weekly_window_info("Europe/Berlin", "22:00", True, SUNDAY_2204_BERLIN)
    assert info is not None
    assert info.timezone == "Europe/Berlin"
    assert info.week_key == "2026-10-12"
    assert info.week_range == "12.10 - 18.10"
    assert info.week_anchor == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_weekly_window_info_sunday_start():
    info = weekly_window_info("Europe/Berlin", "22:00", False, SUNDAY_2204_BERLIN)
    assert info.week_key == "2026-10-18"
    assert info.week_range == "18.10 - 24.10"


def test_weekly_window_info_out_of_window():
    assert weekly_window_info("Europe/Berlin", "22:00", True, SUNDAY_2204_BERLIN + timedelta(minutes=6)) is None
    saturday = SUNDAY_2204_BERLIN - timedelta(days=1)
    assert weekly_window_info("Europe/Berlin", "22:00", True, saturday) is None


def test_weekly_window_info_timezone_handling():
    assert weekly_window_info("Mars/Olympus", "22:00", True, SUNDAY_2204_BERLIN) is None
    # Blank zone falls back to UTC, where it is 20:04 on Sunday
    info = weekly_window_info("  ", "20:00", True, SUNDAY_2204_BERLIN)
    assert info is not None
    assert info.timezone == "UTC"


def test_weekly_window_info_malformed_time_uses_default():
    assert weekly_window_info("Europe/Berlin", "25:99", True, SUNDAY_2204_BERLIN) is not None


def test_event_keys():
    due = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)
    assert task_start_event_key("t1", due) == "task-start:t1:2026-10-19T14:00:00.000Z"
    same_instant_berlin = due.astimezone(ZoneInfo("Europe/Berlin"))
    assert task_start_event_key("t1", same_instant_berlin) == task_start_event_key("t1", due)
    assert task_start_event_key("t1", due + timedelta(minutes=5)) != task_start_event_key("t1", due)
    assert weekly_review_event_key("u1", "2026-10-12") == "weekly-review:u1:2026-10-12"
    assert task_created_event_key("t1") == "task-created:t1"


def test_format_instant_iso_milliseconds():
    value = datetime(2026, 10, 19, 14, 0, 5, 123456, tzinfo=timezone.utc)
    assert format_instant_iso(value) == "2026-10-19T14:00:05.123Z"
