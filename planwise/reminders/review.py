"""
Weekly review summary text built from a user's task and goal snapshot.

Pure function over plain rows; the weekly-review job wraps the result in
the user's template.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Iterable, List, Optional, Sequence

from planwise.models.task import Goal, Task, TaskStatus
from planwise.utils.timezone import to_utc_aware
from .windows import week_bounds

MAX_MESSAGE_LENGTH = 1300
FALLBACK_GOAL_LINE = "- Keine Zielaufgaben mit Verknuepfung gefunden."
FALLBACK_NEXT_WEEK_LINE = "- Keine faelligen Zielaufgaben fuer naechste Woche."
FALLBACK_PLAN_LINE = "- Kein Weekly Plan in Zielen gepflegt."
RECOMMENDATION_LINE = "Empfehlung: Sonntag kurz priorisieren, Montag 1 MIT + 2 Next Actions starten."
WEEKDAY_LABELS = ["So", "Mo", "Di", "Mi", "Do", "Fr", "Sa"]


@dataclass
class _GoalStat:
    title: str
    progress: int
    completed_count: int
    open_count: int
    due_next_week_count: int

    @property
    def score(self) -> int:
        return self.due_next_week_count * 3 + self.open_count * 2 + self.progress


def _truncate(value: str, max_length: int = 50) -> str:
    if len(value) <= max_length:
        return value
    return f"{value[: max_length - 3]}..."


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=dt_timezone.utc)


def _day_end(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=dt_timezone.utc)


def _in_range(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    if value is None:
        return False
    return start <= to_utc_aware(value) <= end


def _goal_links(task: Task) -> List[str]:
    links: List[str] = []
    for goal_id in list(task.goal_ids or []) + [task.goal_id]:
        if goal_id and goal_id not in links:
            links.append(goal_id)
    return links


def _is_open(task: Task) -> bool:
    return task.status not in (TaskStatus.COMPLETED, TaskStatus.ARCHIVED)


def _weekly_plan(goal: Goal) -> list:
    if not isinstance(goal.weekly_plan, list):
        return []
    return [
        item for item in goal.weekly_plan
        if isinstance(item, dict)
        and isinstance(item.get("title"), str)
        and isinstance(item.get("weekday"), int)
        and 0 <= item["weekday"] <= 6
    ]


def build_weekly_review(
    tasks: Sequence[Task],
    goals: Iterable[Goal],
    week_anchor: datetime,
    week_starts_on_monday: bool = True,
) -> str:
    goals = list(goals)
    anchor = to_utc_aware(week_anchor)
    first_day, last_day = week_bounds(anchor.date(), week_starts_on_monday)
    this_week_start, this_week_end = _day_start(first_day), _day_end(last_day)
    next_first = first_day + timedelta(days=7)
    next_last = last_day + timedelta(days=7)
    next_week_start, next_week_end = _day_start(next_first), _day_end(next_last)

    completed_this_week = [
        t for t in tasks
        if t.status == TaskStatus.COMPLETED and _in_range(t.completed_at, this_week_start, this_week_end)
    ]
    created_this_week = [t for t in tasks if _in_range(t.created_at, this_week_start, this_week_end)]
    open_tasks = [t for t in tasks if _is_open(t)]
    overdue_tasks = [t for t in open_tasks if t.due_date is not None and to_utc_aware(t.due_date) < anchor]

    stats: List[_GoalStat] = []
    for goal in goals:
        goal_tasks = [t for t in tasks if goal.id in _goal_links(t)]
        progress = goal.progress or 0
        if not goal_tasks and progress <= 0:
            continue
        stats.append(_GoalStat(
            title=goal.title,
            progress=progress,
            completed_count=sum(1 for t in goal_tasks if t.status == TaskStatus.COMPLETED),
            open_count=sum(1 for t in goal_tasks if _is_open(t)),
            due_next_week_count=sum(
                1 for t in goal_tasks
                if _is_open(t) and _in_range(t.due_date, next_week_start, next_week_end)
            ),
        ))
    stats.sort(key=lambda s: s.score, reverse=True)

    goal_lines = [
        f"- {_truncate(s.title, 34)}: {s.progress}% | erledigt {s.completed_count} | offen {s.open_count}"
        for s in stats[:3]
    ] or [FALLBACK_GOAL_LINE]

    goal_titles = {g.id: g.title for g in goals}
    due_next_week = sorted(
        (
            t for t in open_tasks
            if _goal_links(t) and _in_range(t.due_date, next_week_start, next_week_end)
        ),
        key=lambda t: to_utc_aware(t.due_date),
    )[:4]
    next_week_lines = []
    for task in due_next_week:
        goal_title = goal_titles.get(_goal_links(task)[0])
        goal_label = _truncate(goal_title, 18) if goal_title else "ohne Ziel"
        next_week_lines.append(
            f"- {_truncate(task.title, 40)} ({goal_label}, {to_utc_aware(task.due_date):%d.%m})"
        )
    next_week_lines = next_week_lines or [FALLBACK_NEXT_WEEK_LINE]

    plan_items = sorted(
        ((goal.title, item) for goal in goals for item in _weekly_plan(goal)),
        key=lambda pair: pair[1]["weekday"],
    )[:4]
    plan_lines = [
        f"- {WEEKDAY_LABELS[item['weekday']]}: {_truncate(item['title'], 32)} [{_truncate(goal_title, 18)}]"
        for goal_title, item in plan_items
    ] or [FALLBACK_PLAN_LINE]

    lines = [
        f"Wochenrueckblick ({first_day:%d.%m} - {last_day:%d.%m})",
        f"Erledigt: {len(completed_this_week)} | Neu: {len(created_this_week)} | "
        f"Offen: {len(open_tasks)} | Ueberfaellig: {len(overdue_tasks)}",
        "",
        "Zielstatus:",
        *goal_lines,
        "",
        f"Naechste Woche ({next_first:%d.%m} - {next_last:%d.%m}):",
        *next_week_lines,
        "",
        "Geplanter Fokus aus Zielen:",
        *plan_lines,
        "",
        RECOMMENDATION_LINE,
    ]
    message = "\n".join(lines).strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        return f"{message[: MAX_MESSAGE_LENGTH - 3].rstrip()}..."
    return message
