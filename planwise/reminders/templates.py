"""
Message rendering for WhatsApp reminders.

Each event family has a typed context whose fields are exposed to
user-editable templates as ``{placeholder}`` names. Substitution is a single
regex pass shared by all families; they differ only in the default template,
the length cap and whether unknown placeholders are kept or dropped.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Dict, Optional, Union

from planwise.utils.timezone import get_zoneinfo, resolve_timezone_name, to_utc_aware
from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_TASK_START_TEMPLATE = (
    'Start in 1 Stunde: "{taskTitle}"\nBeginn: {startAt}\nProjekt: {project}\nWichtigkeit: {priority}'
)
DEFAULT_TASK_CREATED_TEMPLATE = (
    'Neue Aufgabe gespeichert: "{taskTitle}"\nStart: {startAt}\nProjekt: {project}\nWichtigkeit: {priority}'
)
DEFAULT_WEEKLY_REVIEW_TEMPLATE = "Wochenrueckblick ({weekRange})\n\n{review}"

NO_PROJECT_LABEL = "Kein Projekt"
NOT_SCHEDULED_LABEL = "Nicht geplant"

PRIORITY_LABELS = {
    "urgent": "Dringend",
    "high": "Hoch",
    "medium": "Mittel",
    "low": "Niedrig",
}

_PLACEHOLDER_RE = re.compile(r"\{([a-zA-Z0-9_]+)\}")


@dataclass(frozen=True)
class TaskStartContext:
    kind: ClassVar[str] = "task-start"
    task_title: str
    start_at: str
    project: str
    priority: str

    def placeholders(self) -> Dict[str, str]:
        return {
            "taskTitle": self.task_title,
            "startAt": self.start_at,
            "project": self.project,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class TaskCreatedContext(TaskStartContext):
    kind: ClassVar[str] = "task-created"


@dataclass(frozen=True)
class WeeklyReviewContext:
    kind: ClassVar[str] = "weekly-review"
    week_range: str
    review: str

    def placeholders(self) -> Dict[str, str]:
        return {"weekRange": self.week_range, "review": self.review}


TemplateContext = Union[TaskStartContext, TaskCreatedContext, WeeklyReviewContext]


def apply_template(template: str, values: Dict[str, str], keep_unknown: bool = False) -> str:
    """Replace every ``{name}``; unknown names are kept verbatim or removed."""
    def _sub(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        return match.group(0) if keep_unknown else ""

    return _PLACEHOLDER_RE.sub(_sub, template)


def priority_label(priority: Optional[str]) -> str:
    if not priority:
        return PRIORITY_LABELS["medium"]
    return PRIORITY_LABELS.get(priority, priority)


def format_start_at(instant: Optional[datetime], tz_name: Optional[str]) -> str:
    """``dd.MM.yyyy HH:mm Uhr`` on the recipient's wall clock, UTC if the zone is unusable."""
    if instant is None:
        return NOT_SCHEDULED_LABEL
    instant = to_utc_aware(instant)
    tz = get_zoneinfo(resolve_timezone_name(tz_name))
    if tz is None:
        logger.debug(f"Unknown timezone {tz_name!r}, formatting start time in UTC")
        return f"{instant:%d.%m.%Y %H:%M} Uhr"
    return f"{instant.astimezone(tz):%d.%m.%Y %H:%M} Uhr"


def render_task_start(template_raw: Optional[str], context: TaskStartContext) -> str:
    """
    Task start reminder body.

    Both the template and the rendered body are cut to the cap. Only the
    known placeholders are replaced; anything else in braces stays as typed.
    """
    values = context.placeholders()
    cap = settings.TASK_START_MAX_LENGTH
    template = (template_raw or "").strip() or DEFAULT_TASK_START_TEMPLATE
    rendered = apply_template(template[:cap], values, keep_unknown=True)
    if not rendered.strip():
        rendered = apply_template(DEFAULT_TASK_START_TEMPLATE, values, keep_unknown=True)
    return rendered[:cap]


def render_task_created(template_raw: Optional[str], context: TaskCreatedContext) -> str:
    values = context.placeholders()
    template = (template_raw or "").strip()[: settings.TASK_CREATED_MAX_LENGTH] or DEFAULT_TASK_CREATED_TEMPLATE
    rendered = apply_template(template, values)
    if rendered.strip():
        return rendered
    return apply_template(DEFAULT_TASK_CREATED_TEMPLATE, values)


def render_weekly_review(template_raw: Optional[str], context: WeeklyReviewContext) -> str:
    """Weekly review body; unknown placeholders are dropped, result capped."""
    values = context.placeholders()
    cap = settings.WEEKLY_REVIEW_MAX_LENGTH
    template = (template_raw or "").strip()[:cap] or DEFAULT_WEEKLY_REVIEW_TEMPLATE
    rendered = apply_template(template, values)
    if not rendered.strip():
        rendered = apply_template(DEFAULT_WEEKLY_REVIEW_TEMPLATE, values)
    return rendered[:cap]


def render(template_raw: Optional[str], context: TemplateContext) -> str:
    """Dispatch on the context type."""
    if isinstance(context, TaskCreatedContext):
        return render_task_created(template_raw, context)
    if isinstance(context, TaskStartContext):
        return render_task_start(template_raw, context)
    if isinstance(context, WeeklyReviewContext):
        return render_weekly_review(template_raw, context)
    raise TypeError(f"Unsupported template context: {type(context).__name__}")
