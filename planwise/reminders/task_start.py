"""
Task start reminders: "your task starts in one hour".

Each run looks at tasks due within lead time +/- tolerance, so a scheduler
firing every few minutes sees every task in at least one run; the ledger
stops the overlapping runs from sending twice.
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from planwise.models.notification_delivery import DeliveryStatus
from planwise.models.notification_settings import NotificationSettings
from planwise.models.task import Task
from planwise.utils.timezone import format_instant_iso, to_utc_aware, utc_now
from . import ledger, repository
from .dispatcher import CHANNEL_WHATSAPP, MessagingGateway, describe_error
from .metrics import (
    cron_runs_total,
    reminders_failed_total,
    reminders_sent_total,
    reminders_skipped_duplicate_total,
)
from .schemas import TaskStartSummary
from .templates import (
    NO_PROJECT_LABEL,
    TaskStartContext,
    format_start_at,
    priority_label,
    render_task_start,
)
from .windows import task_start_event_key, task_start_window

logger = logging.getLogger(__name__)

JOB = "task-start"


def resolve_project_title(task: Task, projects_by_id: Dict[str, str]) -> str:
    """Legacy project_id first, then project_ids in order; first known title wins."""
    for project_id in [task.project_id, *(task.project_ids or [])]:
        if project_id and projects_by_id.get(project_id):
            return projects_by_id[project_id]
    return NO_PROJECT_LABEL


class TaskStartReminderProcessor:
    def __init__(self, db: Session, gateway: MessagingGateway, now: Optional[datetime] = None):
        self.db = db
        self.gateway = gateway
        self.now = to_utc_aware(now) if now else utc_now()

    def run(self) -> TaskStartSummary:
        cron_runs_total.labels(job=JOB).inc()
        window_start, window_end = task_start_window(self.now)
        recipients = repository.list_task_start_recipients(self.db)
        summary = TaskStartSummary(
            users_checked=len(recipients),
            window_start=format_instant_iso(window_start),
            window_end=format_instant_iso(window_end),
        )
        logger.info(
            f"Task start run | users={len(recipients)} window={summary.window_start}..{summary.window_end}"
        )

        for setting in recipients:
            self._process_user(setting, window_start, window_end, summary)

        logger.info(f"Task start run finished | {summary.model_dump()}")
        return summary

    def _process_user(
        self,
        setting: NotificationSettings,
        window_start: datetime,
        window_end: datetime,
        summary: TaskStartSummary,
    ) -> None:
        user_id = setting.user_id
        phone_number = (setting.whatsapp_phone_number or "").strip()
        if not phone_number:
            return

        try:
            tasks = repository.get_open_tasks_due_between(self.db, user_id, window_start, window_end)
            if not tasks:
                return
            projects_by_id = repository.get_project_titles(
                self.db, user_id, repository.project_ids_for(tasks)
            )
        except Exception as e:
            logger.error(f"Failed to load tasks for user {user_id}: {e!r}")
            self.db.rollback()
            return

        summary.tasks_matched += len(tasks)
        for task in tasks:
            self._process_task(setting, phone_number, task, projects_by_id, summary)

    def _process_task(
        self,
        setting: NotificationSettings,
        phone_number: str,
        task: Task,
        projects_by_id: Dict[str, str],
        summary: TaskStartSummary,
    ) -> None:
        start_at = to_utc_aware(task.due_date)
        event_key = task_start_event_key(task.id, start_at)

        try:
            reserved = ledger.reserve(
                self.db,
                setting.user_id,
                event_key,
                {"taskId": task.id, "dueDate": format_instant_iso(start_at)},
            )
        except ledger.LedgerError as e:
            logger.error(f"Could not reserve delivery slot | event_key={event_key}: {e}")
            summary.reminders_failed += 1
            reminders_failed_total.labels(job=JOB).inc()
            return

        if not reserved:
            summary.reminders_skipped_duplicate += 1
            reminders_skipped_duplicate_total.labels(job=JOB).inc()
            return

        project_title = resolve_project_title(task, projects_by_id)
        context = TaskStartContext(
            task_title=task.title,
            start_at=format_start_at(start_at, setting.timezone),
            project=project_title,
            priority=priority_label(task.priority),
        )
        message = render_task_start(setting.whatsapp_task_start_template, context)

        try:
            result = self.gateway.send(CHANNEL_WHATSAPP, phone_number, message)
        except Exception as e:
            logger.warning(f"Task start reminder failed | event_key={event_key}: {e!r}")
            ledger.finalize(self.db, event_key, DeliveryStatus.FAILED, {
                "taskTitle": task.title,
                "error": describe_error(e),
            })
            summary.reminders_failed += 1
            reminders_failed_total.labels(job=JOB).inc()
            return

        ledger.finalize(self.db, event_key, DeliveryStatus.SENT, {
            "taskTitle": task.title,
            "projectTitle": project_title,
            "deliveredAt": format_instant_iso(utc_now()),
            "messageSid": getattr(result, "message_sid", None),
        })
        summary.reminders_sent += 1
        reminders_sent_total.labels(job=JOB).inc()
