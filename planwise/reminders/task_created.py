"""
"Task created" WhatsApp notification, sent once per task id.

Unlike the cron jobs this runs on request: the web client (or a backend
hook) posts the freshly saved task and the message goes out immediately.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from planwise.models.notification_delivery import DeliveryStatus
from planwise.utils.timezone import format_instant_iso, utc_now
from . import ledger
from .dispatcher import (
    CHANNEL_WHATSAPP,
    MessagingGateway,
    TwilioError,
    describe_error,
    is_valid_e164_phone_number,
)
from .metrics import reminders_failed_total, reminders_sent_total, reminders_skipped_duplicate_total
from .schemas import TaskCreatedNotification, TaskCreatedResult
from .templates import NO_PROJECT_LABEL, TaskCreatedContext, format_start_at, priority_label, render_task_created
from .windows import task_created_event_key

logger = logging.getLogger(__name__)

JOB = "task-created"


def parse_start_at(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 instant from the client, or None when missing or unparseable."""
    raw = (value or "").strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


class TaskCreatedNotifier:
    def __init__(self, db: Session, gateway: MessagingGateway):
        self.db = db
        self.gateway = gateway

    def notify(self, payload: TaskCreatedNotification, caller_user_id: Optional[str] = None) -> TaskCreatedResult:
        phone_number = (payload.phone_number or "").strip()
        task_title = (payload.task_title or "").strip()
        task_id = (payload.task_id or "").strip()
        # A user token always wins over whatever the body claims.
        user_id = caller_user_id or (payload.user_id or "").strip()

        if not is_valid_e164_phone_number(phone_number):
            raise TwilioError(
                "Ungueltige Telefonnummer. Bitte im E.164-Format senden (z.B. +491234567890).",
                400,
            )
        if not task_title:
            raise TwilioError("taskTitle fehlt.", 400)

        context = TaskCreatedContext(
            task_title=task_title,
            start_at=format_start_at(parse_start_at(payload.task_start_at), payload.timezone),
            project=(payload.project_title or "").strip() or NO_PROJECT_LABEL,
            priority=priority_label(payload.priority),
        )

        event_key = task_created_event_key(task_id) if task_id and user_id else None
        if event_key:
            reserved = ledger.reserve(self.db, user_id, event_key, {
                "taskId": task_id,
                "taskTitle": task_title,
                "projectTitle": context.project,
                "priority": context.priority,
                "startAt": payload.task_start_at or None,
            })
            if not reserved:
                reminders_skipped_duplicate_total.labels(job=JOB).inc()
                logger.info(f"Task created notification already handled | event_key={event_key}")
                return TaskCreatedResult(skipped_duplicate=True)

        message = render_task_created(payload.message_template, context)
        try:
            result = self.gateway.send(CHANNEL_WHATSAPP, phone_number, message)
        except Exception as e:
            reminders_failed_total.labels(job=JOB).inc()
            if event_key:
                ledger.finalize(self.db, event_key, DeliveryStatus.FAILED, {"error": describe_error(e)})
            raise

        if event_key:
            ledger.finalize(self.db, event_key, DeliveryStatus.SENT, {
                "deliveredAt": format_instant_iso(utc_now()),
            })
        reminders_sent_total.labels(job=JOB).inc()
        return TaskCreatedResult(message_sid=result.message_sid)
