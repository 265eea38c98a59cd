"""
Weekly review reminders, sent on Sunday at the user's chosen local time.

The event key is scoped to the user and the first day of the week, so the
review goes out once per week no matter how many runs land in the window.
A failure after the reservation is recorded, and that week is not retried.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from planwise.models.notification_delivery import DeliveryStatus
from planwise.models.notification_settings import NotificationSettings
from planwise.utils.timezone import format_instant_iso, to_utc_aware, utc_now
from . import ledger, repository
from .dispatcher import CHANNEL_WHATSAPP, MessagingGateway, describe_error
from .metrics import (
    cron_runs_total,
    reminders_failed_total,
    reminders_sent_total,
    reminders_skipped_duplicate_total,
)
from .review import build_weekly_review
from .schemas import WeeklyReviewSummary
from .templates import WeeklyReviewContext, render_weekly_review
from .windows import WeeklyWindowInfo, weekly_review_event_key, weekly_window_info

logger = logging.getLogger(__name__)

JOB = "weekly-review"


class WeeklyReviewReminderProcessor:
    def __init__(self, db: Session, gateway: MessagingGateway, now: Optional[datetime] = None):
        self.db = db
        self.gateway = gateway
        self.now = to_utc_aware(now) if now else utc_now()

    def run(self) -> WeeklyReviewSummary:
        cron_runs_total.labels(job=JOB).inc()
        recipients = repository.list_weekly_review_recipients(self.db)
        summary = WeeklyReviewSummary(users_checked=len(recipients))
        logger.info(f"Weekly review run | users={len(recipients)} now={format_instant_iso(self.now)}")

        for setting in recipients:
            phone_number = (setting.whatsapp_phone_number or "").strip()
            if not phone_number:
                continue

            window = weekly_window_info(
                setting.timezone,
                setting.whatsapp_weekly_review_time,
                setting.week_starts_on_monday is not False,
                self.now,
            )
            if window is None:
                continue
            summary.users_in_window += 1
            self._process_user(setting, phone_number, window, summary)

        logger.info(f"Weekly review run finished | {summary.model_dump()}")
        return summary

    def _process_user(
        self,
        setting: NotificationSettings,
        phone_number: str,
        window: WeeklyWindowInfo,
        summary: WeeklyReviewSummary,
    ) -> None:
        user_id = setting.user_id
        template = setting.whatsapp_weekly_review_template
        event_key = weekly_review_event_key(user_id, window.week_key)

        try:
            reserved = ledger.reserve(self.db, user_id, event_key, {
                "weekKey": window.week_key,
                "timezone": window.timezone,
            })
        except ledger.LedgerError as e:
            logger.error(f"Could not reserve delivery slot | event_key={event_key}: {e}")
            summary.reminders_failed += 1
            reminders_failed_total.labels(job=JOB).inc()
            return

        if not reserved:
            summary.reminders_skipped_duplicate += 1
            reminders_skipped_duplicate_total.labels(job=JOB).inc()
            return

        try:
            tasks = repository.list_tasks_for_user(self.db, user_id)
            goals = repository.list_goals_for_user(self.db, user_id)
            review = build_weekly_review(
                tasks,
                goals,
                window.week_anchor,
                window.week_starts_on_monday,
            )
            message = render_weekly_review(
                template,
                WeeklyReviewContext(week_range=window.week_range, review=review),
            )
            result = self.gateway.send(CHANNEL_WHATSAPP, phone_number, message)
        except Exception as e:
            logger.warning(f"Weekly review failed | event_key={event_key}: {e!r}")
            self.db.rollback()
            ledger.finalize(self.db, event_key, DeliveryStatus.FAILED, {
                "error": describe_error(e),
            })
            summary.reminders_failed += 1
            reminders_failed_total.labels(job=JOB).inc()
            return

        ledger.finalize(self.db, event_key, DeliveryStatus.SENT, {
            "deliveredAt": format_instant_iso(utc_now()),
            "messageSid": getattr(result, "message_sid", None),
        })
        summary.reminders_sent += 1
        reminders_sent_total.labels(job=JOB).inc()
