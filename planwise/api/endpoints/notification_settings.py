import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from planwise.api import deps
from planwise.db.session import get_db
from planwise.models.notification_settings import NotificationSettings
from planwise.reminders import repository
from planwise.reminders.dispatcher import is_valid_e164_phone_number
from planwise.reminders.templates import (
    DEFAULT_TASK_CREATED_TEMPLATE,
    DEFAULT_TASK_START_TEMPLATE,
    DEFAULT_WEEKLY_REVIEW_TEMPLATE,
)
from planwise.reminders.windows import normalize_reminder_time
from planwise.schemas.notification_settings import (
    NotificationSettingsPreload,
    NotificationSettingsRead,
    NotificationSettingsSync,
)
from planwise.utils.timezone import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_TEMPLATE_LENGTH = 1500
MAX_TIMEZONE_LENGTH = 120
MAX_NAME_LENGTH = 120
MAX_EMAIL_LENGTH = 320
MAX_SNAPSHOT_LENGTH = 50000


def coerce_boolean(value: Any, fallback: bool) -> bool:
    return value if isinstance(value, bool) else fallback


def sanitize_timezone(value: Any) -> str:
    if not isinstance(value, str):
        return "UTC"
    normalized = value.strip()
    if not normalized or len(normalized) > MAX_TIMEZONE_LENGTH:
        return "UTC"
    return normalized


def sanitize_template(value: Any, fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    normalized = value.strip()
    if not normalized:
        return fallback
    return normalized[:MAX_TEMPLATE_LENGTH]


def sanitize_text(value: Any, max_length: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def sanitize_settings_snapshot(value: Any) -> Optional[Dict[str, Any]]:
    """Keep the client snapshot only if it is a JSON object of bounded size."""
    if not isinstance(value, dict):
        return None
    try:
        serialized = json.dumps(value)
    except (TypeError, ValueError):
        return None
    if len(serialized) > MAX_SNAPSHOT_LENGTH:
        return None
    return json.loads(serialized)


def sanitize_phone_number(value: Any) -> Optional[str]:
    normalized = value.strip() if isinstance(value, str) else ""
    if not normalized:
        return None
    if not is_valid_e164_phone_number(normalized):
        raise HTTPException(
            status_code=400,
            detail="Ungueltige WhatsApp-Nummer. Bitte E.164 Format nutzen (z.B. +491234567890).",
        )
    return normalized


def to_read_model(row: NotificationSettings) -> NotificationSettingsRead:
    return NotificationSettingsRead(
        name=row.profile_name or "",
        email=row.profile_email or "",
        whatsapp_reminders_enabled=row.whatsapp_reminders_enabled is True,
        whatsapp_phone_number=row.whatsapp_phone_number or "",
        whatsapp_task_created_enabled=row.whatsapp_task_created_enabled is not False,
        whatsapp_task_start_reminder_enabled=row.whatsapp_task_start_reminder_enabled is not False,
        whatsapp_weekly_review_enabled=row.whatsapp_weekly_review_enabled is not False,
        whatsapp_weekly_review_time=row.whatsapp_weekly_review_time or "22:00",
        whatsapp_task_created_template=row.whatsapp_task_created_template or DEFAULT_TASK_CREATED_TEMPLATE,
        whatsapp_task_start_template=row.whatsapp_task_start_template or DEFAULT_TASK_START_TEMPLATE,
        whatsapp_weekly_review_template=row.whatsapp_weekly_review_template or DEFAULT_WEEKLY_REVIEW_TEMPLATE,
        week_starts_on_monday=row.week_starts_on_monday is not False,
        timezone=row.timezone or "UTC",
    )


@router.get("/sync")
def preload_notification_settings(
    *,
    db: Session = Depends(get_db),
    user_id: str = Depends(deps.get_current_user_id),
) -> Dict[str, Any]:
    """Return the stored settings so a fresh client can hydrate its state."""
    try:
        row = repository.get_notification_settings(db, user_id)
    except Exception as e:
        logger.error(f"Failed to load notification settings for {user_id}: {e!r}")
        raise HTTPException(
            status_code=500,
            detail="Benachrichtigungseinstellungen konnten nicht geladen werden.",
        )

    if row is None:
        return NotificationSettingsPreload().model_dump(by_alias=True)

    snapshot = row.settings_snapshot if isinstance(row.settings_snapshot, dict) else None
    return NotificationSettingsPreload(
        settings=to_read_model(row),
        settings_snapshot=snapshot,
    ).model_dump(by_alias=True)


@router.post("/sync")
def sync_notification_settings(
    *,
    payload: NotificationSettingsSync,
    db: Session = Depends(get_db),
    user_id: str = Depends(deps.get_current_user_id),
) -> Dict[str, Any]:
    """Validate and upsert the caller's notification settings."""
    phone_number = sanitize_phone_number(payload.whatsapp_phone_number)
    review_time = payload.whatsapp_weekly_review_time
    snapshot = sanitize_settings_snapshot(payload.settings_snapshot)

    values = {
        "profile_name": sanitize_text(payload.name, MAX_NAME_LENGTH),
        "profile_email": sanitize_text(payload.email, MAX_EMAIL_LENGTH),
        "whatsapp_reminders_enabled": coerce_boolean(payload.whatsapp_reminders_enabled, False),
        "whatsapp_phone_number": phone_number,
        "whatsapp_task_created_enabled": coerce_boolean(payload.whatsapp_task_created_enabled, True),
        "whatsapp_task_start_reminder_enabled": coerce_boolean(
            payload.whatsapp_task_start_reminder_enabled, True
        ),
        "whatsapp_weekly_review_enabled": coerce_boolean(payload.whatsapp_weekly_review_enabled, True),
        "whatsapp_weekly_review_time": normalize_reminder_time(
            review_time if isinstance(review_time, str) else None, "22:00"
        ),
        "whatsapp_task_created_template": sanitize_template(
            payload.whatsapp_task_created_template, DEFAULT_TASK_CREATED_TEMPLATE
        ),
        "whatsapp_task_start_template": sanitize_template(
            payload.whatsapp_task_start_template, DEFAULT_TASK_START_TEMPLATE
        ),
        "whatsapp_weekly_review_template": sanitize_template(
            payload.whatsapp_weekly_review_template, DEFAULT_WEEKLY_REVIEW_TEMPLATE
        ),
        "week_starts_on_monday": coerce_boolean(payload.week_starts_on_monday, True),
        "timezone": sanitize_timezone(payload.timezone),
        "updated_at": utc_now(),
    }
    # A missing or oversized snapshot keeps whatever was stored before
    if snapshot is not None:
        values["settings_snapshot"] = snapshot

    try:
        row = repository.get_notification_settings(db, user_id)
        if row is None:
            row = NotificationSettings(user_id=user_id)
            db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to upsert notification settings for {user_id}: {e!r}")
        raise HTTPException(
            status_code=500,
            detail="Benachrichtigungseinstellungen konnten nicht gespeichert werden.",
        )

    logger.info(f"Notification settings synced | user_id={user_id} whatsapp={values['whatsapp_reminders_enabled']}")
    return {"ok": True}
