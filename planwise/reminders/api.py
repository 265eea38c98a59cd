import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from planwise.api.deps import (
    get_db,
    get_messaging_gateway,
    get_now,
    get_user_or_service_caller,
    verify_cron_secret,
)
from .dispatcher import CHANNEL_SMS, CHANNEL_WHATSAPP, MessagingGateway, TwilioError, ensure_e164_phone
from .schemas import (
    CronResponse,
    ErrorResponse,
    ManualMessageRequest,
    SendMessageResult,
    TaskCreatedNotification,
)
from .task_created import TaskCreatedNotifier
from .task_start import TaskStartReminderProcessor
from .weekly_review import WeeklyReviewReminderProcessor

logger = logging.getLogger(__name__)

DEFAULT_WHATSAPP_TEST_MESSAGE = "WhatsApp Test erfolgreich. Deine Produktivitaets-Benachrichtigungen sind aktiv."
DEFAULT_SMS_TEST_MESSAGE = "Erinnerung: Bitte pruefe heute deine offenen Aufgaben und Termine."


cron_router = APIRouter(
    dependencies=[Depends(verify_cron_secret)],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
router = APIRouter()


@cron_router.get("/task-start", response_model=CronResponse)
def run_task_start_reminders(
    db: Session = Depends(get_db),
    gateway: MessagingGateway = Depends(get_messaging_gateway),
    now: datetime = Depends(get_now),
):
    try:
        summary = TaskStartReminderProcessor(db, gateway, now=now).run()
    except Exception as e:
        logger.exception(f"Task start reminder cron failed: {e!r}")
        return JSONResponse(
            status_code=500,
            content={"error": "Interner Fehler beim serverseitigen Task-Reminder-Cron."},
        )
    return {"ok": True, "result": summary.model_dump(by_alias=True)}


@cron_router.get("/weekly-review", response_model=CronResponse)
def run_weekly_review_reminders(
    db: Session = Depends(get_db),
    gateway: MessagingGateway = Depends(get_messaging_gateway),
    now: datetime = Depends(get_now),
):
    try:
        summary = WeeklyReviewReminderProcessor(db, gateway, now=now).run()
    except Exception as e:
        logger.exception(f"Weekly review cron failed: {e!r}")
        return JSONResponse(
            status_code=500,
            content={"error": "Interner Fehler beim serverseitigen Wochenrueckblick-Cron."},
        )
    return {"ok": True, "result": summary.model_dump(by_alias=True)}


@router.post("/whatsapp/task-created")
def send_task_created_notification(
    payload: TaskCreatedNotification,
    db: Session = Depends(get_db),
    gateway: MessagingGateway = Depends(get_messaging_gateway),
    caller_user_id: Optional[str] = Depends(get_user_or_service_caller),
):
    """Send the "task saved" WhatsApp message once per task."""
    try:
        result = TaskCreatedNotifier(db, gateway).notify(payload, caller_user_id)
    except TwilioError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    except Exception as e:
        logger.exception(f"Task created WhatsApp endpoint failed: {e!r}")
        raise HTTPException(status_code=500, detail="Interner Fehler beim Senden der Task-WhatsApp.")
    return result.model_dump(by_alias=True, exclude_none=True)


def default_sms_message(reminder_time: Optional[str]) -> str:
    reminder_time = (reminder_time or "").strip()
    if reminder_time:
        return f"Erinnerung: Heute um {reminder_time} Uhr steht deine Planung an."
    return DEFAULT_SMS_TEST_MESSAGE


def _send_manual_message(gateway: MessagingGateway, channel: str, payload: ManualMessageRequest, body: str):
    to = ensure_e164_phone((payload.phone_number or "").strip())
    result = gateway.send(channel, to, body)
    logger.info(f"Test message sent | channel={channel} sid={result.message_sid}")
    return SendMessageResult(message_sid=result.message_sid).model_dump(by_alias=True)


@router.post("/whatsapp/test", dependencies=[Depends(get_user_or_service_caller)])
def send_whatsapp_test_message(
    payload: ManualMessageRequest,
    gateway: MessagingGateway = Depends(get_messaging_gateway),
):
    """Send a one-off WhatsApp message so the user can check their number."""
    body = (payload.message or "").strip() or DEFAULT_WHATSAPP_TEST_MESSAGE
    try:
        return _send_manual_message(gateway, CHANNEL_WHATSAPP, payload, body)
    except TwilioError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    except Exception as e:
        logger.exception(f"WhatsApp test endpoint failed: {e!r}")
        raise HTTPException(status_code=500, detail="Interner Fehler beim Senden der Test-WhatsApp.")


@router.post("/sms/test", dependencies=[Depends(get_user_or_service_caller)])
def send_sms_test_message(
    payload: ManualMessageRequest,
    gateway: MessagingGateway = Depends(get_messaging_gateway),
):
    body = (payload.message or "").strip() or default_sms_message(payload.reminder_time)
    try:
        return _send_manual_message(gateway, CHANNEL_SMS, payload, body)
    except TwilioError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    except Exception as e:
        logger.exception(f"SMS test endpoint failed: {e!r}")
        raise HTTPException(status_code=500, detail="Interner Fehler beim Senden der Test-SMS.")
