from fastapi import APIRouter

from planwise.api.endpoints import notification_settings
from planwise.reminders.api import cron_router as reminder_cron_router
from planwise.reminders.api import router as reminder_router

api_router = APIRouter()
api_router.include_router(reminder_cron_router, prefix="/cron/reminders", tags=["cron"])
api_router.include_router(reminder_router, prefix="/reminders", tags=["reminders"])
api_router.include_router(
    notification_settings.router, prefix="/notifications/settings", tags=["notification-settings"]
)
