from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NotificationSettingsSync(BaseModel):
    """
    Body posted by the web client whenever the user saves their settings.

    Fields are loosely typed on purpose: the client sends whatever its local
    state holds and the endpoint sanitizes each value instead of rejecting
    the whole request.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Any = None
    email: Any = None
    whatsapp_reminders_enabled: Any = None
    whatsapp_phone_number: Any = None
    whatsapp_task_created_enabled: Any = None
    whatsapp_task_start_reminder_enabled: Any = None
    whatsapp_weekly_review_enabled: Any = None
    whatsapp_weekly_review_time: Any = None
    whatsapp_task_created_template: Any = None
    whatsapp_task_start_template: Any = None
    whatsapp_weekly_review_template: Any = None
    week_starts_on_monday: Any = None
    timezone: Any = None
    settings_snapshot: Any = None


class NotificationSettingsRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    email: str = ""
    whatsapp_reminders_enabled: bool = False
    whatsapp_phone_number: str = ""
    whatsapp_task_created_enabled: bool = True
    whatsapp_task_start_reminder_enabled: bool = True
    whatsapp_weekly_review_enabled: bool = True
    whatsapp_weekly_review_time: str = "22:00"
    whatsapp_task_created_template: str
    whatsapp_task_start_template: str
    whatsapp_weekly_review_template: str
    week_starts_on_monday: bool = True
    timezone: str = "UTC"


class NotificationSettingsPreload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    settings: Optional[NotificationSettingsRead] = None
    settings_snapshot: Optional[Dict[str, Any]] = None
