"""
Response schemas for the reminder endpoints.

Field names are snake_case in Python and camelCase on the wire, matching
what the web client and the scheduler dashboards already read.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskStartSummary(_CamelModel):
    users_checked: int = 0
    tasks_matched: int = 0
    reminders_sent: int = 0
    reminders_skipped_duplicate: int = 0
    reminders_failed: int = 0
    window_start: Optional[str] = None
    window_end: Optional[str] = None


class WeeklyReviewSummary(_CamelModel):
    users_checked: int = 0
    users_in_window: int = 0
    reminders_sent: int = 0
    reminders_skipped_duplicate: int = 0
    reminders_failed: int = 0


class CronResponse(BaseModel):
    ok: bool = True
    result: Any


class ErrorResponse(BaseModel):
    error: str


class TaskCreatedNotification(_CamelModel):
    """Body of the task-created WhatsApp notification request."""
    phone_number: Optional[str] = None
    task_title: Optional[str] = None
    user_id: Optional[str] = None
    task_id: Optional[str] = None
    task_start_at: Optional[str] = None
    priority: Optional[str] = None
    project_title: Optional[str] = None
    message_template: Optional[str] = None
    timezone: Optional[str] = None


class TaskCreatedResult(_CamelModel):
    ok: bool = True
    skipped_duplicate: Optional[bool] = None
    message_sid: Optional[str] = None


class ManualMessageRequest(_CamelModel):
    """Body of the settings page "send test message" buttons."""
    phone_number: Optional[str] = None
    message: Optional[str] = None
    reminder_time: Optional[str] = None


class SendMessageResult(_CamelModel):
    ok: bool = True
    message_sid: Optional[str] = None
