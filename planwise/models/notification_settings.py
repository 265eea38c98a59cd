from sqlalchemy import Column, String, DateTime, Boolean, Text, Index

from planwise.db.base import Base, JSONType
from planwise.utils.timezone import utc_now


class NotificationSettings(Base):
    """Per-user notification preferences, written by the settings sync endpoint."""
    __tablename__ = "notification_settings"

    user_id = Column(String, primary_key=True)
    profile_name = Column(String(120), nullable=True)
    profile_email = Column(String(320), nullable=True)

    whatsapp_reminders_enabled = Column(Boolean, nullable=False, default=False)
    whatsapp_phone_number = Column(String(32), nullable=True)
    whatsapp_task_created_enabled = Column(Boolean, nullable=False, default=True)
    whatsapp_task_start_reminder_enabled = Column(Boolean, nullable=False, default=True)
    whatsapp_weekly_review_enabled = Column(Boolean, nullable=False, default=True)
    whatsapp_weekly_review_time = Column(String(5), nullable=True, default="22:00")

    # Custom templates; NULL or blank means "use the default"
    whatsapp_task_created_template = Column(Text, nullable=True)
    whatsapp_task_start_template = Column(Text, nullable=True)
    whatsapp_weekly_review_template = Column(Text, nullable=True)

    week_starts_on_monday = Column(Boolean, nullable=False, default=True)
    timezone = Column(String(120), nullable=True)
    settings_snapshot = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_notification_settings_whatsapp_enabled", "whatsapp_reminders_enabled"),
    )
