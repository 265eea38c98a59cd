"""
Delivery ledger table: one row per attempted logical event.

The unique constraint on (channel, event_key) is what makes delivery
at-most-once across overlapping cron invocations and process restarts.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Index, UniqueConstraint

from planwise.db.base import Base, JSONType
from planwise.utils.timezone import utc_now


class DeliveryStatus:
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    FINAL = (SENT, FAILED)


class NotificationDelivery(Base):
    __tablename__ = "notification_deliveries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    channel = Column(String(20), nullable=False, default="whatsapp")
    event_key = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=DeliveryStatus.PENDING)
    meta = Column(JSONType, nullable=False, default=dict)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("channel", "event_key", name="uq_notification_deliveries_channel_event_key"),
        Index("ix_notification_deliveries_user_status", "user_id", "status"),
    )
