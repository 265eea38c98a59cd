"""
Delivery ledger: reserve-or-reject over the notification_deliveries table.

A reservation is an INSERT of a ``pending`` row that commits immediately.
The unique constraint on (channel, event_key) rejects a second insert for
the same event, so whichever invocation commits first owns the send.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from planwise.models.notification_delivery import NotificationDelivery, DeliveryStatus
from planwise.utils.timezone import utc_now
from .config import settings

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


class LedgerError(Exception):
    """A reservation failed for a reason other than an existing event key."""


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode:
        return pgcode == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig or exc)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


def reserve(
    db: Session,
    user_id: str,
    event_key: str,
    meta: Optional[Dict[str, Any]] = None,
    channel: Optional[str] = None,
) -> bool:
    """
    Claim ``event_key`` for sending.

    Returns True if this call created the pending row, False if the key is
    already in the ledger (someone else handled it). Raises LedgerError for
    any other insert failure.
    """
    now = utc_now()
    record = NotificationDelivery(
        user_id=user_id,
        channel=channel or settings.CHANNEL,
        event_key=event_key,
        status=DeliveryStatus.PENDING,
        meta=dict(meta or {}),
        sent_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            logger.info(f"Delivery already reserved | event_key={event_key}")
            return False
        raise LedgerError(str(e.orig or e)) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise LedgerError(str(e)) from e
    return True


def get_delivery(db: Session, event_key: str, channel: Optional[str] = None) -> Optional[NotificationDelivery]:
    stmt = (
        select(NotificationDelivery)
        .where(NotificationDelivery.channel == (channel or settings.CHANNEL))
        .where(NotificationDelivery.event_key == event_key)
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def finalize(
    db: Session,
    event_key: str,
    status: str,
    meta_patch: Optional[Dict[str, Any]] = None,
    channel: Optional[str] = None,
) -> bool:
    """
    Move a pending reservation to ``sent`` or ``failed`` and merge ``meta_patch``.

    Best effort: errors are logged and swallowed. A row left ``pending``
    still blocks duplicate sends for its key.
    """
    if status not in DeliveryStatus.FINAL:
        raise ValueError(f"Invalid final delivery status: {status}")
    try:
        record = get_delivery(db, event_key, channel=channel)
        if record is None:
            logger.error(f"Cannot finalize delivery, no ledger row | event_key={event_key}")
            return False
        if record.status != DeliveryStatus.PENDING:
            logger.warning(
                f"Delivery already finalized | event_key={event_key} status={record.status} requested={status}"
            )
            return False
        now = utc_now()
        record.meta = {**(record.meta or {}), **(meta_patch or {})}
        record.status = status
        record.sent_at = now
        record.updated_at = now
        db.commit()
        return True
    except Exception as e:
        logger.error(f"Failed to update notification_deliveries status | event_key={event_key}: {e!r}")
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback after failed ledger update also failed")
        return False
