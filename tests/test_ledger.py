import pytest
from sqlalchemy import func, select

from planwise.models import DeliveryStatus, NotificationDelivery
from planwise.reminders import ledger


def _count(db):
    return db.execute(select(func.count()).select_from(NotificationDelivery)).scalar_one()


def test_reserve_is_exclusive_per_event_key(db):
    assert ledger.reserve(db, "user-1", "task-start:t1:2026-10-19T14:00:00.000Z", {"taskId": "t1"})
    assert not ledger.reserve(db, "user-1", "task-start:t1:2026-10-19T14:00:00.000Z", {"taskId": "t1"})
    assert _count(db) == 1

    record = ledger.get_delivery(db, "task-start:t1:2026-10-19T14:00:00.000Z")
    assert record.status == DeliveryStatus.PENDING
    assert record.channel == "whatsapp"
    assert record.meta == {"taskId": "t1"}


def test_reserve_same_key_on_other_channel(db):
    assert ledger.reserve(db, "user-1", "task-created:t1")
    assert ledger.reserve(db, "user-1", "task-created:t1", channel="sms")
    assert _count(db) == 2


def test_session_usable_after_duplicate(db):
    assert ledger.reserve(db, "user-1", "weekly-review:user-1:2026-10-12")
    assert not ledger.reserve(db, "user-1", "weekly-review:user-1:2026-10-12")
    assert ledger.reserve(db, "user-1", "weekly-review:user-1:2026-10-19")


def test_finalize_merges_meta(db):
    ledger.reserve(db, "user-1", "task-created:t9", {"taskId": "t9", "taskTitle": "Old"})
    assert ledger.finalize(db, "task-created:t9", DeliveryStatus.SENT, {"taskTitle": "New", "messageSid": "SM1"})

    record = ledger.get_delivery(db, "task-created:t9")
    assert record.status == DeliveryStatus.SENT
    assert record.meta == {"taskId": "t9", "taskTitle": "New", "messageSid": "SM1"}
    assert record.sent_at is not None


def test_finalize_only_moves_pending_rows(db):
    ledger.reserve(db, "user-1", "task-created:t2")
    assert ledger.finalize(db, "task-created:t2", DeliveryStatus.SENT)
    assert not ledger.finalize(db, "task-created:t2", DeliveryStatus.FAILED, {"error": "late"})

    record = ledger.get_delivery(db, "task-created:t2")
    assert record.status == DeliveryStatus.SENT
    assert "error" not in record.meta


def test_finalize_unknown_key_is_logged_not_raised(db):
    assert not ledger.finalize(db, "task-created:missing", DeliveryStatus.FAILED)


def test_finalize_rejects_non_final_status(db):
    with pytest.raises(ValueError):
        ledger.finalize(db, "task-created:t3", DeliveryStatus.PENDING)


def test_reserve_wraps_other_database_errors(db, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(ledger.LedgerError):
        ledger.reserve(db, "user-1", "task-created:t4")
