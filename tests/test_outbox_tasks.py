"""Tests for the background outbox tasks."""
from datetime import datetime, timedelta, timezone

import pytest

from inventory.events import ProductEventType, enqueue_event, pending_count
from inventory.models.outbox import OutboxEvent
from inventory.tasks import outbox_tasks


@pytest.fixture
def task_backends(monkeypatch, session_factory, fake_redis):
    monkeypatch.setattr(outbox_tasks, "SessionLocal", session_factory)
    monkeypatch.setattr(outbox_tasks, "get_redis", lambda: fake_redis)


def test_relay_task_drains_outbox_in_batches(task_backends, db, fake_redis):
    for i in range(5):
        enqueue_event(db, ProductEventType.CREATED, str(i), {"id": i})
    db.commit()

    result = outbox_tasks.relay_outbox_events(batch_size=2)

    assert result == {"status": "completed", "published": 5, "pending": 0}
    assert pending_count(db) == 0
    assert sum(fake_redis.xlen(s) for s in fake_redis.keys("product.created.*")) == 5


def test_relay_task_with_empty_outbox(task_backends):
    result = outbox_tasks.relay_outbox_events()

    assert result == {"status": "completed", "published": 0, "pending": 0}


def test_purge_task(task_backends, db):
    row = enqueue_event(db, ProductEventType.DELETED, "1", {"id": 1})
    row.published_at = datetime.now(timezone.utc) - timedelta(days=3)
    enqueue_event(db, ProductEventType.DELETED, "2", {"id": 2})
    db.commit()

    result = outbox_tasks.purge_published_events()

    assert result == {"status": "completed", "deleted": 1}
    assert [r.key for r in db.query(OutboxEvent).all()] == ["2"]
