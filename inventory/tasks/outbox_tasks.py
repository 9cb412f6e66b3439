"""Celery tasks relaying and purging outbox events."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from inventory.config import get_settings
from inventory.database import SessionLocal
from inventory.events import ChannelConfig, EventPublisher, pending_count, purge_published, relay_pending
from inventory.redis_client import get_redis
from inventory.tasks.celery_app import celery_app

settings = get_settings()
logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def relay_outbox_events(self, batch_size: Optional[int] = None) -> dict:
    """
    Publish every pending outbox event, batch by batch.

    Picks up events whose inline publication failed after the product change
    committed. Stops early when a batch hits a publish failure; the failed
    row is retried on the next run.

    Args:
        self: Celery task instance
        batch_size: Rows per batch (defaults to the configured size)

    Returns:
        Dict with the number of published and still pending events
    """
    batch_size = batch_size or settings.outbox_relay_batch_size
    publisher = EventPublisher(get_redis(), ChannelConfig.from_settings(settings))

    db = SessionLocal()
    try:
        published = 0
        while True:
            relayed = relay_pending(db, publisher, limit=batch_size)
            published += relayed
            if relayed < batch_size:
                break

        remaining = pending_count(db)
        if remaining:
            logger.warning(f"Outbox relay finished with {remaining} event(s) still pending")

        return {"status": "completed", "published": published, "pending": remaining}
    except Exception as e:
        logger.error(f"Outbox relay failed: {e}", exc_info=True)
        raise
    finally:
        db.close()


@celery_app.task(bind=True)
def purge_published_events(self) -> dict:
    """Delete published outbox rows older than the event retention window."""
    cutoff = datetime.now(timezone.utc) - timedelta(milliseconds=settings.event_retention_ms)

    db = SessionLocal()
    try:
        deleted = purge_published(db, cutoff)
        return {"status": "completed", "deleted": deleted}
    finally:
        db.close()
