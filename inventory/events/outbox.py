"""Transactional outbox for product lifecycle events."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

import redis
from sqlalchemy.orm import Query, Session

from inventory.events.channels import ProductEventType
from inventory.events.models import ProductLifecycleEvent
from inventory.events.publisher import EventPublisher
from inventory.models.outbox import OutboxEvent

logger = logging.getLogger(__name__)


def enqueue_event(
    db: Session, event_type: ProductEventType, key: str, payload: Dict[str, Any]
) -> OutboxEvent:
    """
    Add a pending event to the caller's transaction.

    The row becomes visible to the relay only when the caller commits, so an
    event exists if and only if the product change it describes does.

    Args:
        db: Session holding the product change
        event_type: Lifecycle transition
        key: Partition key (product id as string)
        payload: Full product snapshot

    Returns:
        The pending outbox row
    """
    row = OutboxEvent(
        event_type=ProductEventType(event_type).value,
        key=key,
        payload=json.dumps(payload, sort_keys=True),
        attempts=0,
    )
    db.add(row)
    return row


def pending_batch_query(db: Session, limit: int) -> Query:
    """
    Oldest pending rows, locked for the relaying transaction.

    The lock blocks rather than skipping locked rows: a relay that skipped
    row N held by another relay could publish row N+1 for the same key first.
    Concurrent relays therefore run one after the other, each starting from
    the oldest row still pending once the previous one commits.
    """
    return (
        db.query(OutboxEvent)
        .filter(OutboxEvent.published_at.is_(None))
        .order_by(OutboxEvent.id)
        .limit(limit)
        .with_for_update()
    )


def relay_pending(db: Session, publisher: EventPublisher, limit: int = 100) -> int:
    """
    Publish pending outbox rows in insertion order.

    The batch stops at the first failed publish: a later row may carry the
    same key, and publishing it would reorder that product's events. The
    failure is recorded on the row and picked up again by the next relay.

    Args:
        db: Database session
        publisher: Channel writer
        limit: Maximum rows to relay

    Returns:
        Number of rows published
    """
    pending = pending_batch_query(db, limit).all()

    published = 0
    for row in pending:
        event = ProductLifecycleEvent(
            event_type=row.event_type,
            key=row.key,
            payload=json.loads(row.payload),
            occurred_at=row.created_at,
            outbox_id=row.id,
        )
        try:
            publisher.publish(event)
        except redis.RedisError as e:
            row.attempts += 1
            row.last_error = str(e)
            logger.error(
                f"Failed to publish outbox event {row.id} ({row.event_type}, key={row.key}), "
                f"attempt {row.attempts}: {e}"
            )
            break
        row.published_at = datetime.now(timezone.utc)
        published += 1

    db.commit()
    if published:
        logger.info(f"Relayed {published} outbox event(s)")
    return published


def pending_count(db: Session) -> int:
    return db.query(OutboxEvent).filter(OutboxEvent.published_at.is_(None)).count()


def purge_published(db: Session, older_than: datetime) -> int:
    """Delete published rows whose publication predates ``older_than``."""
    deleted = (
        db.query(OutboxEvent)
        .filter(OutboxEvent.published_at.is_not(None), OutboxEvent.published_at < older_than)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Purged {deleted} published outbox event(s) older than {older_than.isoformat()}")
    return deleted
