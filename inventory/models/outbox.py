"""Outbox model for lifecycle events awaiting publication."""
from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from inventory.database import Base


class OutboxEvent(Base):
    """Lifecycle event written in the same transaction as the product change."""

    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(50), nullable=False)
    key = Column(String(64), nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)  # null while pending
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_outbox_events_pending", "published_at", "id"),
    )

    def __repr__(self):
        return f"<OutboxEvent(id={self.id}, event_type='{self.event_type}', key='{self.key}')>"
