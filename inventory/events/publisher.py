"""Publish product lifecycle events to Redis streams."""
import logging
import time

import redis

from inventory.events.channels import ChannelConfig
from inventory.events.models import ProductLifecycleEvent

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Write lifecycle events to their partitioned channel with bounded retention.

    Every append trims its stream twice: by length, so a partition stays
    within the configured size budget, and by entry id, dropping entries
    older than the retention window (stream ids start with a millisecond
    timestamp).
    """

    def __init__(self, redis_client: redis.Redis, channels: ChannelConfig):
        self.redis = redis_client
        self.channels = channels

    def publish(self, event: ProductLifecycleEvent) -> str:
        """
        Append an event to the stream for its type and key.

        Args:
            event: Event to publish

        Returns:
            The stream entry id

        Raises:
            redis.RedisError: If the append fails
        """
        stream = self.channels.stream_for(event.event_type, event.key)
        cutoff_ms = int(time.time() * 1000) - self.channels.retention_ms

        pipe = self.redis.pipeline(transaction=False)
        pipe.xadd(
            stream,
            event.to_stream_fields(),
            maxlen=self.channels.max_entries,
            approximate=self.channels.approximate_trim,
        )
        pipe.xtrim(stream, minid=f"{cutoff_ms}-0", approximate=self.channels.approximate_trim)
        entry_id, _ = pipe.execute()

        logger.debug(f"Published {event.event_type.value} for key {event.key} to {stream} ({entry_id})")
        return entry_id
