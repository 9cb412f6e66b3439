"""
Product lifecycle event channels.

Each event type is one logical channel split into partitions. A partition is
a Redis stream named ``{prefix}{event_type}.{partition}``; messages with the
same key always land in the same partition, which keeps per-product order.
"""
import zlib
from dataclasses import dataclass
from enum import Enum

from inventory.config import Settings


class ProductEventType(str, Enum):
    """Events published by the inventory service."""

    CREATED = "product.created"
    UPDATED = "product.updated"
    DELETED = "product.deleted"


@dataclass(frozen=True)
class ChannelConfig:
    """Partitioning and retention shared by every product channel."""

    prefix: str = ""
    partitions: int = 3
    retention_ms: int = 24 * 60 * 60 * 1000
    retention_bytes: int = 512 * 1024 * 1024
    average_message_bytes: int = 2048
    approximate_trim: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChannelConfig":
        return cls(
            prefix=settings.event_stream_prefix,
            partitions=settings.event_partitions,
            retention_ms=settings.event_retention_ms,
            retention_bytes=settings.event_retention_bytes,
            average_message_bytes=settings.event_average_message_bytes,
            approximate_trim=settings.event_trim_approximate,
        )

    @property
    def max_entries(self) -> int:
        """Stream length that keeps a partition within the size budget."""
        return max(1, self.retention_bytes // max(1, self.average_message_bytes))

    def partition_for(self, key: str) -> int:
        # crc32 is stable across processes, unlike hash()
        return zlib.crc32(key.encode("utf-8")) % self.partitions

    def stream_name(self, event_type: ProductEventType, partition: int) -> str:
        return f"{self.prefix}{ProductEventType(event_type).value}.{partition}"

    def stream_for(self, event_type: ProductEventType, key: str) -> str:
        return self.stream_name(event_type, self.partition_for(key))

    def streams(self, event_type: ProductEventType) -> list[str]:
        return [self.stream_name(event_type, p) for p in range(self.partitions)]
