"""Product lifecycle events: channels, publisher and outbox."""
from inventory.events.channels import ChannelConfig, ProductEventType
from inventory.events.models import ProductLifecycleEvent
from inventory.events.outbox import enqueue_event, pending_count, purge_published, relay_pending
from inventory.events.publisher import EventPublisher

__all__ = [
    "ChannelConfig",
    "EventPublisher",
    "ProductEventType",
    "ProductLifecycleEvent",
    "enqueue_event",
    "pending_count",
    "purge_published",
    "relay_pending",
]
