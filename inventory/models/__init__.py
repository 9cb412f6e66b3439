"""Database models."""
from inventory.models.outbox import OutboxEvent
from inventory.models.product import Product

__all__ = ["OutboxEvent", "Product"]
