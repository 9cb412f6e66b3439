"""Celery application configuration."""
from celery import Celery

from inventory.config import get_settings

settings = get_settings()

celery_app = Celery(
    "inventory",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["inventory.tasks.outbox_tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "relay-outbox-events": {
            "task": "inventory.tasks.outbox_tasks.relay_outbox_events",
            "schedule": settings.outbox_relay_interval_seconds,
        },
        "purge-published-events": {
            "task": "inventory.tasks.outbox_tasks.purge_published_events",
            "schedule": 3600.0,
        },
    },
)
