"""Event payload models."""
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from inventory.events.channels import ProductEventType


class ProductLifecycleEvent(BaseModel):
    """A product transition as written to an event channel."""

    event_type: ProductEventType
    key: str
    payload: Dict[str, Any]
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    outbox_id: Optional[int] = None

    def to_stream_fields(self) -> Dict[str, str]:
        """Flatten into the string field map a stream entry holds."""
        fields = {
            "event_type": self.event_type.value,
            "key": self.key,
            "payload": json.dumps(self.payload, sort_keys=True),
            "occurred_at": self.occurred_at.isoformat(),
        }
        if self.outbox_id is not None:
            fields["outbox_id"] = str(self.outbox_id)
        return fields

    @classmethod
    def from_stream_fields(cls, fields: Dict[str, str]) -> "ProductLifecycleEvent":
        return cls(
            event_type=fields["event_type"],
            key=fields["key"],
            payload=json.loads(fields["payload"]),
            occurred_at=fields["occurred_at"],
            outbox_id=fields.get("outbox_id"),
        )
