"""
Custody Event Bus — Notification Model
========================================
A Notification is published only after the state it describes
has been committed. It is never persisted by the bus.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Notification:
    event_id: uuid.UUID
    event_type: str
    payload: dict
    occurred_at: datetime
    correlation_id: uuid.UUID

    def __post_init__(self):
        if not isinstance(self.event_id, uuid.UUID):
            raise ValueError("event_id must be UUID.")
        if not self.event_type or not isinstance(self.event_type, str):
            raise ValueError("event_type must be a non-empty string.")
        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")

    def to_dict(self) -> dict:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "payload": dict(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
            "correlation_id": str(self.correlation_id),
        }
