"""
Custody Permissions - Immutable Grant Model
===========================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.permissions.constants import VALID_CAPABILITIES


@dataclass(frozen=True)
class CapabilityGrant:
    actor_id: str
    capability: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")

        if self.capability not in VALID_CAPABILITIES:
            raise ValueError(
                f"capability '{self.capability}' not valid. "
                f"Must be one of: {sorted(VALID_CAPABILITIES)}"
            )

    def sort_key(self) -> tuple[str, str]:
        return (self.actor_id, self.capability)
