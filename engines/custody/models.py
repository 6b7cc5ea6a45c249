"""
Custody Engine — Product and History Models
=============================================
Pure Python, immutable snapshots. Storage lives in the ledger.

A Product is replaced, never edited: every accepted transition
produces a new snapshot via dataclasses.replace().

A HistoryItem is written once and never changed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from core.commands.errors import InvalidArgumentError


# ══════════════════════════════════════════════════════════════
# STATUS
# ══════════════════════════════════════════════════════════════

class ProductStatus(Enum):
    """
    Lifecycle stage of a product.

    UNKNOWN is a sentinel and is never assigned. Any other status may
    follow any status: legality is decided by authorization alone.
    """
    UNKNOWN = "UNKNOWN"
    MANUFACTURED = "MANUFACTURED"
    IN_TRANSIT = "IN_TRANSIT"
    IN_WAREHOUSE = "IN_WAREHOUSE"
    DELIVERED = "DELIVERED"
    RECALLED = "RECALLED"

    @classmethod
    def parse(cls, value: Any) -> ProductStatus:
        """Accept a member, its value, or its name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if normalized in (member.value, member.name):
                    return member
        raise InvalidArgumentError(
            f"status '{value}' not valid. "
            f"Must be one of: {[m.value for m in cls]}",
            policy_name="product_status",
        )

    @classmethod
    def parse_assignable(cls, value: Any) -> ProductStatus:
        status = cls.parse(value)
        if status is cls.UNKNOWN:
            raise InvalidArgumentError(
                "UNKNOWN is a sentinel and cannot be assigned.",
                policy_name="product_status",
            )
        return status


# ══════════════════════════════════════════════════════════════
# PRODUCT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Product:
    """
    Current record of one tracked goods unit.

    Fields:
        product_id:  Positive, strictly increasing, never reused.
        sku:         Opaque stock keeping unit.
        description: Opaque free text.
        owner_id:    Actor currently holding custody.
        status:      Current ProductStatus.
        created_at:  When the manufacturer created it.
    """
    product_id: int
    sku: str
    description: str
    owner_id: str
    status: ProductStatus
    created_at: datetime

    def __post_init__(self):
        if isinstance(self.product_id, bool) or not isinstance(self.product_id, int):
            raise ValueError("product_id must be int.")
        if self.product_id <= 0:
            raise ValueError("product_id must be positive.")
        if not self.owner_id or not isinstance(self.owner_id, str):
            raise ValueError("owner_id must be a non-empty string.")
        if not isinstance(self.status, ProductStatus):
            raise ValueError("status must be ProductStatus enum.")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "description": self.description,
            "owner_id": self.owner_id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


# ══════════════════════════════════════════════════════════════
# HISTORY ITEM
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HistoryItem:
    """
    One audit entry. role_label records the label at the time of
    the action; later grants do not rewrite it.
    """
    recorded_at: datetime
    actor_id: str
    role_label: str
    location: str
    note: str
    status: ProductStatus

    def __post_init__(self):
        if not isinstance(self.status, ProductStatus):
            raise ValueError("status must be ProductStatus enum.")

    def to_dict(self) -> dict:
        return {
            "recorded_at": self.recorded_at.isoformat(),
            "actor_id": self.actor_id,
            "role_label": self.role_label,
            "location": self.location,
            "note": self.note,
            "status": self.status.value,
        }
