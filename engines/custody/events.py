"""
Custody Engine — Notification Types and Payload Builders
==========================================================
Custody builds payload only. Delivery goes through core.events.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from core.commands.base import Command
from core.events.models import Notification
from engines.custody.models import HistoryItem, Product


# ══════════════════════════════════════════════════════════════
# NOTIFICATION TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CUSTODY_PRODUCT_CREATED_V1 = "custody.product.created.v1"
CUSTODY_OWNERSHIP_TRANSFERRED_V1 = "custody.ownership.transferred.v1"
CUSTODY_HISTORY_ADDED_V1 = "custody.history.added.v1"
CUSTODY_PRODUCT_RECALLED_V1 = "custody.product.recalled.v1"

CUSTODY_EVENT_TYPES = (
    CUSTODY_PRODUCT_CREATED_V1,
    CUSTODY_OWNERSHIP_TRANSFERRED_V1,
    CUSTODY_HISTORY_ADDED_V1,
    CUSTODY_PRODUCT_RECALLED_V1,
)


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def build_product_created_payload(product: Product) -> dict:
    return {
        "product_id": product.product_id,
        "sku": product.sku,
        "manufacturer": product.owner_id,
    }


def build_ownership_transferred_payload(
    previous_owner_id: str, product: Product
) -> dict:
    return {
        "product_id": product.product_id,
        "from": previous_owner_id,
        "to": product.owner_id,
        "status": product.status.value,
    }


def build_history_added_payload(
    product_id: int, history_index: int, item: HistoryItem, operation: str
) -> dict:
    """operation is the command type that wrote the entry, never caller text."""
    return {
        "product_id": product_id,
        "history_index": history_index,
        "operation": operation,
        "actor": item.actor_id,
        "role_label": item.role_label,
        "location": item.location,
        "note": item.note,
        "status": item.status.value,
    }


def build_product_recalled_payload(command: Command, product: Product) -> dict:
    return {
        "product_id": product.product_id,
        "by": command.actor_id,
        "reason": command.payload["reason"],
    }


# ══════════════════════════════════════════════════════════════
# NOTIFICATION FACTORY
# ══════════════════════════════════════════════════════════════

def build_notification(
    *,
    command: Command,
    event_type: str,
    payload: dict,
    occurred_at: datetime,
) -> Notification:
    return Notification(
        event_id=uuid.uuid4(),
        event_type=event_type,
        payload=payload,
        occurred_at=occurred_at,
        correlation_id=command.correlation_id,
    )
