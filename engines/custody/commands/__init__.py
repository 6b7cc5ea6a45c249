"""
Custody Engine — Request Commands
===================================
Typed custody requests that convert into canonical Command objects.

Requests validate shape only. SKU, description, location and notes
are opaque strings and are not inspected.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

from core.commands.base import Command
from core.commands.errors import InvalidArgumentError
from core.permissions.constants import VALID_CAPABILITIES
from engines.custody.models import ProductStatus


# ══════════════════════════════════════════════════════════════
# COMMAND TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CUSTODY_PRODUCT_CREATE_REQUEST = "custody.product.create.request"
CUSTODY_OWNERSHIP_TRANSFER_REQUEST = "custody.ownership.transfer.request"
CUSTODY_STATUS_UPDATE_REQUEST = "custody.status.update.request"
CUSTODY_WAREHOUSE_RECEIVE_REQUEST = "custody.warehouse.receive.request"
CUSTODY_RETAILER_DELIVER_REQUEST = "custody.retailer.deliver.request"
CUSTODY_PRODUCT_RECALL_REQUEST = "custody.product.recall.request"
CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST = "custody.product.force_update.request"
CUSTODY_ROLE_GRANT_REQUEST = "custody.role.grant.request"

CUSTODY_COMMAND_TYPES = frozenset({
    CUSTODY_PRODUCT_CREATE_REQUEST,
    CUSTODY_OWNERSHIP_TRANSFER_REQUEST,
    CUSTODY_STATUS_UPDATE_REQUEST,
    CUSTODY_WAREHOUSE_RECEIVE_REQUEST,
    CUSTODY_RETAILER_DELIVER_REQUEST,
    CUSTODY_PRODUCT_RECALL_REQUEST,
    CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST,
    CUSTODY_ROLE_GRANT_REQUEST,
})

# Commands that act on an existing product (payload carries product_id).
CUSTODY_PRODUCT_COMMAND_TYPES = CUSTODY_COMMAND_TYPES - {
    CUSTODY_PRODUCT_CREATE_REQUEST,
    CUSTODY_ROLE_GRANT_REQUEST,
}


# ══════════════════════════════════════════════════════════════
# FIELD CHECKS
# ══════════════════════════════════════════════════════════════

def _require_text(value: Any, field_name: str) -> None:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field_name} must be a string.")


def _require_actor(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{field_name} must be a non-empty string.")


def _require_product_id(value: Any) -> None:
    # Unknown ids (including 0) are a NotFound at execution, not here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(
            f"product_id must be int, got {type(value).__name__}."
        )


# ══════════════════════════════════════════════════════════════
# REQUEST BASE
# ══════════════════════════════════════════════════════════════

class _CustodyRequest:
    command_type: ClassVar[str]

    def payload(self) -> dict:
        raise NotImplementedError

    def to_command(
        self,
        *,
        actor_id: str,
        command_id: uuid.UUID,
        correlation_id: uuid.UUID,
        issued_at: datetime,
    ) -> Command:
        return Command(
            command_id=command_id,
            command_type=self.command_type,
            actor_id=actor_id,
            payload=self.payload(),
            issued_at=issued_at,
            correlation_id=correlation_id,
            source_engine="custody",
        )


# ══════════════════════════════════════════════════════════════
# REQUEST COMMANDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProductCreateRequest(_CustodyRequest):
    """Manufacture a new product. First history entry is the creation."""
    command_type: ClassVar[str] = CUSTODY_PRODUCT_CREATE_REQUEST

    sku: str
    description: str
    location: str
    note: str

    def __post_init__(self):
        _require_text(self.sku, "sku")
        _require_text(self.description, "description")
        _require_text(self.location, "location")
        _require_text(self.note, "note")

    def payload(self) -> dict:
        return {
            "sku": self.sku,
            "description": self.description,
            "location": self.location,
            "note": self.note,
        }


@dataclass(frozen=True)
class OwnershipTransferRequest(_CustodyRequest):
    """
    Hand custody to recipient_id. role_label is recorded as given;
    it is not looked up in the role registry.
    """
    command_type: ClassVar[str] = CUSTODY_OWNERSHIP_TRANSFER_REQUEST

    product_id: int
    recipient_id: str
    role_label: str
    location: str
    note: str

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_actor(self.recipient_id, "recipient_id")
        _require_text(self.role_label, "role_label")
        _require_text(self.location, "location")
        _require_text(self.note, "note")

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "recipient_id": self.recipient_id,
            "role_label": self.role_label,
            "location": self.location,
            "note": self.note,
        }


@dataclass(frozen=True)
class StatusUpdateRequest(_CustodyRequest):
    command_type: ClassVar[str] = CUSTODY_STATUS_UPDATE_REQUEST

    product_id: int
    location: str
    note: str
    new_status: ProductStatus

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_text(self.location, "location")
        _require_text(self.note, "note")
        object.__setattr__(
            self, "new_status", ProductStatus.parse_assignable(self.new_status)
        )

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "location": self.location,
            "note": self.note,
            "new_status": self.new_status.value,
        }


@dataclass(frozen=True)
class WarehouseReceiveRequest(_CustodyRequest):
    command_type: ClassVar[str] = CUSTODY_WAREHOUSE_RECEIVE_REQUEST

    product_id: int
    location: str
    note: str

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_text(self.location, "location")
        _require_text(self.note, "note")

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "location": self.location,
            "note": self.note,
        }


@dataclass(frozen=True)
class RetailerDeliverRequest(_CustodyRequest):
    command_type: ClassVar[str] = CUSTODY_RETAILER_DELIVER_REQUEST

    product_id: int
    location: str
    note: str

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_text(self.location, "location")
        _require_text(self.note, "note")

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "location": self.location,
            "note": self.note,
        }


@dataclass(frozen=True)
class ProductRecallRequest(_CustodyRequest):
    command_type: ClassVar[str] = CUSTODY_PRODUCT_RECALL_REQUEST

    product_id: int
    reason: str

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_text(self.reason, "reason")

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ForceUpdateRequest(_CustodyRequest):
    """Administrator override of owner and status. Bypasses domain rules."""
    command_type: ClassVar[str] = CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST

    product_id: int
    new_owner_id: str
    new_status: ProductStatus

    def __post_init__(self):
        _require_product_id(self.product_id)
        _require_actor(self.new_owner_id, "new_owner_id")
        object.__setattr__(
            self, "new_status", ProductStatus.parse_assignable(self.new_status)
        )

    def payload(self) -> dict:
        return {
            "product_id": self.product_id,
            "new_owner_id": self.new_owner_id,
            "new_status": self.new_status.value,
        }


@dataclass(frozen=True)
class RoleGrantRequest(_CustodyRequest):
    command_type: ClassVar[str] = CUSTODY_ROLE_GRANT_REQUEST

    capability: str
    grantee_id: str

    def __post_init__(self):
        if self.capability not in VALID_CAPABILITIES:
            raise InvalidArgumentError(
                f"capability '{self.capability}' not valid. "
                f"Must be one of: {sorted(VALID_CAPABILITIES)}"
            )
        _require_actor(self.grantee_id, "grantee_id")

    def payload(self) -> dict:
        return {
            "capability": self.capability,
            "grantee_id": self.grantee_id,
        }
