"""
Custody Permissions - Operation to Rule Registry
================================================
"""

from __future__ import annotations

from core.permissions.constants import (
    CAPABILITY_MANUFACTURER,
    CAPABILITY_RETAILER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
)
from core.permissions.rules import (
    AuthorizationRule,
    admin_or,
    any_of,
    has_capability,
    is_owner,
)

OPERATION_RULES: dict[str, AuthorizationRule] = {
    "custody.product.create.request": admin_or(
        has_capability(CAPABILITY_MANUFACTURER)
    ),
    "custody.ownership.transfer.request": admin_or(is_owner()),
    "custody.status.update.request": admin_or(
        any_of(
            has_capability(
                CAPABILITY_TRANSPORTER,
                CAPABILITY_WAREHOUSE,
                CAPABILITY_RETAILER,
                CAPABILITY_MANUFACTURER,
            ),
            is_owner(),
        )
    ),
    "custody.warehouse.receive.request": admin_or(
        has_capability(CAPABILITY_WAREHOUSE)
    ),
    "custody.retailer.deliver.request": admin_or(
        has_capability(CAPABILITY_RETAILER)
    ),
    "custody.product.recall.request": admin_or(
        has_capability(CAPABILITY_MANUFACTURER)
    ),
    "custody.product.force_update.request": admin_or(),
    "custody.role.grant.request": admin_or(),
}


def resolve_operation_rule(operation: str) -> AuthorizationRule | None:
    """Resolve the authorization rule for an operation (command type)."""
    return OPERATION_RULES.get(operation)
