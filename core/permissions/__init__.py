"""
Custody Permissions - Public API
================================
"""

from core.permissions.constants import (
    CAPABILITY_ADMINISTRATOR,
    CAPABILITY_MANUFACTURER,
    CAPABILITY_RETAILER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
    ROLE_LABEL_PRIORITY,
    ROLE_LABEL_UNKNOWN,
    VALID_CAPABILITIES,
)
from core.permissions.evaluator import (
    PermissionEvaluationResult,
    PermissionEvaluator,
)
from core.permissions.models import CapabilityGrant
from core.permissions.provider import GrantProvider, InMemoryGrantProvider
from core.permissions.registry import (
    OPERATION_RULES,
    resolve_operation_rule,
)
from core.permissions.roles import RoleRegistry


def __getattr__(name: str):
    if name == "DbGrantProvider":
        from core.permissions.db_provider import DbGrantProvider

        return DbGrantProvider
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "CAPABILITY_MANUFACTURER",
    "CAPABILITY_TRANSPORTER",
    "CAPABILITY_WAREHOUSE",
    "CAPABILITY_RETAILER",
    "CAPABILITY_ADMINISTRATOR",
    "ROLE_LABEL_PRIORITY",
    "ROLE_LABEL_UNKNOWN",
    "VALID_CAPABILITIES",
    "CapabilityGrant",
    "GrantProvider",
    "InMemoryGrantProvider",
    "DbGrantProvider",
    "RoleRegistry",
    "PermissionEvaluator",
    "PermissionEvaluationResult",
    "OPERATION_RULES",
    "resolve_operation_rule",
]
