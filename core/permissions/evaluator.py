"""
Custody Permissions - Deterministic Permission Evaluator
========================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.commands.rejection import ReasonCode
from core.permissions.registry import resolve_operation_rule
from core.permissions.rules import AuthorizationSubject, CapabilityChecker


@dataclass(frozen=True)
class PermissionEvaluationResult:
    allowed: bool
    rejection_code: Optional[str] = None
    message: str = ""


class PermissionEvaluator:
    @staticmethod
    def _allow() -> PermissionEvaluationResult:
        return PermissionEvaluationResult(allowed=True)

    @staticmethod
    def _deny(code: str, message: str) -> PermissionEvaluationResult:
        return PermissionEvaluationResult(
            allowed=False,
            rejection_code=code,
            message=message,
        )

    @staticmethod
    def evaluate(
        operation: str,
        actor_id: str,
        checker: CapabilityChecker | None,
        owner_id: Optional[str] = None,
    ) -> PermissionEvaluationResult:
        """
        Evaluate one operation for one actor. Side-effect free.

        owner_id is the product's current owner for operations that
        act on an existing product, None otherwise.
        """
        if not actor_id:
            return PermissionEvaluator._deny(
                ReasonCode.PERMISSION_DENIED,
                "Permission evaluation requires an actor identity.",
            )

        rule = resolve_operation_rule(operation)
        if rule is None:
            return PermissionEvaluator._deny(
                ReasonCode.PERMISSION_MAPPING_MISSING,
                f"No authorization rule for operation '{operation}'.",
            )

        if checker is None:
            return PermissionEvaluator._deny(
                ReasonCode.PERMISSION_DENIED,
                "Role registry is not configured.",
            )

        subject = AuthorizationSubject(actor_id=actor_id, owner_id=owner_id)
        if rule(subject, checker):
            return PermissionEvaluator._allow()

        return PermissionEvaluator._deny(
            ReasonCode.PERMISSION_DENIED,
            f"Actor '{actor_id}' is not permitted to perform '{operation}'.",
        )

    @staticmethod
    def allow(
        operation: str,
        actor_id: str,
        checker: CapabilityChecker | None,
        owner_id: Optional[str] = None,
    ) -> bool:
        return PermissionEvaluator.evaluate(
            operation, actor_id, checker, owner_id
        ).allowed
