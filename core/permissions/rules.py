"""
Custody Permissions - Authorization Rule Combinators
====================================================
A rule is a pure predicate over (subject, capability checker).

Administrator is unioned into rules once, through admin_or(),
rather than spelled out per operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from core.permissions.constants import CAPABILITY_ADMINISTRATOR


class CapabilityChecker(Protocol):
    def has_capability(self, capability: str, actor_id: str) -> bool:
        ...


@dataclass(frozen=True)
class AuthorizationSubject:
    actor_id: str
    owner_id: Optional[str] = None


AuthorizationRule = Callable[[AuthorizationSubject, CapabilityChecker], bool]


def has_capability(*capabilities: str) -> AuthorizationRule:
    """Allow when the actor holds any of the listed capabilities."""

    def rule(subject: AuthorizationSubject, checker: CapabilityChecker) -> bool:
        return any(
            checker.has_capability(capability, subject.actor_id)
            for capability in capabilities
        )

    rule.__qualname__ = f"has_capability({', '.join(capabilities)})"
    return rule


def is_owner() -> AuthorizationRule:
    def rule(subject: AuthorizationSubject, checker: CapabilityChecker) -> bool:
        return subject.owner_id is not None and subject.actor_id == subject.owner_id

    rule.__qualname__ = "is_owner()"
    return rule


def any_of(*rules: AuthorizationRule) -> AuthorizationRule:
    def rule(subject: AuthorizationSubject, checker: CapabilityChecker) -> bool:
        return any(inner(subject, checker) for inner in rules)

    rule.__qualname__ = (
        f"any_of({', '.join(getattr(r, '__qualname__', '?') for r in rules)})"
    )
    return rule


def admin_or(inner: AuthorizationRule | None = None) -> AuthorizationRule:
    """Administrator satisfies the rule; otherwise defer to inner."""
    admin = has_capability(CAPABILITY_ADMINISTRATOR)
    if inner is None:
        return admin
    return any_of(admin, inner)
