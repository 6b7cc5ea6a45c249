"""
Custody Permissions - Provider Protocol and In-Memory Provider
==============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import Iterable, Protocol

from core.permissions.models import CapabilityGrant


class GrantProvider(Protocol):
    def get_grants_for_actor(self, actor_id: str) -> tuple[CapabilityGrant, ...]:
        ...

    def has_grant(self, actor_id: str, capability: str) -> bool:
        ...

    def add_grant(self, grant: CapabilityGrant) -> bool:
        """Store grant. Returns False when the pair already exists."""
        ...


class InMemoryGrantProvider:
    """
    Deterministic in-memory provider used for bootstrap/tests.
    """

    def __init__(self, grants: Iterable[CapabilityGrant] | None = None):
        self._grants_by_actor: dict[str, dict[str, CapabilityGrant]] = {}
        self._lock = Lock()

        for grant in grants or ():
            self.add_grant(grant)

    def get_grants_for_actor(self, actor_id: str) -> tuple[CapabilityGrant, ...]:
        with self._lock:
            grants = self._grants_by_actor.get(actor_id, {})
            return tuple(sorted(grants.values(), key=lambda g: g.sort_key()))

    def has_grant(self, actor_id: str, capability: str) -> bool:
        with self._lock:
            return capability in self._grants_by_actor.get(actor_id, {})

    def add_grant(self, grant: CapabilityGrant) -> bool:
        with self._lock:
            held = self._grants_by_actor.setdefault(grant.actor_id, {})
            if grant.capability in held:
                return False
            held[grant.capability] = grant
            return True
