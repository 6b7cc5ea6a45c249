"""
Custody Permissions - DB-backed Provider
========================================
Resolves capability grants from the custody_role_grants table.
"""

from __future__ import annotations

from django.db import IntegrityError, transaction

from core.permissions.constants import VALID_CAPABILITIES
from core.permissions.models import CapabilityGrant


class DbGrantProvider:
    def get_grants_for_actor(self, actor_id: str) -> tuple[CapabilityGrant, ...]:
        if not isinstance(actor_id, str) or not actor_id.strip():
            return tuple()

        from core.permissions_store.models import RoleGrant

        rows = RoleGrant.objects.filter(actor_id=actor_id).order_by(
            "actor_id", "capability", "id"
        )
        return tuple(
            CapabilityGrant(
                actor_id=row.actor_id,
                capability=row.capability,
                granted_by=row.granted_by or None,
                granted_at=row.granted_at,
            )
            for row in rows
            if row.capability in VALID_CAPABILITIES
        )

    def has_grant(self, actor_id: str, capability: str) -> bool:
        from core.permissions_store.models import RoleGrant

        return RoleGrant.objects.filter(
            actor_id=actor_id,
            capability=capability,
        ).exists()

    def add_grant(self, grant: CapabilityGrant) -> bool:
        from core.permissions_store.models import RoleGrant

        defaults = {"granted_by": grant.granted_by or ""}
        if grant.granted_at is not None:
            defaults["granted_at"] = grant.granted_at

        try:
            with transaction.atomic():
                _, created = RoleGrant.objects.get_or_create(
                    actor_id=grant.actor_id,
                    capability=grant.capability,
                    defaults=defaults,
                )
        except IntegrityError:
            # Lost a race against an identical grant; the pair exists.
            return False
        return created
