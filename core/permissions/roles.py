"""
Custody Permissions - Role Registry
===================================
Capability grants per actor identity.

Only an Administrator may grant. Granting is idempotent.
There is no revoke: grants live as long as the system.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from core.commands.errors import InvalidArgumentError, UnauthorizedError
from core.permissions.constants import (
    CAPABILITY_ADMINISTRATOR,
    ROLE_LABEL_PRIORITY,
    ROLE_LABEL_UNKNOWN,
    VALID_CAPABILITIES,
)
from core.permissions.models import CapabilityGrant
from core.permissions.provider import GrantProvider, InMemoryGrantProvider

logger = logging.getLogger("custody.permissions")


class RoleRegistry:
    def __init__(self, provider: GrantProvider | None = None):
        self._provider = provider or InMemoryGrantProvider()

    @property
    def provider(self) -> GrantProvider:
        return self._provider

    def bootstrap_admin(
        self,
        actor_id: str,
        *,
        granted_at: Optional[datetime] = None,
    ) -> bool:
        """Unconditional Administrator grant. System start only."""
        created = self._provider.add_grant(
            CapabilityGrant(
                actor_id=actor_id,
                capability=CAPABILITY_ADMINISTRATOR,
                granted_by=None,
                granted_at=granted_at,
            )
        )
        logger.info(f"Bootstrap administrator: {actor_id} (new={created})")
        return created

    def grant(
        self,
        granted_by: str,
        capability: str,
        actor_id: str,
        *,
        granted_at: Optional[datetime] = None,
    ) -> bool:
        """
        Grant capability to actor_id on behalf of granted_by.

        Returns True for a new grant, False when already held.

        Raises:
            InvalidArgumentError: unknown capability or empty actor id.
            UnauthorizedError:    granted_by is not an Administrator.
        """
        if capability not in VALID_CAPABILITIES:
            raise InvalidArgumentError(
                f"capability '{capability}' not valid. "
                f"Must be one of: {sorted(VALID_CAPABILITIES)}",
                policy_name="role_registry",
            )
        if not actor_id or not isinstance(actor_id, str):
            raise InvalidArgumentError(
                "grantee actor_id must be a non-empty string.",
                policy_name="role_registry",
            )

        if not self.has_capability(CAPABILITY_ADMINISTRATOR, granted_by):
            raise UnauthorizedError(
                f"Actor '{granted_by}' cannot grant '{capability}': "
                f"Administrator required.",
                policy_name="role_registry",
            )

        created = self._provider.add_grant(
            CapabilityGrant(
                actor_id=actor_id,
                capability=capability,
                granted_by=granted_by,
                granted_at=granted_at,
            )
        )
        if created:
            logger.info(f"Granted {capability} to {actor_id} by {granted_by}")
        else:
            logger.debug(f"{actor_id} already holds {capability}; grant ignored")
        return created

    def has_capability(self, capability: str, actor_id: str) -> bool:
        if not actor_id:
            return False
        return self._provider.has_grant(actor_id, capability)

    def capabilities_for(self, actor_id: str) -> tuple[str, ...]:
        return tuple(
            grant.capability
            for grant in self._provider.get_grants_for_actor(actor_id)
        )

    def role_label_for(self, actor_id: str) -> str:
        for capability in ROLE_LABEL_PRIORITY:
            if self.has_capability(capability, actor_id):
                return capability
        return ROLE_LABEL_UNKNOWN
