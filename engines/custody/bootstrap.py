"""
Custody Engine — Bootstrap
============================
Composes one CustodyService at system start.

Administrator resolution order:
1. admin_id argument
2. settings.CUSTODY_ADMIN_ACTOR_ID (when Django settings are configured)
3. the initializing actor

Initial grants are applied by the resolved administrator through the
normal grant command, so they are authorized and logged like any other.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.events.registry import SubscriberRegistry
from core.time.clock import Clock
from engines.custody.services import CustodyService

logger = logging.getLogger("custody.bootstrap")


def _configured_admin_id() -> Optional[str]:
    try:
        return getattr(settings, "CUSTODY_ADMIN_ACTOR_ID", "") or None
    except ImproperlyConfigured:
        return None


def build_custody_service(
    *,
    initializer_id: str,
    admin_id: Optional[str] = None,
    use_database: bool = False,
    initial_grants: Iterable[Tuple[str, str]] = (),
    subscriber_registry: SubscriberRegistry | None = None,
    clock: Clock | None = None,
) -> CustodyService:
    """
    Build the service and apply (capability, actor_id) initial grants.

    use_database selects the Django-backed ledger and grant provider;
    their tables must already be migrated.
    """
    ledger = None
    grant_provider = None
    if use_database:
        from core.permissions.db_provider import DbGrantProvider
        from engines.custody.db_ledger import DbProductLedger

        ledger = DbProductLedger()
        grant_provider = DbGrantProvider()

    service = CustodyService(
        initializer_id=initializer_id,
        admin_id=admin_id or _configured_admin_id(),
        ledger=ledger,
        grant_provider=grant_provider,
        subscriber_registry=subscriber_registry,
        clock=clock,
    )
    logger.info(
        f"Custody service ready: admin={service.admin_id} "
        f"initializer={initializer_id} store={'db' if use_database else 'memory'}"
    )

    for capability, actor_id in initial_grants:
        result = service.grant_role(service.admin_id, capability, actor_id)
        logger.info(
            f"Initial grant {capability} -> {actor_id} "
            f"(new={result.grant_created})"
        )

    return service
