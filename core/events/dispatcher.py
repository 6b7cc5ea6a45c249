"""
Custody Event Bus — Dispatcher
================================
Hands a committed notification to each subscriber in registration
order. A subscriber that raises is recorded and logged; the rest still
run and the ledger is never touched.

Delivery is at-least-once from the consumer's point of view;
consumers dedupe on (product_id, history_index).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from core.events.models import Notification
from core.events.registry import SubscriberRegistry

logger = logging.getLogger("custody.events")


@dataclass(frozen=True)
class SubscriberFailure:
    handler: str
    engine: str
    error_type: str
    error: str


@dataclass(frozen=True)
class DispatchReport:
    event_type: str
    event_id: str
    delivered: int
    failures: Tuple[SubscriberFailure, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)


def dispatch(event: Notification, registry: SubscriberRegistry) -> DispatchReport:
    """Deliver event to its subscribers. Never raises for a subscriber error."""
    subscriptions = registry.get_subscribers(event.event_type)
    delivered = 0
    failures = []

    for subscription in subscriptions:
        try:
            subscription.handler(event)
        except Exception as exc:
            failures.append(SubscriberFailure(
                handler=subscription.name,
                engine=subscription.subscriber_engine,
                error_type=type(exc).__name__,
                error=str(exc),
            ))
            logger.error(
                f"{subscription.name} ({subscription.subscriber_engine}) failed on "
                f"{event.event_type} {event.event_id}: {exc}",
                exc_info=True,
            )
            continue
        delivered += 1

    report = DispatchReport(
        event_type=event.event_type,
        event_id=str(event.event_id),
        delivered=delivered,
        failures=tuple(failures),
    )
    logger.debug(
        f"{event.event_type} {report.event_id}: "
        f"{report.delivered} delivered, {report.failed} failed"
    )
    return report
