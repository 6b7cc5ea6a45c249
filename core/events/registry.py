"""
Custody Event Bus — Subscriber Registry
=========================================
Maps notification types to the sinks that want them.

Notification types are versioned: engine.domain.action.vN
(e.g. custody.history.added.v1). A sink is registered at most once
per type and an engine does not hear its own notifications unless it
asks to.
"""

from __future__ import annotations

import logging
import re
from threading import Lock
from typing import Callable, NamedTuple

from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
    SelfSubscriptionError,
)

logger = logging.getLogger("custody.events")

EVENT_TYPE_PATTERN = re.compile(r"^[a-z_]+(\.[a-z_]+){2,}\.v\d+$")


class Subscription(NamedTuple):
    handler: Callable
    subscriber_engine: str

    @property
    def name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


class SubscriberRegistry:
    """In-memory, thread-safe. Subscriptions keep registration order."""

    def __init__(self):
        self._by_type: dict[str, tuple[Subscription, ...]] = {}
        self._lock = Lock()

    def register_subscriber(
        self,
        event_type: str,
        handler: Callable,
        subscriber_engine: str,
        allow_self_subscription: bool = False,
    ) -> Subscription:
        """
        Raises:
            InvalidEventTypeFormat:   event_type is not engine.domain.action.vN
            DuplicateSubscriberError: handler already listens to event_type
            SelfSubscriptionError:    engine would hear its own notifications
        """
        if not isinstance(event_type, str) or not EVENT_TYPE_PATTERN.match(event_type):
            raise InvalidEventTypeFormat(str(event_type or ""))
        if not callable(handler):
            raise EventBusError(f"Handler must be callable, got {type(handler)}.")

        if event_type.partition(".")[0] == subscriber_engine and not allow_self_subscription:
            raise SelfSubscriptionError(subscriber_engine, event_type)

        subscription = Subscription(handler, subscriber_engine)
        with self._lock:
            current = self._by_type.get(event_type, ())
            if any(existing.handler == handler for existing in current):
                raise DuplicateSubscriberError(event_type, subscription.name)
            self._by_type[event_type] = current + (subscription,)

        logger.info(
            f"{subscriber_engine} subscribed {subscription.name} to {event_type}"
        )
        return subscription

    def get_subscribers(self, event_type: str) -> tuple[Subscription, ...]:
        with self._lock:
            return self._by_type.get(event_type, ())

    def has_subscribers(self, event_type: str) -> bool:
        return bool(self.get_subscribers(event_type))

    def subscriber_count(self, event_type: str) -> int:
        return len(self.get_subscribers(event_type))
