"""
Custody Event Bus — Public API
================================
Notifications are published after the ledger commit they describe,
in commit order per product.
"""

from core.events.dispatcher import DispatchReport, SubscriberFailure, dispatch
from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
    SelfSubscriptionError,
)
from core.events.models import Notification
from core.events.outbox import OrderedOutbox
from core.events.registry import SubscriberRegistry, Subscription

__all__ = [
    "Notification",
    "SubscriberRegistry",
    "Subscription",
    "dispatch",
    "DispatchReport",
    "SubscriberFailure",
    "OrderedOutbox",
    "EventBusError",
    "InvalidEventTypeFormat",
    "DuplicateSubscriberError",
    "SelfSubscriptionError",
]
