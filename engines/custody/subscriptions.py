"""
Custody Engine — Event Subscriptions
======================================
Downstream consumers of custody notifications.

Subscriptions:
- custody.history.added.v1 → AdminOverrideReviewLog collects every
  administrator force update for later review.

Delivery is at-least-once, so consumers dedupe on
(product_id, history_index).
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import List, Tuple

from core.events.models import Notification
from core.events.registry import SubscriberRegistry
from engines.custody.commands import CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST
from engines.custody.events import CUSTODY_HISTORY_ADDED_V1

logger = logging.getLogger("custody.review")

REVIEW_SUBSCRIBER_ENGINE = "review"


class AdminOverrideReviewLog:
    """
    Keeps the HistoryAdded payloads of administrator overrides,
    in the order they were delivered.
    """

    def __init__(self):
        self._entries: List[dict] = []
        self._seen: set[Tuple[int, int]] = set()
        self._lock = Lock()

    def register(self, registry: SubscriberRegistry) -> None:
        registry.register_subscriber(
            CUSTODY_HISTORY_ADDED_V1,
            self.handle_history_added,
            REVIEW_SUBSCRIBER_ENGINE,
        )

    def handle_history_added(self, event: Notification) -> None:
        payload = event.payload
        # note and role_label are caller text; only the operation is trusted.
        if payload.get("operation") != CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST:
            return

        key = (payload["product_id"], payload["history_index"])
        with self._lock:
            if key in self._seen:
                logger.debug(f"Duplicate override delivery ignored: {key}")
                return
            self._seen.add(key)
            self._entries.append(dict(payload))

        logger.info(
            f"Override queued for review: product {key[0]} "
            f"entry {key[1]} by {payload['actor']}"
        )

    @property
    def entries(self) -> Tuple[dict, ...]:
        with self._lock:
            return tuple(self._entries)

    def entries_for(self, product_id: int) -> Tuple[dict, ...]:
        with self._lock:
            return tuple(e for e in self._entries if e["product_id"] == product_id)

