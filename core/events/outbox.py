"""
Custody Event Bus — Ordered Outbox
====================================
A FIFO of committed notifications for one ordering key (a product).

Writers enqueue while they hold the key's commit lock, so queue order
is commit order. Delivery happens after that lock is released: the
first caller to drain becomes the deliverer and keeps going until the
queue is empty. Anyone else who drains meanwhile, including a
subscriber calling back into the service from inside a delivery,
returns at once and leaves its notifications to the active deliverer.
"""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock
from typing import Callable, Deque, Iterable

from core.events.models import Notification

logger = logging.getLogger("custody.events")


class OrderedOutbox:
    def __init__(self) -> None:
        self._pending: Deque[Notification] = deque()
        self._guard = Lock()
        self._draining = False

    def enqueue(self, notifications: Iterable[Notification]) -> None:
        with self._guard:
            self._pending.extend(notifications)

    @property
    def pending(self) -> int:
        with self._guard:
            return len(self._pending)

    def drain(self, deliver: Callable[[Notification], object]) -> int:
        """
        Deliver queued notifications in order. Returns how many this call
        delivered; 0 when another drain is already running.
        """
        with self._guard:
            if self._draining:
                return 0
            self._draining = True

        delivered = 0
        try:
            while True:
                with self._guard:
                    if not self._pending:
                        self._draining = False
                        return delivered
                    notification = self._pending.popleft()
                deliver(notification)
                delivered += 1
        except BaseException:
            with self._guard:
                self._draining = False
            logger.error(
                f"Outbox drain interrupted with {self.pending} notification(s) "
                f"still queued"
            )
            raise
