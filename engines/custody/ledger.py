"""
Custody Engine — Product Ledger & History Log
===============================================
id → current Product, id → append-only ordered history.

History is stored as an arena keyed by (product_id, index) with a
separate length counter per product. Reading a window touches only
the entries inside the window.

RULES:
- Product ids start at 1, increase by 1, and are never reused.
- Allocation and persistence of a new product are one step.
- History entries are never modified or removed.
- A product snapshot change and its history entry commit together.
- apply_change decides against the stored snapshot while holding it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Protocol, Tuple, TypeVar

from core.commands.errors import InvalidArgumentError
from core.permissions.constants import CAPABILITY_MANUFACTURER
from engines.custody.errors import HistoryIndexOutOfRange, ProductNotFound
from engines.custody.models import HistoryItem, Product, ProductStatus

logger = logging.getLogger("custody.ledger")

NULL_PRODUCT_ID = 0

T = TypeVar("T")

# Receives the current snapshot and returns (new snapshot, history entry,
# caller outcome). Raising leaves the ledger untouched.
Decision = Callable[[Product], Tuple[Product, HistoryItem, T]]


# ══════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════

def is_product_id(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and value > NULL_PRODUCT_ID
    )


def window_bounds(count: Any, total: int) -> tuple[int, int]:
    """[start, stop) of the last min(count, total) entries."""
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidArgumentError(
            "count must be a non-negative integer.",
            policy_name="product_ledger",
        )
    if count < 0:
        raise InvalidArgumentError(
            f"count must be non-negative, got {count}.",
            policy_name="product_ledger",
        )
    size = min(count, total)
    return total - size, total


def creation_entry(
    *, creator_id: str, created_at: datetime, location: str, note: str
) -> HistoryItem:
    return HistoryItem(
        recorded_at=created_at,
        actor_id=creator_id,
        role_label=CAPABILITY_MANUFACTURER,
        location=location,
        note=note,
        status=ProductStatus.MANUFACTURED,
    )


# ══════════════════════════════════════════════════════════════
# PROTOCOL
# ══════════════════════════════════════════════════════════════

class ProductLedger(Protocol):
    @property
    def last_product_id(self) -> int:
        ...

    def create(
        self,
        *,
        sku: str,
        description: str,
        location: str,
        note: str,
        creator_id: str,
        created_at: datetime,
    ) -> Product:
        ...

    def get(self, product_id: int) -> Product:
        ...

    def append_history(self, product_id: int, item: HistoryItem) -> int:
        ...

    def commit(self, product: Product, item: HistoryItem) -> int:
        ...

    def apply_change(self, product_id: int, decide: Decision[T]) -> Tuple[int, T]:
        ...

    def history_count(self, product_id: int) -> int:
        ...

    def read_history_item(self, product_id: int, index: int) -> HistoryItem:
        ...

    def read_history_window(
        self, product_id: int, count: int
    ) -> tuple[HistoryItem, ...]:
        ...


# ══════════════════════════════════════════════════════════════
# IN-MEMORY LEDGER
# ══════════════════════════════════════════════════════════════

class InMemoryProductLedger:
    """
    Process-local ledger. One instance per CustodyService.
    """

    def __init__(self) -> None:
        self._last_product_id = NULL_PRODUCT_ID
        self._products: dict[int, Product] = {}
        self._history: dict[tuple[int, int], HistoryItem] = {}
        self._history_length: dict[int, int] = {}
        self._lock = RLock()

    @property
    def last_product_id(self) -> int:
        with self._lock:
            return self._last_product_id

    def _require(self, product_id: Any) -> Product:
        if not is_product_id(product_id):
            raise ProductNotFound(product_id)
        product = self._products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def create(
        self,
        *,
        sku: str,
        description: str,
        location: str,
        note: str,
        creator_id: str,
        created_at: datetime,
    ) -> Product:
        with self._lock:
            product_id = self._last_product_id + 1
            product = Product(
                product_id=product_id,
                sku=sku,
                description=description,
                owner_id=creator_id,
                status=ProductStatus.MANUFACTURED,
                created_at=created_at,
            )
            entry = creation_entry(
                creator_id=creator_id,
                created_at=created_at,
                location=location,
                note=note,
            )
            self._products[product_id] = product
            self._history[(product_id, 0)] = entry
            self._history_length[product_id] = 1
            self._last_product_id = product_id

        logger.debug(f"Allocated product {product_id} (sku={sku})")
        return product

    def get(self, product_id: int) -> Product:
        with self._lock:
            return self._require(product_id)

    def append_history(self, product_id: int, item: HistoryItem) -> int:
        with self._lock:
            self._require(product_id)
            index = self._history_length[product_id]
            self._history[(product_id, index)] = item
            self._history_length[product_id] = index + 1
            return index

    def commit(self, product: Product, item: HistoryItem) -> int:
        with self._lock:
            self._require(product.product_id)
            index = self._history_length[product.product_id]
            self._history[(product.product_id, index)] = item
            self._history_length[product.product_id] = index + 1
            # created_at is fixed at creation.
            self._products[product.product_id] = replace(
                product,
                created_at=self._products[product.product_id].created_at,
            )
            return index

    def apply_change(self, product_id: int, decide: Decision[T]) -> Tuple[int, T]:
        with self._lock:
            current = self._require(product_id)
            updated, item, outcome = decide(current)
            if updated.product_id != product_id:
                raise ValueError(
                    f"decision for product {product_id} returned "
                    f"product {updated.product_id}."
                )
            return self.commit(updated, item), outcome

    def history_count(self, product_id: int) -> int:
        with self._lock:
            self._require(product_id)
            return self._history_length[product_id]

    def read_history_item(self, product_id: int, index: int) -> HistoryItem:
        with self._lock:
            self._require(product_id)
            length = self._history_length[product_id]
            if (
                isinstance(index, bool)
                or not isinstance(index, int)
                or not 0 <= index < length
            ):
                raise HistoryIndexOutOfRange(product_id, index, length)
            return self._history[(product_id, index)]

    def read_history_window(
        self, product_id: int, count: int
    ) -> tuple[HistoryItem, ...]:
        with self._lock:
            self._require(product_id)
            start, stop = window_bounds(count, self._history_length[product_id])
            return tuple(
                self._history[(product_id, index)]
                for index in range(start, stop)
            )
