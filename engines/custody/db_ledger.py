"""
Custody Engine — DB-backed Product Ledger
===========================================
Same contract as InMemoryProductLedger, stored in the
core.ledger_store tables. Every write runs inside one transaction
and locks the rows it reads before deciding the next index or id.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Tuple

from django.db import transaction

from core.ledger_store.models import HistoryEntry, LedgerSequence, ProductRecord
from engines.custody.errors import HistoryIndexOutOfRange, ProductNotFound
from engines.custody.ledger import (
    NULL_PRODUCT_ID,
    Decision,
    T,
    creation_entry,
    is_product_id,
    window_bounds,
)
from engines.custody.models import HistoryItem, Product, ProductStatus

logger = logging.getLogger("custody.ledger")

PRODUCT_SEQUENCE = "custody.product"


def _to_product(row: ProductRecord) -> Product:
    return Product(
        product_id=row.product_id,
        sku=row.sku,
        description=row.description,
        owner_id=row.owner_id,
        status=ProductStatus(row.status),
        created_at=row.created_at,
    )


def _to_item(row: HistoryEntry) -> HistoryItem:
    return HistoryItem(
        recorded_at=row.recorded_at,
        actor_id=row.actor_id,
        role_label=row.role_label,
        location=row.location,
        note=row.note,
        status=ProductStatus(row.status),
    )


def _entry_fields(item: HistoryItem) -> dict:
    return {
        "recorded_at": item.recorded_at,
        "actor_id": item.actor_id,
        "role_label": item.role_label,
        "location": item.location,
        "note": item.note,
        "status": item.status.value,
    }


class DbProductLedger:
    @property
    def last_product_id(self) -> int:
        value = (
            LedgerSequence.objects.filter(name=PRODUCT_SEQUENCE)
            .values_list("last_value", flat=True)
            .first()
        )
        return value or NULL_PRODUCT_ID

    @staticmethod
    def _row(product_id, *, lock: bool = False) -> ProductRecord:
        if not is_product_id(product_id):
            raise ProductNotFound(product_id)
        query = ProductRecord.objects.filter(product_id=product_id)
        if lock:
            query = query.select_for_update()
        row = query.first()
        if row is None:
            raise ProductNotFound(product_id)
        return row

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
        entry = creation_entry(
            creator_id=creator_id,
            created_at=created_at,
            location=location,
            note=note,
        )
        with transaction.atomic():
            sequence, _ = LedgerSequence.objects.select_for_update().get_or_create(
                name=PRODUCT_SEQUENCE,
                defaults={"last_value": NULL_PRODUCT_ID},
            )
            sequence.last_value += 1
            sequence.save(update_fields=["last_value"])

            row = ProductRecord.objects.create(
                product_id=sequence.last_value,
                sku=sku,
                description=description,
                owner_id=creator_id,
                status=ProductStatus.MANUFACTURED.value,
                created_at=created_at,
                history_length=1,
            )
            HistoryEntry.objects.create(product=row, index=0, **_entry_fields(entry))

        logger.debug(f"Allocated product {row.product_id} (sku={sku})")
        return _to_product(row)

    def get(self, product_id: int) -> Product:
        return _to_product(self._row(product_id))

    def append_history(self, product_id: int, item: HistoryItem) -> int:
        with transaction.atomic():
            row = self._row(product_id, lock=True)
            index = row.history_length
            HistoryEntry.objects.create(product=row, index=index, **_entry_fields(item))
            row.history_length = index + 1
            row.save(update_fields=["history_length"])
        return index

    @staticmethod
    def _write(row: ProductRecord, product: Product, item: HistoryItem) -> int:
        index = row.history_length
        HistoryEntry.objects.create(product=row, index=index, **_entry_fields(item))
        row.owner_id = product.owner_id
        row.status = product.status.value
        row.history_length = index + 1
        row.save(update_fields=["owner_id", "status", "history_length"])
        return index

    def commit(self, product: Product, item: HistoryItem) -> int:
        with transaction.atomic():
            row = self._row(product.product_id, lock=True)
            return self._write(row, product, item)

    def apply_change(self, product_id: int, decide: Decision[T]) -> Tuple[int, T]:
        """
        Lock the product row, let decide() judge the stored snapshot and
        write its result, all in one transaction. Another process cannot
        commit against the same row between the read and the write.
        """
        with transaction.atomic():
            row = self._row(product_id, lock=True)
            updated, item, outcome = decide(_to_product(row))
            if updated.product_id != product_id:
                raise ValueError(
                    f"decision for product {product_id} returned "
                    f"product {updated.product_id}."
                )
            index = self._write(row, updated, item)
        return index, outcome

    def history_count(self, product_id: int) -> int:
        return self._row(product_id).history_length

    def read_history_item(self, product_id: int, index: int) -> HistoryItem:
        row = self._row(product_id)
        if (
            isinstance(index, bool)
            or not isinstance(index, int)
            or not 0 <= index < row.history_length
        ):
            raise HistoryIndexOutOfRange(product_id, index, row.history_length)
        return _to_item(HistoryEntry.objects.get(product_id=product_id, index=index))

    def read_history_window(
        self, product_id: int, count: int
    ) -> tuple[HistoryItem, ...]:
        row = self._row(product_id)
        start, stop = window_bounds(count, row.history_length)
        if start == stop:
            return tuple()
        rows = HistoryEntry.objects.filter(
            product_id=product_id,
            index__gte=start,
            index__lt=stop,
        ).order_by("index")
        return tuple(_to_item(entry) for entry in rows)
