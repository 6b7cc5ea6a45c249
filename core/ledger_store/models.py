"""
Custody Ledger Store - Relational Product Ledger
================================================
Tables:
    custody_sequences   monotonic id counters (never decremented)
    custody_products    current product record, keyed by product id
    custody_history     audit entries keyed by (product, index)

RULES:
- Products are never deleted. Recalled is a status, not a deletion.
- History rows are INSERT only: no updates, no deletes.
- history_length on the product row is the next free index.
"""

from __future__ import annotations

from django.db import models


class StoredProductStatus(models.TextChoices):
    UNKNOWN = "UNKNOWN", "Unknown"
    MANUFACTURED = "MANUFACTURED", "Manufactured"
    IN_TRANSIT = "IN_TRANSIT", "In transit"
    IN_WAREHOUSE = "IN_WAREHOUSE", "In warehouse"
    DELIVERED = "DELIVERED", "Delivered"
    RECALLED = "RECALLED", "Recalled"


class LedgerSequence(models.Model):
    name = models.CharField(primary_key=True, max_length=64)
    last_value = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = "custody_sequences"

    def __str__(self) -> str:
        return f"{self.name}={self.last_value}"


class ProductRecord(models.Model):
    product_id = models.PositiveBigIntegerField(primary_key=True)
    sku = models.TextField()
    description = models.TextField(blank=True, default="")
    owner_id = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=StoredProductStatus.choices)
    created_at = models.DateTimeField()
    history_length = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "custody_products"
        ordering = ["product_id"]
        indexes = [
            models.Index(fields=["owner_id"], name="idx_product_owner"),
            models.Index(fields=["status"], name="idx_product_status"),
        ]

    def delete(self, *args, **kwargs):
        raise PermissionError(
            "Products are never deleted. Recall marks end-of-life."
        )

    def __str__(self) -> str:
        return f"#{self.product_id} {self.sku} ({self.status})"


class HistoryEntry(models.Model):
    product = models.ForeignKey(
        ProductRecord,
        on_delete=models.PROTECT,
        related_name="history",
        db_column="product_id",
    )
    index = models.PositiveIntegerField()
    recorded_at = models.DateTimeField()
    actor_id = models.CharField(max_length=255)
    role_label = models.CharField(max_length=64)
    location = models.TextField(blank=True, default="")
    note = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=StoredProductStatus.choices)

    class Meta:
        db_table = "custody_history"
        ordering = ["product_id", "index"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "index"],
                name="uq_history_product_index",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError(
                "History entries are immutable. Append a new entry instead."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("History entries are never deleted.")

    def __str__(self) -> str:
        return f"#{self.product_id}[{self.index}] {self.role_label} {self.status}"
