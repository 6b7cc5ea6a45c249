"""
Custody Engine — Errors
=========================
"""

from __future__ import annotations

from typing import Any

from core.commands.errors import NotFoundError


class ProductNotFound(NotFoundError):
    """Unknown product id. Id 0 never exists."""

    def __init__(self, product_id: Any):
        self.product_id = product_id
        super().__init__(
            f"Product '{product_id}' does not exist.",
            policy_name="product_ledger",
        )


class HistoryIndexOutOfRange(NotFoundError):
    def __init__(self, product_id: int, index: Any, length: int):
        self.product_id = product_id
        self.index = index
        self.length = length
        super().__init__(
            f"History index {index} out of range for product "
            f"{product_id} (length {length}).",
            policy_name="product_ledger",
        )
