"""
Custody Ledger Store - App Configuration
========================================
Persistent products, history, and id sequences.
"""

from django.apps import AppConfig


class CoreLedgerStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.ledger_store"
    label = "core_ledger_store"
    verbose_name = "Custody Ledger Store"
