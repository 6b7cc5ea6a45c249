"""
Custody Permissions Store - App Configuration
=============================================
Persistent capability grants.
"""

from django.apps import AppConfig


class CorePermissionsStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.permissions_store"
    label = "core_permissions_store"
    verbose_name = "Custody Permissions Store"
