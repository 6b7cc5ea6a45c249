"""
Custody Permissions Store - Relational Capability Grants
========================================================
One row per (actor, capability). Rows are never revoked.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class RoleGrant(models.Model):
    actor_id = models.CharField(max_length=255)
    capability = models.CharField(max_length=32)
    granted_by = models.CharField(max_length=255, default="", blank=True)
    granted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "custody_role_grants"
        ordering = ["actor_id", "capability", "id"]
        indexes = [
            models.Index(fields=["capability"], name="idx_role_grant_capability"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["actor_id", "capability"],
                name="uq_role_grant_actor_capability",
            ),
        ]

    def delete(self, *args, **kwargs):
        raise PermissionError("Capability grants cannot be revoked.")

    def __str__(self) -> str:
        return f"{self.actor_id}:{self.capability}"
