"""
Custody Command Layer
=======================
Every state change begins as a Command.
Every Command either completes or fails with a typed CommandError.
"""

from core.commands.base import Command
from core.commands.errors import (
    CommandError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from core.commands.rejection import ReasonCode, RejectionReason

__all__ = [
    # ── Base ──────────────────────────────────────────────────
    "Command",
    # ── Rejection ─────────────────────────────────────────────
    "RejectionReason",
    "ReasonCode",
    # ── Errors ────────────────────────────────────────────────
    "CommandError",
    "NotFoundError",
    "UnauthorizedError",
    "InvalidArgumentError",
]
