"""
Custody Command Layer — Rejection Model
=========================================
Structured rejection reasons for denied commands.

A RejectionReason is not an exception. It is the auditable
explanation attached to a failed command: machine-readable code,
human-readable message, and the rule that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for command rejection.

    Fields:
        code:        Machine-readable rejection code (e.g. 'UNAUTHORIZED').
        message:     Human-readable explanation.
        policy_name: Name of the rule or guard that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"

    # ── Authorization detail ──────────────────────────────────
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PERMISSION_MAPPING_MISSING = "PERMISSION_MAPPING_MISSING"
