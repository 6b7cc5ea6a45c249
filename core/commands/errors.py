"""
Custody Command Layer — Error Taxonomy
========================================
Every failed operation raises exactly one of these, synchronously,
before any ledger, history, or notification side effect.

    NotFoundError         unknown product id / history index
    UnauthorizedError     authorization denied
    InvalidArgumentError  malformed request

There is no retry inside the system. Retrying is the caller's call.
"""

from __future__ import annotations

from core.commands.rejection import ReasonCode, RejectionReason


class CommandError(Exception):
    """Base error for command execution. Carries a structured code."""

    code = "COMMAND_ERROR"

    def __init__(self, message: str, *, policy_name: str = "command"):
        self.message = message
        self.policy_name = policy_name
        super().__init__(f"[{self.code}] {message}")

    def to_rejection(self) -> RejectionReason:
        return RejectionReason(
            code=self.code,
            message=self.message,
            policy_name=self.policy_name,
        )


class NotFoundError(CommandError):
    code = ReasonCode.NOT_FOUND


class UnauthorizedError(CommandError):
    code = ReasonCode.UNAUTHORIZED


class InvalidArgumentError(CommandError, ValueError):
    code = ReasonCode.INVALID_ARGUMENT
