"""
Tests for core.commands — Command contract, rejection model, error taxonomy.
"""

import uuid
from datetime import datetime, timezone

import pytest

from core.commands import (
    Command,
    CommandError,
    InvalidArgumentError,
    NotFoundError,
    ReasonCode,
    RejectionReason,
    UnauthorizedError,
)

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _command(**overrides) -> Command:
    fields = dict(
        command_id=uuid.uuid4(),
        command_type="custody.product.create.request",
        actor_id="factory-1",
        payload={"sku": "SKU1"},
        issued_at=NOW,
        correlation_id=uuid.uuid4(),
        source_engine="custody",
    )
    fields.update(overrides)
    return Command(**fields)


# ══════════════════════════════════════════════════════════════
# COMMAND CONTRACT
# ══════════════════════════════════════════════════════════════

class TestCommandContract:
    def test_valid_command(self):
        cmd = _command()
        assert cmd.command_type == "custody.product.create.request"
        assert cmd.source_engine == "custody"

    def test_command_is_frozen(self):
        cmd = _command()
        with pytest.raises(AttributeError):
            cmd.actor_id = "someone-else"

    def test_type_must_end_with_request(self):
        with pytest.raises(ValueError, match=".request"):
            _command(command_type="custody.product.create")

    def test_type_needs_four_segments(self):
        with pytest.raises(ValueError, match="minimum 4 segments"):
            _command(command_type="custody.create.request")

    def test_namespace_must_match_source_engine(self):
        with pytest.raises(ValueError, match="does not match"):
            _command(source_engine="inventory")

    def test_empty_actor_is_invalid_argument(self):
        with pytest.raises(InvalidArgumentError):
            _command(actor_id="")

    def test_naive_issued_at_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            _command(issued_at=datetime(2026, 3, 1))

    def test_payload_must_be_dict(self):
        with pytest.raises(TypeError):
            _command(payload=["sku"])

    def test_command_id_must_be_uuid(self):
        with pytest.raises(ValueError, match="UUID"):
            _command(command_id="not-a-uuid")


# ══════════════════════════════════════════════════════════════
# REJECTION MODEL
# ══════════════════════════════════════════════════════════════

class TestRejectionReason:
    def test_to_dict(self):
        reason = RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message="nope",
            policy_name="authorization",
        )
        assert reason.to_dict() == {
            "code": "UNAUTHORIZED",
            "message": "nope",
            "policy_name": "authorization",
        }

    def test_empty_message_rejected(self):
        with pytest.raises(ValueError):
            RejectionReason(code="X", message="", policy_name="p")


# ══════════════════════════════════════════════════════════════
# ERROR TAXONOMY
# ══════════════════════════════════════════════════════════════

class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error_cls, code",
        [
            (NotFoundError, ReasonCode.NOT_FOUND),
            (UnauthorizedError, ReasonCode.UNAUTHORIZED),
            (InvalidArgumentError, ReasonCode.INVALID_ARGUMENT),
        ],
    )
    def test_codes(self, error_cls, code):
        exc = error_cls("boom")
        assert isinstance(exc, CommandError)
        assert exc.code == code
        assert exc.message == "boom"
        assert code in str(exc)

    def test_invalid_argument_is_value_error(self):
        assert issubclass(InvalidArgumentError, ValueError)

    def test_to_rejection_carries_policy_name(self):
        exc = UnauthorizedError("denied", policy_name="role_registry")
        rejection = exc.to_rejection()
        assert rejection.code == ReasonCode.UNAUTHORIZED
        assert rejection.message == "denied"
        assert rejection.policy_name == "role_registry"

    def test_default_policy_name(self):
        assert NotFoundError("gone").to_rejection().policy_name == "command"
