from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.commands.errors import InvalidArgumentError, UnauthorizedError
from core.commands.rejection import ReasonCode
from core.permissions import (
    CAPABILITY_ADMINISTRATOR,
    CAPABILITY_MANUFACTURER,
    CAPABILITY_RETAILER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
    OPERATION_RULES,
    CapabilityGrant,
    InMemoryGrantProvider,
    PermissionEvaluator,
    RoleRegistry,
)
from core.permissions.rules import (
    AuthorizationSubject,
    admin_or,
    any_of,
    has_capability,
    is_owner,
)


NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)

CREATE = "custody.product.create.request"
TRANSFER = "custody.ownership.transfer.request"
UPDATE = "custody.status.update.request"
RECEIVE = "custody.warehouse.receive.request"
DELIVER = "custody.retailer.deliver.request"
RECALL = "custody.product.recall.request"
FORCE = "custody.product.force_update.request"
GRANT = "custody.role.grant.request"


class StubChecker:
    def __init__(self, grants: dict[str, set[str]] | None = None):
        self._grants = grants or {}
        self.calls: list[tuple[str, str]] = []

    def has_capability(self, capability: str, actor_id: str) -> bool:
        self.calls.append((capability, actor_id))
        return capability in self._grants.get(actor_id, set())


def _registry(**grants: str) -> RoleRegistry:
    """grants: actor_id=capability."""
    provider = InMemoryGrantProvider(
        CapabilityGrant(actor_id=actor_id, capability=capability)
        for actor_id, capability in grants.items()
    )
    return RoleRegistry(provider)


# ══════════════════════════════════════════════════════════════
# GRANT MODEL / PROVIDER
# ══════════════════════════════════════════════════════════════

class TestCapabilityGrant:
    def test_rejects_unknown_capability(self):
        with pytest.raises(ValueError, match="not valid"):
            CapabilityGrant(actor_id="a", capability="Pilot")

    def test_rejects_empty_actor(self):
        with pytest.raises(ValueError):
            CapabilityGrant(actor_id="", capability=CAPABILITY_RETAILER)


class TestInMemoryGrantProvider:
    def test_add_grant_is_idempotent(self):
        provider = InMemoryGrantProvider()
        grant = CapabilityGrant(actor_id="w1", capability=CAPABILITY_WAREHOUSE)
        assert provider.add_grant(grant) is True
        assert provider.add_grant(grant) is False
        assert len(provider.get_grants_for_actor("w1")) == 1

    def test_grants_are_sorted(self):
        provider = InMemoryGrantProvider(
            (
                CapabilityGrant(actor_id="x", capability=CAPABILITY_WAREHOUSE),
                CapabilityGrant(actor_id="x", capability=CAPABILITY_RETAILER),
            )
        )
        assert [g.capability for g in provider.get_grants_for_actor("x")] == [
            CAPABILITY_RETAILER,
            CAPABILITY_WAREHOUSE,
        ]

    def test_unknown_actor_has_nothing(self):
        provider = InMemoryGrantProvider()
        assert provider.get_grants_for_actor("ghost") == tuple()
        assert provider.has_grant("ghost", CAPABILITY_ADMINISTRATOR) is False


# ══════════════════════════════════════════════════════════════
# ROLE REGISTRY
# ══════════════════════════════════════════════════════════════

class TestRoleRegistry:
    def test_bootstrap_admin(self):
        registry = RoleRegistry()
        assert registry.bootstrap_admin("root", granted_at=NOW) is True
        assert registry.has_capability(CAPABILITY_ADMINISTRATOR, "root")

    def test_admin_grants_and_regrant_is_noop(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        assert registry.grant("root", CAPABILITY_TRANSPORTER, "t1") is True
        assert registry.grant("root", CAPABILITY_TRANSPORTER, "t1") is False
        assert registry.capabilities_for("t1") == (CAPABILITY_TRANSPORTER,)

    def test_non_admin_cannot_grant(self):
        registry = _registry(m1=CAPABILITY_MANUFACTURER)
        with pytest.raises(UnauthorizedError):
            registry.grant("m1", CAPABILITY_RETAILER, "r1")
        assert registry.has_capability(CAPABILITY_RETAILER, "r1") is False

    def test_unknown_capability_is_invalid_argument(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        with pytest.raises(InvalidArgumentError):
            registry.grant("root", "Pilot", "p1")

    def test_empty_grantee_is_invalid_argument(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        with pytest.raises(InvalidArgumentError):
            registry.grant("root", CAPABILITY_RETAILER, "")

    def test_has_capability_is_raw(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        # Administrator does not imply other capabilities at this level.
        assert registry.has_capability(CAPABILITY_TRANSPORTER, "root") is False

    def test_role_label_priority(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        registry.grant("root", CAPABILITY_RETAILER, "multi")
        registry.grant("root", CAPABILITY_TRANSPORTER, "multi")
        assert registry.role_label_for("multi") == CAPABILITY_TRANSPORTER
        registry.grant("root", CAPABILITY_MANUFACTURER, "multi")
        assert registry.role_label_for("multi") == CAPABILITY_MANUFACTURER

    def test_role_label_admin_only_and_unknown(self):
        registry = RoleRegistry()
        registry.bootstrap_admin("root")
        assert registry.role_label_for("root") == CAPABILITY_ADMINISTRATOR
        assert registry.role_label_for("stranger") == "Unknown"


# ══════════════════════════════════════════════════════════════
# RULE COMBINATORS
# ══════════════════════════════════════════════════════════════

class TestRuleCombinators:
    def test_has_capability_any(self):
        rule = has_capability(CAPABILITY_WAREHOUSE, CAPABILITY_RETAILER)
        checker = StubChecker({"r1": {CAPABILITY_RETAILER}})
        assert rule(AuthorizationSubject("r1"), checker) is True
        assert rule(AuthorizationSubject("x"), checker) is False

    def test_is_owner(self):
        rule = is_owner()
        checker = StubChecker()
        assert rule(AuthorizationSubject("o", owner_id="o"), checker) is True
        assert rule(AuthorizationSubject("o", owner_id="p"), checker) is False
        assert rule(AuthorizationSubject("o"), checker) is False

    def test_any_of(self):
        rule = any_of(is_owner(), has_capability(CAPABILITY_RETAILER))
        checker = StubChecker({"r1": {CAPABILITY_RETAILER}})
        assert rule(AuthorizationSubject("r1", owner_id="z"), checker)
        assert rule(AuthorizationSubject("z", owner_id="z"), checker)
        assert not rule(AuthorizationSubject("q", owner_id="z"), checker)

    def test_admin_or_without_inner_is_admin_only(self):
        rule = admin_or()
        checker = StubChecker({"a": {CAPABILITY_ADMINISTRATOR}})
        assert rule(AuthorizationSubject("a"), checker)
        assert not rule(AuthorizationSubject("b", owner_id="b"), checker)

    def test_admin_or_checks_admin_once(self):
        rule = admin_or(has_capability(CAPABILITY_WAREHOUSE))
        checker = StubChecker()
        rule(AuthorizationSubject("w"), checker)
        admin_checks = [c for c in checker.calls if c[0] == CAPABILITY_ADMINISTRATOR]
        assert len(admin_checks) == 1


# ══════════════════════════════════════════════════════════════
# EVALUATOR: AUTHORIZATION TABLE
# ══════════════════════════════════════════════════════════════

GRANTS = {
    "admin": {CAPABILITY_ADMINISTRATOR},
    "maker": {CAPABILITY_MANUFACTURER},
    "carrier": {CAPABILITY_TRANSPORTER},
    "depot": {CAPABILITY_WAREHOUSE},
    "shop": {CAPABILITY_RETAILER},
    "nobody": set(),
}

# (operation, actor) → allowed, when the product is owned by "holder".
EXPECTED = {
    CREATE: {"admin", "maker"},
    TRANSFER: {"admin", "holder"},
    UPDATE: {"admin", "maker", "carrier", "depot", "shop", "holder"},
    RECEIVE: {"admin", "depot"},
    DELIVER: {"admin", "shop"},
    RECALL: {"admin", "maker"},
    FORCE: {"admin"},
    GRANT: {"admin"},
}


class TestPermissionEvaluator:
    def test_every_operation_has_a_rule(self):
        assert set(OPERATION_RULES) == set(EXPECTED)

    @pytest.mark.parametrize("operation", sorted(EXPECTED))
    def test_authorization_table(self, operation):
        checker = StubChecker(GRANTS)
        for actor in list(GRANTS) + ["holder"]:
            allowed = PermissionEvaluator.allow(
                operation, actor, checker, owner_id="holder"
            )
            assert allowed is (actor in EXPECTED[operation]), (operation, actor)

    def test_unmapped_operation_denied(self):
        result = PermissionEvaluator.evaluate(
            "custody.product.melt.request", "admin", StubChecker(GRANTS)
        )
        assert result.allowed is False
        assert result.rejection_code == ReasonCode.PERMISSION_MAPPING_MISSING

    def test_missing_actor_denied(self):
        result = PermissionEvaluator.evaluate(CREATE, "", StubChecker(GRANTS))
        assert result.allowed is False
        assert result.rejection_code == ReasonCode.PERMISSION_DENIED

    def test_missing_checker_denied(self):
        result = PermissionEvaluator.evaluate(CREATE, "admin", None)
        assert result.allowed is False

    def test_denial_message_names_actor_and_operation(self):
        result = PermissionEvaluator.evaluate(RECALL, "shop", StubChecker(GRANTS))
        assert result.allowed is False
        assert "shop" in result.message
        assert RECALL in result.message

    def test_works_against_role_registry(self):
        registry = _registry(maker=CAPABILITY_MANUFACTURER)
        assert PermissionEvaluator.allow(CREATE, "maker", registry)
        assert not PermissionEvaluator.allow(CREATE, "other", registry)
