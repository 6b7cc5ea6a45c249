from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from core.commands.errors import InvalidArgumentError, UnauthorizedError
from core.ledger_store.models import HistoryEntry, LedgerSequence, ProductRecord
from core.permissions.constants import (
    CAPABILITY_ADMINISTRATOR,
    CAPABILITY_MANUFACTURER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
)
from core.permissions.db_provider import DbGrantProvider
from core.permissions.models import CapabilityGrant
from core.permissions_store.models import RoleGrant
from core.time.clock import FixedClock
from engines.custody.db_ledger import PRODUCT_SEQUENCE, DbProductLedger
from engines.custody.errors import HistoryIndexOutOfRange, ProductNotFound
from engines.custody.models import HistoryItem, ProductStatus
from engines.custody.services import CustodyService

pytestmark = pytest.mark.django_db(transaction=True)


NOW = datetime(2026, 2, 19, 12, 0, 0, tzinfo=timezone.utc)


def _create(ledger: DbProductLedger, sku: str = "SKU1"):
    return ledger.create(
        sku=sku,
        description="Widget",
        location="Factory",
        note="Built",
        creator_id="factory-1",
        created_at=NOW,
    )


def _item(note: str, offset: int = 0) -> HistoryItem:
    return HistoryItem(
        recorded_at=NOW + timedelta(seconds=offset),
        actor_id="carrier-1",
        role_label="Transporter",
        location="Road",
        note=note,
        status=ProductStatus.IN_TRANSIT,
    )


# ══════════════════════════════════════════════════════════════
# GRANT PROVIDER
# ══════════════════════════════════════════════════════════════

def test_db_grant_provider_add_and_resolve() -> None:
    provider = DbGrantProvider()
    grant = CapabilityGrant(
        actor_id="depot-1",
        capability=CAPABILITY_WAREHOUSE,
        granted_by="admin-0",
        granted_at=NOW,
    )
    assert provider.add_grant(grant) is True
    assert provider.add_grant(grant) is False
    assert RoleGrant.objects.filter(actor_id="depot-1").count() == 1

    grants = provider.get_grants_for_actor("depot-1")
    assert len(grants) == 1
    assert grants[0].capability == CAPABILITY_WAREHOUSE
    assert grants[0].granted_by == "admin-0"
    assert grants[0].granted_at == NOW
    assert provider.has_grant("depot-1", CAPABILITY_WAREHOUSE)
    assert not provider.has_grant("depot-1", CAPABILITY_TRANSPORTER)


def test_db_grant_provider_bootstrap_grant_has_no_grantor() -> None:
    provider = DbGrantProvider()
    provider.add_grant(CapabilityGrant(actor_id="root", capability=CAPABILITY_ADMINISTRATOR))
    (grant,) = provider.get_grants_for_actor("root")
    assert grant.granted_by is None
    assert grant.granted_at is not None


def test_db_grant_provider_ignores_blank_actor() -> None:
    assert DbGrantProvider().get_grants_for_actor("") == tuple()


def test_role_grants_cannot_be_deleted() -> None:
    DbGrantProvider().add_grant(
        CapabilityGrant(actor_id="x", capability=CAPABILITY_TRANSPORTER)
    )
    row = RoleGrant.objects.get(actor_id="x")
    with pytest.raises(PermissionError):
        row.delete()


# ══════════════════════════════════════════════════════════════
# PRODUCT LEDGER
# ══════════════════════════════════════════════════════════════

def test_db_ledger_create_persists_product_and_first_entry() -> None:
    ledger = DbProductLedger()
    product = _create(ledger)

    assert product.product_id == 1
    assert product.status is ProductStatus.MANUFACTURED
    assert ledger.last_product_id == 1
    assert LedgerSequence.objects.get(name=PRODUCT_SEQUENCE).last_value == 1

    row = ProductRecord.objects.get(product_id=1)
    assert row.history_length == 1
    first = ledger.read_history_item(1, 0)
    assert first.role_label == "Manufacturer"
    assert first.location == "Factory"
    assert first.recorded_at == NOW


def test_db_ledger_ids_increase() -> None:
    ledger = DbProductLedger()
    assert ledger.last_product_id == 0
    ids = [_create(ledger, f"S{i}").product_id for i in range(3)]
    assert ids == [1, 2, 3]


def test_db_ledger_unknown_ids() -> None:
    ledger = DbProductLedger()
    _create(ledger)
    for product_id in (0, 2, -5):
        with pytest.raises(ProductNotFound):
            ledger.get(product_id)
    with pytest.raises(ProductNotFound):
        ledger.append_history(9, _item("x"))


def test_db_ledger_apply_change_reads_locked_row() -> None:
    ledger = DbProductLedger()
    stale = _create(ledger)
    # Another writer moves the product after `stale` was read.
    ledger.commit(replace(stale, owner_id="carrier-1"), _item("moved"))

    def owner_only(current):
        if current.owner_id != stale.owner_id:
            raise UnauthorizedError("not the owner")
        return replace(current, owner_id="shop-1"), _item("steal"), None

    with pytest.raises(UnauthorizedError):
        ledger.apply_change(1, owner_only)
    assert ledger.get(1).owner_id == "carrier-1"
    assert ledger.history_count(1) == 2
    assert HistoryEntry.objects.filter(product_id=1).count() == 2

    index, outcome = ledger.apply_change(
        1,
        lambda current: (
            replace(current, status=ProductStatus.IN_WAREHOUSE),
            _item("hub"),
            current.owner_id,
        ),
    )
    assert (index, outcome) == (2, "carrier-1")
    assert ledger.get(1).status is ProductStatus.IN_WAREHOUSE


def test_db_ledger_commit_and_windows() -> None:
    ledger = DbProductLedger()
    product = _create(ledger)
    moved = replace(product, owner_id="carrier-1", status=ProductStatus.IN_TRANSIT)
    assert ledger.commit(moved, _item("leg-0")) == 1
    for i in range(1, 4):
        assert ledger.append_history(1, _item(f"leg-{i}", offset=i)) == i + 1

    stored = ledger.get(1)
    assert stored.owner_id == "carrier-1"
    assert stored.status is ProductStatus.IN_TRANSIT
    assert stored.created_at == NOW
    assert ledger.history_count(1) == 5

    full = tuple(ledger.read_history_item(1, i) for i in range(5))
    assert ledger.read_history_window(1, 0) == tuple()
    assert ledger.read_history_window(1, 2) == full[3:]
    assert ledger.read_history_window(1, 5) == full
    assert ledger.read_history_window(1, 99) == full
    assert [h.note for h in ledger.read_history_window(1, 3)] == ["leg-1", "leg-2", "leg-3"]

    with pytest.raises(InvalidArgumentError):
        ledger.read_history_window(1, -1)
    with pytest.raises(HistoryIndexOutOfRange):
        ledger.read_history_item(1, 5)


def test_history_rows_are_immutable() -> None:
    ledger = DbProductLedger()
    _create(ledger)
    entry = HistoryEntry.objects.get(product_id=1, index=0)
    entry.note = "rewritten"
    with pytest.raises(PermissionError):
        entry.save()
    with pytest.raises(PermissionError):
        entry.delete()
    with pytest.raises(PermissionError):
        ProductRecord.objects.get(product_id=1).delete()
    assert ledger.read_history_item(1, 0).note == "Built"


# ══════════════════════════════════════════════════════════════
# SERVICE AGAINST DB STORES
# ══════════════════════════════════════════════════════════════

def _db_service() -> CustodyService:
    service = CustodyService(
        initializer_id="admin-0",
        ledger=DbProductLedger(),
        grant_provider=DbGrantProvider(),
        clock=FixedClock(NOW),
    )
    service.grant_role("admin-0", CAPABILITY_MANUFACTURER, "factory-1")
    service.grant_role("admin-0", CAPABILITY_TRANSPORTER, "carrier-1")
    service.grant_role("admin-0", CAPABILITY_WAREHOUSE, "depot-1")
    return service


def test_db_service_walkthrough() -> None:
    service = _db_service()
    pid = service.create_product("factory-1", "SKU1", "Widget", "Factory", "Built").product_id
    assert pid == 1

    service.transfer_to("factory-1", pid, "carrier-1", "TRANSFER", "Dock", "Pickup")
    product = service.get_product(pid)
    assert product.owner_id == "carrier-1"
    assert product.status is ProductStatus.IN_TRANSIT

    with pytest.raises(UnauthorizedError):
        service.update_location_and_status(
            "stranger-1", pid, "Nowhere", "", ProductStatus.DELIVERED,
        )
    assert service.get_history_count(pid) == 2

    service.receive_at_warehouse("depot-1", pid, "Hub", "Arrived")
    assert service.get_product(pid).status is ProductStatus.IN_WAREHOUSE
    assert service.get_history_item(pid, 2).role_label == "Warehouse"

    service.admin_force_update_owner_and_status(
        "admin-0", pid, "shop-1", ProductStatus.DELIVERED,
    )
    product = service.get_product(pid)
    assert product.owner_id == "shop-1"
    assert product.status is ProductStatus.DELIVERED
    assert service.get_history_item(pid, 3).note == "adminForceUpdate"
    assert HistoryEntry.objects.filter(product_id=pid).count() == 4


def test_db_service_rejected_creation_keeps_counter() -> None:
    service = _db_service()
    with pytest.raises(UnauthorizedError):
        service.create_product("carrier-1", "X", "", "", "")
    assert service.ledger.last_product_id == 0
    assert ProductRecord.objects.count() == 0


def test_db_service_grants_survive_new_service_instance() -> None:
    _db_service()
    again = CustodyService(
        initializer_id="admin-0",
        ledger=DbProductLedger(),
        grant_provider=DbGrantProvider(),
    )
    assert again.has_role(CAPABILITY_MANUFACTURER, "factory-1")
    assert RoleGrant.objects.filter(capability=CAPABILITY_ADMINISTRATOR).count() == 1


def test_build_custody_service_with_database(settings) -> None:
    from engines.custody.bootstrap import build_custody_service

    settings.CUSTODY_ADMIN_ACTOR_ID = ""
    service = build_custody_service(
        initializer_id="deployer",
        use_database=True,
        initial_grants=[(CAPABILITY_MANUFACTURER, "factory-1")],
    )
    assert isinstance(service.ledger, DbProductLedger)
    assert RoleGrant.objects.filter(actor_id="factory-1").exists()
    pid = service.create_product("factory-1", "S", "", "", "").product_id
    assert ProductRecord.objects.get(product_id=pid).owner_id == "factory-1"
