"""
Custody Engine — Application Service
=======================================
Orchestrates custody commands → authorization → ledger → notifications.

Each product command runs under that product's commit lock:
    1. Existence check (NotFound before anything else)
    2. Authorization against the stored owner, inside the ledger's
       locked read-modify-write
    3. One atomic ledger commit (snapshot + history entry)
    4. Notifications queued on the product outbox, domain events
       first, HistoryAdded last

The outbox is drained after the commit lock is released, so a
subscriber may call back into the service without blocking and
notifications still arrive in history order per product.

A rejected command leaves no ledger, history, or notification trace.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from core.commands.base import Command
from core.commands.errors import (
    CommandError,
    InvalidArgumentError,
    UnauthorizedError,
)
from core.events.dispatcher import DispatchReport, dispatch
from core.events.models import Notification
from core.events.outbox import OrderedOutbox
from core.events.registry import SubscriberRegistry
from core.permissions.constants import (
    CAPABILITY_ADMINISTRATOR,
    CAPABILITY_RETAILER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
)
from core.permissions.evaluator import PermissionEvaluator
from core.permissions.provider import GrantProvider
from core.permissions.roles import RoleRegistry
from core.time.clock import Clock, SystemClock
from engines.custody.commands import (
    CUSTODY_OWNERSHIP_TRANSFER_REQUEST,
    CUSTODY_PRODUCT_COMMAND_TYPES,
    CUSTODY_PRODUCT_CREATE_REQUEST,
    CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST,
    CUSTODY_PRODUCT_RECALL_REQUEST,
    CUSTODY_RETAILER_DELIVER_REQUEST,
    CUSTODY_ROLE_GRANT_REQUEST,
    CUSTODY_STATUS_UPDATE_REQUEST,
    CUSTODY_WAREHOUSE_RECEIVE_REQUEST,
    ForceUpdateRequest,
    OwnershipTransferRequest,
    ProductCreateRequest,
    ProductRecallRequest,
    RetailerDeliverRequest,
    RoleGrantRequest,
    StatusUpdateRequest,
    WarehouseReceiveRequest,
)
from engines.custody.events import (
    CUSTODY_HISTORY_ADDED_V1,
    CUSTODY_OWNERSHIP_TRANSFERRED_V1,
    CUSTODY_PRODUCT_CREATED_V1,
    CUSTODY_PRODUCT_RECALLED_V1,
    build_history_added_payload,
    build_notification,
    build_ownership_transferred_payload,
    build_product_created_payload,
    build_product_recalled_payload,
)
from engines.custody.ledger import InMemoryProductLedger, ProductLedger
from engines.custody.models import HistoryItem, Product, ProductStatus

logger = logging.getLogger("custody.commands")
review_logger = logging.getLogger("custody.review")

FORCE_UPDATE_NOTE = "adminForceUpdate"

REQUEST_TYPES = {
    CUSTODY_PRODUCT_CREATE_REQUEST: ProductCreateRequest,
    CUSTODY_OWNERSHIP_TRANSFER_REQUEST: OwnershipTransferRequest,
    CUSTODY_STATUS_UPDATE_REQUEST: StatusUpdateRequest,
    CUSTODY_WAREHOUSE_RECEIVE_REQUEST: WarehouseReceiveRequest,
    CUSTODY_RETAILER_DELIVER_REQUEST: RetailerDeliverRequest,
    CUSTODY_PRODUCT_RECALL_REQUEST: ProductRecallRequest,
    CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST: ForceUpdateRequest,
    CUSTODY_ROLE_GRANT_REQUEST: RoleGrantRequest,
}

# (event_type, payload) pairs emitted ahead of HistoryAdded.
DomainEvents = Tuple[Tuple[str, dict], ...]
Transition = Callable[[Command, object, Product], Tuple[Product, HistoryItem, DomainEvents]]


@dataclass
class _ProductChannel:
    commit_lock: Lock = field(default_factory=Lock)
    outbox: OrderedOutbox = field(default_factory=OrderedOutbox)


# ══════════════════════════════════════════════════════════════
# EXECUTION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CustodyExecutionResult:
    command_type: str
    product_id: Optional[int] = None
    history_index: Optional[int] = None
    notifications: Tuple[Notification, ...] = ()
    grant_created: Optional[bool] = None

    @property
    def event_types(self) -> Tuple[str, ...]:
        return tuple(n.event_type for n in self.notifications)


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class CustodyService:
    """
    Custody Engine application service.

    Owns the role registry, the product ledger and the id counter
    for one deployment. Built once at system start; see
    engines.custody.bootstrap.build_custody_service.
    """

    def __init__(
        self,
        *,
        initializer_id: str,
        admin_id: Optional[str] = None,
        ledger: ProductLedger | None = None,
        grant_provider: GrantProvider | None = None,
        subscriber_registry: SubscriberRegistry | None = None,
        clock: Clock | None = None,
    ):
        if not initializer_id or not isinstance(initializer_id, str):
            raise InvalidArgumentError(
                "initializer_id must be a non-empty string.",
                policy_name="bootstrap",
            )
        if admin_id is not None and (not isinstance(admin_id, str) or not admin_id):
            raise InvalidArgumentError(
                "admin_id must be a non-empty string when given.",
                policy_name="bootstrap",
            )

        self._clock = clock or SystemClock()
        self._ledger = ledger if ledger is not None else InMemoryProductLedger()
        self._roles = RoleRegistry(grant_provider)
        self._subscribers = subscriber_registry or SubscriberRegistry()

        self._creation_lock = Lock()
        self._channels_guard = Lock()
        self._channels: Dict[int, _ProductChannel] = {}

        self._admin_id = admin_id or initializer_id
        self._roles.bootstrap_admin(self._admin_id, granted_at=self._clock.now_utc())

        self._transitions: Dict[str, Transition] = {
            CUSTODY_OWNERSHIP_TRANSFER_REQUEST: self._transfer,
            CUSTODY_STATUS_UPDATE_REQUEST: self._update_status,
            CUSTODY_WAREHOUSE_RECEIVE_REQUEST: self._receive,
            CUSTODY_RETAILER_DELIVER_REQUEST: self._deliver,
            CUSTODY_PRODUCT_RECALL_REQUEST: self._recall,
            CUSTODY_PRODUCT_FORCE_UPDATE_REQUEST: self._force_update,
        }

    # ── Accessors ─────────────────────────────────────────────

    @property
    def admin_id(self) -> str:
        return self._admin_id

    @property
    def role_registry(self) -> RoleRegistry:
        return self._roles

    @property
    def ledger(self) -> ProductLedger:
        return self._ledger

    @property
    def subscriber_registry(self) -> SubscriberRegistry:
        return self._subscribers

    # ── Command entry point ───────────────────────────────────

    def execute(self, command: Command) -> CustodyExecutionResult:
        request_type = REQUEST_TYPES.get(command.command_type)
        if request_type is None:
            raise InvalidArgumentError(
                f"Unsupported custody command type: {command.command_type}"
            )

        try:
            try:
                request = request_type(**command.payload)
            except TypeError as exc:
                raise InvalidArgumentError(
                    f"Malformed payload for {command.command_type}: {exc}"
                ) from exc

            if command.command_type == CUSTODY_PRODUCT_CREATE_REQUEST:
                result = self._create(command, request)
            elif command.command_type in CUSTODY_PRODUCT_COMMAND_TYPES:
                result = self._run_product_command(command, request)
            else:
                result = self._grant(command, request)
        except CommandError as exc:
            logger.info(
                f"Rejected {command.command_type} from {command.actor_id} "
                f"(command_id: {command.command_id}): {exc.code} {exc.message}"
            )
            raise

        logger.info(
            f"Accepted {command.command_type} from {command.actor_id} "
            f"(command_id: {command.command_id}, product: {result.product_id}, "
            f"history_index: {result.history_index})"
        )
        return result

    # ── Internals ─────────────────────────────────────────────

    def _authorize(self, command: Command, owner_id: Optional[str] = None) -> None:
        decision = PermissionEvaluator.evaluate(
            command.command_type,
            command.actor_id,
            self._roles,
            owner_id=owner_id,
        )
        if not decision.allowed:
            raise UnauthorizedError(decision.message, policy_name="authorization")

    def _channel(self, product_id: int) -> _ProductChannel:
        with self._channels_guard:
            channel = self._channels.get(product_id)
            if channel is None:
                channel = _ProductChannel()
                self._channels[product_id] = channel
            return channel

    def _notifications(
        self,
        command: Command,
        events: DomainEvents,
        product_id: int,
        history_index: int,
        item: HistoryItem,
    ) -> Tuple[Notification, ...]:
        occurred_at = self._clock.now_utc()
        pending = list(events)
        pending.append((
            CUSTODY_HISTORY_ADDED_V1,
            build_history_added_payload(
                product_id, history_index, item, command.command_type,
            ),
        ))
        return tuple(
            build_notification(
                command=command,
                event_type=event_type,
                payload=payload,
                occurred_at=occurred_at,
            )
            for event_type, payload in pending
        )

    def _dispatch(self, notification: Notification) -> DispatchReport:
        return dispatch(notification, self._subscribers)

    def _flush(self, channel: _ProductChannel) -> None:
        channel.outbox.drain(self._dispatch)

    def _create(
        self, command: Command, request: ProductCreateRequest
    ) -> CustodyExecutionResult:
        with self._creation_lock:
            self._authorize(command)
            product = self._ledger.create(
                sku=request.sku,
                description=request.description,
                location=request.location,
                note=request.note,
                creator_id=command.actor_id,
                created_at=command.issued_at,
            )
            item = self._ledger.read_history_item(product.product_id, 0)
            notifications = self._notifications(
                command,
                ((CUSTODY_PRODUCT_CREATED_V1, build_product_created_payload(product)),),
                product.product_id,
                0,
                item,
            )
            channel = self._channel(product.product_id)
            channel.outbox.enqueue(notifications)

        self._flush(channel)
        return CustodyExecutionResult(
            command_type=command.command_type,
            product_id=product.product_id,
            history_index=0,
            notifications=notifications,
        )

    def _grant(
        self, command: Command, request: RoleGrantRequest
    ) -> CustodyExecutionResult:
        self._authorize(command)
        created = self._roles.grant(
            command.actor_id,
            request.capability,
            request.grantee_id,
            granted_at=command.issued_at,
        )
        return CustodyExecutionResult(
            command_type=command.command_type,
            grant_created=created,
        )

    def _run_product_command(self, command: Command, request) -> CustodyExecutionResult:
        product_id = request.product_id
        # A new id is only visible here once its creation notifications
        # are queued. Unknown ids fail before a channel is created.
        with self._creation_lock:
            self._ledger.get(product_id)

        channel = self._channel(product_id)
        transition = self._transitions[command.command_type]

        def decide(product: Product):
            self._authorize(command, owner_id=product.owner_id)
            updated, item, events = transition(command, request, product)
            return updated, item, (item, events)

        with channel.commit_lock:
            index, (item, events) = self._ledger.apply_change(product_id, decide)
            notifications = self._notifications(command, events, product_id, index, item)
            channel.outbox.enqueue(notifications)

        self._flush(channel)
        return CustodyExecutionResult(
            command_type=command.command_type,
            product_id=product_id,
            history_index=index,
            notifications=notifications,
        )

    # ── Transitions ───────────────────────────────────────────

    @staticmethod
    def _entry(command: Command, role_label: str, location: str, note: str,
               status: ProductStatus) -> HistoryItem:
        return HistoryItem(
            recorded_at=command.issued_at,
            actor_id=command.actor_id,
            role_label=role_label,
            location=location,
            note=note,
            status=status,
        )

    @staticmethod
    def _ownership_change(previous: Product, updated: Product) -> DomainEvents:
        return ((
            CUSTODY_OWNERSHIP_TRANSFERRED_V1,
            build_ownership_transferred_payload(previous.owner_id, updated),
        ),)

    def _transfer(
        self, command: Command, request: OwnershipTransferRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        status = product.status
        if self._roles.has_capability(CAPABILITY_TRANSPORTER, request.recipient_id):
            status = ProductStatus.IN_TRANSIT

        updated = replace(product, owner_id=request.recipient_id, status=status)
        item = self._entry(
            command, request.role_label, request.location, request.note, status
        )
        return updated, item, self._ownership_change(product, updated)

    def _update_status(
        self, command: Command, request: StatusUpdateRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        updated = replace(product, status=request.new_status)
        item = self._entry(
            command,
            self._roles.role_label_for(command.actor_id),
            request.location,
            request.note,
            request.new_status,
        )
        return updated, item, ()

    def _receive(
        self, command: Command, request: WarehouseReceiveRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        updated = replace(
            product,
            owner_id=command.actor_id,
            status=ProductStatus.IN_WAREHOUSE,
        )
        item = self._entry(
            command, CAPABILITY_WAREHOUSE, request.location, request.note,
            ProductStatus.IN_WAREHOUSE,
        )
        return updated, item, self._ownership_change(product, updated)

    def _deliver(
        self, command: Command, request: RetailerDeliverRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        updated = replace(
            product,
            owner_id=command.actor_id,
            status=ProductStatus.DELIVERED,
        )
        item = self._entry(
            command, CAPABILITY_RETAILER, request.location, request.note,
            ProductStatus.DELIVERED,
        )
        return updated, item, self._ownership_change(product, updated)

    def _recall(
        self, command: Command, request: ProductRecallRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        updated = replace(product, status=ProductStatus.RECALLED)
        item = self._entry(
            command,
            self._roles.role_label_for(command.actor_id),
            "",
            request.reason,
            ProductStatus.RECALLED,
        )
        events = ((
            CUSTODY_PRODUCT_RECALLED_V1,
            build_product_recalled_payload(command, updated),
        ),)
        return updated, item, events

    def _force_update(
        self, command: Command, request: ForceUpdateRequest, product: Product
    ) -> Tuple[Product, HistoryItem, DomainEvents]:
        updated = replace(
            product,
            owner_id=request.new_owner_id,
            status=request.new_status,
        )
        item = self._entry(
            command, CAPABILITY_ADMINISTRATOR, "", FORCE_UPDATE_NOTE,
            request.new_status,
        )
        review_logger.warning(
            f"Administrator override on product {product.product_id} by "
            f"{command.actor_id}: owner {product.owner_id} -> "
            f"{updated.owner_id}, status {product.status.value} -> "
            f"{updated.status.value}"
        )
        return updated, item, self._ownership_change(product, updated)

    # ── Operations ────────────────────────────────────────────

    def _submit(self, actor_id: str, request) -> CustodyExecutionResult:
        command = request.to_command(
            actor_id=actor_id,
            command_id=uuid.uuid4(),
            correlation_id=uuid.uuid4(),
            issued_at=self._clock.now_utc(),
        )
        return self.execute(command)

    def grant_role(
        self, actor_id: str, capability: str, grantee_id: str
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            RoleGrantRequest(capability=capability, grantee_id=grantee_id),
        )

    def create_product(
        self, actor_id: str, sku: str, description: str, location: str, note: str
    ) -> CustodyExecutionResult:
        """Create a product owned by actor_id. result.product_id is the new id."""
        return self._submit(
            actor_id,
            ProductCreateRequest(
                sku=sku, description=description, location=location, note=note,
            ),
        )

    def transfer_to(
        self,
        actor_id: str,
        product_id: int,
        recipient_id: str,
        role_label: str,
        location: str,
        note: str,
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            OwnershipTransferRequest(
                product_id=product_id,
                recipient_id=recipient_id,
                role_label=role_label,
                location=location,
                note=note,
            ),
        )

    def update_location_and_status(
        self,
        actor_id: str,
        product_id: int,
        location: str,
        note: str,
        new_status,
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            StatusUpdateRequest(
                product_id=product_id,
                location=location,
                note=note,
                new_status=new_status,
            ),
        )

    def receive_at_warehouse(
        self, actor_id: str, product_id: int, location: str, note: str
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            WarehouseReceiveRequest(
                product_id=product_id, location=location, note=note,
            ),
        )

    def deliver_to_retailer(
        self, actor_id: str, product_id: int, location: str, note: str
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            RetailerDeliverRequest(
                product_id=product_id, location=location, note=note,
            ),
        )

    def recall_product(
        self, actor_id: str, product_id: int, reason: str
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            ProductRecallRequest(product_id=product_id, reason=reason),
        )

    def admin_force_update_owner_and_status(
        self, actor_id: str, product_id: int, new_owner_id: str, new_status
    ) -> CustodyExecutionResult:
        return self._submit(
            actor_id,
            ForceUpdateRequest(
                product_id=product_id,
                new_owner_id=new_owner_id,
                new_status=new_status,
            ),
        )

    # ── Queries (read-only, unauthenticated) ──────────────────

    def get_product(self, product_id: int) -> Product:
        return self._ledger.get(product_id)

    def get_history_count(self, product_id: int) -> int:
        return self._ledger.history_count(product_id)

    def get_history_item(self, product_id: int, index: int) -> HistoryItem:
        return self._ledger.read_history_item(product_id, index)

    def get_recent_history(
        self, product_id: int, count: int
    ) -> Tuple[HistoryItem, ...]:
        return self._ledger.read_history_window(product_id, count)

    def has_role(self, capability: str, actor_id: str) -> bool:
        return self._roles.has_capability(capability, actor_id)

    def get_roles(self, actor_id: str) -> Tuple[str, ...]:
        return self._roles.capabilities_for(actor_id)
