"""
Purpose: The operation surface the rest of the world calls (the "one call" entry points).
What it does:
Wires CourierRegistry, OrderStore, DispatchMatcher and ClaimCoordinator onto one
document store and exposes the transport-agnostic operations:

update_courier_location, create_order, get_order, list_customer_orders,
set_order_status, list_nearby_pending_orders, accept_order, reject_order, health

Each request is independent; any number of DispatchService objects (threads,
processes) may share the same backing store. Failures surface as one of
core.errors.{ValidationError, NotFound, Conflict, TransientStoreError}.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.errors import Conflict, NotFound, ValidationError
from couriers.models import Courier
from couriers.registry import CourierRegistry
from orders.models import Order, OrderStatus, parse_status
from orders.state_machine import can_transition
from orders.store import OrderStore
from storage.base import DocumentStore
from storage.memory import InMemoryDocumentStore
from storage.mongo import MongoDocumentStore

from .claims import ClaimCoordinator
from .matcher import DispatchMatcher, OrderCreated
from .policy import DispatchPolicy, default_dispatch_policy, policy_from_env

logger = logging.getLogger(__name__)

# statuses a client may set directly; ACCEPTED only happens through a claim
MANUAL_STATUSES = frozenset({OrderStatus.PICKED_UP, OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class DispatchService:

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        policy: Optional[DispatchPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.policy = policy or default_dispatch_policy()
        self.store = store or InMemoryDocumentStore(lock_timeout=self.policy.store_lock_timeout_seconds)

        self.couriers = CourierRegistry(self.store, clock=clock)
        self.orders = OrderStore(self.store, clock=clock)
        self.orders.ensure_indexes()

        self.matcher = DispatchMatcher(self.orders, self.couriers, self.policy)
        self.claims = ClaimCoordinator(self.orders, self.couriers)

    @classmethod
    def from_env(cls) -> "DispatchService":
        """
        Build a service from DISPATCH_* settings; DISPATCH_STORE_ENGINE=mongo
        connects to MONGODB_URI / MONGODB_DB.
        """
        policy = policy_from_env()
        if policy.store_engine == "mongo":
            store = MongoDocumentStore()
        else:
            store = InMemoryDocumentStore(lock_timeout=policy.store_lock_timeout_seconds)
        logger.info(f"Dispatch service starting on the {policy.store_engine} store")
        return cls(store=store, policy=policy)

    # --- couriers ---

    def update_courier_location(
        self,
        courier_id: Optional[str] = None,
        contact: Optional[str] = None,
        *,
        location: Any,
        is_available: bool = True,
        name: Optional[str] = None,
        vehicle: Optional[str] = None,
    ) -> Courier:
        return self.couriers.upsert(
            courier_id,
            contact,
            location=location,
            is_available=is_available,
            name=name,
            vehicle=vehicle,
        )

    def assigned_courier(self, order: Order) -> Optional[Courier]:
        """Resolve the order's weak courier reference; None if unassigned or unknown."""
        return self.couriers.get(order.assigned_courier_id)

    # --- orders ---

    def create_order(
        self,
        customer_id: Any,
        pickup: Any,
        dropoff: Any,
        items: Any = None,
        total_amount: Any = None,
        payment_method: Any = None,
        *,
        radius_meters: Optional[float] = None,
        candidate_limit: Optional[int] = None,
    ) -> OrderCreated:
        return self.matcher.create_order(
            customer_id=customer_id,
            pickup=pickup,
            dropoff=dropoff,
            items=items,
            total_amount=total_amount,
            payment_method=payment_method,
            radius_meters=radius_meters,
            candidate_limit=candidate_limit,
        )

    def get_order(self, order_id: str) -> Order:
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise NotFound("order", order_id, f"Order {order_id} not found")
        return order

    def list_customer_orders(self, customer_id: str, limit: Optional[int] = None) -> List[Order]:
        return self.orders.find_by_customer(customer_id, limit if limit is not None else self.policy.history_limit)

    def set_order_status(self, order_id: str, status: Any) -> Order:
        """
        Move an order to picked_up, delivered or cancelled.

        Goes through the same compare-and-swap as claiming, against whatever
        status was just read. If another writer moved the order in between,
        the move is re-checked against the new status; statuses only ever move
        forward, so this settles after a few rounds at most.

        Setting the status an order already has returns it unchanged, so a
        retried request is harmless.
        """
        new = parse_status(status)
        if new not in MANUAL_STATUSES:
            allowed = ", ".join(sorted(s.value for s in MANUAL_STATUSES))
            raise ValidationError(f"invalid status {new.value!r}, expected one of: {allowed}", field="status")

        while True:
            current = self.get_order(order_id)
            if current.status == new:
                return current
            if not can_transition(current.status, new):
                raise Conflict(
                    f"Order {current.id} is {current.status.value} and cannot become {new.value}",
                    order_id=current.id,
                    current_status=current.status.value,
                )

            updated = self.orders.transition_if_status(current.id, current.status, new)
            if updated is not None:
                return updated
            logger.debug(f"Order {current.id} moved on from {current.status.value} while setting {new.value}; re-reading")

    # --- claiming ---

    def list_nearby_pending_orders(
        self,
        courier_id: str,
        radius_meters: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """
        What a polling courier sees: pending orders around their last known
        location that they have not rejected, newest first.
        """
        courier = self.claims.require_courier(courier_id)
        return self.orders.find_pending_near(
            courier.location,
            radius_meters if radius_meters is not None else self.policy.radius_meters,
            excluding_rejected_by=courier.id,
            limit=limit if limit is not None else self.policy.poll_limit,
        )

    def accept_order(self, courier_id: str, order_id: str) -> Order:
        return self.claims.accept(courier_id, order_id)

    def reject_order(self, courier_id: str, order_id: str) -> Order:
        return self.claims.reject(courier_id, order_id)

    # --- ops ---

    def health(self) -> Dict[str, str]:
        self.store.ping()
        return {"status": "ok"}
