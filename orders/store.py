"""
Purpose: Owns order records and their lifecycle (pending -> accepted -> picked_up -> delivered).
What it does:
- create(order fields) -> Order in PENDING
- transition_if_status(order_id, expected, new, extra) -> Order | None
    the ONLY status mutation. One conditional update keyed on (_id, status),
    so it is atomic against every other caller in every process sharing the store.
    None means "not applicable": the stored status was no longer `expected`.
- add_rejection(order_id, courier_id) -> Order | None
    set-union into rejected_by, only while the order is still PENDING.
- find_pending_near / find_by_customer / find_by_id

Rule: Store owns state transitions, dispatch owns who may trigger them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.errors import ValidationError
from core.limits import require_limit
from geo.index import GeoIndex
from geo.point import GeoPoint
from storage.base import ASCENDING, DESCENDING, DocumentStore

from .models import ASSIGNED_STATUSES, Order, OrderStatus, parse_status
from .state_machine import ensure_transition

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"
PICKUP_GEO_FIELD = "pickup.geo"
NEWEST_FIRST = [("created_at", DESCENDING)]

# fields transition_if_status may set besides status/updated_at
TRANSITION_FIELDS = frozenset({"assigned_courier_id"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStore:
    """
    Order records on top of any storage.base.DocumentStore.
    Stateless apart from the collection handle: any number of OrderStore
    objects (threads, processes) may share one store.
    """

    def __init__(self, store: DocumentStore, clock: Optional[Callable[[], datetime]] = None):
        self.collection = store.collection(ORDERS_COLLECTION)
        self.geo_index = GeoIndex(self.collection, PICKUP_GEO_FIELD)
        self.clock = clock or utcnow

    def ensure_indexes(self) -> None:
        """
        Compound indexes backing the pending scan and the customer history.
        The pickup geospatial index is created with the GeoIndex.
        """
        self.collection.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
        self.collection.create_index([("customer_id", ASCENDING), ("created_at", DESCENDING)])

    # --- writes ---

    def create(
        self,
        *,
        customer_id: Any,
        pickup: Any,
        dropoff: Any,
        total_amount: Any,
        payment_method: Any,
        items: Any = None,
    ) -> Order:
        """
        Validate and insert a new order. It always starts PENDING, unassigned,
        with nobody in rejected_by.
        """
        document = Order.new_document(
            customer_id=customer_id,
            pickup=pickup,
            dropoff=dropoff,
            total_amount=total_amount,
            payment_method=payment_method,
            items=items,
            now=self.clock(),
        )
        order = Order.from_document(self.collection.insert_one(document))
        logger.info(f"Order {order.id} created for customer {order.customer_id} ({order.payment_method.value})")
        return order

    def transition_if_status(
        self,
        order_id: str,
        expected_status: Any,
        new_status: Any,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[Order]:
        """
        Compare-and-swap on the order status.

        Returns the order as stored after the move, or None if the order's
        status was not `expected_status` at the instant of the write (or the
        order does not exist). Losing is a normal outcome, not an error.

        Raises ValidationError when the state machine forbids the move, when
        extra_fields carries something other than the assignment, or when the
        move would break "assigned iff accepted/picked_up/delivered".
        """
        expected = parse_status(expected_status, "expected_status")
        new = parse_status(new_status, "status")
        ensure_transition(expected, new)

        extra = dict(extra_fields or {})
        unknown = set(extra) - TRANSITION_FIELDS
        if unknown:
            raise ValidationError(f"cannot set {sorted(unknown)} during a status transition", field="extra_fields")

        if new == OrderStatus.ACCEPTED and not extra.get("assigned_courier_id"):
            raise ValidationError("accepting an order requires assigned_courier_id", field="assigned_courier_id")
        if new in ASSIGNED_STATUSES and "assigned_courier_id" in extra and not extra["assigned_courier_id"]:
            raise ValidationError(f"{new.value} orders must keep their courier", field="assigned_courier_id")
        if new not in ASSIGNED_STATUSES:
            extra["assigned_courier_id"] = None

        if not order_id:
            return None

        document = self.collection.find_one_and_update(
            {"_id": order_id, "status": expected.value},
            {"$set": {"status": new.value, "updated_at": self.clock(), **extra}},
        )
        if document is None:
            logger.debug(f"Order {order_id}: {expected.value} -> {new.value} not applicable")
            return None

        order = Order.from_document(document)
        logger.info(f"Order {order.id}: {expected.value} -> {new.value}")
        return order

    def add_rejection(self, order_id: str, courier_id: str) -> Optional[Order]:
        """
        Add courier_id to rejected_by while the order is still PENDING.
        Idempotent. Returns None (and changes nothing) once the order has moved on.
        """
        if not order_id or not courier_id:
            return None

        document = self.collection.find_one_and_update(
            {"_id": order_id, "status": OrderStatus.PENDING.value},
            {"$addToSet": {"rejected_by": courier_id}, "$set": {"updated_at": self.clock()}},
        )
        return Order.from_document(document) if document else None

    # --- reads ---

    def find_by_id(self, order_id: Optional[str]) -> Optional[Order]:
        if not order_id:
            return None
        document = self.collection.find_one({"_id": order_id})
        return Order.from_document(document) if document else None

    def find_pending_near(
        self,
        point: GeoPoint,
        radius_meters: float,
        excluding_rejected_by: Optional[str],
        limit: int = 30,
    ) -> List[Order]:
        """
        PENDING orders whose pickup is within radius_meters of point and which
        the given courier has not rejected, newest first.
        """
        query: Dict[str, Any] = {"status": OrderStatus.PENDING.value}
        if excluding_rejected_by:
            query["rejected_by"] = {"$ne": excluding_rejected_by}

        documents = self.geo_index.nearest(point, radius_meters, limit, query, sort=NEWEST_FIRST)
        return [Order.from_document(document) for document in documents]

    def find_by_customer(self, customer_id: str, limit: int = 200) -> List[Order]:
        if not isinstance(customer_id, str) or not customer_id.strip():
            raise ValidationError("customer_id is required", field="customer_id")
        limit = require_limit(limit)

        documents = self.collection.find({"customer_id": customer_id}, sort=NEWEST_FIRST, limit=limit)
        return [Order.from_document(document) for document in documents]
