"""
Purpose: Creation-time matching (order -> nearby available couriers).
What it does:
Accepts new order fields, stores the order through OrderStore, then immediately
asks CourierRegistry for available couriers around the pickup.

The candidate list is advisory: nobody is reserved or notified here. It is a
hint for whatever out-of-band channel tells couriers about new work; the
claim itself always goes through dispatch.claims.ClaimCoordinator.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from core.limits import require_limit, require_radius
from couriers.models import Courier
from couriers.registry import CourierRegistry
from orders.models import Order
from orders.store import OrderStore

from .policy import DispatchPolicy, default_dispatch_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderCreated:
    """
    Output of order creation: the stored order plus who is nearby.
    """
    order: Order
    candidate_couriers: List[Courier] = field(default_factory=list)

    def to_dict(self):
        return {
            "order": self.order.to_dict(),
            "candidate_couriers": [courier.to_dict() for courier in self.candidate_couriers],
        }


class DispatchMatcher:
    """
    Runs synchronously inside order creation. No background job.
    """

    def __init__(self, orders: OrderStore, couriers: CourierRegistry, policy: Optional[DispatchPolicy] = None):
        self.orders = orders
        self.couriers = couriers
        self.policy = policy or default_dispatch_policy()

    def candidates_for(
        self,
        order: Order,
        radius_meters: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[Courier]:
        """
        Available couriers within radius of the order's pickup, closest first.
        """
        if radius_meters is None:
            radius_meters = self.policy.radius_meters
        if limit is None:
            limit = self.policy.candidate_limit
        return self.couriers.find_available_near(order.pickup.geo, radius_meters, limit)

    def create_order(
        self,
        *,
        customer_id: Any,
        pickup: Any,
        dropoff: Any,
        total_amount: Any,
        payment_method: Any,
        items: Any = None,
        radius_meters: Optional[float] = None,
        candidate_limit: Optional[int] = None,
    ) -> OrderCreated:
        # reject a bad radius/limit before anything is written
        if radius_meters is not None:
            require_radius(radius_meters)
        if candidate_limit is not None:
            require_limit(candidate_limit, field="candidate_limit")

        order = self.orders.create(
            customer_id=customer_id,
            pickup=pickup,
            dropoff=dropoff,
            total_amount=total_amount,
            payment_method=payment_method,
            items=items,
        )
        candidates = self.candidates_for(order, radius_meters, candidate_limit)
        logger.info(f"Order {order.id}: {len(candidates)} candidate couriers near pickup")
        return OrderCreated(order=order, candidate_couriers=candidates)
