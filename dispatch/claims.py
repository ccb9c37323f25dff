"""
Purpose: Race condition resolver for courier accept / reject requests.
What it does:
Guarantees that at most one courier ever moves a given order out of PENDING into
ACCEPTED, however many couriers hit "Accept" at the same time, from however many
server processes.

There is no lock here. The single source of truth is OrderStore.transition_if_status,
a conditional write on (order_id, status == pending) executed atomically by the
store. Whichever write lands first wins; every other attempt sees "not applicable"
and gets Conflict. Losers must not retry, they just drop the order from their list.
"""

import logging

from core.errors import Conflict, NotFound
from couriers.models import Courier
from couriers.registry import CourierRegistry
from orders.models import Order, OrderStatus
from orders.store import OrderStore

logger = logging.getLogger(__name__)


class ClaimCoordinator:
    """
    Processes accept / reject attempts against OrderStore with exactly-once acceptance.
    """

    def __init__(self, orders: OrderStore, couriers: CourierRegistry):
        self.orders = orders
        self.couriers = couriers

    def require_courier(self, courier_id: str) -> Courier:
        """
        A courier must have pinged a location at least once before they can claim work.
        """
        courier = self.couriers.get(courier_id)
        if courier is None:
            raise NotFound("courier", courier_id, f"Courier {courier_id} not found")
        return courier

    def accept(self, courier_id: str, order_id: str) -> Order:
        """
        Called strictly when a courier's device hits "Accept".

        Returns the order (status ACCEPTED, assigned to this courier) if this
        courier won the race.
        Raises NotFound for an unknown courier. Raises Conflict whenever the
        claim does not land: the order is no longer pending, or does not
        exist (current_status is None then).
        """
        courier = self.require_courier(courier_id)

        # 1. The claim itself: one atomic compare-and-swap in the store.
        accepted = self.orders.transition_if_status(
            order_id,
            OrderStatus.PENDING,
            OrderStatus.ACCEPTED,
            {"assigned_courier_id": courier.id},
        )
        if accepted is not None:
            logger.info(f"Order {accepted.id} accepted by courier {courier.id}")
            return accepted

        # 2. Lost (or nothing to win). Read only to report what the order is now.
        current = self.orders.find_by_id(order_id)
        current_status = current.status.value if current is not None else None

        logger.warning(f"Courier {courier.id} lost the claim on order {order_id} (status is {current_status})")
        raise Conflict(
            "Order already accepted or unavailable",
            order_id=order_id,
            current_status=current_status,
        )

    def reject(self, courier_id: str, order_id: str) -> Order:
        """
        Hide a pending order from this courier's future candidate lists.

        Not mutually exclusive with accepts: a reject that lands after someone
        else's accept changes nothing and raises NotFound. Rejections are never undone.
        """
        courier = self.require_courier(courier_id)

        rejected = self.orders.add_rejection(order_id, courier.id)
        if rejected is None:
            logger.warning(f"Courier {courier.id} rejected order {order_id}, which is missing or no longer pending")
            raise NotFound("order", order_id, "Order not found or not pending")

        logger.info(f"Order {rejected.id} rejected by courier {courier.id}")
        return rejected
