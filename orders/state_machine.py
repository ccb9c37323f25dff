from typing import Dict, FrozenSet

from core.errors import ValidationError
from .models import OrderStatus

# Allowed moves. Nothing ever leads back to PENDING.
TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in TRANSITIONS[current]


def ensure_transition(current: OrderStatus, new: OrderStatus) -> None:
    """
    Raise ValidationError when the state machine has no edge current -> new.
    """
    if not can_transition(current, new):
        raise ValidationError(
            f"cannot move an order from {current.value} to {new.value}",
            field="status",
        )
