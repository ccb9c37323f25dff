"""
Orders domain package.

Public API:
- Domain models: Order, OrderItem, Location, OrderStatus, PaymentMethod
- Lifecycle rules: TRANSITIONS, can_transition
- Storage with CAS transitions: OrderStore
"""
from .models import Location, Order, OrderItem, OrderStatus, PaymentMethod
from .state_machine import TRANSITIONS, can_transition
from .store import OrderStore

__all__ = [
    "Order",
    "OrderItem",
    "Location",
    "OrderStatus",
    "PaymentMethod",
    "TRANSITIONS",
    "can_transition",
    "OrderStore",
]
