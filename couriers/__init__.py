"""
Couriers domain package.

Public API:
- Domain model: Courier
- Location-ping upsert and proximity search: CourierRegistry
"""
from .models import Courier
from .registry import CourierRegistry

__all__ = ["Courier", "CourierRegistry"]
