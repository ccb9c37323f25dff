"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, customer, pickup/dropoff locations, items, amount, payment method,
  status, assigned courier, rejected-by set, timestamps)
- Location (optional address + GeoPoint)
- OrderItem (name, quantity >= 1, price >= 0)

Defines enums/constants:
- OrderStatus = pending | accepted | picked_up | delivered | cancelled
- PaymentMethod = cash | card | wallet

Defines the validation rules for new orders (Order.new) and the mapping to
and from store documents.

Rule: No store calls, no transition logic. Models only.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from numbers import Real
from typing import Any, Dict, FrozenSet, List, Optional

from core.errors import ValidationError
from geo.point import GeoPoint


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"


# statuses in which an order must have a courier assigned
ASSIGNED_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.ACCEPTED, OrderStatus.PICKED_UP, OrderStatus.DELIVERED}
)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def parse_status(value: Any, field_name: str = "status") -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in OrderStatus)
        raise ValidationError(f"invalid status {value!r}, expected one of: {allowed}", field=field_name) from None


@dataclass(frozen=True)
class Location:
    geo: GeoPoint
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, value: Any, field_name: str) -> Location:
        if isinstance(value, Location):
            return value
        if not isinstance(value, dict) or value.get("geo") is None:
            raise ValidationError(f"{field_name}.geo.coordinates required", field=field_name)
        address = value.get("address")
        if address is not None and not isinstance(address, str):
            raise ValidationError("address must be text", field=f"{field_name}.address")
        return cls(geo=GeoPoint.from_geojson(value["geo"], field=f"{field_name}.geo"), address=address)

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"geo": self.geo.to_geojson()}
        if self.address is not None:
            document["address"] = self.address
        return document


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int
    price: float

    @classmethod
    def from_dict(cls, value: Any, field_name: str) -> OrderItem:
        if isinstance(value, OrderItem):
            return value
        if not isinstance(value, dict):
            raise ValidationError("each item must be an object with name, quantity and price", field=field_name)

        name = value.get("name")
        quantity = value.get("quantity")
        price = value.get("price")

        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required", field=f"{field_name}.name")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError(f"quantity must be an integer >= 1, got {quantity!r}", field=f"{field_name}.quantity")
        if not _is_number(price) or price < 0:
            raise ValidationError(f"price must be a number >= 0, got {price!r}", field=f"{field_name}.price")
        return cls(name=name, quantity=quantity, price=price)

    def to_document(self) -> Dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity, "price": self.price}


@dataclass
class Order:
    """
    A delivery order as currently stored.
    Status changes only go through orders.store.OrderStore.
    """

    id: str
    customer_id: str
    pickup: Location
    dropoff: Location
    total_amount: float
    payment_method: PaymentMethod

    items: List[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING

    # weak reference: resolve through CourierRegistry.get, may be None
    assigned_courier_id: Optional[str] = None
    rejected_by: List[str] = field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def new_document(
        *,
        customer_id: Any,
        pickup: Any,
        dropoff: Any,
        total_amount: Any,
        payment_method: Any,
        items: Any = None,
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Validate raw order fields and build the document for a fresh pending order.
        Raises ValidationError naming the first offending field.
        """
        if not isinstance(customer_id, str) or not customer_id.strip():
            raise ValidationError("customer_id is required", field="customer_id")

        pickup_location = Location.from_dict(pickup, "pickup")
        dropoff_location = Location.from_dict(dropoff, "dropoff")

        if total_amount is None:
            raise ValidationError("total_amount is required", field="total_amount")
        if not _is_number(total_amount) or total_amount < 0:
            raise ValidationError(f"total_amount must be a number >= 0, got {total_amount!r}", field="total_amount")

        if payment_method is None:
            raise ValidationError("payment_method is required", field="payment_method")
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationError(
                f"invalid payment_method {payment_method!r}, expected one of: {allowed}", field="payment_method"
            ) from None

        if items is None:
            items = []
        if not isinstance(items, (list, tuple)):
            raise ValidationError("items must be a list", field="items")
        parsed_items = [OrderItem.from_dict(item, f"items[{index}]") for index, item in enumerate(items)]

        return {
            "customer_id": customer_id,
            "pickup": pickup_location.to_document(),
            "dropoff": dropoff_location.to_document(),
            "items": [item.to_document() for item in parsed_items],
            "total_amount": total_amount,
            "payment_method": method.value,
            "status": OrderStatus.PENDING.value,
            "assigned_courier_id": None,
            "rejected_by": [],
            "created_at": now,
            "updated_at": now,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> Order:
        return cls(
            id=str(document["_id"]),
            customer_id=document["customer_id"],
            pickup=Location.from_dict(document["pickup"], "pickup"),
            dropoff=Location.from_dict(document["dropoff"], "dropoff"),
            total_amount=document["total_amount"],
            payment_method=PaymentMethod(document["payment_method"]),
            items=[OrderItem(**item) for item in document.get("items", [])],
            status=OrderStatus(document.get("status", OrderStatus.PENDING.value)),
            assigned_courier_id=document.get("assigned_courier_id"),
            rejected_by=list(document.get("rejected_by") or []),
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view for a transport layer."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "pickup": self.pickup.to_document(),
            "dropoff": self.dropoff.to_document(),
            "items": [item.to_document() for item in self.items],
            "total_amount": self.total_amount,
            "payment_method": self.payment_method.value,
            "status": self.status.value,
            "assigned_courier_id": self.assigned_courier_id,
            "rejected_by": list(self.rejected_by),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
