"""
Purpose: Core data models for the couriers domain.
What it does:
Defines the structure of a Courier and how it maps to and from a store document,
without relying on any particular storage engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from geo.point import GeoPoint

DEFAULT_COURIER_NAME = "Courier"


@dataclass(frozen=True)
class Courier:
    """
    A snapshot of a courier as of their last location ping.
    Couriers are never deleted, only marked unavailable.
    """
    id: str
    location: GeoPoint
    name: str = DEFAULT_COURIER_NAME
    contact: Optional[str] = None
    vehicle: Optional[str] = None
    is_available: bool = True

    last_seen_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> Courier:
        return cls(
            id=str(document["_id"]),
            location=GeoPoint.from_geojson(document["location"]),
            name=document.get("name") or DEFAULT_COURIER_NAME,
            contact=document.get("contact"),
            vehicle=document.get("vehicle"),
            is_available=bool(document.get("is_available", True)),
            last_seen_at=document.get("last_seen_at"),
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view for a transport layer."""
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "vehicle": self.vehicle,
            "is_available": self.is_available,
            "location": self.location.to_geojson(),
            "last_seen_at": _isoformat(self.last_seen_at),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
