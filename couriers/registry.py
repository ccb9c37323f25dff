"""
Purpose: Tracks who the couriers are, where they are and whether they take work.
What it does:
- upsert(): the location ping. Matches by courier id, else by contact, creating the
  courier when nothing matches. Last write wins per key.
- get(): lookup by id (None when unknown, couriers are weak references).
- find_available_near(): proximity search restricted to is_available == True.

Rule: This is the only writer of courier documents.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from core.errors import ValidationError
from geo.index import GeoIndex
from geo.point import GeoPoint
from storage.base import ASCENDING, DocumentStore

from .models import DEFAULT_COURIER_NAME, Courier

logger = logging.getLogger(__name__)

COURIERS_COLLECTION = "couriers"
LOCATION_FIELD = "location"
CONTACT_FIELD = "contact"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_location(location: Any) -> GeoPoint:
    """
    Accepts a GeoPoint, a GeoJSON-ish {"coordinates": [lon, lat]} dict,
    or a bare [lon, lat] pair.
    """
    if isinstance(location, GeoPoint):
        return location
    if location is None:
        raise ValidationError("location.coordinates required", field="location")
    if isinstance(location, dict):
        return GeoPoint.from_geojson(location, field="location")
    return GeoPoint.from_coordinates(location, field="location.coordinates")


class CourierRegistry:

    def __init__(self, store: DocumentStore, clock: Optional[Callable[[], datetime]] = None):
        self.collection = store.collection(COURIERS_COLLECTION)
        self.geo_index = GeoIndex(self.collection, LOCATION_FIELD)
        # one courier per contact; couriers keyed by id alone carry none
        self.collection.create_index([(CONTACT_FIELD, ASCENDING)], unique=True, sparse=True)
        self.clock = clock or utcnow

    def upsert(
        self,
        courier_id: Optional[str] = None,
        contact: Optional[str] = None,
        *,
        location: Any,
        is_available: bool = True,
        name: Optional[str] = None,
        vehicle: Optional[str] = None,
    ) -> Courier:
        """
        Record a location ping and return the courier as stored afterwards.

        Raises ValidationError if the location is missing or malformed, if
        is_available is not a bool, or if there is no key to match on.
        Also raises ValidationError (field "contact") when the ping would give
        this courier a contact another courier already has.
        """
        point = parse_location(location)

        if not isinstance(is_available, bool):
            raise ValidationError(f"is_available must be true or false, got {is_available!r}", field="is_available")
        if not courier_id and not contact:
            raise ValidationError("either courier_id or contact is required", field="contact")

        now = self.clock()
        fields = {
            "is_available": is_available,
            LOCATION_FIELD: point.to_geojson(),
            "last_seen_at": now,
            "updated_at": now,
        }
        on_insert = {"created_at": now}

        # only overwrite profile fields the ping actually carries
        if name:
            fields["name"] = name
        else:
            on_insert["name"] = DEFAULT_COURIER_NAME
        if vehicle is not None:
            fields["vehicle"] = vehicle
        if contact and courier_id:
            fields[CONTACT_FIELD] = contact

        match = {"_id": courier_id} if courier_id else {CONTACT_FIELD: contact}

        document = self.collection.find_one_and_update(
            match,
            {"$set": fields, "$setOnInsert": on_insert},
            upsert=True,
        )
        courier = Courier.from_document(document)
        logger.debug(
            f"Courier {courier.id} pinged at {point.coordinates} (available={courier.is_available})"
        )
        return courier

    def get(self, courier_id: Optional[str]) -> Optional[Courier]:
        if not courier_id:
            return None
        document = self.collection.find_one({"_id": courier_id})
        return Courier.from_document(document) if document else None

    def find_available_near(self, point: GeoPoint, radius_meters: float, limit: int) -> List[Courier]:
        """
        Available couriers within radius_meters of point, closest first.
        """
        documents = self.geo_index.nearest(point, radius_meters, limit, {"is_available": True})
        return [Courier.from_document(document) for document in documents]
