"""
Purpose: The coordinate type used everywhere in the dispatch core.
What it does:
- Defines GeoPoint (longitude, latitude), the same axis order as GeoJSON and MongoDB.
- Parses raw client input ([lon, lat] lists or GeoJSON dicts) into a validated GeoPoint.

Rule: No distance math here, see geo/distance.py.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Tuple

from core.errors import ValidationError

LonLat = Tuple[float, float]


def _is_finite_number(value: Any) -> bool:
    # bool is a subclass of int, but True is not a coordinate
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class GeoPoint:
    """
    A (longitude, latitude) pair in decimal degrees.
    """
    longitude: float
    latitude: float

    def __post_init__(self):
        if not (_is_finite_number(self.longitude) and _is_finite_number(self.latitude)):
            raise ValidationError(
                f"coordinates must be two finite numbers, got {[self.longitude, self.latitude]!r}",
                field="coordinates",
            )
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude {self.longitude} out of range [-180, 180]", field="coordinates")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude {self.latitude} out of range [-90, 90]", field="coordinates")

    @property
    def coordinates(self) -> LonLat:
        return (float(self.longitude), float(self.latitude))

    @classmethod
    def from_coordinates(cls, coordinates: Any, field: str = "coordinates") -> GeoPoint:
        """
        Build a GeoPoint from a [longitude, latitude] sequence.
        Raises ValidationError if it is missing or not exactly two finite numbers.
        """
        if coordinates is None:
            raise ValidationError("coordinates are required", field=field)
        # unordered containers (sets, dicts) could swap longitude and latitude
        if isinstance(coordinates, (str, bytes)) or not isinstance(coordinates, Sequence):
            raise ValidationError(f"coordinates must be a [longitude, latitude] pair, got {coordinates!r}", field=field)
        if len(coordinates) != 2:
            raise ValidationError(f"coordinates must have exactly 2 values, got {len(coordinates)}", field=field)

        longitude, latitude = coordinates
        try:
            return cls(longitude, latitude)
        except ValidationError as exc:
            raise ValidationError(exc.message, field=field) from exc

    @classmethod
    def from_geojson(cls, value: Any, field: str = "location") -> GeoPoint:
        """
        Accepts {"type": "Point", "coordinates": [lon, lat]} or just {"coordinates": [...]}.
        An existing GeoPoint is passed through unchanged.
        """
        if isinstance(value, GeoPoint):
            return value
        if not isinstance(value, dict):
            raise ValidationError(f"{field}.coordinates required", field=field)

        geometry_type = value.get("type", "Point")
        if geometry_type != "Point":
            raise ValidationError(f"only Point geometries are supported, got {geometry_type!r}", field=field)

        return cls.from_coordinates(value.get("coordinates"), field=f"{field}.coordinates")

    def to_geojson(self) -> Dict[str, Any]:
        return {"type": "Point", "coordinates": list(self.coordinates)}
