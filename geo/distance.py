#Purpose: Great-circle distance math.
#Coordinates here are (longitude, latitude) degrees, never planar.
#Typical responsibilities:
#exact haversine distance in meters between two points
#a cheap bounding box around a point for pre-filtering before the exact check
#No storage or query logic.

import math
from dataclasses import dataclass

from .point import GeoPoint

#mean Earth radius (IUGG), the same sphere MongoDB uses for $nearSphere
EARTH_RADIUS_METERS = 6371008.8


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance between two points in meters.
    """
    lon1, lat1, lon2, lat2 = map(math.radians, [a.longitude, a.latitude, b.longitude, b.latitude])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # clamp: rounding can push h a hair above 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, h)))
    return EARTH_RADIUS_METERS * c


@dataclass(frozen=True)
class BoundingBox:
    min_longitude: float
    min_latitude: float
    max_longitude: float
    max_latitude: float

    def contains(self, point: GeoPoint) -> bool:
        if not self.min_latitude <= point.latitude <= self.max_latitude:
            return False
        if self.min_longitude <= self.max_longitude:
            return self.min_longitude <= point.longitude <= self.max_longitude
        # box straddles the antimeridian
        return point.longitude >= self.min_longitude or point.longitude <= self.max_longitude


def bounding_box(center: GeoPoint, radius_meters: float) -> BoundingBox:
    """
    Smallest lon/lat box that contains every point within radius_meters of center.
    It over-approximates, so callers must still run haversine_meters on survivors.
    """
    angular = radius_meters / EARTH_RADIUS_METERS
    lat = math.radians(center.latitude)
    lon = math.radians(center.longitude)

    min_lat = lat - angular
    max_lat = lat + angular

    # circle reaches a pole: every longitude qualifies
    if min_lat <= -math.pi / 2 or max_lat >= math.pi / 2:
        return BoundingBox(
            -180.0,
            math.degrees(max(min_lat, -math.pi / 2)),
            180.0,
            math.degrees(min(max_lat, math.pi / 2)),
        )

    delta_lon = math.asin(min(1.0, math.sin(angular) / math.cos(lat)))
    min_lon = lon - delta_lon
    max_lon = lon + delta_lon

    if min_lon < -math.pi:
        min_lon += 2 * math.pi
    if max_lon > math.pi:
        max_lon -= 2 * math.pi

    return BoundingBox(
        math.degrees(min_lon),
        math.degrees(min_lat),
        math.degrees(max_lon),
        math.degrees(max_lat),
    )
