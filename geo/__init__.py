#Marks geo as a package.
#Re-exports the public API (GeoPoint, distance math, GeoIndex, campus lookups)
#so other modules import from geo without knowing internal file names.
#No business logic.

from .point import GeoPoint
from .distance import EARTH_RADIUS_METERS, bounding_box, haversine_meters
from .index import GeoIndex
from .campus import CAMPUS_CENTER, CAMPUS_LOCATIONS, location_name, location_payload, location_point

__all__ = [
    "GeoPoint",
    "EARTH_RADIUS_METERS",
    "bounding_box",
    "haversine_meters",
    "GeoIndex",
    "CAMPUS_CENTER",
    "CAMPUS_LOCATIONS",
    "location_name",
    "location_payload",
    "location_point",
]
