"""
Purpose: Named campus spots and their coordinates.
What it does:
Lets clients place orders with a location slug ("library", "boys-hostel-a")
instead of raw coordinates. Unknown slugs fall back to the campus centre.

Rule: No logic here beyond lookups, just parameters so the table can be edited
for another campus without touching dispatch code.
"""

from typing import Dict

from .point import GeoPoint

CAMPUS_CENTER = GeoPoint(77.2090, 28.6139)

# Approximate positions on a typical college campus (longitude, latitude).
CAMPUS_LOCATIONS: Dict[str, GeoPoint] = {
    "boys-hostel-a": GeoPoint(77.2090, 28.6139),
    "boys-hostel-b": GeoPoint(77.2100, 28.6149),
    "girls-hostel-a": GeoPoint(77.2110, 28.6159),
    "girls-hostel-b": GeoPoint(77.2120, 28.6169),
    "library": GeoPoint(77.2130, 28.6179),
    "main-building": GeoPoint(77.2140, 28.6189),
    "cafeteria": GeoPoint(77.2150, 28.6199),
    "sports-complex": GeoPoint(77.2160, 28.6209),
    "medical-center": GeoPoint(77.2170, 28.6219),
}


def location_point(slug: str) -> GeoPoint:
    """Coordinates for a campus slug; the campus centre when the slug is unknown."""
    return CAMPUS_LOCATIONS.get((slug or "").strip().lower(), CAMPUS_CENTER)


def location_name(slug: str) -> str:
    """'boys-hostel-a' -> 'Boys Hostel A'"""
    return " ".join(word.capitalize() for word in (slug or "").strip().split("-"))


def location_payload(slug: str) -> Dict[str, object]:
    """A {address, geo} location ready for order creation."""
    return {"address": location_name(slug), "geo": location_point(slug).to_geojson()}
