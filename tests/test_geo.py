import math

import pytest

from core.errors import ValidationError
from geo import (
    CAMPUS_CENTER,
    GeoIndex,
    GeoPoint,
    bounding_box,
    haversine_meters,
    location_name,
    location_payload,
    location_point,
)
from storage.memory import InMemoryCollection

from conftest import FAR_FROM_PICKUP, NEAR_PICKUP, PICKUP


@pytest.mark.parametrize(
    "coordinates",
    [
        None,
        [],
        [77.2],
        [77.2, 28.6, 0.0],
        ["77.2", 28.6],
        [True, 28.6],
        [float("nan"), 28.6],
        [77.2, float("inf")],
        [181.0, 28.6],
        [77.2, -90.5],
        "77.2,28.6",
        {"lng": 77.2, "lat": 28.6},
        {77.2, 28.6},
        frozenset({77.2, 28.6}),
        iter([77.2, 28.6]),
    ],
)
def test_malformed_coordinates_are_rejected(coordinates):
    with pytest.raises(ValidationError) as excinfo:
        GeoPoint.from_coordinates(coordinates)
    assert excinfo.value.field == "coordinates"


def test_lists_and_tuples_keep_their_order():
    assert GeoPoint.from_coordinates([77.209, 28.6139]) == GeoPoint(77.209, 28.6139)
    assert GeoPoint.from_coordinates((77.209, 28.6139)) == GeoPoint(77.209, 28.6139)


def test_geojson_round_trip_keeps_longitude_first():
    point = GeoPoint.from_geojson({"type": "Point", "coordinates": [77.209, 28.6139]})

    assert point.longitude == 77.209
    assert point.latitude == 28.6139
    assert point.to_geojson() == {"type": "Point", "coordinates": [77.209, 28.6139]}


def test_non_point_geometry_is_rejected():
    with pytest.raises(ValidationError):
        GeoPoint.from_geojson({"type": "LineString", "coordinates": [[0, 0], [1, 1]]})


def test_haversine_matches_known_distances():
    # One degree of latitude along a meridian on the mean-radius sphere
    one_degree = haversine_meters(GeoPoint(0.0, 0.0), GeoPoint(0.0, 1.0))
    assert one_degree == pytest.approx(111195.08, rel=1e-6)

    pickup = GeoPoint(*PICKUP)
    assert haversine_meters(pickup, GeoPoint(*NEAR_PICKUP)) == pytest.approx(14.8, abs=0.5)
    assert haversine_meters(pickup, GeoPoint(*FAR_FROM_PICKUP)) == pytest.approx(4500, rel=0.02)

    # symmetric and zero on itself
    assert haversine_meters(pickup, pickup) == 0.0
    assert haversine_meters(GeoPoint(*NEAR_PICKUP), pickup) == haversine_meters(pickup, GeoPoint(*NEAR_PICKUP))


def test_haversine_is_great_circle_not_planar():
    """
    Near the poles a degree of longitude is tiny; planar math on degrees would
    call these two points ~111 km apart.
    """
    a = GeoPoint(0.0, 89.0)
    b = GeoPoint(1.0, 89.0)
    assert haversine_meters(a, b) < 2000


def test_bounding_box_contains_every_point_within_radius():
    center = GeoPoint(*PICKUP)
    box = bounding_box(center, 2000)

    for bearing in range(0, 360, 15):
        # destination point ~1999 m away along each bearing
        d = 1999 / 6371008.8
        lat = math.radians(center.latitude)
        lon = math.radians(center.longitude)
        theta = math.radians(bearing)
        lat2 = math.asin(math.sin(lat) * math.cos(d) + math.cos(lat) * math.sin(d) * math.cos(theta))
        lon2 = lon + math.atan2(
            math.sin(theta) * math.sin(d) * math.cos(lat), math.cos(d) - math.sin(lat) * math.sin(lat2)
        )
        assert box.contains(GeoPoint(math.degrees(lon2), math.degrees(lat2)))

    assert not box.contains(GeoPoint(*FAR_FROM_PICKUP))


def test_bounding_box_across_the_antimeridian():
    box = bounding_box(GeoPoint(179.999, 0.0), 1000)

    assert box.contains(GeoPoint(-179.999, 0.0))
    assert box.contains(GeoPoint(179.995, 0.0))
    assert not box.contains(GeoPoint(0.0, 0.0))


def test_bounding_box_reaching_a_pole_spans_all_longitudes():
    box = bounding_box(GeoPoint(10.0, 89.99), 5000)

    assert box.contains(GeoPoint(-170.0, 89.99))
    assert box.max_latitude == pytest.approx(90.0)


def test_geo_index_returns_closest_first_and_respects_predicate():
    collection = InMemoryCollection("places")
    index = GeoIndex(collection, "location")

    collection.insert_one({"_id": "far", "open": True, "location": GeoPoint(77.2150, 28.6199).to_geojson()})
    collection.insert_one({"_id": "near", "open": True, "location": GeoPoint(*NEAR_PICKUP).to_geojson()})
    collection.insert_one({"_id": "closed", "open": False, "location": GeoPoint(*PICKUP).to_geojson()})
    collection.insert_one({"_id": "outside", "open": True, "location": GeoPoint(*FAR_FROM_PICKUP).to_geojson()})

    found = index.nearest(GeoPoint(*PICKUP), 2000, 10, {"open": True})

    # 1. Closed and out-of-radius places are filtered out
    # 2. Remaining ones are ordered by ascending distance
    assert [document["_id"] for document in found] == ["near", "far"]

    # 3. The limit caps the list after ordering
    assert [document["_id"] for document in index.nearest(GeoPoint(*PICKUP), 2000, 1, {"open": True})] == ["near"]

    # 4. Nothing qualifying is an empty list, not an error
    assert index.nearest(GeoPoint(0.0, 0.0), 2000, 10) == []


@pytest.mark.parametrize(
    "radius, limit, field",
    [
        (0, 10, "radius_meters"),
        (-5, 10, "radius_meters"),
        (None, 10, "radius_meters"),
        ("1000", 10, "radius_meters"),
        (float("nan"), 10, "radius_meters"),
        (float("inf"), 10, "radius_meters"),
        (True, 10, "radius_meters"),
        (1000, 0, "limit"),
        (1000, "10", "limit"),
        (1000, 2.5, "limit"),
        (1000, True, "limit"),
    ],
)
def test_geo_index_rejects_bad_radius_or_limit(radius, limit, field):
    index = GeoIndex(InMemoryCollection("places"), "location")
    with pytest.raises(ValidationError) as excinfo:
        index.nearest(GeoPoint(*PICKUP), radius, limit)
    assert excinfo.value.field == field


def test_geo_index_accepts_integer_radius():
    collection = InMemoryCollection("places")
    index = GeoIndex(collection, "location")
    collection.insert_one({"_id": "near", "location": GeoPoint(*NEAR_PICKUP).to_geojson()})

    assert [document["_id"] for document in index.nearest(GeoPoint(*PICKUP), 2000, 5)] == ["near"]


def test_campus_lookups():
    assert location_point("library") == GeoPoint(77.2130, 28.6179)
    assert location_point("  Library ") == GeoPoint(77.2130, 28.6179)
    assert location_point("nowhere") == CAMPUS_CENTER
    assert location_name("boys-hostel-a") == "Boys Hostel A"
    assert location_payload("cafeteria") == {
        "address": "Cafeteria",
        "geo": {"type": "Point", "coordinates": [77.2150, 28.6199]},
    }
