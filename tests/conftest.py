import threading
from datetime import datetime, timedelta, timezone

import pytest

from dispatch.service import DispatchService
from storage.memory import InMemoryDocumentStore

# Scenario coordinates (longitude, latitude)
PICKUP = (77.209, 28.6139)
DROPOFF = (77.2150, 28.6199)
NEAR_PICKUP = (77.2091, 28.6140)  # ~15 m from PICKUP
FAR_FROM_PICKUP = (77.230, 28.650)  # ~4.5 km from PICKUP


class TickingClock:
    """
    Deterministic clock: every call is one second after the previous one,
    so "newest first" never depends on wall-clock resolution.
    """

    def __init__(self, start=datetime(2024, 9, 2, 9, 0, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.now = self.now + self.step
            return self.now


def point(coordinates):
    return {"type": "Point", "coordinates": list(coordinates)}


def order_fields(pickup=PICKUP, dropoff=DROPOFF, customer_id="student-42", **overrides):
    fields = dict(
        customer_id=customer_id,
        pickup={"address": "Boys Hostel A", "geo": point(pickup)},
        dropoff={"address": "Cafeteria", "geo": point(dropoff)},
        items=[{"name": "Masala Dosa", "quantity": 2, "price": 60}],
        total_amount=120,
        payment_method="cash",
    )
    fields.update(overrides)
    return fields


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store():
    return InMemoryDocumentStore(lock_timeout=5.0)


@pytest.fixture
def service(store, clock):
    return DispatchService(store=store, clock=clock)


@pytest.fixture
def make_courier(service):
    counter = {"n": 0}

    def _make(coordinates=NEAR_PICKUP, contact=None, is_available=True, name=None):
        counter["n"] += 1
        return service.update_courier_location(
            contact=contact or f"+91-98000-{counter['n']:05d}",
            location={"coordinates": list(coordinates)},
            is_available=is_available,
            name=name or f"Courier {counter['n']}",
            vehicle="bicycle",
        )

    return _make


@pytest.fixture
def make_order(service):
    def _make(**kwargs):
        return service.create_order(**order_fields(**kwargs)).order

    return _make
