"""
Purpose: Central configuration for matching, polling and the storage engine.
What it does:

Stores all tunable thresholds/caps for finding couriers and pending orders:

RADIUS_METERS = 5000
CANDIDATE_LIMIT = 20   (couriers returned when an order is created)
POLL_LIMIT = 30        (orders returned to a polling courier)
HISTORY_LIMIT = 200    (orders returned for a customer's history)
POLL_INTERVAL_SECONDS = 5

Every value can be overridden from the environment (or a .env file), e.g.
DISPATCH_RADIUS_METERS=2000

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for courier matching and order polling.
    """

    # --- Proximity ---
    # Default search radius around a pickup (creation-time matching)
    # or around a courier (polling for pending orders).
    radius_meters: float = 5000.0

    # --- Result caps ---
    # Candidate couriers handed back alongside a new order. Advisory only.
    candidate_limit: int = 20
    # Pending orders handed to a polling courier.
    poll_limit: int = 30
    # Orders returned for a customer's history.
    history_limit: int = 200

    # --- Polling ---
    # How often courier clients are expected to poll. This is also the
    # staleness window of their pending list; claims stay exclusive regardless.
    poll_interval_seconds: float = 5.0

    # --- Storage ---
    # "memory" (single process) or "mongo" (shared between processes)
    store_engine: str = "memory"
    # Upper bound on how long the in-memory engine waits for a collection lock.
    store_lock_timeout_seconds: float = 5.0

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.radius_meters <= 0:
            raise ValueError("radius_meters must be > 0")

        if self.candidate_limit <= 0 or self.poll_limit <= 0 or self.history_limit <= 0:
            raise ValueError("result limits must be > 0")

        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")

        if self.store_engine not in ("memory", "mongo"):
            raise ValueError("store_engine must be 'memory' or 'mongo'")

        if self.store_lock_timeout_seconds <= 0:
            raise ValueError("store_lock_timeout_seconds must be > 0")


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p


def policy_from_env(environ: Optional[dict] = None) -> DispatchPolicy:
    """
    Build a policy from DISPATCH_* / STORE_* environment variables,
    falling back to the defaults for anything unset.

    DISPATCH_RADIUS_METERS, DISPATCH_CANDIDATE_LIMIT, DISPATCH_POLL_LIMIT,
    DISPATCH_HISTORY_LIMIT, DISPATCH_POLL_INTERVAL_SECONDS,
    DISPATCH_STORE_ENGINE, STORE_LOCK_TIMEOUT_SECONDS
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    names = {
        "radius_meters": "DISPATCH_RADIUS_METERS",
        "candidate_limit": "DISPATCH_CANDIDATE_LIMIT",
        "poll_limit": "DISPATCH_POLL_LIMIT",
        "history_limit": "DISPATCH_HISTORY_LIMIT",
        "poll_interval_seconds": "DISPATCH_POLL_INTERVAL_SECONDS",
        "store_engine": "DISPATCH_STORE_ENGINE",
        "store_lock_timeout_seconds": "STORE_LOCK_TIMEOUT_SECONDS",
    }
    types = {f.name: type(f.default) for f in fields(DispatchPolicy)}

    overrides = {}
    for attribute, variable in names.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        try:
            overrides[attribute] = types[attribute](raw.strip())
        except ValueError:
            raise ValueError(f"{variable}={raw!r} is not a valid {types[attribute].__name__}") from None

    p = DispatchPolicy(**overrides)
    p.validate()
    return p
