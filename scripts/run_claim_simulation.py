import csv
import logging
import os
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List

from core.errors import Conflict, NotFound
from couriers.models import Courier
from dispatch.service import DispatchService
from geo.campus import CAMPUS_CENTER, CAMPUS_LOCATIONS, location_payload


def scatter_couriers(service: DispatchService, count=40) -> List[Courier]:
    couriers = []
    for i in range(count):
        # Scatter couriers randomly around the campus centre (roughly +/- 3km)
        lat = CAMPUS_CENTER.latitude + (random.random() - 0.5) * 0.05
        lon = CAMPUS_CENTER.longitude + (random.random() - 0.5) * 0.05

        # 80% chance of being available, 20% on a break
        couriers.append(
            service.update_courier_location(
                contact=f"+91-98{str(i + 1).zfill(8)}",
                location=[round(lon, 6), round(lat, 6)],
                is_available=random.random() < 0.8,
                name=f"Courier {i + 1}",
                vehicle=random.choice(["bicycle", "scooter", "on foot"]),
            )
        )
    return couriers


def place_orders(service: DispatchService, count=25):
    spots = list(CAMPUS_LOCATIONS)
    created = []
    for _ in range(count):
        pickup, dropoff = random.sample(spots, 2)
        created.append(
            service.create_order(
                customer_id=f"student-{random.randint(1, 10)}",
                pickup=location_payload(pickup),
                dropoff=location_payload(dropoff),
                items=[{"name": "Samosa", "quantity": random.randint(1, 4), "price": 15}],
                total_amount=random.randint(30, 300),
                payment_method=random.choice(["cash", "card", "wallet"]),
            )
        )
    return created


def run_simulation():
    print("=== STARTING CAMPUS CLAIM SIMULATION ===")

    service = DispatchService.from_env()
    policy = service.policy

    # 1. Seed data
    couriers = scatter_couriers(service)
    created = place_orders(service)
    print(f"Registered {len(couriers)} couriers and placed {len(created)} orders.\n")

    # 2. One polling round: every courier looks around, some reject, everyone else races to accept
    print(f"Polling round (radius {policy.radius_meters:.0f} m, clients poll every {policy.poll_interval_seconds:.0f}s)...")
    start_time = time.time()
    outcomes = []
    outcomes_lock = threading.Lock()

    def courier_turn(courier: Courier):
        try:
            visible = service.list_nearby_pending_orders(courier.id)
        except NotFound:
            return
        for order in visible:
            # 15% of the time the courier swipes the order away instead
            if random.random() < 0.15:
                try:
                    service.reject_order(courier.id, order.id)
                    result = "rejected"
                except NotFound:
                    result = "gone"
            else:
                try:
                    service.accept_order(courier.id, order.id)
                    result = "won"
                except Conflict:
                    result = "lost"
            with outcomes_lock:
                outcomes.append((order.id, courier.id, result))

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(courier_turn, couriers))

    print(f"Round finished in {time.time() - start_time:.2f}s.\n")

    # 3. Check: no order ended up with two winners
    winners = {}
    for order_id, courier_id, result in outcomes:
        if result == "won":
            winners.setdefault(order_id, []).append(courier_id)
    double_claims = {order_id: ids for order_id, ids in winners.items() if len(ids) > 1}

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "claim_results.csv")
    with open(output_path, "w", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(["order_id", "pickup", "status", "assigned_courier_id", "attempts", "rejections"])
        for entry in created:
            order = service.get_order(entry.order.id)
            attempts = sum(1 for order_id, _, result in outcomes if order_id == order.id and result in ("won", "lost"))
            writer.writerow([
                order.id,
                order.pickup.address,
                order.status.value,
                order.assigned_courier_id or "",
                attempts,
                len(order.rejected_by),
            ])

    print("--- Summary ---")
    print(f"Orders accepted: {len(winners)} / {len(created)}")
    print(f"Lost races (Conflict): {sum(1 for *_, result in outcomes if result == 'lost')}")
    print(f"Rejections: {sum(1 for *_, result in outcomes if result == 'rejected')}")
    print(f"Orders claimed twice: {len(double_claims)}")
    print(f"Per-order results written to '{output_path}'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_simulation()
