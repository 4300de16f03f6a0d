"""
Locust Load Test Suite

Seed a venue first (python -m scripts.seed_catalog) and export the ids it prints:
  export FACILITY_ID=1 VENUE_ID=1

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test read endpoints
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

from venuebook.core.security import create_access_token

FACILITY_ID = int(os.getenv("FACILITY_ID", "1"))
VENUE_ID = int(os.getenv("VENUE_ID", "1"))
ADMIN_HEADERS = {"Authorization": f"Bearer {create_access_token({'sub': 'load-admin', 'role': 'admin'})}"}

# One contested slot every ConcurrencyUser fights over
CONTESTED_START = (datetime.now(timezone.utc) + timedelta(days=60)).replace(
    hour=10, minute=0, second=0, microsecond=0
)
BOOKING_IDS = []


def booking_payload(start: datetime, hours: int = 2) -> dict:
    return {
        "facility_id": FACILITY_ID,
        "venue_id": VENUE_ID,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
        "contact_name": "Load Tester",
        "contact_email": f"load_{random.randint(10000, 99999)}@test.com",
        "purpose": "load test",
    }


def random_slot() -> datetime:
    day = datetime.now(timezone.utc) + timedelta(days=random.randint(90, 400))
    return day.replace(hour=random.randint(6, 20), minute=0, second=0, microsecond=0)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Target: facility {FACILITY_ID}, venue {VENUE_ID}")
    print(f"Contested slot: {CONTESTED_START.isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - every user books the same 2-hour slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE venue_id = X AND status IN ('pending', 'confirmed')
        AND start_time < :end AND end_time > :start;
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        # Shift by up to an hour so attempts overlap without being identical
        start = CONTESTED_START + timedelta(minutes=random.choice([0, 15, 30, 45]))
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(start),
            catch_response=True,
            name="/api/v1/bookings/ [contested]",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409 is the expected loser outcome
            elif resp.status_code == 503:
                resp.success()  # retryable contention, nothing written
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability and quote reads

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def check_availability(self):
        start = random_slot()
        self.client.get(
            "/api/v1/availability",
            params={
                "venue_id": VENUE_ID,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=2)).isoformat(),
            },
            name="/api/v1/availability",
        )

    @tag("throughput", "read")
    @task(3)
    def quote(self):
        start = random_slot()
        self.client.get(
            f"/api/v1/venues/{VENUE_ID}/quote",
            params={
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=random.randint(1, 4))).isoformat(),
            },
            name="/api/v1/venues/{id}/quote",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_venue(self):
        payload = booking_payload(random_slot())
        payload["venue_id"] = 999999
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def inverted_interval(self):
        start = random_slot()
        payload = booking_payload(start)
        payload["end_time"] = (start - timedelta(hours=1)).isoformat()
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def overpayment(self):
        if not BOOKING_IDS:
            return
        booking_id = random.choice(BOOKING_IDS)
        with self.client.post(
            f"/api/v1/bookings/{booking_id}/payments",
            json={"amount": "99999999.00"},
            headers=ADMIN_HEADERS,
            catch_response=True,
            name="/api/v1/bookings/{id}/payments [overpay]",
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get("/api/v1/bookings/", catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly availability checks, some bookings, a few admin approvals and payments.
    """
    wait_time = between(1, 3)

    @task(50)
    def browse_availability(self):
        start = random_slot()
        self.client.get(
            "/api/v1/availability",
            params={
                "venue_id": VENUE_ID,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=2)).isoformat(),
            },
            name="/api/v1/availability",
        )

    @task(10)
    def book_random_slot(self):
        resp = self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(random_slot(), hours=random.randint(1, 3)),
            name="/api/v1/bookings/",
        )
        if resp.status_code == 201:
            BOOKING_IDS.append(resp.json()["booking"]["id"])

    @task(3)
    def confirm_booking(self):
        if BOOKING_IDS:
            self.client.post(
                f"/api/v1/bookings/{random.choice(BOOKING_IDS)}/confirm",
                headers=ADMIN_HEADERS,
                name="/api/v1/bookings/{id}/confirm",
            )

    @task(2)
    def settle_booking(self):
        if BOOKING_IDS:
            self.client.post(
                f"/api/v1/bookings/{random.choice(BOOKING_IDS)}/mark-paid",
                headers=ADMIN_HEADERS,
                name="/api/v1/bookings/{id}/mark-paid",
            )
