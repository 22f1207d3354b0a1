"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for a handful of slots
  locust -f locustfile.py --tags churn        # Cancel / re-register, waitlist promotion
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import itertools
import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

CONCURRENCY_EVENT_ID = 1000
CONCURRENCY_CAPACITY = 10
CHURN_EVENT_IDS = list(range(2000, 2010))

# Unique participant ids across all simulated users in this process
_participant_ids = itertools.count(1)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: publish the event facts the scenarios register against."""
    print("\n" + "=" * 60)
    print(f"SETUP: event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_CAPACITY} slots, "
          f"churn events {CHURN_EVENT_IDS[0]}-{CHURN_EVENT_IDS[-1]}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 participants -> 10 slots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/events/1000/capacity
    confirmed should be exactly 10, everyone else waitlisted.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.participant_id = next(_participant_ids)
        self.client.put(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}",
            json={"capacity": CONCURRENCY_CAPACITY},
            name="/api/v1/events/{id} [setup]",
        )

    @tag("concurrency")
    @task
    def register_for_limited_event(self):
        """All participants fight for the same 10 slots."""
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/registrations",
            json={"participant_id": self.participant_id},
            name="/api/v1/events/{id}/registrations",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: already registered
            elif resp.status_code == 503:
                resp.success()  # Expected under heavy contention
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task
    def check_capacity(self):
        with self.client.get(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/capacity",
            name="/api/v1/events/{id}/capacity",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                return
            data = resp.json()
            if data["confirmed"] > data["capacity"]:
                resp.failure(f"Overbooked: {data}")


class ChurnUser(HttpUser):
    """
    TEST 2: Churn - register, cancel, re-register on small events

    Run: locust -f locustfile.py --tags churn -u 100 -r 20 --run-time 60s

    Every cancellation of a confirmed registration promotes the head of
    the waitlist, so this exercises the promotion path under load.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.participant_id = next(_participant_ids)
        for event_id in CHURN_EVENT_IDS:
            self.client.put(
                f"/api/v1/events/{event_id}",
                json={"capacity": 5},
                name="/api/v1/events/{id} [setup]",
            )

    @tag("churn")
    @task(5)
    def register(self):
        event_id = random.choice(CHURN_EVENT_IDS)
        with self.client.post(
            f"/api/v1/events/{event_id}/registrations",
            json={"participant_id": self.participant_id},
            name="/api/v1/events/{id}/registrations",
            catch_response=True,
        ) as resp:
            if resp.status_code in [201, 409, 503]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn")
    @task(3)
    def cancel(self):
        event_id = random.choice(CHURN_EVENT_IDS)
        with self.client.delete(
            f"/api/v1/events/{event_id}/registrations/{self.participant_id}",
            name="/api/v1/events/{id}/registrations/{participant_id}",
            catch_response=True,
        ) as resp:
            if resp.status_code in [200, 404, 503]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn", "read")
    @task(2)
    def my_registrations(self):
        self.client.get(
            f"/api/v1/participants/{self.participant_id}/registrations",
            name="/api/v1/participants/{id}/registrations",
        )

    @tag("churn")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def unknown_event(self):
        """Register for an event nobody published."""
        with self.client.post(
            "/api/v1/events/999999/registrations",
            json={"participant_id": 1},
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def zero_capacity(self):
        with self.client.put(
            "/api/v1/events/999998",
            json={"capacity": 0},
            catch_response=True,
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def negative_participant(self):
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/registrations",
            json={"participant_id": -5},
            catch_response=True,
        ) as resp:
            if resp.status_code in [404, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 404/422, got {resp.status_code}")

    @tag("edge")
    @task
    def no_show_before_start(self):
        """No-show on a future event must be refused."""
        event_id = 999997
        future = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
        self.client.put(f"/api/v1/events/{event_id}", json={"capacity": 100, "starts_at": future})
        resp = self.client.post(
            f"/api/v1/events/{event_id}/registrations",
            json={"participant_id": next(_participant_ids)},
        )
        if resp.status_code != 201:
            return
        with self.client.post(
            f"/api/v1/registrations/{resp.json()['id']}/no-show",
            name="/api/v1/registrations/{id}/no-show",
            catch_response=True,
        ) as no_show:
            if no_show.status_code == 409:
                no_show.success()
            else:
                no_show.failure(f"Expected 409, got {no_show.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/registrations",
            data="not json at all",
            catch_response=True,
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")
