"""Tests for the login attempt tracker and its use on the login endpoint."""

from __future__ import annotations

import threading

import pytest

from utils.login_rate_limit import EXTENSION_KEY, LoginAttemptTracker


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def tracker(clock: FakeClock) -> LoginAttemptTracker:
    return LoginAttemptTracker(window_seconds=60, max_attempts=5, block_seconds=300, clock=clock)


KEY = ("10.0.0.1", "a@x.com")


def test_sixth_attempt_in_window_is_blocked(tracker):
    assert [tracker.hit(KEY) for _ in range(5)] == [None] * 5
    assert tracker.hit(KEY) == 300


def test_lockout_rejects_without_counting(tracker, clock):
    for _ in range(6):
        tracker.hit(KEY)

    clock.advance(100)
    assert tracker.hit(KEY) == pytest.approx(200)
    clock.advance(199)
    assert tracker.hit(KEY) == pytest.approx(1)


def test_new_window_after_lockout_expires(tracker, clock):
    for _ in range(6):
        tracker.hit(KEY)

    clock.advance(300)

    assert [tracker.hit(KEY) for _ in range(5)] == [None] * 5
    assert tracker.hit(KEY) == 300


def test_old_attempts_leave_the_window(tracker, clock):
    for _ in range(5):
        tracker.hit(KEY)
    clock.advance(60)

    assert tracker.hit(KEY) is None


def test_keys_are_independent(tracker):
    for _ in range(6):
        tracker.hit(KEY)

    assert tracker.hit(("10.0.0.1", "b@x.com")) is None
    assert tracker.hit(("10.0.0.2", "a@x.com")) is None


def test_prune_drops_only_inert_records(tracker, clock):
    tracker.hit(("10.0.0.9", "old@x.com"))
    for _ in range(6):
        tracker.hit(KEY)
    clock.advance(61)
    tracker.hit(("10.0.0.8", "fresh@x.com"))

    assert tracker.prune() == 1
    assert len(tracker) == 2
    assert tracker.hit(KEY) is not None


def test_map_is_pruned_past_max_keys(clock):
    small = LoginAttemptTracker(max_keys=2, clock=clock)
    small.hit(("1", "a"))
    small.hit(("2", "b"))
    clock.advance(120)

    small.hit(("3", "c"))

    assert len(small) == 1


def test_over_cap_scan_runs_once_per_window(clock, monkeypatch):
    small = LoginAttemptTracker(max_keys=2, clock=clock)
    scans = []
    original = small._prune

    def counting_prune(now):
        scans.append(now)
        return original(now)

    monkeypatch.setattr(small, "_prune", counting_prune)

    for i in range(10):
        small.hit((str(i), "spray@x.com"))

    assert scans == [1000.0]
    assert len(small) == 10

    clock.advance(60)
    small.hit(("fresh", "spray@x.com"))

    assert scans == [1000.0, 1060.0]
    assert len(small) == 1


def test_concurrent_hits_are_not_undercounted(clock):
    tracker = LoginAttemptTracker(max_attempts=50, clock=clock)
    results = []
    lock = threading.Lock()

    def worker():
        outcome = tracker.hit(KEY)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(60)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(None) == 50


def _attempt(client, email="victim@x.com"):
    return client.post("/auth/login", json={"email": email, "password": "wrong-pass"})


def test_login_endpoint_locks_out_with_retry_after(app, client):
    clock = FakeClock()
    app.extensions[EXTENSION_KEY].clock = clock

    statuses = [_attempt(client).status_code for _ in range(5)]
    assert statuses == [401] * 5

    blocked = _attempt(client)
    assert blocked.status_code == 429
    assert blocked.headers["Retry-After"] == "300"
    assert blocked.get_json() == {"error": "Too many login attempts. Please try again later."}

    clock.advance(120)
    still_blocked = _attempt(client)
    assert still_blocked.status_code == 429
    assert still_blocked.headers["Retry-After"] == "180"

    # Other identities from the same address are unaffected.
    assert _attempt(client, "someone-else@x.com").status_code == 401

    clock.advance(180)
    assert _attempt(client).status_code == 401


def test_lockout_applies_even_to_correct_credentials(app, client):
    app.extensions[EXTENSION_KEY].clock = FakeClock()
    client.post(
        "/auth/register",
        json={
            "email": "victim@x.com",
            "password": "right-pass",
            "name": "V",
            "phoneNumber": "5551231234",
            "countryCode": "1",
        },
    )
    for _ in range(5):
        _attempt(client)

    response = client.post("/auth/login", json={"email": "VICTIM@x.com", "password": "right-pass"})

    assert response.status_code == 429
