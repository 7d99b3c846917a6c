"""Tests for the circuit breaker and its state stores."""

import json
import threading

import pytest

from payroll_core.resilience import (
    CircuitBreaker,
    FileCircuitStateStore,
    InMemoryCircuitStateStore,
    SqlCircuitStateStore,
)

KEY = "hrcore.get_employee"


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(InMemoryCircuitStateStore(), failure_threshold=5, cooldown_seconds=60, clock=clock)


class TestCircuitBreaker:
    """Open, cooldown and half-open behavior."""

    def test_closed_below_threshold(self, breaker):
        for _ in range(4):
            breaker.record_failure(KEY)
        assert breaker.allow(KEY)
        assert not breaker.is_open(KEY)

    def test_opens_at_threshold(self, breaker):
        for _ in range(5):
            breaker.record_failure(KEY)
        assert breaker.is_open(KEY)
        assert not breaker.allow(KEY)

    def test_half_open_after_cooldown(self, breaker, clock):
        for _ in range(5):
            breaker.record_failure(KEY)
        clock.advance(59)
        assert not breaker.allow(KEY)

        clock.advance(1)
        assert not breaker.is_open(KEY)
        assert breaker.allow(KEY)
        # The probe reset the counter
        assert breaker.store.get(KEY).failure_count == 0

    def test_failed_probe_reopens(self, clock):
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
        breaker.record_failure(KEY)
        clock.advance(60)
        assert breaker.allow(KEY)
        breaker.record_failure(KEY)
        assert not breaker.allow(KEY)

    def test_success_resets(self, breaker):
        for _ in range(4):
            breaker.record_failure(KEY)
        breaker.record_success(KEY)
        for _ in range(4):
            breaker.record_failure(KEY)
        assert breaker.allow(KEY)

    def test_keys_are_independent(self, breaker):
        for _ in range(5):
            breaker.record_failure(KEY)
        assert breaker.allow("hrcore.get_department")

    def test_is_open_has_no_side_effects(self, breaker, clock):
        for _ in range(5):
            breaker.record_failure(KEY)
        clock.advance(120)
        assert not breaker.is_open(KEY)
        assert breaker.store.get(KEY).failure_count == 5

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)

    def test_shared_store_is_seen_by_every_breaker(self, clock):
        store = InMemoryCircuitStateStore()
        first = CircuitBreaker(store, failure_threshold=2, clock=clock)
        second = CircuitBreaker(store, failure_threshold=2, clock=clock)
        first.record_failure(KEY)
        second.record_failure(KEY)
        assert not first.allow(KEY)
        assert not second.allow(KEY)


class TestInMemoryStore:
    def test_concurrent_failures_are_all_counted(self):
        store = InMemoryCircuitStateStore()

        def fail_many():
            for _ in range(200):
                store.record_failure(KEY, 1.0)

        threads = [threading.Thread(target=fail_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.get(KEY).failure_count == 1600


class TestFileStore:
    """Host-wide JSON state file."""

    def test_file_format(self, tmp_path):
        path = tmp_path / "circuit.json"
        store = FileCircuitStateStore(path)
        store.record_failure(KEY, 1234.5)
        store.record_failure(KEY, 1240.0)

        data = json.loads(path.read_text())
        assert data == {"failureCount": {KEY: 2}, "lastFailureTime": {KEY: 1240.0}}

    def test_state_survives_new_instance(self, tmp_path):
        path = tmp_path / "circuit.json"
        FileCircuitStateStore(path).record_failure(KEY, 10.0)
        state = FileCircuitStateStore(path).get(KEY)
        assert state.failure_count == 1
        assert state.last_failure_time == 10.0

    def test_reset_removes_key(self, tmp_path):
        path = tmp_path / "circuit.json"
        store = FileCircuitStateStore(path)
        store.record_failure(KEY, 10.0)
        store.record_failure("other", 11.0)
        store.reset(KEY)

        data = json.loads(path.read_text())
        assert KEY not in data["failureCount"]
        assert data["failureCount"] == {"other": 1}

    def test_missing_file_is_empty_state(self, tmp_path):
        state = FileCircuitStateStore(tmp_path / "nested" / "circuit.json").get(KEY)
        assert state.failure_count == 0
        assert state.last_failure_time is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "circuit.json"
        path.write_text("{not json")
        store = FileCircuitStateStore(path)
        assert store.get(KEY).failure_count == 0
        assert store.record_failure(KEY, 5.0).failure_count == 1

    def test_concurrent_writers(self, tmp_path):
        path = tmp_path / "circuit.json"
        stores = [FileCircuitStateStore(path) for _ in range(4)]

        def fail_many(store):
            for _ in range(25):
                store.record_failure(KEY, 1.0)

        threads = [threading.Thread(target=fail_many, args=(s,)) for s in stores]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert FileCircuitStateStore(path).get(KEY).failure_count == 100

    def test_breaker_over_file_store(self, tmp_path, clock):
        breaker = CircuitBreaker(
            FileCircuitStateStore(tmp_path / "circuit.json"), failure_threshold=2, clock=clock
        )
        breaker.record_failure(KEY)
        breaker.record_failure(KEY)
        assert not breaker.allow(KEY)
        breaker.record_success(KEY)
        assert breaker.allow(KEY)


class TestSqlStore:
    """Row-per-key state in the database."""

    def test_counts_and_resets(self, session_factory):
        store = SqlCircuitStateStore(session_factory)
        assert store.get(KEY).failure_count == 0

        store.record_failure(KEY, 100.0)
        state = store.record_failure(KEY, 101.0)
        assert state.failure_count == 2
        assert store.get(KEY).last_failure_time == 101.0

        store.reset(KEY)
        state = store.get(KEY)
        assert state.failure_count == 0
        assert state.last_failure_time is None

    def test_breaker_over_sql_store(self, session_factory, clock):
        breaker = CircuitBreaker(SqlCircuitStateStore(session_factory), failure_threshold=3, clock=clock)
        for _ in range(3):
            breaker.record_failure(KEY)
        assert not breaker.allow(KEY)
        clock.advance(60)
        assert breaker.allow(KEY)
