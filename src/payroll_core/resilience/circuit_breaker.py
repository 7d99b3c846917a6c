"""Circuit breaker with pluggable shared state.

The breaker logic only counts failures and compares timestamps; where the
counters live is decided by the ``CircuitStateStore``. Every caller that
protects the same dependency must share one store, otherwise each caller
sees its own empty counter and the breaker never opens.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from payroll_core.models import CircuitStateRow

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CircuitState:
    """Failure counter for one key."""

    failure_count: int = 0
    last_failure_time: float | None = None


class CircuitStateStore(Protocol):
    """Shared storage for breaker counters. Updates must be atomic per key."""

    def get(self, key: str) -> CircuitState:
        ...

    def record_failure(self, key: str, now: float) -> CircuitState:
        """Increment the counter and stamp the failure time; return the new state."""
        ...

    def reset(self, key: str) -> None:
        ...


class InMemoryCircuitStateStore:
    """Mutex-guarded dict for a single process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, CircuitState] = {}

    def get(self, key: str) -> CircuitState:
        with self._lock:
            return self._states.get(key, CircuitState())

    def record_failure(self, key: str, now: float) -> CircuitState:
        with self._lock:
            current = self._states.get(key, CircuitState())
            state = CircuitState(current.failure_count + 1, now)
            self._states[key] = state
            return state

    def reset(self, key: str) -> None:
        with self._lock:
            self._states.pop(key, None)


class FileCircuitStateStore:
    """JSON file shared by processes on one host.

    File layout: ``{"failureCount": {key: n}, "lastFailureTime": {key: epoch}}``.
    Each read-modify-write holds an exclusive ``flock`` on a sidecar lock
    file and replaces the state file atomically.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._thread_lock = threading.Lock()

    @contextmanager
    def _locked(self, exclusive: bool) -> Iterator[None]:
        with self._thread_lock, open(self.lock_path, "a+") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read(self) -> dict[str, dict[str, Any]]:
        empty: dict[str, dict[str, Any]] = {"failureCount": {}, "lastFailureTime": {}}
        if not self.path.exists():
            return empty
        try:
            data = json.loads(self.path.read_text() or "{}")
        except json.JSONDecodeError:
            logger.warning("Circuit state file %s is corrupt; starting from empty state", self.path)
            return empty
        return {
            "failureCount": dict(data.get("failureCount") or {}),
            "lastFailureTime": dict(data.get("lastFailureTime") or {}),
        }

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name + ".")
        try:
            with os.fdopen(fd, "w") as handle:
                json.dump(data, handle, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> CircuitState:
        with self._locked(exclusive=False):
            data = self._read()
        return CircuitState(
            failure_count=int(data["failureCount"].get(key, 0)),
            last_failure_time=data["lastFailureTime"].get(key),
        )

    def record_failure(self, key: str, now: float) -> CircuitState:
        with self._locked(exclusive=True):
            data = self._read()
            count = int(data["failureCount"].get(key, 0)) + 1
            data["failureCount"][key] = count
            data["lastFailureTime"][key] = now
            self._write(data)
        return CircuitState(count, now)

    def reset(self, key: str) -> None:
        with self._locked(exclusive=True):
            data = self._read()
            if key not in data["failureCount"] and key not in data["lastFailureTime"]:
                return
            data["failureCount"].pop(key, None)
            data["lastFailureTime"].pop(key, None)
            self._write(data)


class SqlCircuitStateStore:
    """Row per key in ``circuit_breaker_state`` for multi-instance deployments."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def get(self, key: str) -> CircuitState:
        with self.session_factory() as session:
            row = session.get(CircuitStateRow, key)
            if row is None:
                return CircuitState()
            return CircuitState(row.failure_count, row.last_failure_time)

    def record_failure(self, key: str, now: float) -> CircuitState:
        # Two passes: a concurrent first failure for a new key can win the insert
        for _ in range(2):
            try:
                with self.session_factory() as session, session.begin():
                    row = session.get(CircuitStateRow, key, with_for_update=True)
                    if row is None:
                        row = CircuitStateRow(breaker_key=key, failure_count=0)
                        session.add(row)
                    row.failure_count += 1
                    row.last_failure_time = now
                    return CircuitState(row.failure_count, now)
            except IntegrityError:
                continue
        raise RuntimeError(f"Could not record circuit failure for {key}")

    def reset(self, key: str) -> None:
        with self.session_factory() as session, session.begin():
            row = session.get(CircuitStateRow, key, with_for_update=True)
            if row is not None:
                row.failure_count = 0
                row.last_failure_time = None


class CircuitBreaker:
    """Stops calling a failing dependency for a cooldown period.

    ``allow`` is true while failures stay below the threshold. Once open,
    the first ``allow`` after the cooldown resets the counter and lets one
    probe through; success keeps it closed, failure reopens it.
    """

    def __init__(
        self,
        store: CircuitStateStore | None = None,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60,
        clock: Clock = time.time,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.store = store if store is not None else InMemoryCircuitStateStore()
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock

    def _cooled_down(self, state: CircuitState) -> bool:
        if state.last_failure_time is None:
            return True
        return self.clock() - state.last_failure_time >= self.cooldown_seconds

    def is_open(self, key: str) -> bool:
        """True while calls for ``key`` are being refused. Does not change state."""
        state = self.store.get(key)
        return state.failure_count >= self.failure_threshold and not self._cooled_down(state)

    def allow(self, key: str) -> bool:
        state = self.store.get(key)
        if state.failure_count < self.failure_threshold:
            return True
        if self._cooled_down(state):
            self.store.reset(key)
            logger.info("Circuit %s half-open after %ss cooldown", key, self.cooldown_seconds)
            return True
        return False

    def record_failure(self, key: str) -> None:
        state = self.store.record_failure(key, self.clock())
        if state.failure_count == self.failure_threshold:
            logger.warning(
                "Circuit %s opened after %d consecutive failures", key, state.failure_count
            )

    def record_success(self, key: str) -> None:
        self.store.reset(key)
