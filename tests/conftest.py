import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from storage.base import StorageBackend  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryBackend(StorageBackend):
    """In-process TTL store driven by a FakeClock."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[Any, float]] = {}
        self.calls = {"get": 0, "put": 0, "forget": 0, "has": 0}

    def get(self, key: str) -> Optional[Any]:
        self.calls["get"] += 1
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def put(self, key: str, value: Any, ttl: int) -> bool:
        self.calls["put"] += 1
        self._data[key] = (value, self._clock() + ttl)
        return True

    def forget(self, key: str) -> bool:
        self.calls["forget"] += 1
        self._data.pop(key, None)
        return True

    def has(self, key: str) -> bool:
        self.calls["has"] += 1
        return super().has(key)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return MemoryBackend(clock)


@pytest.fixture
def db_config():
    return {
        "driver": "mysql",
        "host": "db.acme.internal",
        "port": 3306,
        "database": "acme",
        "username": "acme_app",
        "password": "s3cret",
    }


@pytest.fixture
def acme_payload(db_config):
    return {
        "trigger_service": {
            "boxname": "acme",
            "db": db_config,
            "rabbitmq": {"host": "mq.acme.internal", "port": 5672, "username": "guest", "password": "guest"},
        },
        "other_service": {"boxname": "acme", "db": {"host": "other.acme.internal"}},
    }
