"""Storage backend contract shared by the Redis and Vault drivers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


class StorageBackend(ABC):
    """
    TTL-keyed key-value store.

    Implementations never raise on transport or backend failures: reads
    degrade to a miss (None) and writes to False, with the failure logged.
    Values must be JSON-serializable.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when absent, expired or unreachable."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: int) -> bool:
        """Store value for ttl seconds."""

    @abstractmethod
    def forget(self, key: str) -> bool:
        """Delete key. Forgetting an absent key succeeds."""

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def remember(self, key: str, ttl: int, producer: Callable[[], Any]) -> Any:
        """
        Return the cached value, or produce and store it.

        A None result from producer is returned but never stored. Exceptions
        raised by producer propagate to the caller untouched.
        """
        value = self.get(key)
        if value is not None:
            return value

        value = producer()
        if value is not None:
            self.put(key, value, ttl)
        return value
