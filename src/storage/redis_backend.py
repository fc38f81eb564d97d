#!/usr/bin/env python3
"""
Redis Storage Backend
Plain TTL store: one round trip per operation, native key expiry.

Implements:
- get(key) -> value | None
- put(key, value, ttl) -> bool
- forget(key) -> bool
- has(key) -> bool
"""

import json
import logging
from typing import Any, Optional

import redis

from .base import StorageBackend

logger = logging.getLogger(__name__)


class RedisStorageBackend(StorageBackend):
    """
    Redis-backed key-value store with TTL.

    Design principles:
    - Graceful degradation: Redis down = miss, not error
    - Values stored as JSON so both drivers share one value shape
    - Socket timeouts on every call, nothing left pending
    """

    DEFAULT_URL = "redis://localhost:6379/0"
    DEFAULT_TIMEOUT = 5  # seconds

    def __init__(self, client: redis.Redis = None, url: str = None, timeout: int = None):
        """
        Initialize Redis backend.

        Args:
            client: Pre-built Redis client (tests, shared pools)
            url: Redis URL used when no client is given
            timeout: Socket and connect timeout in seconds
        """
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        if client is None:
            client = redis.Redis.from_url(
                url or self.DEFAULT_URL,
                decode_responses=True,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
            )
        self.client = client

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.error("Redis get failed for key %s: %s", key, e)
            return None

        if raw is None:
            logger.debug("Redis MISS: %s", key)
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Redis value for key %s is not valid JSON: %s", key, e)
            return None

    def put(self, key: str, value: Any, ttl: int) -> bool:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Redis put skipped, value for key %s not serializable: %s", key, e)
            return False

        try:
            self.client.setex(key, int(ttl), serialized)
            logger.debug("Redis SET: %s (TTL: %ss)", key, ttl)
            return True
        except redis.RedisError as e:
            logger.error("Redis put failed for key %s: %s", key, e)
            return False

    def forget(self, key: str) -> bool:
        try:
            self.client.delete(key)
            return True
        except redis.RedisError as e:
            logger.error("Redis delete failed for key %s: %s", key, e)
            return False

    def has(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except redis.RedisError as e:
            logger.error("Redis exists check failed for key %s: %s", key, e)
            return False
