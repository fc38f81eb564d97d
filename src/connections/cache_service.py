#!/usr/bin/env python3
"""
Connection Cache Service
Read-through cache of tenant connection data with negative caching.

Implements:
- lookup(box_name) -> CacheLookup (hit | confirmed absent | miss)
- get(box_name) -> TenantConnectionRecord | None
- get_raw(box_name) -> dict | None
- set(box_name, raw, ttl) -> bool
- mark_absent(box_name, ttl) -> bool
- forget(box_name) -> bool
- remember(box_name, producer, ttl) -> TenantConnectionRecord | None
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

from storage.base import StorageBackend

from .records import (
    NEGATIVE_SENTINEL,
    Absence,
    CacheLookup,
    LookupState,
    PlainRecordCodec,
    TenantConnectionRecord,
    is_negative_sentinel,
)

logger = logging.getLogger(__name__)

Producer = Callable[[], Union[TenantConnectionRecord, Absence, None]]


class ConnectionCacheService:
    """
    Tenant-keyed cache over any StorageBackend.

    "Confirmed absent" is stored as an explicit sentinel, so a box the
    upstream has nothing for is not re-fetched until the entry expires.
    Producer errors are never cached.
    """

    DEFAULT_TTL = 86400  # 24 hours
    DEFAULT_PREFIX = "connection_data_"

    def __init__(
        self,
        backend: StorageBackend,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL,
        codec=None,
    ):
        self.backend = backend
        self.prefix = prefix
        self.default_ttl = default_ttl
        self.codec = codec or PlainRecordCodec()

    def cache_key(self, box_name: str) -> str:
        return f"{self.prefix}{box_name}"

    def lookup(self, box_name: str) -> CacheLookup:
        value = self.backend.get(self.cache_key(box_name))
        if value is None:
            return CacheLookup(LookupState.MISS)
        if is_negative_sentinel(value):
            return CacheLookup(LookupState.CONFIRMED_ABSENT)
        return CacheLookup(LookupState.HIT, value)

    def get(self, box_name: str) -> Optional[TenantConnectionRecord]:
        found = self.lookup(box_name)
        if not found.is_hit:
            return None
        return self._decode(box_name, found.value)

    def get_raw(self, box_name: str) -> Optional[Dict[str, Any]]:
        found = self.lookup(box_name)
        if not found.is_hit or not found.value:
            return None
        return found.value

    def set(self, box_name: str, raw: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        return self.backend.put(self.cache_key(box_name), raw, ttl or self.default_ttl)

    def cache_connection_data(self, box_name: str, raw: Dict[str, Any]) -> bool:
        return self.set(box_name, raw)

    def mark_absent(self, box_name: str, ttl: Optional[int] = None) -> bool:
        return self.backend.put(self.cache_key(box_name), dict(NEGATIVE_SENTINEL), ttl or self.default_ttl)

    def forget(self, box_name: str) -> bool:
        return self.backend.forget(self.cache_key(box_name))

    def remember(
        self,
        box_name: str,
        producer: Producer,
        ttl: Optional[int] = None,
    ) -> Optional[TenantConnectionRecord]:
        """
        Return the cached record, or produce one and cache it.

        producer returns a record (cached), CONFIRMED_ABSENT (the negative
        sentinel is cached with the same ttl) or raises. On an exception
        nothing is cached and producer is called once more outside the cache
        so this call still gets a best-effort answer.
        """
        key = self.cache_key(box_name)
        ttl = ttl or self.default_ttl

        def produce_payload() -> Optional[Dict[str, Any]]:
            result = producer()
            if isinstance(result, TenantConnectionRecord):
                return self.codec.encode(result)
            if result is Absence.CONFIRMED:
                return dict(NEGATIVE_SENTINEL)
            return None

        try:
            payload = self.backend.remember(key, ttl, produce_payload)
        except Exception as e:  # noqa: BLE001
            logger.error("Cache remember failed for %s: %s", box_name, e)
            return self._produce_uncached(box_name, producer)

        if payload is None or is_negative_sentinel(payload):
            return None
        return self._decode(box_name, payload)

    def _produce_uncached(self, box_name: str, producer: Producer) -> Optional[TenantConnectionRecord]:
        try:
            result = producer()
        except Exception as e:  # noqa: BLE001
            logger.error("Producer failed for %s outside the cache: %s", box_name, e)
            return None
        return result if isinstance(result, TenantConnectionRecord) else None

    def _decode(self, box_name: str, raw: Any) -> Optional[TenantConnectionRecord]:
        try:
            record = self.codec.decode(raw, tenant_key=box_name)
        except Exception as e:  # noqa: BLE001
            logger.warning("Cached connection data for %s could not be decoded: %s", box_name, e)
            return None
        if record is None:
            logger.warning("Cached connection data for %s does not match the record schema", box_name)
        return record
