#!/usr/bin/env python3
"""
Connection Data Provider — box name in, validated connection record out

Resolution order:

  Blocked box       → None, nothing else touched
  Cached document   → extract own section → validate → record
  Upstream document → extract own section → validate → cache → record
  Upstream error    → block the box → None
  Upstream 404      → None (not blocked)

Validation failures notify once per failing connection and block the box,
so a dead database is not probed again until the block expires. A missing
or malformed section only notifies: it is a data problem, not a transient
one, and blocking would hide a later manual cache_connection_data().
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .cache_service import ConnectionCacheService
from .events import sanitize_config
from .records import RecordSchema, TenantConnectionRecord
from .upstream import FetchResult
from .validator import ConnectionValidator

logger = logging.getLogger(__name__)

CONNECTION_TYPE_NAMES = {
    "db": "database",
    "postgres": "database",
}

SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "external_api"


class ConnectionDataProvider:
    """
    Full resolution pipeline for one deployment (service_key).

    Never throws. Returns a TenantConnectionRecord or None.
    """

    def __init__(
        self,
        cache_service: ConnectionCacheService,
        upstream,
        validator: ConnectionValidator,
        notifier,
        service_key: str,
        schema: Optional[RecordSchema] = None,
        validation_enabled: bool = True,
        cache_ttl: Optional[int] = None,
        negative_cache_ttl: Optional[int] = None,
    ):
        self.cache_service = cache_service
        self.upstream = upstream
        self.validator = validator
        self.notifier = notifier
        self.service_key = service_key
        self.schema = schema or RecordSchema()
        self.validation_enabled = validation_enabled
        self.cache_ttl = cache_ttl
        self.negative_cache_ttl = negative_cache_ttl

    def get_connection_data(self, box_name: str) -> Optional[TenantConnectionRecord]:
        """Main entry point. Never throws."""
        try:
            if self.validator.is_blocked(box_name):
                logger.debug("box=%s blocked, skipping resolution", box_name)
                return None

            cached = self.cache_service.lookup(box_name)
            if cached.is_confirmed_absent:
                logger.debug("box=%s confirmed absent in cache", box_name)
                return None
            if cached.is_hit and cached.value:
                return self._resolve(box_name, cached.value, SOURCE_CACHE)

            return self._fetch_from_upstream(box_name)

        except Exception as e:  # noqa: BLE001
            logger.exception("Connection data resolution failed for %s: %s", box_name, e)
            return None

    def cache_connection_data(self, box_name: str, data: Dict[str, Any]) -> bool:
        """Store a raw document directly, bypassing upstream and validation."""
        return self.cache_service.cache_connection_data(box_name, data)

    # ── Private methods ──

    def _fetch_from_upstream(self, box_name: str) -> Optional[TenantConnectionRecord]:
        try:
            result: FetchResult = self.upstream.fetch(box_name)
        except Exception as e:  # noqa: BLE001
            logger.error("Upstream fetch raised for %s: %s", box_name, e)
            self.validator.block_url(box_name)
            return None

        if result.is_error:
            logger.error("Upstream fetch failed for %s: %s", box_name, result.error)
            self.validator.block_url(box_name)
            return None

        if result.is_not_found or result.payload is None:
            if self.negative_cache_ttl:
                self.cache_service.mark_absent(box_name, self.negative_cache_ttl)
            return None

        record = self._resolve(box_name, result.payload, SOURCE_UPSTREAM)
        if record is not None:
            self.cache_service.set(box_name, result.payload, ttl=self.cache_ttl)
        return record

    def _resolve(self, box_name: str, raw: Dict[str, Any], source: str) -> Optional[TenantConnectionRecord]:
        """Extract this service's section, build the record, validate it."""
        if not isinstance(raw, Mapping):
            self.notifier.notify_invalid(
                box_name,
                f"Connection data in {source} is not an object",
                {"type": type(raw).__name__},
            )
            return None

        section = raw.get(self.service_key)
        if section is None:
            self.notifier.notify_invalid(
                box_name,
                f"Data for service '{self.service_key}' not found in {source}",
                {"available_services": list(raw.keys())},
            )
            return None

        record = self.schema.build(section, tenant_key=box_name)
        if record is None:
            self.notifier.notify_invalid(
                box_name,
                f"Data for service '{self.service_key}' in {source} does not match the required schema",
                {"errors": self.schema.errors(section)},
            )
            return None

        if self.validation_enabled and not self._validate_and_notify(record, box_name):
            return None

        logger.debug("box=%s resolved from %s", box_name, source)
        return record

    def _validate_and_notify(self, record: TenantConnectionRecord, box_name: str) -> bool:
        failing = self.validator.failing_connections(record)
        if not failing:
            return True

        for section, config in failing:
            connection_type = CONNECTION_TYPE_NAMES.get(section, section)
            self.notifier.notify_connection_error(
                box_name,
                connection_type,
                f"Unable to connect to {connection_type}",
                sanitize_config(config),
            )

        self.validator.block_url(box_name)
        return False
