"""Per-box circuit breaker backed by TTL entries, plus connection validation."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from storage.base import StorageBackend

from .records import TenantConnectionRecord

logger = logging.getLogger(__name__)

REQUIRED_DB_PARAMS = ("host", "port", "database", "username", "password")

# Sections that hold a relational database config.
DATABASE_SECTIONS = ("db", "postgres")

SectionCheck = Callable[[Mapping[str, Any]], bool]


class ConnectivityProbe(Protocol):
    def check(self, config: Mapping[str, Any]) -> bool:
        ...


class ConnectionValidator:
    """
    Two states per box: open (resolution proceeds) and blocked.

    A block is a TTL entry in the backend, so it lifts itself when the
    duration elapses. Blocking again while blocked restarts the window.

    Every entry of probe_sections needs a check: database sections get the
    database check, anything else must be supplied through checks.
    """

    DEFAULT_BLOCK_DURATION = 1800  # 30 minutes
    DEFAULT_BLOCK_PREFIX = "connection_block_"

    def __init__(
        self,
        backend: StorageBackend,
        probe: ConnectivityProbe,
        block_duration: int = DEFAULT_BLOCK_DURATION,
        block_prefix: str = DEFAULT_BLOCK_PREFIX,
        probe_sections: Iterable[str] = ("db",),
        checks: Optional[Mapping[str, SectionCheck]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.probe = probe
        self.block_duration = block_duration
        self.block_prefix = block_prefix
        self.probe_sections = tuple(probe_sections)
        self._clock = clock

        self._checks: Dict[str, SectionCheck] = {
            section: self.validate_database_connection for section in DATABASE_SECTIONS
        }
        self._checks.update(checks or {})
        unchecked = [section for section in self.probe_sections if section not in self._checks]
        if unchecked:
            raise ValueError(f"No connectivity check for section(s): {', '.join(unchecked)}")

    def _block_key(self, box_name: str) -> str:
        return f"{self.block_prefix}{box_name}"

    # ── Circuit breaker ──

    def is_blocked(self, box_name: str) -> bool:
        return self.backend.has(self._block_key(box_name))

    def block_url(self, box_name: str, duration: Optional[int] = None) -> bool:
        duration = duration or self.block_duration
        entry = {"blocked_at": int(self._clock()), "duration": duration}
        stored = self.backend.put(self._block_key(box_name), entry, duration)
        if stored:
            logger.warning("Blocked %s for %ss", box_name, duration)
        else:
            logger.error("Failed to block %s for %ss", box_name, duration)
        return stored

    def unblock_url(self, box_name: str) -> bool:
        return self.backend.forget(self._block_key(box_name))

    # ── Validation ──

    def validate_database_connection(self, config: Optional[Mapping[str, Any]]) -> bool:
        if not config:
            return False
        missing = [param for param in REQUIRED_DB_PARAMS if not config.get(param)]
        if missing:
            logger.warning("Database config missing parameters: %s", ", ".join(missing))
            return False
        return self.probe.check(config)

    def failing_connections(self, record: TenantConnectionRecord) -> List[Tuple[str, dict]]:
        """Probe each probe-worthy section once and return the ones that fail."""
        failing = []
        for section in self.probe_sections:
            config = record.get_connection_config(section)
            if config is None:
                continue
            if not self._checks[section](config):
                failing.append((section, config))
        return failing

    def validate_connection_data(self, record: TenantConnectionRecord) -> bool:
        return not self.failing_connections(record)
