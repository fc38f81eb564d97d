#!/usr/bin/env python3
"""
Connection Notifier — reports broken connection data to an HTTP endpoint

Implements:
- notify_invalid(box_name, reason, details) -> bool
- notify_connection_error(box_name, connection_type, error, config) -> bool

Delivery is best effort: one POST, failures logged and swallowed.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from .events import ConnectionEvent

logger = logging.getLogger(__name__)


class HttpNotifier:
    """POSTs ConnectionEvent envelopes. Never raises."""

    DEFAULT_TIMEOUT = 10  # seconds

    def __init__(
        self,
        url: str,
        service_name: str,
        timeout: int = None,
        enabled: bool = True,
        token: Optional[str] = None,
        retry_enabled: bool = False,
    ):
        """
        Initialize notifier.

        Args:
            url: Notification endpoint
            service_name: Reported as "service" in every event
            timeout: Request timeout in seconds
            enabled: When False, calls succeed without sending anything
            token: Optional bearer token
            retry_enabled: Reserved; delivery is always a single attempt
        """
        self.url = url
        self.service_name = service_name
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.enabled = enabled
        self.token = token
        self.retry_enabled = retry_enabled
        self._sent_count = 0
        self._failed_count = 0

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"ConnectionStorage/{self.service_name}",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def notify_invalid(self, box_name: str, reason: str, details: Optional[Dict[str, Any]] = None) -> bool:
        if not self.enabled:
            return True
        event = ConnectionEvent.invalid_connection(self.service_name, box_name, reason, details)
        return self._send(event)

    def notify_connection_error(
        self,
        box_name: str,
        connection_type: str,
        error: str,
        config: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        if not self.enabled:
            return True
        event = ConnectionEvent.connection_error(
            self.service_name, box_name, connection_type, error, config
        )
        return self._send(event)

    def _send(self, event: ConnectionEvent) -> bool:
        try:
            payload = event.to_dict()
        except ValueError as e:
            logger.error("Notification for %s not sent: %s", event.box_name, e)
            self._failed_count += 1
            return False

        try:
            response = requests.post(
                self.url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(
                "Notification %s for %s failed: %s", event.event_type, event.box_name, e
            )
            self._failed_count += 1
            return False

        if response.status_code >= 400:
            logger.warning(
                "Notification %s for %s rejected: %s",
                event.event_type, event.box_name, response.status_code,
            )
            self._failed_count += 1
            return False

        self._sent_count += 1
        logger.info("Notification %s sent for %s", event.event_type, event.box_name)
        return True

    def get_stats(self) -> Dict[str, int]:
        return {"sent": self._sent_count, "failed": self._failed_count}
