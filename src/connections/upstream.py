#!/usr/bin/env python3
"""
Upstream Connection Source — HTTP client for per-box connection documents

Implements:
- fetch(box_name) -> FetchResult (found | not found | error)
"""

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class FetchStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class FetchResult:
    """Outcome of one upstream fetch."""
    status: FetchStatus
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def found(cls, payload: Dict[str, Any], status_code: int = 200) -> "FetchResult":
        return cls(FetchStatus.FOUND, payload=payload, status_code=status_code)

    @classmethod
    def not_found(cls, status_code: Optional[int] = 404) -> "FetchResult":
        return cls(FetchStatus.NOT_FOUND, status_code=status_code)

    @classmethod
    def failed(cls, error: str, status_code: Optional[int] = None) -> "FetchResult":
        return cls(FetchStatus.ERROR, error=error, status_code=status_code)

    @property
    def is_found(self) -> bool:
        return self.status is FetchStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.status is FetchStatus.NOT_FOUND

    @property
    def is_error(self) -> bool:
        return self.status is FetchStatus.ERROR


class HttpUpstreamSource:
    """
    Client for the service that owns connection documents.

    Design principles:
    - One GET per call, no retries (the circuit breaker handles repeats)
    - 404 means "nothing for this box"; every other failure is an error
    - Failures are returned as FetchResult, never raised
    """

    DEFAULT_TIMEOUT = 10  # seconds
    DEFAULT_PATH_TEMPLATE = "/connection/{box_name}"

    def __init__(
        self,
        base_url: str = None,
        timeout: int = None,
        token: str = None,
        path_template: str = None,
    ):
        """
        Initialize upstream client.

        Args:
            base_url: API base URL (or CONNECTION_STORAGE_API_URL env var)
            timeout: Request timeout in seconds
            token: Optional bearer token
            path_template: Path with a {box_name} placeholder
        """
        self.base_url = (base_url or os.environ.get("CONNECTION_STORAGE_API_URL", "")).rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.token = token
        self.path_template = path_template or self.DEFAULT_PATH_TEMPLATE

        if not self.base_url:
            logger.warning("No upstream URL configured. Set CONNECTION_STORAGE_API_URL.")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def url_for(self, box_name: str) -> str:
        return f"{self.base_url}{self.path_template.format(box_name=quote(box_name, safe=''))}"

    def fetch(self, box_name: str) -> FetchResult:
        if not self.base_url:
            return FetchResult.failed("upstream URL not configured")

        url = self.url_for(box_name)
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.Timeout:
            logger.error(f"Upstream timeout for {box_name} (>{self.timeout}s)")
            return FetchResult.failed(f"timeout after {self.timeout}s")
        except requests.ConnectionError as e:
            logger.error(f"Upstream connection error for {box_name}: {e}")
            return FetchResult.failed(f"connection error: {e}")
        except requests.RequestException as e:
            logger.error(f"Upstream request failed for {box_name}: {e}")
            return FetchResult.failed(str(e))

        if response.status_code == 404:
            logger.info(f"Upstream has no connection data for {box_name}")
            return FetchResult.not_found()

        if response.status_code >= 400:
            logger.error(
                f"Upstream error for {box_name}: {response.status_code} {response.text[:200]}"
            )
            return FetchResult.failed(f"HTTP {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Upstream returned invalid JSON for {box_name}: {e}")
            return FetchResult.failed("invalid JSON", status_code=response.status_code)

        if not isinstance(data, dict):
            logger.error(f"Upstream returned {type(data).__name__} for {box_name}, expected object")
            return FetchResult.failed("payload is not an object", status_code=response.status_code)

        return FetchResult.found(data, status_code=response.status_code)
