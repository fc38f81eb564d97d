#!/usr/bin/env python3
"""
Vault Storage Backend
HashiCorp Vault KV v2 used as a TTL store, authenticated via userpass.

Vault has no per-key TTL for KV secrets, so every value is written with its
absolute expiry and checked lazily on read. Expired secrets are deleted on
the read that finds them; nothing sweeps in the background.

Implements:
- get(key) -> value | None
- put(key, value, ttl) -> bool
- forget(key) -> bool
- has(key) -> bool
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import hvac
import requests
from hvac.exceptions import Forbidden, InvalidPath, VaultError

from .base import StorageBackend

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (VaultError, requests.RequestException)


@dataclass
class AuthSession:
    """Cached Vault token. Valid strictly before expires_at."""
    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at


class VaultStorageBackend(StorageBackend):
    """
    Vault-backed key-value store.

    Secrets live at {mount_path}/data/{key}/{service} and hold
    {"value": ..., "expires_at": <epoch seconds>}.

    The login token is cached per instance and renewed once
    SESSION_RENEW_RATIO of its declared lease has passed. Concurrent callers
    that see an expired session may each log in; that is harmless.
    """

    DEFAULT_TIMEOUT = 10  # seconds
    DEFAULT_LEASE_SECONDS = 3600
    SESSION_RENEW_RATIO = 0.8

    def __init__(
        self,
        url: str,
        login: str,
        password: str,
        service: str,
        mount_path: str = "secret",
        timeout: int = None,
        client: hvac.Client = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize Vault backend.

        Args:
            url: Vault server URL
            login: userpass username
            password: userpass password
            service: Service identity appended to every secret path
            mount_path: KV v2 mount point
            timeout: Request timeout in seconds
            client: Pre-built hvac client (tests)
            clock: Time source in epoch seconds
        """
        self.url = url.rstrip("/")
        self.login = login
        self._password = password
        self.service = service
        self.mount_path = mount_path
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.client = client or hvac.Client(url=self.url, timeout=self.timeout)
        self._clock = clock
        self._session: Optional[AuthSession] = None

    # ── Session lifecycle ──

    def _authenticate(self) -> Optional[str]:
        """Return a usable token, logging in when the cached one has expired."""
        now = self._clock()
        if self._session is not None and self._session.is_valid(now):
            return self._session.token

        self._session = None
        try:
            response = self.client.auth.userpass.login(
                username=self.login,
                password=self._password,
            )
        except _TRANSPORT_ERRORS as e:
            logger.error("Vault login failed for %s: %s", self.login, e)
            return None

        auth = (response or {}).get("auth") or {}
        token = auth.get("client_token")
        if not token:
            logger.error("Vault login response for %s carried no client token", self.login)
            return None

        lease = auth.get("lease_duration") or self.DEFAULT_LEASE_SECONDS
        self._session = AuthSession(
            token=token,
            expires_at=now + lease * self.SESSION_RENEW_RATIO,
        )
        self.client.token = token
        logger.debug("Vault session opened for %s (lease=%ss)", self.login, lease)
        return token

    def invalidate_session(self) -> None:
        """Drop the cached token so the next operation logs in again."""
        self._session = None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    def _path(self, key: str) -> str:
        return f"{key}/{self.service}"

    def _handle_failure(self, action: str, key: str, error: Exception) -> None:
        if isinstance(error, Forbidden):
            self.invalidate_session()
        logger.error(
            "Vault %s failed for key %s (service=%s): %s",
            action, key, self.service, error,
        )

    # ── StorageBackend ──

    def get(self, key: str) -> Optional[Any]:
        if self._authenticate() is None:
            logger.error("Vault get skipped for key %s: no token", key)
            return None

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=self._path(key),
                mount_point=self.mount_path,
                raise_on_deleted_version=True,
            )
        except InvalidPath:
            return None
        except _TRANSPORT_ERRORS as e:
            self._handle_failure("get", key, e)
            return None

        stored = ((response or {}).get("data") or {}).get("data")
        if not isinstance(stored, dict):
            return None

        expires_at = stored.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            logger.debug("Vault value for key %s expired, removing", key)
            self.forget(key)
            return None

        return stored.get("value")

    def put(self, key: str, value: Any, ttl: int) -> bool:
        if self._authenticate() is None:
            logger.error("Vault put skipped for key %s: no token", key)
            return False

        try:
            self.client.secrets.kv.v2.create_or_update_secret(
                path=self._path(key),
                secret={"value": value, "expires_at": self._clock() + ttl},
                mount_point=self.mount_path,
            )
            return True
        except _TRANSPORT_ERRORS as e:
            self._handle_failure("put", key, e)
            return False

    def forget(self, key: str) -> bool:
        if self._authenticate() is None:
            logger.error("Vault delete skipped for key %s: no token", key)
            return False

        try:
            self.client.secrets.kv.v2.delete_metadata_and_all_versions(
                path=self._path(key),
                mount_point=self.mount_path,
            )
            return True
        except InvalidPath:
            return True
        except _TRANSPORT_ERRORS as e:
            self._handle_failure("delete", key, e)
            return False
