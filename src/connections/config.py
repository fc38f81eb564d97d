"""Configuration loader for connection storage."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "connection_storage.defaults.yml"


@dataclass(frozen=True)
class CacheConfig:
    ttl: int
    prefix: str
    negative_ttl: int


@dataclass(frozen=True)
class RedisConfig:
    url: str
    timeout: int


@dataclass(frozen=True)
class VaultConfig:
    url: str
    login: str
    password: str
    mount_path: str
    timeout: int


@dataclass(frozen=True)
class UpstreamConfig:
    url: str
    timeout: int
    token: Optional[str]
    path_template: str


@dataclass(frozen=True)
class NotificationConfig:
    url: str
    enabled: bool
    timeout: int
    retry_enabled: bool
    token: Optional[str]


@dataclass(frozen=True)
class ValidationConfig:
    enabled: bool
    timeout: int
    block_duration: int
    block_prefix: str
    probe_sections: Tuple[str, ...]


@dataclass(frozen=True)
class ConnectionStorageConfig:
    storage_driver: str
    service_key: str
    service_name: str
    required_fields: Tuple[str, ...]
    cache: CacheConfig
    redis: RedisConfig
    vault: VaultConfig
    upstream: UpstreamConfig
    notifications: NotificationConfig
    validation: ValidationConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionStorageConfig":
        cache = data.get("cache", {})
        redis_data = data.get("redis", {})
        vault = data.get("vault", {})
        api = data.get("external_api", {})
        notifications = data.get("notifications", {})
        validation = data.get("validation", {})
        service = data.get("service", {})
        return cls(
            storage_driver=str(data.get("storage_driver", "redis")),
            service_key=str(service.get("key", "trigger_service")),
            service_name=str(service.get("name", "trigger-service")),
            required_fields=tuple(data.get("record", {}).get("required_fields", ["db", "rabbitmq", "boxname"])),
            cache=CacheConfig(
                ttl=int(cache.get("ttl", 86400)),
                prefix=str(cache.get("prefix", "connection_data_")),
                negative_ttl=int(cache.get("negative_ttl", 0)),
            ),
            redis=RedisConfig(
                url=str(redis_data.get("url", "redis://localhost:6379/0")),
                timeout=int(redis_data.get("timeout", 5)),
            ),
            vault=VaultConfig(
                url=str(vault.get("url", "http://localhost:8200")),
                login=str(vault.get("login", "mcrm")),
                password=str(vault.get("password", "")),
                mount_path=str(vault.get("mount_path", "secret")),
                timeout=int(vault.get("timeout", 10)),
            ),
            upstream=UpstreamConfig(
                url=str(api.get("url", "http://localhost:8080")),
                timeout=int(api.get("timeout", 10)),
                token=api.get("token") or None,
                path_template=str(api.get("path_template", "/connection/{box_name}")),
            ),
            notifications=NotificationConfig(
                url=str(notifications.get("url", "http://localhost:8080/api/connection-issues")),
                enabled=_as_bool(notifications.get("enabled", True)),
                timeout=int(notifications.get("timeout", 10)),
                retry_enabled=_as_bool(notifications.get("retry_enabled", False)),
                token=notifications.get("token") or api.get("token") or None,
            ),
            validation=ValidationConfig(
                enabled=_as_bool(validation.get("enabled", True)),
                timeout=int(validation.get("timeout", 5)),
                block_duration=int(validation.get("block_duration", 1800)),
                block_prefix=str(validation.get("block_prefix", "connection_block_")),
                probe_sections=tuple(validation.get("probe_sections", ["db"])),
            ),
        )


ENV_MAP = {
    "storage_driver": "CONNECTION_STORAGE_DRIVER",
    "cache.ttl": "CONNECTION_STORAGE_CACHE_TTL",
    "cache.prefix": "CONNECTION_STORAGE_CACHE_PREFIX",
    "cache.negative_ttl": "CONNECTION_STORAGE_NEGATIVE_CACHE_TTL",
    "redis.url": "REDIS_URL",
    "redis.timeout": "REDIS_TIMEOUT",
    "vault.url": "VAULT_URL",
    "vault.login": "VAULT_LOGIN",
    "vault.password": "VAULT_PASS",
    "vault.mount_path": "VAULT_MOUNT_PATH",
    "vault.timeout": "VAULT_TIMEOUT",
    "external_api.url": "CONNECTION_STORAGE_API_URL",
    "external_api.timeout": "CONNECTION_STORAGE_API_TIMEOUT",
    "external_api.token": "CONNECTION_STORAGE_API_TOKEN",
    "notifications.url": "CONNECTION_STORAGE_NOTIFICATION_URL",
    "notifications.enabled": "CONNECTION_STORAGE_NOTIFICATIONS_ENABLED",
    "notifications.timeout": "CONNECTION_STORAGE_NOTIFICATIONS_TIMEOUT",
    "notifications.retry_enabled": "CONNECTION_STORAGE_NOTIFICATIONS_RETRY",
    "validation.enabled": "CONNECTION_STORAGE_VALIDATION_ENABLED",
    "validation.timeout": "CONNECTION_STORAGE_VALIDATION_TIMEOUT",
    "validation.block_duration": "CONNECTION_STORAGE_BLOCK_DURATION",
    "validation.block_prefix": "CONNECTION_STORAGE_BLOCK_PREFIX",
    "service.key": "CONNECTION_STORAGE_SERVICE_KEY",
    "service.name": "CONNECTION_STORAGE_SERVICE_NAME",
}

INT_KEYS = {"ttl", "negative_ttl", "timeout", "block_duration"}
BOOL_KEYS = {"enabled", "retry_enabled"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for dotted_key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        target = merged
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        last = parts[-1]
        if last in INT_KEYS:
            value = int(value)
        elif last in BOOL_KEYS:
            value = _as_bool(value)
        target[last] = value

    return merged


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> ConnectionStorageConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return ConnectionStorageConfig.from_dict(data)
