"""Build the provider and its collaborators from ConnectionStorageConfig."""

from __future__ import annotations

from storage.base import StorageBackend
from storage.redis_backend import RedisStorageBackend
from storage.vault import VaultStorageBackend

from .cache_service import ConnectionCacheService
from .config import ConnectionStorageConfig
from .notifier import HttpNotifier
from .probe import DatabaseProbe
from .provider import ConnectionDataProvider
from .records import RecordSchema, ServiceSectionCodec
from .upstream import HttpUpstreamSource
from .validator import ConnectionValidator

STORAGE_DRIVERS = ("redis", "vault")


def build_storage_backend(config: ConnectionStorageConfig) -> StorageBackend:
    driver = config.storage_driver.lower()
    if driver == "redis":
        return RedisStorageBackend(url=config.redis.url, timeout=config.redis.timeout)
    if driver == "vault":
        return VaultStorageBackend(
            url=config.vault.url,
            login=config.vault.login,
            password=config.vault.password,
            service=config.service_key,
            mount_path=config.vault.mount_path,
            timeout=config.vault.timeout,
        )
    raise ValueError(f"Unsupported storage driver: {config.storage_driver} (expected one of {STORAGE_DRIVERS})")


def build_provider(config: ConnectionStorageConfig, backend: StorageBackend | None = None) -> ConnectionDataProvider:
    backend = backend or build_storage_backend(config)
    schema = RecordSchema(config.required_fields)

    cache_service = ConnectionCacheService(
        backend,
        prefix=config.cache.prefix,
        default_ttl=config.cache.ttl,
        codec=ServiceSectionCodec(config.service_key, schema),
    )
    validator = ConnectionValidator(
        backend,
        DatabaseProbe(timeout=config.validation.timeout),
        block_duration=config.validation.block_duration,
        block_prefix=config.validation.block_prefix,
        probe_sections=config.validation.probe_sections,
    )
    upstream = HttpUpstreamSource(
        base_url=config.upstream.url,
        timeout=config.upstream.timeout,
        token=config.upstream.token,
        path_template=config.upstream.path_template,
    )
    notifier = HttpNotifier(
        url=config.notifications.url,
        service_name=config.service_name,
        timeout=config.notifications.timeout,
        enabled=config.notifications.enabled,
        token=config.notifications.token,
        retry_enabled=config.notifications.retry_enabled,
    )
    return ConnectionDataProvider(
        cache_service=cache_service,
        upstream=upstream,
        validator=validator,
        notifier=notifier,
        service_key=config.service_key,
        schema=schema,
        validation_enabled=config.validation.enabled,
        cache_ttl=config.cache.ttl,
        negative_cache_ttl=config.cache.negative_ttl or None,
    )
