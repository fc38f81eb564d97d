"""
Connection Storage
Resolve, cache and validate per-box connection data (db, rabbitmq, ...).

Blocked boxes short-circuit, cached documents are validated before use,
upstream failures block the box for a while instead of hammering the source.
"""

from .cache_service import ConnectionCacheService
from .config import ConnectionStorageConfig, load_config
from .factory import build_provider, build_storage_backend
from .notifier import HttpNotifier
from .probe import DatabaseProbe
from .provider import ConnectionDataProvider
from .records import (
    CONFIRMED_ABSENT,
    CacheLookup,
    LookupState,
    RecordSchema,
    ServiceSectionCodec,
    TenantConnectionRecord,
)
from .upstream import FetchResult, FetchStatus, HttpUpstreamSource
from .validator import ConnectionValidator

__all__ = [
    'ConnectionDataProvider', 'ConnectionCacheService', 'ConnectionValidator',
    'HttpUpstreamSource', 'FetchResult', 'FetchStatus',
    'HttpNotifier', 'DatabaseProbe',
    'TenantConnectionRecord', 'RecordSchema', 'ServiceSectionCodec',
    'CacheLookup', 'LookupState', 'CONFIRMED_ABSENT',
    'ConnectionStorageConfig', 'load_config',
    'build_provider', 'build_storage_backend',
]
