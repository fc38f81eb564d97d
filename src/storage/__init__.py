"""
Connection Storage backends
TTL key-value stores behind one contract: plain Redis and authenticated Vault KV.
"""

from .base import StorageBackend
from .redis_backend import RedisStorageBackend
from .vault import AuthSession, VaultStorageBackend

__all__ = ['StorageBackend', 'RedisStorageBackend', 'VaultStorageBackend', 'AuthSession']
