"""
Key-value store module for the link store.
Implements Strategy Pattern for flexible store backends.
"""

from .strategies import KeyValueStore, Batch, RedisStore, InMemoryStore
from .factory import StoreFactory, StoreBackend

__all__ = [
    "KeyValueStore",
    "Batch",
    "RedisStore",
    "InMemoryStore",
    "StoreFactory",
    "StoreBackend",
]
