"""
Factory for creating key-value store instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

from .strategies import KeyValueStore, RedisStore, InMemoryStore
from linkstore_app.config import settings

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Available store backends"""
    REDIS = "redis"
    MEMORY = "memory"


class StoreFactory:
    """
    Simple factory for creating store instances.
    
    Gets configuration from settings (not passed as parameters).
    No connection is opened here; the application lifespan pings the
    store at startup and closes it at shutdown.
    """
    
    _instance: KeyValueStore = None  # Single cached instance
    
    @classmethod
    def create(cls, backend: StoreBackend) -> KeyValueStore:
        """
        Create or return cached store instance.
        
        Args:
            backend: Type of store backend (from enum)
            
        Returns:
            Singleton store instance
        """
        # Return cached instance if exists
        if cls._instance is not None:
            return cls._instance
        
        # Create new instance based on backend type
        if backend == StoreBackend.REDIS:
            import redis.asyncio as redis
            
            redis_client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.redis_socket_timeout,
                socket_timeout=settings.redis_socket_timeout,
            )
            cls._instance = RedisStore(redis_client)
            logger.info("✅ Redis store initialized")
            
        elif backend == StoreBackend.MEMORY:
            cls._instance = InMemoryStore()
            logger.info("✅ In-memory store initialized")
            
        else:
            raise ValueError(f"Unknown store backend: {backend}")
        
        return cls._instance
    
    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
