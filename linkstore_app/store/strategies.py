"""
Key-value store strategies using Strategy Pattern.
Allows switching between a Redis server and an in-process store that
reproduces the same command semantics (development and tests).

Only the commands the link store needs are exposed. Names and return
values follow Redis so both backends are interchangeable.
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

from redis import exceptions as redis_exceptions

from linkstore_app.errors import CommandError, TransportFailure

logger = logging.getLogger(__name__)

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class Batch(ABC):
    """
    Ordered group of store commands sent in one round trip.

    Command methods only queue (and return the batch, so calls chain);
    `execute()` sends everything and returns one result per command.

    Without `transaction=True` there is no atomicity: every queued command
    runs and the first error is raised once all of them have been applied.
    """

    def __init__(self, transaction: bool = False):
        self.transaction = transaction
        self._commands: List[Tuple[str, tuple, dict]] = []

    def __len__(self) -> int:
        return len(self._commands)

    def _queue(self, command: str, *args, **kwargs) -> "Batch":
        self._commands.append((command, args, kwargs))
        return self

    def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None,
             mapping: Optional[Dict[str, str]] = None) -> "Batch":
        return self._queue("hset", name, key=key, value=value, mapping=mapping)

    def hdel(self, name: str, *keys: str) -> "Batch":
        return self._queue("hdel", name, *keys)

    def zadd(self, name: str, mapping: Dict[str, float]) -> "Batch":
        return self._queue("zadd", name, mapping)

    def zrem(self, name: str, *members: str) -> "Batch":
        return self._queue("zrem", name, *members)

    def zcard(self, name: str) -> "Batch":
        return self._queue("zcard", name)

    def zcount(self, name: str, min: float, max: float) -> "Batch":
        return self._queue("zcount", name, min, max)

    def rename(self, src: str, dst: str) -> "Batch":
        return self._queue("rename", src, dst)

    def exists(self, *names: str) -> "Batch":
        return self._queue("exists", *names)

    @abstractmethod
    async def execute(self) -> List[Any]:
        """
        Send all queued commands.

        Returns:
            One result per queued command, in submission order

        Raises:
            CommandError: If any command was rejected by the store
            TransportFailure: If the round trip itself failed
        """
        pass


class KeyValueStore(ABC):
    """
    Abstract base class for key-value store strategies.

    This is the Strategy Pattern interface - services are written against
    it and never against a concrete client.

    All methods are async because store operations involve network I/O.
    """

    @abstractmethod
    async def hsetnx(self, name: str, key: str, value: str) -> bool:
        """
        Set a hash field only if it is absent.

        Returns:
            True if the field was newly set, False if it already existed
        """
        pass

    @abstractmethod
    async def hexists(self, name: str, key: str) -> bool:
        """Check whether a hash field exists"""
        pass

    @abstractmethod
    async def hget(self, name: str, key: str) -> Optional[str]:
        """Get one hash field or None"""
        pass

    @abstractmethod
    async def hmget(self, name: str, keys: List[str]) -> List[Optional[str]]:
        """Get several hash fields; missing fields come back as None"""
        pass

    @abstractmethod
    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None,
                   mapping: Optional[Dict[str, str]] = None) -> int:
        """Overwrite hash fields; returns the number of fields added"""
        pass

    @abstractmethod
    async def hdel(self, name: str, *keys: str) -> int:
        """Remove hash fields; returns the number removed"""
        pass

    @abstractmethod
    async def zadd(self, name: str, mapping: Dict[str, float]) -> int:
        """
        Add or update sorted set members.

        Args:
            name: Sorted set key
            mapping: member -> score

        Returns:
            Number of members that were newly added
        """
        pass

    @abstractmethod
    async def zrange(self, name: str, start: int, end: int, desc: bool = False) -> List[str]:
        """Members by rank (inclusive, negative indexes count from the end)"""
        pass

    @abstractmethod
    async def zrangebyscore(self, name: str, min: float, max: float) -> List[str]:
        """Members whose score is within [min, max], lowest score first"""
        pass

    @abstractmethod
    async def zrem(self, name: str, *members: str) -> int:
        """Remove members; returns the number removed"""
        pass

    @abstractmethod
    async def zcard(self, name: str) -> int:
        """Number of members (0 for a missing key)"""
        pass

    @abstractmethod
    async def zcount(self, name: str, min: float, max: float) -> int:
        """Number of members whose score is within [min, max]"""
        pass

    @abstractmethod
    async def rename(self, src: str, dst: str) -> bool:
        """
        Rename a whole collection, replacing dst.

        Raises:
            CommandError: If src does not exist
        """
        pass

    @abstractmethod
    async def exists(self, *names: str) -> int:
        """Number of the given keys that exist"""
        pass

    @abstractmethod
    async def get(self, name: str) -> Optional[str]:
        """Get a scalar value or None"""
        pass

    @abstractmethod
    async def setex(self, name: str, ttl: int, value: Any) -> bool:
        """Set a scalar value that expires after ttl seconds"""
        pass

    @abstractmethod
    def pipeline(self, transaction: bool = False) -> Batch:
        """Start a new batch of commands"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections"""
        pass


@contextmanager
def _translate_errors(command: str):
    """Map redis-py exceptions onto the package error taxonomy"""
    try:
        yield
    except redis_exceptions.ResponseError as e:
        raise CommandError(f"{command}: {e}") from e
    except redis_exceptions.RedisError as e:
        raise TransportFailure(f"{command}: {e}") from e


class RedisBatch(Batch):
    """Batch replayed onto a redis-py pipeline (MULTI/EXEC when transactional)"""

    def __init__(self, redis_client, transaction: bool = False):
        super().__init__(transaction)
        self.redis = redis_client

    async def execute(self) -> List[Any]:
        if not self._commands:
            return []

        commands, self._commands = self._commands, []
        with _translate_errors("pipeline"):
            async with self.redis.pipeline(transaction=self.transaction) as pipe:
                for command, args, kwargs in commands:
                    getattr(pipe, command)(*args, **kwargs)
                return await pipe.execute()


class RedisStore(KeyValueStore):
    """
    Redis implementation using the asyncio client.

    Production store:
    - Shared by every process of the service
    - Atomic single commands (HSETNX is the uniqueness arbiter)
    - Real transactions (MULTI/EXEC) for batches
    - Native TTL support

    The client must be created with decode_responses=True so values
    come back as str.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis store.

        Args:
            redis_client: redis.asyncio.Redis instance
        """
        self.redis = redis_client

    async def hsetnx(self, name: str, key: str, value: str) -> bool:
        with _translate_errors("HSETNX"):
            return bool(await self.redis.hsetnx(name, key, value))

    async def hexists(self, name: str, key: str) -> bool:
        with _translate_errors("HEXISTS"):
            return bool(await self.redis.hexists(name, key))

    async def hget(self, name: str, key: str) -> Optional[str]:
        with _translate_errors("HGET"):
            return await self.redis.hget(name, key)

    async def hmget(self, name: str, keys: List[str]) -> List[Optional[str]]:
        with _translate_errors("HMGET"):
            return await self.redis.hmget(name, keys)

    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None,
                   mapping: Optional[Dict[str, str]] = None) -> int:
        with _translate_errors("HSET"):
            return await self.redis.hset(name, key=key, value=value, mapping=mapping)

    async def hdel(self, name: str, *keys: str) -> int:
        with _translate_errors("HDEL"):
            return await self.redis.hdel(name, *keys)

    async def zadd(self, name: str, mapping: Dict[str, float]) -> int:
        with _translate_errors("ZADD"):
            return await self.redis.zadd(name, mapping)

    async def zrange(self, name: str, start: int, end: int, desc: bool = False) -> List[str]:
        with _translate_errors("ZRANGE"):
            return await self.redis.zrange(name, start, end, desc=desc)

    async def zrangebyscore(self, name: str, min: float, max: float) -> List[str]:
        with _translate_errors("ZRANGEBYSCORE"):
            return await self.redis.zrangebyscore(name, min, max)

    async def zrem(self, name: str, *members: str) -> int:
        with _translate_errors("ZREM"):
            return await self.redis.zrem(name, *members)

    async def zcard(self, name: str) -> int:
        with _translate_errors("ZCARD"):
            return await self.redis.zcard(name)

    async def zcount(self, name: str, min: float, max: float) -> int:
        with _translate_errors("ZCOUNT"):
            return await self.redis.zcount(name, min, max)

    async def rename(self, src: str, dst: str) -> bool:
        with _translate_errors("RENAME"):
            return bool(await self.redis.rename(src, dst))

    async def exists(self, *names: str) -> int:
        with _translate_errors("EXISTS"):
            return await self.redis.exists(*names)

    async def get(self, name: str) -> Optional[str]:
        with _translate_errors("GET"):
            return await self.redis.get(name)

    async def setex(self, name: str, ttl: int, value: Any) -> bool:
        with _translate_errors("SETEX"):
            return bool(await self.redis.setex(name, ttl, value))

    def pipeline(self, transaction: bool = False) -> Batch:
        return RedisBatch(self.redis, transaction=transaction)

    async def ping(self) -> bool:
        with _translate_errors("PING"):
            return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


class SortedSet(dict):
    """member -> score; a distinct type so hashes and sorted sets don't mix"""


class InMemoryBatch(Batch):
    """
    Batch replayed against an InMemoryStore.

    Nothing awaits between commands, so the batch is never interleaved
    with other coroutines; a transaction adds nothing on top of that.
    """

    def __init__(self, store: "InMemoryStore", transaction: bool = False):
        super().__init__(transaction)
        self.store = store

    async def execute(self) -> List[Any]:
        commands, self._commands = self._commands, []
        results: List[Any] = []
        first_error: Optional[CommandError] = None

        for command, args, kwargs in commands:
            try:
                results.append(getattr(self.store, f"_{command}")(*args, **kwargs))
            except CommandError as e:
                results.append(e)
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error
        return results


class InMemoryStore(KeyValueStore):
    """
    In-process store reproducing the Redis semantics the services rely on.

    Pros:
    - No external dependencies
    - Deterministic (injectable clock for TTLs)
    - Good for development and testing

    Cons:
    - Not shared between processes
    - Lost on restart

    Semantics kept from Redis:
    - Emptied hashes and sorted sets disappear
    - RENAME of a missing key fails, RENAME replaces the destination
    - Commands against a key of another type fail with WRONGTYPE
    - Expired keys vanish on access
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize in-memory store.

        Args:
            clock: Returns the current time in seconds (used for TTLs)
        """
        self.clock = clock
        self.data: Dict[str, Any] = {}
        self.expires_at: Dict[str, float] = {}

    # ---- Internal helpers -------------------------------------------------

    def _expire(self, name: str) -> None:
        deadline = self.expires_at.get(name)
        if deadline is not None and self.clock() >= deadline:
            self.data.pop(name, None)
            self.expires_at.pop(name, None)

    def _typed(self, name: str, kind: type, create: bool = False):
        self._expire(name)
        value = self.data.get(name)
        if value is None:
            if create:
                value = self.data[name] = kind()
            return value
        if type(value) is not kind:
            raise CommandError(WRONGTYPE)
        return value

    def _drop_if_empty(self, name: str) -> None:
        if name in self.data and not self.data[name]:
            del self.data[name]
            self.expires_at.pop(name, None)

    @staticmethod
    def _slice(members: List[str], start: int, end: int) -> List[str]:
        count = len(members)
        if start < 0:
            start = max(count + start, 0)
        if end < 0:
            end = count + end
        if start >= count or start > end:
            return []
        return members[start:min(end, count - 1) + 1]

    # ---- Command implementations (sync; shared with InMemoryBatch) --------

    def _hsetnx(self, name, key, value):
        fields = self._typed(name, dict, create=True)
        if key in fields:
            return False
        fields[key] = value
        return True

    def _hexists(self, name, key):
        fields = self._typed(name, dict)
        return bool(fields) and key in fields

    def _hget(self, name, key):
        fields = self._typed(name, dict) or {}
        return fields.get(key)

    def _hmget(self, name, keys):
        fields = self._typed(name, dict) or {}
        return [fields.get(key) for key in keys]

    def _hset(self, name, key=None, value=None, mapping=None):
        items = dict(mapping or {})
        if key is not None:
            items[key] = value
        if not items:
            raise CommandError("ERR wrong number of arguments for 'hset' command")
        fields = self._typed(name, dict, create=True)
        added = sum(1 for field in items if field not in fields)
        fields.update(items)
        return added

    def _hdel(self, name, *keys):
        fields = self._typed(name, dict)
        if not fields:
            return 0
        removed = sum(1 for key in keys if fields.pop(key, None) is not None)
        self._drop_if_empty(name)
        return removed

    def _zadd(self, name, mapping):
        zset = self._typed(name, SortedSet, create=True)
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    def _ordered(self, name, desc=False):
        zset = self._typed(name, SortedSet)
        if not zset:
            return []
        return sorted(zset.items(), key=lambda item: (item[1], item[0]), reverse=desc)

    def _zrange(self, name, start, end, desc=False):
        members = [member for member, _ in self._ordered(name, desc=desc)]
        return self._slice(members, start, end)

    def _zrangebyscore(self, name, min, max):
        low, high = float(min), float(max)
        return [member for member, score in self._ordered(name) if low <= score <= high]

    def _zrem(self, name, *members):
        zset = self._typed(name, SortedSet)
        if not zset:
            return 0
        removed = sum(1 for member in members if zset.pop(member, None) is not None)
        self._drop_if_empty(name)
        return removed

    def _zcard(self, name):
        return len(self._typed(name, SortedSet) or {})

    def _zcount(self, name, min, max):
        return len(self._zrangebyscore(name, min, max))

    def _rename(self, src, dst):
        self._expire(src)
        if src not in self.data:
            raise CommandError("ERR no such key")
        value = self.data.pop(src)
        deadline = self.expires_at.pop(src, None)
        self.data.pop(dst, None)
        self.expires_at.pop(dst, None)
        self.data[dst] = value
        if deadline is not None:
            self.expires_at[dst] = deadline
        return True

    def _exists(self, *names):
        count = 0
        for name in names:
            self._expire(name)
            if name in self.data:
                count += 1
        return count

    def _get(self, name):
        return self._typed(name, str)

    def _setex(self, name, ttl, value):
        self.data[name] = str(value)
        self.expires_at[name] = self.clock() + ttl
        return True

    # ---- KeyValueStore interface ------------------------------------------

    async def hsetnx(self, name: str, key: str, value: str) -> bool:
        return self._hsetnx(name, key, value)

    async def hexists(self, name: str, key: str) -> bool:
        return self._hexists(name, key)

    async def hget(self, name: str, key: str) -> Optional[str]:
        return self._hget(name, key)

    async def hmget(self, name: str, keys: List[str]) -> List[Optional[str]]:
        return self._hmget(name, keys)

    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None,
                   mapping: Optional[Dict[str, str]] = None) -> int:
        return self._hset(name, key=key, value=value, mapping=mapping)

    async def hdel(self, name: str, *keys: str) -> int:
        return self._hdel(name, *keys)

    async def zadd(self, name: str, mapping: Dict[str, float]) -> int:
        return self._zadd(name, mapping)

    async def zrange(self, name: str, start: int, end: int, desc: bool = False) -> List[str]:
        return self._zrange(name, start, end, desc=desc)

    async def zrangebyscore(self, name: str, min: float, max: float) -> List[str]:
        return self._zrangebyscore(name, min, max)

    async def zrem(self, name: str, *members: str) -> int:
        return self._zrem(name, *members)

    async def zcard(self, name: str) -> int:
        return self._zcard(name)

    async def zcount(self, name: str, min: float, max: float) -> int:
        return self._zcount(name, min, max)

    async def rename(self, src: str, dst: str) -> bool:
        return self._rename(src, dst)

    async def exists(self, *names: str) -> int:
        return self._exists(*names)

    async def get(self, name: str) -> Optional[str]:
        return self._get(name)

    async def setex(self, name: str, ttl: int, value: Any) -> bool:
        return self._setex(name, ttl, value)

    def pipeline(self, transaction: bool = False) -> Batch:
        return InMemoryBatch(self, transaction=transaction)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
