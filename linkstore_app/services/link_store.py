import logging
from typing import Callable, List, Optional

from linkstore_app.config import settings
from linkstore_app.errors import GenerationExhausted, KeyConflict, ReservedKey
from linkstore_app.models.link import LinkRecord
from linkstore_app.services.key_generator import KeyGenerator
from linkstore_app.services.reserved_keys import ReservedKeys
from linkstore_app.store.keys import clicks_key, links_key, timestamps_key
from linkstore_app.store.strategies import KeyValueStore
from linkstore_app.titles.strategies import NullTitleResolver, TitleResolver
from linkstore_app.utils import now_ms

logger = logging.getLogger(__name__)


class LinkStore:
    """
    Link records of every hostname namespace.

    Owns two collection families per hostname:
    - `links`: hash of key -> record
    - `links:timestamps[:user]`: keys ordered by timestamp

    Uniqueness is decided by HSETNX on the links hash; every existence
    check in here is only a pre-filter.

    Conflicts on explicit keys and renames are reported as None (and
    logged), never retried. Only the random-key path retries.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_generator: Optional[KeyGenerator] = None,
        reserved: Optional[ReservedKeys] = None,
        title_resolver: Optional[TitleResolver] = None,
        atomic_batches: bool = settings.atomic_batches,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize link store with dependencies.

        Args:
            store: Key-value store
            key_generator: Random key source (built from settings if omitted)
            reserved: Reserved-key rule (from settings if omitted)
            title_resolver: Used when a link is created without a title
            atomic_batches: Send rename batches as a transaction
            clock: Returns the current time in epoch ms
        """
        self.store = store
        self.reserved = reserved or ReservedKeys.from_settings()
        self.key_generator = key_generator or KeyGenerator(
            store,
            self.reserved,
            length=settings.key_length,
            max_attempts=settings.key_max_attempts,
            widened_length=settings.key_widened_length,
        )
        self.title_resolver = title_resolver or NullTitleResolver()
        self.atomic_batches = atomic_batches
        self.clock = clock

    def _index_key(self, hostname: str, user_id: Optional[str] = None) -> str:
        # Per-user indexes only exist on the primary domain
        if user_id and not self.reserved.is_primary(hostname):
            user_id = None
        return timestamps_key(hostname, user_id)

    async def _ensure_assignable(self, hostname: str, old_key: str, record: LinkRecord) -> bool:
        """
        Check that `record.key` can take over `old_key`.

        Returns:
            True if a previous rename to exactly this record was interrupted
            after writing it (old key gone), False for a free key

        Raises:
            ReservedKey: If the new key is reserved
            KeyConflict: If the new key holds another link
        """
        if self.reserved.blocks(hostname, record.key):
            raise ReservedKey(hostname, record.key)

        links = links_key(hostname)
        existing = await self.store.hget(links, record.key)
        if existing is None:
            return False
        if existing == record.to_hash_value() and not await self.store.hexists(links, old_key):
            return True
        raise KeyConflict(hostname, record.key)

    async def _claim(self, hostname: str, record: LinkRecord) -> None:
        """Create-if-absent of a record in the links hash"""
        if not await self.store.hsetnx(links_key(hostname), record.key, record.to_hash_value()):
            raise KeyConflict(hostname, record.key)

    async def _claim_random(self, hostname: str, url: str, title: str) -> LinkRecord:
        for _ in range(self.key_generator.attempt_budget):
            key = await self.key_generator.allocate_unique(hostname)
            record = LinkRecord(key=key, url=url, title=title, timestamp=self.clock())
            try:
                await self._claim(hostname, record)
            except KeyConflict:
                # Taken between the probe and the write
                logger.debug("Random key collision on %s: %s", hostname, key)
                continue
            return record

        raise GenerationExhausted(hostname, self.key_generator.attempt_budget)

    async def create(
        self,
        hostname: str,
        url: str,
        key: Optional[str] = None,
        title: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Create a link.

        Args:
            hostname: Namespace to create the link in
            url: Redirect target
            key: Explicit key; a random one is allocated when omitted
            title: Page title; resolved from the URL when omitted
            user_id: Owner (indexes the link per user on the primary domain)

        Returns:
            The key, or None if the explicit key is reserved or taken

        Raises:
            GenerationExhausted: If no random key could be claimed
        """
        if key is not None and self.reserved.blocks(hostname, key):
            logger.info("Link not created: %s", ReservedKey(hostname, key))
            return None

        if title is None:
            title = await self.title_resolver.resolve(url)

        if key is None:
            record = await self._claim_random(hostname, url, title)
        else:
            record = LinkRecord(key=key, url=url, title=title, timestamp=self.clock())
            try:
                await self._claim(hostname, record)
            except KeyConflict as e:
                logger.info("Link not created: %s", e)
                return None

        await self.store.zadd(self._index_key(hostname, user_id), {record.key: record.timestamp})
        return record.key

    async def exists(self, hostname: str, key: str) -> bool:
        """Check if a key is taken (reserved keys on the primary domain always are)"""
        if self.reserved.blocks(hostname, key):
            return True
        return await self.store.hexists(links_key(hostname), key)

    async def get(self, hostname: str, key: str) -> Optional[LinkRecord]:
        """Get a single link, e.g. to redirect"""
        raw = await self.store.hget(links_key(hostname), key)
        return LinkRecord.from_hash_value(key, raw)

    async def list(self, hostname: str, user_id: Optional[str] = None) -> List[LinkRecord]:
        """
        Get the links of a hostname (or of one user), most recent first.

        Index entries whose record is missing or unreadable are skipped.
        """
        keys = await self.store.zrange(self._index_key(hostname, user_id), 0, -1, desc=True)
        if not keys:
            return []

        values = await self.store.hmget(links_key(hostname), keys)
        links = []
        for key, raw in zip(keys, values):
            record = LinkRecord.from_hash_value(key, raw)
            if record is None:
                logger.warning("Skipping index entry without a record: %s on %s", key, hostname)
                continue
            links.append(record)
        return links

    async def count(self, hostname: str) -> int:
        """Number of links in the hostname's main index"""
        return await self.store.zcard(timestamps_key(hostname))

    async def edit(
        self,
        hostname: str,
        old_key: str,
        new_key: str,
        url: str,
        title: str,
        timestamp: int,
        user_id: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Update a link, optionally renaming its key.

        Same key: url/title/timestamp are overwritten in place and the
        index score is left as it was.

        New key: the record, its index entry and its click log (if any
        click was recorded) move to the new key in one batch. If a non-transactional
        batch is cut off, issuing the same edit again finishes it.

        Returns:
            True on success, None if the new key is reserved or taken
        """
        record = LinkRecord(key=new_key, url=url, title=title, timestamp=timestamp)
        links = links_key(hostname)

        if old_key == new_key:
            await self.store.hset(links, key=old_key, value=record.to_hash_value())
            return True

        try:
            resuming = await self._ensure_assignable(hostname, old_key, record)
        except (ReservedKey, KeyConflict) as e:
            logger.info("Link %s not renamed: %s", old_key, e)
            return None
        if resuming:
            logger.info("Resuming interrupted rename %s -> %s on %s", old_key, new_key, hostname)

        # Click logs are created lazily, so there may be nothing to move
        has_clicks = await self.store.zcard(clicks_key(hostname, old_key)) > 0
        index = self._index_key(hostname, user_id)

        batch = self.store.pipeline(transaction=self.atomic_batches)
        batch.hdel(links, old_key)
        batch.hset(links, key=new_key, value=record.to_hash_value())
        batch.zrem(index, old_key)
        batch.zadd(index, {new_key: timestamp})
        if has_clicks:
            batch.rename(clicks_key(hostname, old_key), clicks_key(hostname, new_key))
        await batch.execute()

        logger.info("Renamed %s -> %s on %s", old_key, new_key, hostname)
        return True
