import logging
from typing import List, Optional, Tuple

from linkstore_app.config import settings
from linkstore_app.errors import KeyConflict, TransportFailure
from linkstore_app.store.keys import clicks_key, links_key, root_clicks_key, timestamps_key
from linkstore_app.store.strategies import KeyValueStore

logger = logging.getLogger(__name__)


class DomainMigrator:
    """
    Moves every collection of a hostname namespace to a new hostname.

    Moved: `links`, `links:timestamps`, `root:clicks` and the click log of
    every indexed key. Per-user timestamp indexes and the usage cache stay
    behind.

    Sources are probed first and only existing ones are renamed, inside
    one transaction when `atomic_batches` is on. Without a transaction a
    batch can be cut off half way; a collection whose source is gone and
    whose destination exists counts as already moved, so issuing the
    migration again finishes it.
    """

    def __init__(self, store: KeyValueStore, atomic_batches: bool = settings.atomic_batches):
        self.store = store
        self.atomic_batches = atomic_batches

    async def _indexed_keys(self, hostname: str, new_hostname: str) -> List[str]:
        # After an interrupted run the index may already live under the new hostname
        if await self.store.exists(timestamps_key(hostname)):
            return await self.store.zrange(timestamps_key(hostname), 0, -1)
        return await self.store.zrange(timestamps_key(new_hostname), 0, -1)

    async def _renames(self, hostname: str, new_hostname: str) -> List[Tuple[str, str]]:
        keys = await self._indexed_keys(hostname, new_hostname)
        renames = [
            (links_key(hostname), links_key(new_hostname)),
            (timestamps_key(hostname), timestamps_key(new_hostname)),
            (root_clicks_key(hostname), root_clicks_key(new_hostname)),
        ]
        renames.extend(
            (clicks_key(hostname, key), clicks_key(new_hostname, key)) for key in keys
        )
        return renames

    async def change_domain(self, hostname: str, new_hostname: str) -> Optional[bool]:
        """
        Rename a hostname namespace.

        Args:
            hostname: Current namespace
            new_hostname: Namespace to move everything to

        Returns:
            True on success, None if the target namespace is in use or the
            store failed (nothing is rolled back or retried)
        """
        if hostname == new_hostname:
            return True

        try:
            renames = await self._renames(hostname, new_hostname)

            probe = self.store.pipeline()
            for src, dst in renames:
                probe.exists(src)
                probe.exists(dst)
            found = await probe.execute()

            pending = []
            for (src, dst), src_found, dst_found in zip(renames, found[0::2], found[1::2]):
                if src_found and dst_found:
                    raise KeyConflict(new_hostname, dst)
                if src_found:
                    pending.append((src, dst))
                elif dst_found:
                    logger.debug("Already moved: %s -> %s", src, dst)

            batch = self.store.pipeline(transaction=self.atomic_batches)
            for src, dst in pending:
                batch.rename(src, dst)
            await batch.execute()

        except (KeyConflict, TransportFailure) as e:
            logger.error("Domain change %s -> %s failed: %s", hostname, new_hostname, e)
            return None

        logger.info("Moved %d collections from %s to %s", len(pending), hostname, new_hostname)
        return True
