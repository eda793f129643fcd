import calendar
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from linkstore_app.config import settings
from linkstore_app.store.keys import clicks_key, timestamps_key, usage_key
from linkstore_app.store.strategies import KeyValueStore
from linkstore_app.utils import now_ms, to_ms

logger = logging.getLogger(__name__)


class UsageAggregator:
    """
    Click usage of a hostname for the current billing period.

    Cache-Aside pattern:
    1. Return `usage:{hostname}` if it is cached
    2. Otherwise count clicks of every indexed key within the window
       (one pipelined ZCOUNT per key)
    3. Cache the sum for `ttl` seconds

    Only keyed clicks count; root clicks are never part of usage.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: int = settings.usage_cache_ttl,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock

    def billing_window(self, billing_cycle_start: Optional[datetime] = None) -> Tuple[int, int]:
        """
        Score range (epoch ms, inclusive) that usage is counted over.

        With a billing cycle start: from that moment until now.
        Without: the current calendar month in local time, from the 1st
        at 00:00 through the last day at 23:59:59.999 (clicks on the last
        day of the month count).
        """
        now = self.clock()
        if billing_cycle_start is not None:
            return to_ms(billing_cycle_start), now

        today = datetime.fromtimestamp(now / 1000)
        first_day = datetime(today.year, today.month, 1)
        last_day = calendar.monthrange(today.year, today.month)[1]
        month_end = datetime(today.year, today.month, last_day) + timedelta(days=1)
        return to_ms(first_day), to_ms(month_end) - 1

    async def get_usage(self, hostname: str, billing_cycle_start: Optional[datetime] = None) -> int:
        """
        Get the (possibly cached) click count of a hostname.

        Args:
            hostname: Namespace to count
            billing_cycle_start: Start of the billing cycle; calendar month if omitted

        Returns:
            Number of keyed clicks in the window
        """
        cached = await self.store.get(usage_key(hostname))
        if cached is not None:
            return int(cached)

        logger.info("No cached usage for %s, computing from scratch", hostname)
        first, last = self.billing_window(billing_cycle_start)

        keys = await self.store.zrange(timestamps_key(hostname), 0, -1)
        counts = []
        if keys:
            batch = self.store.pipeline()
            for key in keys:
                batch.zcount(clicks_key(hostname, key), first, last)
            counts = await batch.execute()

        usage = sum(counts)
        await self.store.setex(usage_key(hostname), self.ttl, usage)
        return usage
