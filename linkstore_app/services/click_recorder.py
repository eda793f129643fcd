import logging
from typing import Callable, List, Optional

from fastapi import Request

from linkstore_app.context.strategies import RequestContextProvider
from linkstore_app.models.click import ClickEvent
from linkstore_app.store.keys import clicks_key, root_clicks_key
from linkstore_app.store.strategies import KeyValueStore
from linkstore_app.utils import now_ms

logger = logging.getLogger(__name__)


class ClickRecorder:
    """
    Append-only click logs.

    Clicks on a key go to `{hostname}:clicks:{key}` (created by the first
    click), clicks on the bare hostname to `{hostname}:root:clicks`.
    Every call appends; there is no deduplication or rate limiting.
    """

    def __init__(
        self,
        store: KeyValueStore,
        context_provider: RequestContextProvider,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            store: Key-value store
            context_provider: Extracts geo / user agent / referer from requests
            clock: Returns the current time in epoch ms
        """
        self.store = store
        self.context_provider = context_provider
        self.clock = clock

    @staticmethod
    def _log_key(hostname: str, key: Optional[str]) -> str:
        return clicks_key(hostname, key) if key else root_clicks_key(hostname)

    async def record(self, hostname: str, request: Request, key: Optional[str] = None) -> int:
        """
        Record one click.

        Args:
            hostname: Namespace the click belongs to
            request: The redirect request
            key: Clicked key; None for the hostname's root

        Returns:
            Number of events added (1)
        """
        context = self.context_provider.extract(request)
        timestamp = self.clock()
        event = ClickEvent(
            geo=context.geo,
            ua=context.ua,
            referer=context.referer,
            timestamp=timestamp,
        )
        return await self.store.zadd(self._log_key(hostname, key), {event.model_dump_json(): timestamp})

    async def clicks(
        self,
        hostname: str,
        key: Optional[str] = None,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> List[ClickEvent]:
        """Click events of a key (or the root), oldest first, optionally within [start, end] ms"""
        members = await self.store.zrangebyscore(
            self._log_key(hostname, key),
            "-inf" if start is None else start,
            "+inf" if end is None else end,
        )
        return [ClickEvent.model_validate_json(member) for member in members]
