"""
Test configuration and fixtures for the link store.
This centralizes all test setup, making individual tests clean.

Every test gets a fresh InMemoryStore driven by a fake clock, so TTLs
and timestamps are deterministic.
"""

from datetime import datetime

import pytest
from fastapi import Request

from linkstore_app.context.strategies import LocalRequestContextProvider
from linkstore_app.errors import TransportFailure
from linkstore_app.services.click_recorder import ClickRecorder
from linkstore_app.services.domain_migrator import DomainMigrator
from linkstore_app.services.key_generator import KeyGenerator
from linkstore_app.services.link_store import LinkStore
from linkstore_app.services.reserved_keys import ReservedKeys
from linkstore_app.services.usage_aggregator import UsageAggregator
from linkstore_app.store.strategies import InMemoryBatch, InMemoryStore
from linkstore_app.titles.strategies import TitleResolver
from linkstore_app.utils import to_ms

PRIMARY_DOMAIN = "dub.sh"
RESERVED = ["login", "api", "stats"]


class FakeClock:
    """Epoch-ms clock that only moves when told to"""

    def __init__(self, start_ms: int):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def seconds(self) -> float:
        return self.now / 1000

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class InterruptedBatch(InMemoryBatch):
    """Applies only the first commands of a rename batch, then loses the connection"""

    async def execute(self):
        applied = self.store.interrupt_after
        if applied is None or not any(command == "rename" for command, _, _ in self._commands):
            return await super().execute()

        self.store.interrupt_after = None
        self._commands = self._commands[:applied]
        await super().execute()
        raise TransportFailure("pipeline: Connection reset by peer")


class InterruptibleStore(InMemoryStore):
    """InMemoryStore whose next rename batch is cut off after `interrupt_after` commands"""

    interrupt_after = None

    def pipeline(self, transaction: bool = False):
        return InterruptedBatch(self, transaction=transaction)


class StaticTitleResolver(TitleResolver):
    """Returns the same title for every URL and remembers what it was asked"""

    def __init__(self, title: str = "Example Domain"):
        self.title = title
        self.calls = []

    async def resolve(self, url: str) -> str:
        self.calls.append(url)
        return self.title


@pytest.fixture
def clock():
    """Mid-month, so advancing by hours or days stays in the same month"""
    today = datetime.now()
    return FakeClock(to_ms(datetime(today.year, today.month, 15, 12, 0, 0)))


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock.seconds)


@pytest.fixture
def interruptible_store(clock):
    return InterruptibleStore(clock=clock.seconds)


@pytest.fixture
def reserved():
    return ReservedKeys(PRIMARY_DOMAIN, RESERVED)


@pytest.fixture
def key_generator(store, reserved):
    return KeyGenerator(store, reserved, length=7, max_attempts=5, widened_length=10)


@pytest.fixture
def title_resolver():
    return StaticTitleResolver()


@pytest.fixture
def link_store(store, key_generator, reserved, title_resolver, clock):
    return LinkStore(
        store,
        key_generator=key_generator,
        reserved=reserved,
        title_resolver=title_resolver,
        atomic_batches=True,
        clock=clock,
    )


@pytest.fixture
def click_recorder(store, clock):
    return ClickRecorder(store, LocalRequestContextProvider(), clock=clock)


@pytest.fixture
def usage_aggregator(store, clock):
    return UsageAggregator(store, ttl=3600, clock=clock)


@pytest.fixture
def domain_migrator(store):
    return DomainMigrator(store, atomic_batches=True)


@pytest.fixture
def make_request():
    """Build a bare HTTP request carrying the given headers"""
    def _make(headers=None) -> Request:
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "query_string": b"",
            "headers": [
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in (headers or {}).items()
            ],
        }
        return Request(scope)
    return _make
