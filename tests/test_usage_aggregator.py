"""
Tests for usage aggregation and its cache.
"""

import asyncio
from datetime import datetime, timedelta

from linkstore_app.store.keys import clicks_key, usage_key
from linkstore_app.utils import to_ms


def click_n_times(click_recorder, make_request, hostname, key, n):
    for _ in range(n):
        asyncio.run(click_recorder.record(hostname, make_request(), key=key))


class TestGetUsage:
    """Test click usage"""

    def test_keyed_clicks_counted_root_clicks_not(self, link_store, click_recorder, usage_aggregator, make_request):
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc1234"))
        click_n_times(click_recorder, make_request, "ex.test", "abc1234", 3)
        click_n_times(click_recorder, make_request, "ex.test", None, 1)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 3

    def test_sums_over_every_indexed_key(self, link_store, click_recorder, usage_aggregator, make_request):
        for key, clicks in [("a", 2), ("b", 0), ("c", 5)]:
            asyncio.run(link_store.create("ex.test", f"https://{key}.com", key=key))
            click_n_times(click_recorder, make_request, "ex.test", key, clicks)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 7

    def test_clicks_on_unindexed_keys_ignored(self, click_recorder, usage_aggregator, make_request):
        click_n_times(click_recorder, make_request, "ex.test", "orphan", 4)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 0

    def test_empty_hostname(self, usage_aggregator, store):
        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 0
        assert asyncio.run(store.get(usage_key("ex.test"))) == "0"

    def test_clicks_outside_the_month_ignored(self, link_store, usage_aggregator, store):
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc"))
        first, last = usage_aggregator.billing_window()
        asyncio.run(store.zadd(clicks_key("ex.test", "abc"), {
            "before": first - 1,
            "first": first,
            "last": last,
            "after": last + 1,
        }))

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 2

    def test_billing_cycle_start(self, link_store, click_recorder, usage_aggregator, make_request, clock):
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc"))
        click_n_times(click_recorder, make_request, "ex.test", "abc", 2)
        clock.advance(3600)
        cycle_start = datetime.fromtimestamp(clock.now / 1000)
        click_n_times(click_recorder, make_request, "ex.test", "abc", 1)

        assert asyncio.run(usage_aggregator.get_usage("ex.test", billing_cycle_start=cycle_start)) == 1


class TestUsageCache:
    """Test the cache-aside behaviour"""

    def test_cached_value_served_within_ttl(self, link_store, click_recorder, usage_aggregator, make_request, clock):
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc"))
        click_n_times(click_recorder, make_request, "ex.test", "abc", 3)
        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 3

        click_n_times(click_recorder, make_request, "ex.test", "abc", 2)
        clock.advance(3599)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 3

    def test_recomputed_after_ttl(self, link_store, click_recorder, usage_aggregator, make_request, clock):
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc"))
        click_n_times(click_recorder, make_request, "ex.test", "abc", 3)
        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 3

        click_n_times(click_recorder, make_request, "ex.test", "abc", 2)
        clock.advance(3601)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 5

    def test_cached_zero_is_a_hit(self, link_store, click_recorder, usage_aggregator, make_request):
        """Test that a cached 0 is served, not recomputed"""
        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 0
        asyncio.run(link_store.create("ex.test", "https://example.com", key="abc"))
        click_n_times(click_recorder, make_request, "ex.test", "abc", 2)

        assert asyncio.run(usage_aggregator.get_usage("ex.test")) == 0


class TestBillingWindow:
    """Test the counting window"""

    def test_calendar_month(self, usage_aggregator, clock):
        today = datetime.fromtimestamp(clock.now / 1000)
        first, last = usage_aggregator.billing_window()

        assert first == to_ms(datetime(today.year, today.month, 1))
        assert datetime.fromtimestamp(last / 1000).month == today.month
        assert datetime.fromtimestamp((last + 1) / 1000) == (
            datetime(today.year, today.month, 28) + timedelta(days=4)
        ).replace(day=1)

    def test_cycle_start_until_now(self, usage_aggregator, clock):
        start = datetime.fromtimestamp(clock.now / 1000) - timedelta(days=3)

        assert usage_aggregator.billing_window(start) == (to_ms(start), clock.now)
