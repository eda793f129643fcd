"""
Tests for click recording.
"""

import asyncio

from linkstore_app.context.strategies import EdgeRequestContextProvider, LOCALHOST_GEO_DATA
from linkstore_app.services.click_recorder import ClickRecorder
from linkstore_app.store.keys import clicks_key, root_clicks_key


class TestRecord:
    """Test appending click events"""

    def test_keyed_log_created_by_first_click(self, click_recorder, store, make_request):
        assert asyncio.run(store.exists(clicks_key("ex.test", "abc1234"))) == 0

        added = asyncio.run(click_recorder.record("ex.test", make_request(), key="abc1234"))

        assert added == 1
        assert asyncio.run(store.zcard(clicks_key("ex.test", "abc1234"))) == 1

    def test_root_click(self, click_recorder, store, make_request):
        asyncio.run(click_recorder.record("ex.test", make_request()))

        assert asyncio.run(store.zcard(root_clicks_key("ex.test"))) == 1
        assert asyncio.run(store.exists(clicks_key("ex.test", ""))) == 0

    def test_identical_clicks_are_separate_events(self, click_recorder, store, make_request):
        """Test that two clicks in the same millisecond are both kept"""
        headers = {"User-Agent": "curl/8.0", "Referer": "https://twitter.com"}
        asyncio.run(click_recorder.record("ex.test", make_request(headers), key="abc"))
        asyncio.run(click_recorder.record("ex.test", make_request(headers), key="abc"))

        events = asyncio.run(click_recorder.clicks("ex.test", "abc"))

        assert len(events) == 2
        assert events[0].id != events[1].id
        assert {(e.ua, e.referer) for e in events} == {("curl/8.0", "https://twitter.com")}

    def test_event_scored_by_click_time(self, click_recorder, store, make_request, clock):
        asyncio.run(click_recorder.record("ex.test", make_request(), key="abc"))

        event = asyncio.run(click_recorder.clicks("ex.test", "abc"))[0]

        assert event.timestamp == clock.now
        assert asyncio.run(store.zcount(clicks_key("ex.test", "abc"), clock.now, clock.now)) == 1

    def test_local_placeholder_geo(self, click_recorder, make_request):
        asyncio.run(click_recorder.record("ex.test", make_request(), key="abc"))

        event = asyncio.run(click_recorder.clicks("ex.test", "abc"))[0]

        assert event.geo == LOCALHOST_GEO_DATA
        assert event.ua is None
        assert event.referer is None

    def test_edge_geo_headers(self, store, clock, make_request):
        """Test that edge headers are read and percent-decoded"""
        recorder = ClickRecorder(store, EdgeRequestContextProvider(), clock=clock)
        request = make_request({
            "x-vercel-ip-city": "S%C3%A3o%20Paulo",
            "x-vercel-ip-country-region": "SP",
            "x-vercel-ip-country": "BR",
            "x-vercel-ip-latitude": "-23.5475",
            "x-vercel-ip-longitude": "-46.6361",
        })

        asyncio.run(recorder.record("ex.test", request, key="abc"))
        geo = asyncio.run(recorder.clicks("ex.test", "abc"))[0].geo

        assert geo.city == "São Paulo"
        assert (geo.region, geo.country) == ("SP", "BR")
        assert (geo.latitude, geo.longitude) == ("-23.5475", "-46.6361")

    def test_edge_without_headers(self, store, clock, make_request):
        recorder = ClickRecorder(store, EdgeRequestContextProvider(), clock=clock)

        asyncio.run(recorder.record("ex.test", make_request(), key="abc"))
        geo = asyncio.run(recorder.clicks("ex.test", "abc"))[0].geo

        assert geo.city is None
        assert geo.country is None


class TestClicks:
    """Test reading click logs"""

    def test_window_is_inclusive(self, click_recorder, make_request, clock):
        start = clock.now
        for _ in range(3):
            asyncio.run(click_recorder.record("ex.test", make_request(), key="abc"))
            clock.advance(60)

        events = asyncio.run(click_recorder.clicks("ex.test", "abc", start=start + 60_000, end=start + 120_000))

        assert [e.timestamp for e in events] == [start + 60_000, start + 120_000]

    def test_oldest_first(self, click_recorder, make_request, clock):
        for _ in range(3):
            asyncio.run(click_recorder.record("ex.test", make_request(), key="abc"))
            clock.advance(1)

        timestamps = [e.timestamp for e in asyncio.run(click_recorder.clicks("ex.test", "abc"))]

        assert timestamps == sorted(timestamps)

    def test_no_clicks(self, click_recorder):
        assert asyncio.run(click_recorder.clicks("ex.test", "nope")) == []
        assert asyncio.run(click_recorder.clicks("ex.test")) == []
