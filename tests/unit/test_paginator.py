"""Tests for category and search pagination."""

import pytest

from fixtures.sample_data import (
    INVIDIOUS_MUSIC,
    INVIDIOUS_SEARCH_PAGE_1,
    INVIDIOUS_SEARCH_PAGE_2,
    INVIDIOUS_TRENDING,
    PIPED_SEARCH_PAGE_1,
    PIPED_SEARCH_PAGE_2,
    PRIMARY_HOSTS,
    SECONDARY_HOSTS,
)
from vidlook.models import QueryKey

TRENDING = "/api/v1/trending"
SEARCH = "/api/v1/search"
MUSIC = QueryKey.category("Music")
CATS = QueryKey.search("cats")


def ids(records):
    return [r.id for r in records]


class TestCategoryPages:
    """Test get_page for category listings."""

    def test_first_page(self, healthy_providers, run_session):
        """Test one mapped request and a prefix of the results."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            page = await session.paginator.get_page(MUSIC, 10)
            return page, len(session.cache.get(MUSIC))

        page, cached = run_session(scenario)

        assert ids(page) == [f"music{n}" for n in range(10)]
        assert cached == 12
        (request,) = healthy_providers.data_requests()
        assert request.url.params["type"] == "music"
        assert request.url.params["region"] == "US"

    def test_cached_prefix_without_request(self, healthy_providers, run_session):
        """Test that a cache holding enough records makes no request."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            await session.paginator.get_page(MUSIC, 10)
            return await session.paginator.get_page(MUSIC, 5)

        page = run_session(scenario)

        assert ids(page) == [f"music{n}" for n in range(5)]
        assert len(healthy_providers.data_requests()) == 1

    def test_exhausted_category_not_refetched(self, healthy_providers, run_session):
        """Test that asking for more than a listing holds serves what is cached."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            await session.paginator.get_page(MUSIC, 10)
            return await session.paginator.get_page(MUSIC, 50)

        assert len(run_session(scenario)) == 12
        assert len(healthy_providers.data_requests()) == 1

    def test_force_refresh(self, healthy_providers, run_session):
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            await session.paginator.get_page(MUSIC, 5)
            return await session.paginator.get_page(MUSIC, 5, force_refresh=True)

        assert len(run_session(scenario)) == 5
        assert len(healthy_providers.data_requests()) == 2

    def test_stale_entry_refetched(self, healthy_providers, run_session, fake_clock):
        """Test that entries past the freshness window are refetched."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            await session.paginator.get_page(MUSIC, 5)
            fake_clock.advance(30)
            await session.paginator.get_page(MUSIC, 5)
            fake_clock.advance(31)
            await session.paginator.get_page(MUSIC, 5)

        run_session(scenario, cache_freshness_seconds=60)

        assert len(healthy_providers.data_requests()) == 2

    def test_empty_category_uses_default_listing(self, healthy_providers, run_session):
        """Test the fallback to the default listing for an empty mapped category."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=[])
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_TRENDING)

        page = run_session(lambda s: s.paginator.get_page(MUSIC, 10))

        assert ids(page)[:2] == ["trend0", "trend1"]
        first, second = healthy_providers.data_requests()
        assert first.url.params["type"] == "music"
        assert "type" not in second.url.params

    def test_negative_count(self, healthy_providers, run_session):
        with pytest.raises(ValueError):
            run_session(lambda s: s.paginator.get_page(MUSIC, -1))


class TestCategoryMore:
    """Test get_more_page for category listings."""

    def test_more_serves_buffered_records(self, healthy_providers, run_session):
        """Test that records cached but not yet delivered are handed out."""
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        async def scenario(session):
            await session.paginator.get_page(MUSIC, 10)
            more = await session.paginator.get_more_page(MUSIC, 10)
            rest = await session.paginator.get_more_page(MUSIC, 10)
            return more, rest

        more, rest = run_session(scenario)

        assert ids(more) == ["music10", "music11"]
        assert rest == []
        assert len(healthy_providers.data_requests()) == 1

    def test_more_without_first_page(self, healthy_providers, run_session):
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_MUSIC)

        page = run_session(lambda s: s.paginator.get_more_page(MUSIC, 4))

        assert ids(page) == ["music0", "music1", "music2", "music3"]

    def test_more_never_raises(self, healthy_providers, run_session):
        """Test that provider failures yield an empty page."""
        for host in PRIMARY_HOSTS:
            healthy_providers.add(host, TRENDING, json={}, status=503)

        assert run_session(lambda s: s.paginator.get_more_page(MUSIC, 10)) == []


class TestSearchPages:
    """Test search pagination by page number."""

    def test_page_numbers(self, healthy_providers, run_session):
        """Test continuation through page-numbered search results."""
        healthy_providers.add(PRIMARY_HOSTS[0], SEARCH, json=INVIDIOUS_SEARCH_PAGE_1)
        healthy_providers.add(PRIMARY_HOSTS[0], SEARCH, json=INVIDIOUS_SEARCH_PAGE_2)

        async def scenario(session):
            pages = [await session.paginator.get_page(CATS, 15)]
            for _ in range(4):
                pages.append(await session.paginator.get_more_page(CATS, 10))
            return pages

        first, second, third, fourth, fifth = run_session(scenario)

        assert ids(first) == [f"cat{n}" for n in range(15)]
        assert ids(second) == [f"cat{n}" for n in range(15, 25)]
        assert ids(third) == [f"cat{n}" for n in range(25, 35)]
        assert ids(fourth) == [f"cat{n}" for n in range(35, 40)]
        assert fifth == []
        page_params = [r.url.params["page"] for r in healthy_providers.data_requests()]
        assert page_params == ["1", "2", "3"]

    def test_empty_search_short_circuits(self, healthy_providers, run_session):
        """Test that an empty result is cached and not refetched."""
        healthy_providers.add(PRIMARY_HOSTS[0], SEARCH, json=[])

        async def scenario(session):
            first = await session.paginator.get_page(CATS, 15)
            second = await session.paginator.get_page(CATS, 15)
            return first, second, session.cache.is_fresh(CATS)

        first, second, fresh = run_session(scenario)

        assert first == second == []
        assert fresh
        assert len(healthy_providers.data_requests()) == 1

    def test_failure_after_first_page(self, healthy_providers, run_session):
        healthy_providers.add(PRIMARY_HOSTS[0], SEARCH, json=INVIDIOUS_SEARCH_PAGE_1)
        healthy_providers.add(PRIMARY_HOSTS[0], SEARCH, json={}, status=500)
        for host in PRIMARY_HOSTS[1:]:
            healthy_providers.add(host, SEARCH, json={}, status=500)

        async def scenario(session):
            await session.paginator.get_page(CATS, 20)
            return await session.paginator.get_more_page(CATS, 10)

        assert run_session(scenario) == []


class TestCursorPagination:
    """Test search pagination with continuation tokens."""

    def test_cursor_continuation(self, healthy_providers, run_session):
        """Test that the stored cursor drives the next request."""
        healthy_providers.add(SECONDARY_HOSTS[0], "/search", json=PIPED_SEARCH_PAGE_1)
        healthy_providers.add(
            SECONDARY_HOSTS[0], "/nextpage/search", json=PIPED_SEARCH_PAGE_2
        )

        async def scenario(session):
            first = await session.paginator.get_page(CATS, 10)
            second = await session.paginator.get_more_page(CATS, 10)
            third = await session.paginator.get_more_page(CATS, 10)
            return first, second, third

        first, second, third = run_session(scenario, primary_instances=())

        assert ids(first) == [f"pip{n}" for n in range(10)]
        assert ids(second) == [f"pip{n}" for n in range(10, 20)]
        assert third == []
        requests = healthy_providers.data_requests()
        assert [r.url.path for r in requests] == ["/search", "/nextpage/search"]
        assert requests[1].url.params["nextpage"] == "token-page-2"


class TestPreload:
    """Test cache warming."""

    def test_preload(self, healthy_providers, run_session):
        healthy_providers.add(PRIMARY_HOSTS[0], TRENDING, json=INVIDIOUS_TRENDING)

        loaded = run_session(lambda s: s.paginator.preload(["Trending"], 5))

        assert loaded == {"Trending": 5}

    def test_preload_failure_reported_as_zero(self, healthy_providers, run_session):
        for host in PRIMARY_HOSTS:
            healthy_providers.add(host, TRENDING, json={}, status=500)

        loaded = run_session(lambda s: s.paginator.preload(["Trending"], 5))

        assert loaded == {"Trending": 0}
