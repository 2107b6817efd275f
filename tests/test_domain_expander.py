"""
Tests for per-scan domain expansion and deduplication.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from inbox_unsubscriber.email_processor.domain_expander import DomainExpander, domain_query
from inbox_unsubscriber.exceptions import ProviderError
from inbox_unsubscriber.services.cache import CacheService


@pytest.fixture
def provider(make_message):
    inbox = {
        domain_query("shop.example.com"): [
            make_message("s1", sender="shop@shop.example.com"),
            make_message("s2", sender="shop@shop.example.com"),
        ],
        domain_query("news.example.com"): [make_message("n1", sender="news@news.example.com")],
    }

    async def search(query, max_results):
        if "broken.example.com" in query:
            raise ProviderError("search failed", {"query": query})
        return inbox.get(query, [])

    provider = Mock()
    provider.search = AsyncMock(side_effect=search)
    return provider


class TestDomainExpander:
    """Each domain searched once; ids never returned twice."""

    def test_query_scoped_to_inbox(self):
        assert domain_query("shop.example.com") == "in:inbox from:@shop.example.com"

    @pytest.mark.anyio
    async def test_skips_already_seen_ids(self, provider):
        expander = DomainExpander(provider, CacheService())
        expander.mark_seen(["s1"])

        found = await expander.expand("shop.example.com")

        assert [m.id for m in found] == ["s2"]
        provider.search.assert_awaited_once_with("in:inbox from:@shop.example.com", 500)

    @pytest.mark.anyio
    async def test_domain_expanded_once(self, provider):
        expander = DomainExpander(provider, CacheService())

        first = await expander.expand("Shop.Example.com")
        second = await expander.expand("shop.example.com")

        assert len(first) == 2
        assert second == []
        assert provider.search.await_count == 1

    @pytest.mark.anyio
    async def test_failure_yields_empty(self, provider):
        expander = DomainExpander(provider, CacheService())

        assert await expander.expand("broken.example.com") == []
        assert "broken.example.com" in expander.failed_domains

    @pytest.mark.anyio
    async def test_unknown_domain_not_searched(self, provider):
        expander = DomainExpander(provider, CacheService())

        assert await expander.expand("unknown") == []
        provider.search.assert_not_awaited()

    @pytest.mark.anyio
    async def test_results_cached_per_domain(self, provider):
        cache = CacheService()
        await DomainExpander(provider, cache).expand("news.example.com")

        found = await DomainExpander(provider, cache).expand("news.example.com")

        assert [m.id for m in found] == ["n1"]
        assert provider.search.await_count == 1

    @pytest.mark.anyio
    async def test_expand_many_reports_each_domain(self, provider):
        expander = DomainExpander(provider, CacheService(), max_results=100)
        done = []

        results = await expander.expand_many(
            ["shop.example.com", "news.example.com", "broken.example.com", "shop.example.com"],
            concurrency=2,
            on_domain_done=lambda domain, count: done.append((domain, count)),
        )

        assert {d: [m.id for m in found] for d, found in results.items()} == {
            "shop.example.com": ["s1", "s2"],
            "news.example.com": ["n1"],
            "broken.example.com": [],
        }
        assert sorted(done) == [("broken.example.com", 0), ("news.example.com", 1), ("shop.example.com", 2)]
