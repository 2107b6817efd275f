"""
Tests for the Gmail-backed message provider with a mocked service resource.
"""

from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from inbox_unsubscriber.email_processor.gmail_client import GmailProvider
from inbox_unsubscriber.exceptions import NotAuthenticatedError, ProviderError
from inbox_unsubscriber.services.cache import CacheService, MISS


def http_error(status):
    return HttpError(httplib2.Response({"status": str(status)}), b"error")


def raw_message(message_id, sender="News <news@shop.example.com>"):
    return {
        "id": message_id,
        "threadId": f"t-{message_id}",
        "snippet": "snippet",
        "payload": {"headers": [{"name": "From", "value": sender}, {"name": "Subject", "value": "Hi"}]},
    }


@pytest.fixture
def service():
    service = MagicMock()
    messages = service.users.return_value.messages.return_value
    messages.list.return_value.execute.return_value = {"messages": [{"id": "a"}, {"id": "b"}]}
    messages.get.side_effect = lambda userId, id, format: MagicMock(
        execute=MagicMock(return_value=raw_message(id))
    )
    return service


def gmail_messages(service):
    return service.users.return_value.messages.return_value


class TestGmailProvider:
    """Search, fetch and archive through the cache."""

    @pytest.mark.anyio
    async def test_search_fetches_and_caches(self, service):
        cache = CacheService()
        provider = GmailProvider(cache, service=service)

        first = await provider.search("in:inbox unsubscribe", 50)
        second = await provider.search("in:inbox unsubscribe", 50)

        assert [m.id for m in first] == ["a", "b"]
        assert second == first
        assert gmail_messages(service).list.call_count == 1
        assert cache.get_cached_message("a").sender_domain == "shop.example.com"

    @pytest.mark.anyio
    async def test_search_skips_unfetchable_messages(self, service):
        def get(userId, id, format):
            request = MagicMock()
            if id == "b":
                request.execute.side_effect = http_error(404)
            else:
                request.execute.return_value = raw_message(id)
            return request

        gmail_messages(service).get.side_effect = get
        provider = GmailProvider(CacheService(), service=service)

        messages = await provider.search("in:inbox", 50)

        assert [m.id for m in messages] == ["a"]

    @pytest.mark.anyio
    async def test_search_failure_raises_provider_error(self, service):
        gmail_messages(service).list.return_value.execute.side_effect = http_error(400)
        provider = GmailProvider(CacheService(), service=service)

        with pytest.raises(ProviderError):
            await provider.search("in:inbox", 50)

    @pytest.mark.anyio
    async def test_get_uses_cache(self, service):
        provider = GmailProvider(CacheService(), service=service)

        await provider.get("a")
        await provider.get("a")

        assert gmail_messages(service).get.call_count == 1

    @pytest.mark.anyio
    async def test_archive_in_one_batch(self, service):
        cache = CacheService()
        provider = GmailProvider(cache, service=service)
        await provider.get("a")

        archived = await provider.archive(["a", "b"])

        assert archived == ["a", "b"]
        gmail_messages(service).batchModify.assert_called_once_with(
            userId="me", body={"ids": ["a", "b"], "removeLabelIds": ["INBOX"]}
        )
        assert cache.get_cached_message("a") is MISS

    @pytest.mark.anyio
    async def test_archive_falls_back_per_message(self, service):
        messages = gmail_messages(service)
        messages.batchModify.return_value.execute.side_effect = http_error(400)

        def modify(userId, id, body):
            request = MagicMock()
            if id == "b":
                request.execute.side_effect = http_error(404)
            return request

        messages.modify.side_effect = modify
        provider = GmailProvider(CacheService(), service=service)

        archived = await provider.archive(["a", "b", "c"])

        assert archived == ["a", "c"]

    @pytest.mark.anyio
    async def test_archive_nothing(self, service):
        provider = GmailProvider(CacheService(), service=service)

        assert await provider.archive([]) == []
        gmail_messages(service).batchModify.assert_not_called()


class TestAuthentication:
    """Token handling without network access."""

    def test_missing_token_is_unauthenticated(self, tmp_path):
        provider = GmailProvider(CacheService(), token_path=tmp_path / "token.json")

        assert provider.is_authenticated() is False

    def test_injected_service_is_authenticated(self, service):
        assert GmailProvider(CacheService(), service=service).is_authenticated() is True

    @pytest.mark.anyio
    async def test_calls_without_token_raise(self, tmp_path):
        provider = GmailProvider(CacheService(), token_path=tmp_path / "token.json")

        with pytest.raises(NotAuthenticatedError):
            await provider.get("a")
