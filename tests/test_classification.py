"""
Tests for the classification service: caching, retries, degradation and
response parsing. The LLM adapter is always mocked.
"""

import json
from unittest.mock import Mock

import pytest

from inbox_unsubscriber.classification.mock_classifier import MockClassifier
from inbox_unsubscriber.classification.models import Category, ClassificationResult, MessageRole
from inbox_unsubscriber.classification.service import (
    ClassificationService,
    build_adapter,
    classification_cache_key,
)
from inbox_unsubscriber.config.settings import ClassifierConfig, RateLimitConfig
from inbox_unsubscriber.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)
from inbox_unsubscriber.services.cache import CacheService, MISS
from inbox_unsubscriber.services.rate_limiter import RateLimiter

AI_RESPONSE = json.dumps({
    "isJunk": True,
    "confidence": 0.82,
    "category": "newsletter",
    "unsubscribeMethod": "header",
    "reasoning": "Weekly digest from a mailing list",
})


class TestMockClassifier:
    """Indicator-count heuristic used without credentials."""

    def setup_method(self):
        self.classifier = MockClassifier()

    def test_two_indicators_mark_junk(self, make_message):
        message = make_message(
            sender="newsletter@shop.com", subject="Big sale", snippet="unsubscribe here"
        )

        result = self.classifier.classify(message)

        assert result.is_junk is True
        assert result.category == Category.NEWSLETTER
        assert result.confidence == pytest.approx(0.75)
        assert result.unsubscribe_method == "link"
        assert result.source == "mock"

    def test_single_indicator_is_legitimate(self, make_message):
        message = make_message(sender="noreply@bank.com", subject="Statement ready")

        result = self.classifier.classify(message)

        assert result.is_junk is False
        assert result.category == Category.LEGITIMATE
        assert result.confidence == pytest.approx(0.45)

    def test_no_indicators(self, make_message):
        message = make_message(sender="Jane <jane@smallshop.io>", subject="Checking in")

        result = self.classifier.classify(message)

        assert result.confidence == pytest.approx(0.3)
        assert result.reasoning == "Heuristic analysis: no junk indicators"

    def test_confidence_capped(self, make_message):
        message = make_message(
            sender="Automated Newsletter <noreply@news.example.com>",
            subject="Promo deal",
            snippet="Manage preferences",
        )

        result = self.classifier.classify(message)

        assert len(self.classifier.matched_indicators(message)) == 5
        assert result.confidence == 0.9


class TestClassificationCacheKey:
    """Key derivation for the classification namespace."""

    def test_key_truncated(self, make_message):
        message = make_message(sender="a" * 80, subject="b" * 80)

        key = classification_cache_key(message)

        assert len(key) == 100
        assert key.startswith("ai:aaa")


class TestBuildAdapter:
    """Adapter construction from configuration."""

    def test_no_credentials_means_no_adapter(self):
        assert build_adapter(ClassifierConfig(api_key=None)) is None

    def test_adapter_uses_configured_model(self):
        adapter = build_adapter(ClassifierConfig(api_key="sk-test", model="gpt-4o-mini"))

        assert adapter.model_name == "gpt-4o-mini"
        assert adapter.provider_name == "OpenAI"


class TestClassificationService:
    """Cache-first classification with bounded retries."""

    @pytest.fixture
    def service_sleep(self, recording_sleep):
        return recording_sleep

    @pytest.fixture
    def limiter(self, clock, fake_sleep):
        return RateLimiter(RateLimitConfig(), clock, fake_sleep)

    @pytest.fixture
    def cache(self, clock):
        return CacheService(clock=clock)

    @pytest.fixture
    def adapter(self):
        adapter = Mock()
        adapter.complete.return_value = AI_RESPONSE
        adapter.provider_name = "OpenAI"
        adapter.model_name = "gpt-3.5-turbo"
        return adapter

    def make_service(self, cache, limiter, adapter, sleep):
        return ClassificationService(cache, limiter, ClassifierConfig(api_key="sk-test"), adapter, sleep)

    @pytest.mark.anyio
    async def test_parses_ai_response(self, cache, limiter, adapter, service_sleep, make_message):
        service = self.make_service(cache, limiter, adapter, service_sleep)

        result = await service.classify(make_message())

        assert result == ClassificationResult(
            is_junk=True,
            confidence=0.82,
            category=Category.NEWSLETTER,
            reasoning="Weekly digest from a mailing list",
            unsubscribe_method="header",
            source="ai",
        )

    @pytest.mark.anyio
    async def test_sends_system_and_user_prompts_in_json_mode(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        service = self.make_service(cache, limiter, adapter, service_sleep)

        await service.classify(make_message(sender="deals@shop.com", subject="Spring sale"))

        messages, temperature, max_tokens, json_mode = adapter.complete.call_args.args
        assert [m.role for m in messages] == [MessageRole.SYSTEM, MessageRole.USER]
        assert "deals@shop.com" in messages[1].content
        assert "Spring sale" in messages[1].content
        assert (temperature, max_tokens, json_mode) == (0.1, 300, True)

    @pytest.mark.anyio
    async def test_repeat_classification_hits_cache(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        """Classifying the same message twice calls the adapter once."""
        service = self.make_service(cache, limiter, adapter, service_sleep)
        message = make_message()

        first = await service.classify(message)
        second = await service.classify(message)

        assert first == second
        assert adapter.complete.call_count == 1
        assert service.calls == 1
        assert limiter.requests_in_window() == 1

    @pytest.mark.anyio
    async def test_without_adapter_uses_cached_mock(self, cache, limiter, service_sleep, make_message):
        service = ClassificationService(cache, limiter, ClassifierConfig(), None, service_sleep)
        message = make_message()

        result = await service.classify(message)

        assert result.source == "mock"
        assert cache.get("classification", classification_cache_key(message)) == result
        assert service.calls == 0
        assert service.available is False

    @pytest.mark.anyio
    async def test_rate_limit_retries_then_degrades(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        adapter.complete.side_effect = LLMRateLimitError("429 Too Many Requests")
        service = self.make_service(cache, limiter, adapter, service_sleep)
        message = make_message()

        result = await service.classify(message)

        assert service_sleep.calls == [2.0, 4.0, 8.0]
        assert adapter.complete.call_count == 4
        assert result.source == "fallback"
        assert service.fallbacks == 1
        assert limiter.failure_count == 4
        assert limiter.current_delay > RateLimitConfig().initial_request_delay

    @pytest.mark.anyio
    async def test_degraded_result_is_not_cached(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        adapter.complete.side_effect = [LLMConnectionError("down")] * 4 + [AI_RESPONSE]
        service = self.make_service(cache, limiter, adapter, service_sleep)
        message = make_message()

        degraded = await service.classify(message)
        assert cache.get("classification", classification_cache_key(message)) is MISS

        recovered = await service.classify(message)
        assert degraded.source == "fallback"
        assert degraded.degraded is True
        assert recovered.degraded is False
        assert recovered.source == "ai"

    @pytest.mark.anyio
    async def test_recovers_after_transient_failure(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        adapter.complete.side_effect = [LLMConnectionError("reset"), AI_RESPONSE]
        service = self.make_service(cache, limiter, adapter, service_sleep)

        result = await service.classify(make_message())

        assert result.source == "ai"
        assert service_sleep.calls == [2.0]
        assert limiter.failure_count == 0

    @pytest.mark.anyio
    async def test_authentication_error_is_not_retried(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        adapter.complete.side_effect = LLMAuthenticationError("bad key")
        service = self.make_service(cache, limiter, adapter, service_sleep)

        result = await service.classify(make_message())

        assert result.source == "fallback"
        assert adapter.complete.call_count == 1
        assert service_sleep.calls == []
        assert limiter.failure_count == 0

    @pytest.mark.anyio
    async def test_malformed_response_degrades(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        adapter.complete.return_value = "I think this is spam"
        service = self.make_service(cache, limiter, adapter, service_sleep)

        result = await service.classify(make_message())

        assert result.source == "fallback"
        assert adapter.complete.call_count == 1

    @pytest.mark.anyio
    async def test_success_eases_request_delay(
        self, cache, limiter, adapter, service_sleep, make_message
    ):
        service = self.make_service(cache, limiter, adapter, service_sleep)

        await service.classify(make_message())

        assert limiter.current_delay == pytest.approx(0.9)

    def test_health_reports_counters(self, cache, limiter, adapter, service_sleep):
        service = self.make_service(cache, limiter, adapter, service_sleep)

        health = service.health()

        assert health["available"] is True
        assert health["provider"] == "OpenAI"
        assert health["calls"] == 0
        assert health["rate_limiter"]["failure_count"] == 0


class TestResponseParsing:
    """Defaults and clamping for partial LLM responses."""

    def setup_method(self):
        self.service = ClassificationService(CacheService(), RateLimiter())

    def test_missing_fields_use_defaults(self):
        result = self.service._parse_response("{}")

        assert result.is_junk is False
        assert result.confidence == 0.5
        assert result.category == Category.LEGITIMATE
        assert result.reasoning == "No reasoning provided"
        assert result.unsubscribe_method == "none"

    def test_confidence_clamped(self):
        result = self.service._parse_response('{"confidence": 1.7}')

        assert result.confidence == 1.0

    def test_unknown_category_falls_back(self):
        result = self.service._parse_response('{"isJunk": true, "category": "junkmail"}')

        assert result.category == Category.LEGITIMATE

    def test_non_object_rejected(self):
        with pytest.raises(LLMResponseError):
            self.service._parse_response("[1, 2]")
