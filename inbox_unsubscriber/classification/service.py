"""
Classification service: cache, rate limiter and LLM adapter in one call.

``classify`` never raises. Without credentials it answers from the
deterministic mock classifier. Once retries are exhausted it returns the
mock answer marked ``source="fallback"``, which nothing caches.
"""

import asyncio
import json
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config.settings import ClassifierConfig
from ..email_processor.message import MessageRecord
from ..exceptions import ClassifierError, LLMRateLimitError, LLMResponseError
from ..services.cache import CacheService, MISS
from ..services.rate_limiter import RateLimiter
from .adapter import LLMAdapter
from .mock_classifier import MockClassifier
from .openai_adapter import OpenAIAdapter
from .models import FALLBACK_SOURCE, Category, ClassificationResult, Message, MessageRole
from .prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = 'classification'
CACHE_KEY_LENGTH = 100
SNIPPET_PROMPT_LENGTH = 500


def classification_cache_key(message: MessageRecord) -> str:
    """Cache key built from sender and subject, truncated to 100 characters."""
    return f"ai:{message.sender}:{message.subject}"[:CACHE_KEY_LENGTH]


def build_adapter(config: ClassifierConfig) -> Optional[LLMAdapter]:
    """Create the configured adapter, or None when no credentials are set."""
    if not config.has_credentials:
        return None
    return OpenAIAdapter(api_key=config.api_key, model=config.model)


class ClassificationService:
    """Classify messages through the external LLM with caching and backoff.

    Args:
        cache: Shared cache layer
        rate_limiter: Shared limiter for external calls
        config: Model and retry settings
        adapter: LLM adapter; None means mock-only operation
        sleep: Awaitable sleep used between retries
    """

    def __init__(
        self,
        cache: CacheService,
        rate_limiter: RateLimiter,
        config: Optional[ClassifierConfig] = None,
        adapter: Optional[LLMAdapter] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.config = config or ClassifierConfig()
        self.adapter = adapter
        self.sleep = sleep
        self.mock = MockClassifier()
        self.calls = 0
        self.fallbacks = 0

    @property
    def available(self) -> bool:
        return self.adapter is not None

    async def classify(self, message: MessageRecord) -> ClassificationResult:
        key = classification_cache_key(message)
        cached = self.cache.get(CACHE_NAMESPACE, key)
        if cached is not MISS:
            return cached

        if self.adapter is None:
            result = self.mock.classify(message)
            self.cache.set(CACHE_NAMESPACE, key, result)
            return result

        result = await self._classify_remote(message)
        if result is None:
            self.fallbacks += 1
            return replace(self.mock.classify(message), source=FALLBACK_SOURCE)

        self.cache.set(CACHE_NAMESPACE, key, result)
        return result

    async def _classify_remote(self, message: MessageRecord) -> Optional[ClassificationResult]:
        """Call the adapter with retries; None means degrade to the mock."""
        messages = self._build_messages(message)
        retry_delays = self.config.retry_delays
        attempt = 0

        while True:
            await self.rate_limiter.wait_if_needed()
            self.calls += 1
            try:
                raw = await asyncio.to_thread(
                    self.adapter.complete,
                    messages,
                    self.config.temperature,
                    self.config.max_tokens,
                    True,
                )
                result = self._parse_response(raw)
            except ClassifierError as e:
                if e.retryable:
                    self.rate_limiter.record_failure(e)
                    if isinstance(e, LLMRateLimitError):
                        self.rate_limiter.grow_delay()
                if not e.retryable or attempt >= len(retry_delays):
                    logger.warning(f"Classification failed for {message.id}, using heuristic result: {e}")
                    return None
                delay = retry_delays[attempt]
                attempt += 1
                logger.info(f"Retrying classification for {message.id} in {delay}s (attempt {attempt})")
                await self.sleep(delay)
                continue
            except Exception as e:
                logger.exception(f"Unexpected classification error for {message.id}: {e}")
                return None

            self.rate_limiter.record_success()
            self.rate_limiter.ease_delay()
            return result

    def _build_messages(self, message: MessageRecord):
        user_prompt = USER_PROMPT_TEMPLATE.format(
            sender=message.sender,
            subject=message.subject,
            snippet=message.snippet[:SNIPPET_PROMPT_LENGTH],
        )
        return [
            Message(MessageRole.SYSTEM, SYSTEM_PROMPT),
            Message(MessageRole.USER, user_prompt),
        ]

    def _parse_response(self, response: str) -> ClassificationResult:
        """Parse the LLM JSON response.

        Raises:
            LLMResponseError: Response is not a JSON object.
        """
        try:
            data = json.loads(response)
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Failed to parse LLM response as JSON: {e}", raw_response=response) from e
        if not isinstance(data, dict):
            raise LLMResponseError("LLM response is not a JSON object", raw_response=response)

        try:
            confidence = float(data.get('confidence', 0.5))
        except (TypeError, ValueError):
            confidence = 0.5

        return ClassificationResult(
            is_junk=bool(data.get('isJunk', False)),
            confidence=max(0.0, min(confidence, 1.0)),
            category=Category.parse(data.get('category'), Category.LEGITIMATE),
            reasoning=data.get('reasoning') or 'No reasoning provided',
            unsubscribe_method=data.get('unsubscribeMethod') or 'none',
            source='ai',
        )

    def health(self) -> Dict[str, Any]:
        return {
            'available': self.available,
            'provider': self.adapter.provider_name if self.adapter else 'mock',
            'model': self.adapter.model_name if self.adapter else None,
            'calls': self.calls,
            'fallbacks': self.fallbacks,
            'rate_limiter': self.rate_limiter.state(),
            'cache': self.cache.stats().get(CACHE_NAMESPACE, {}),
        }
