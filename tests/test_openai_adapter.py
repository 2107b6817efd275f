"""
Tests for OpenAI error translation into the classifier error hierarchy.
"""

from unittest.mock import Mock

import httpx
import openai
import pytest

from inbox_unsubscriber.classification.models import Message, MessageRole
from inbox_unsubscriber.classification.openai_adapter import OpenAIAdapter
from inbox_unsubscriber.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
MESSAGES = [Message(MessageRole.USER, "classify this")]


def status_error(cls, status, headers=None):
    response = httpx.Response(status, headers=headers or {}, request=REQUEST)
    return cls(f"HTTP {status}", response=response, body=None)


class TestOpenAIAdapter:
    """Request shaping and error mapping with a mocked client."""

    def setup_method(self):
        self.adapter = OpenAIAdapter(api_key="sk-test-key")
        self.client = Mock()
        self.adapter._client = self.client

    def reply(self, content):
        choice = Mock()
        choice.message.content = content
        self.client.chat.completions.create.return_value = Mock(choices=[choice])

    def test_missing_key_rejected(self):
        with pytest.raises(LLMAuthenticationError):
            OpenAIAdapter(api_key="")

    def test_returns_content_and_requests_json(self):
        self.reply('{"isJunk": false}')

        content = self.adapter.complete(MESSAGES, temperature=0.1, max_tokens=300, json_mode=True)

        assert content == '{"isJunk": false}'
        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert kwargs["messages"] == [{"role": "user", "content": "classify this"}]
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_empty_choices_is_response_error(self):
        self.client.chat.completions.create.return_value = Mock(choices=[])

        with pytest.raises(LLMResponseError):
            self.adapter.complete(MESSAGES)

    def test_rate_limit_carries_retry_after(self):
        self.client.chat.completions.create.side_effect = status_error(
            openai.RateLimitError, 429, {"retry-after": "7"}
        )

        with pytest.raises(LLMRateLimitError) as exc_info:
            self.adapter.complete(MESSAGES)

        assert exc_info.value.retry_after == 7.0
        assert exc_info.value.retryable is True

    def test_authentication_error_not_retryable(self):
        self.client.chat.completions.create.side_effect = status_error(openai.AuthenticationError, 401)

        with pytest.raises(LLMAuthenticationError) as exc_info:
            self.adapter.complete(MESSAGES)

        assert exc_info.value.retryable is False

    def test_connection_error_retryable(self):
        self.client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(LLMConnectionError):
            self.adapter.complete(MESSAGES)

    def test_server_error_maps_to_connection_error(self):
        self.client.chat.completions.create.side_effect = status_error(openai.InternalServerError, 503)

        with pytest.raises(LLMConnectionError):
            self.adapter.complete(MESSAGES)

    def test_client_error_maps_to_response_error(self):
        self.client.chat.completions.create.side_effect = status_error(openai.BadRequestError, 400)

        with pytest.raises(LLMResponseError):
            self.adapter.complete(MESSAGES)
