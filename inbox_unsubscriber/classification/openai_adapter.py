"""OpenAI chat completions adapter."""

import logging
from typing import List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from ..exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)
from .adapter import LLMAdapter
from .models import Message

logger = logging.getLogger(__name__)


class OpenAIAdapter(LLMAdapter):
    """LLM adapter for OpenAI models with a lazily created client."""

    DEFAULT_MODEL = "gpt-3.5-turbo"

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: float = 30.0):
        if not api_key:
            raise LLMAuthenticationError("OpenAI API key not provided")
        self._api_key = api_key
        self._model = model or self.DEFAULT_MODEL
        self._timeout = timeout
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            # Retries are owned by the classification service
            self._client = OpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        return self._client

    def complete(
        self,
        messages: List[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        client = self._get_client()
        logger.debug("Sending request to OpenAI model=%s json_mode=%s", self._model, json_mode)

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[m.to_dict() for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except AuthenticationError as e:
            raise LLMAuthenticationError(f"OpenAI authentication failed: {e}") from e
        except RateLimitError as e:
            retry_after = None
            response_obj = getattr(e, "response", None)
            if response_obj is not None:
                retry_header = response_obj.headers.get("retry-after")
                if retry_header:
                    try:
                        retry_after = float(retry_header)
                    except ValueError:
                        retry_after = None
            raise LLMRateLimitError(f"OpenAI rate limit exceeded: {e}", retry_after) from e
        except (APIConnectionError, APITimeoutError) as e:
            raise LLMConnectionError(f"Failed to connect to OpenAI: {e}") from e
        except APIStatusError as e:
            if e.status_code >= 500:
                raise LLMConnectionError(f"OpenAI server error {e.status_code}: {e}") from e
            raise LLMResponseError(f"OpenAI API error {e.status_code}: {e}") from e

        if not response.choices:
            raise LLMResponseError("No choices in OpenAI response")
        content = response.choices[0].message.content
        if content is None:
            raise LLMResponseError("Empty content in OpenAI response")
        return content

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return "OpenAI"
