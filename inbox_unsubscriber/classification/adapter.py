"""Abstract interface for LLM adapters."""

from abc import ABC, abstractmethod
from typing import List

from .models import Message


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters.

    Implementations translate provider-specific errors into the
    ``ClassifierError`` hierarchy so the classification service can tell
    retryable failures from permanent ones.
    """

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Send messages to the LLM and get a completion.

        Args:
            messages: List of conversation messages.
            temperature: Sampling temperature (0.0 = deterministic).
            max_tokens: Maximum tokens in response.
            json_mode: If True, request JSON-formatted output.

        Returns:
            The LLM's response text.

        Raises:
            LLMConnectionError: Failed to connect to provider.
            LLMRateLimitError: Rate limit exceeded.
            LLMAuthenticationError: Invalid credentials.
            LLMResponseError: Invalid response from provider.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the name of the model being used."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the LLM provider."""
