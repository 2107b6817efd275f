"""
Custom exceptions for the inbox unsubscriber with error context.

Classification errors are split into retryable (rate limit, connection)
and permanent (authentication, malformed response) so the classification
service can decide between backing off and degrading immediately.
"""

from typing import Dict, Any, Optional


class InboxUnsubscriberError(Exception):
    """Base exception carrying optional context for debugging."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        base_message = super().__str__()
        if self.context:
            context_info = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_message} (context: {context_info})"
        return base_message


class ClassifierError(InboxUnsubscriberError):
    """Base exception for external classification errors."""

    retryable = False


class LLMConnectionError(ClassifierError):
    """Failed to connect to the LLM provider."""

    retryable = True


class LLMRateLimitError(ClassifierError):
    """Rate limit exceeded on the LLM provider.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the API.
    """

    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class LLMAuthenticationError(ClassifierError):
    """Authentication failed with the LLM provider."""


class LLMResponseError(ClassifierError):
    """LLM returned an invalid or unparseable response.

    Attributes:
        raw_response: The original response that failed to parse.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class ProviderError(InboxUnsubscriberError):
    """Message provider call failed."""


class NotAuthenticatedError(ProviderError):
    """Message provider has no usable credentials. Requires re-authentication."""
