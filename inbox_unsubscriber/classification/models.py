"""Data models for message classification."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

FALLBACK_SOURCE = "fallback"


class Category(Enum):
    """Classification category for a message."""

    MARKETING = "marketing"
    NEWSLETTER = "newsletter"
    PROMOTIONAL = "promotional"
    SPAM = "spam"
    LEGITIMATE = "legitimate"
    UNKNOWN = "unknown"

    @property
    def is_junk(self) -> bool:
        return self in (Category.MARKETING, Category.NEWSLETTER, Category.PROMOTIONAL, Category.SPAM)

    @classmethod
    def parse(cls, value: Any, default: 'Category') -> 'Category':
        """Map a raw string onto a category, falling back to ``default``."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


class MessageRole(Enum):
    """LLM message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A message in an LLM conversation."""

    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Serialize message to dictionary for API calls."""
        return {
            "role": self.role.value,
            "content": self.content,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one message.

    Attributes:
        is_junk: Whether the message is promotional/junk.
        confidence: Confidence in [0, 1].
        category: Category of the message.
        reasoning: Short human-readable explanation.
        unsubscribe_method: Method hint from the classifier (link|header|reply|none).
        source: Which stage produced the result (preprocessor, ai, mock, fallback,
            expansion, cache). ``fallback`` is the heuristic result given after
            the external service failed.
    """

    is_junk: bool
    confidence: float
    category: Category
    reasoning: str
    unsubscribe_method: str = "none"
    source: str = "ai"

    @property
    def degraded(self) -> bool:
        """True for a stand-in result that must not be persisted."""
        return self.source == FALLBACK_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_junk": self.is_junk,
            "confidence": self.confidence,
            "category": self.category.value,
            "reasoning": self.reasoning,
            "unsubscribe_method": self.unsubscribe_method,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClassificationResult':
        return cls(
            is_junk=bool(data.get("is_junk", False)),
            confidence=float(data.get("confidence", 0.0)),
            category=Category.parse(data.get("category"), Category.UNKNOWN),
            reasoning=data.get("reasoning", ""),
            unsubscribe_method=data.get("unsubscribe_method", "none"),
            source=data.get("source", "cache"),
        )


@dataclass(frozen=True)
class PreprocessResult:
    """Outcome of the zero-cost heuristic pass."""

    needs_ai: bool
    confidence: float
    category: Category
    reasoning: str

    def to_classification(self) -> ClassificationResult:
        """Convert a decided (``needs_ai=False``) result into a classification."""
        return ClassificationResult(
            is_junk=self.category.is_junk,
            confidence=self.confidence,
            category=self.category,
            reasoning=self.reasoning,
            source="preprocessor",
        )
