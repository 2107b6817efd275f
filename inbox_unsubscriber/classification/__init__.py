"""
Message classification: LLM adapters, heuristic fallback and the cached service.
"""

from .models import Category, ClassificationResult, PreprocessResult, Message, MessageRole
from .adapter import LLMAdapter
from .mock_classifier import MockClassifier
from .service import ClassificationService, build_adapter, classification_cache_key

__all__ = [
    'Category', 'ClassificationResult', 'PreprocessResult', 'Message', 'MessageRole',
    'LLMAdapter', 'MockClassifier', 'ClassificationService', 'build_adapter',
    'classification_cache_key'
]
