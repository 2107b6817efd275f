"""
Deterministic heuristic classifier used when the external service is
unavailable or unconfigured.

Shares the preprocessor's rule family but uses its own, smaller indicator
set: a message is junk once two indicators fire.
"""

import re
from typing import List

from ..email_processor.message import MessageRecord
from .models import Category, ClassificationResult

INDICATORS = {
    'noreply': ('from', re.compile(r'noreply|no-reply|donotreply', re.IGNORECASE)),
    'newsletter': ('from_subject', re.compile(r'newsletter|news|update|digest', re.IGNORECASE)),
    'marketing': ('subject', re.compile(r'marketing|promo|offer|deal|sale|discount', re.IGNORECASE)),
    'unsubscribe': ('snippet', re.compile(r'unsubscribe|opt-out|preferences', re.IGNORECASE)),
    'automated': ('from', re.compile(r'automated|automatic|system', re.IGNORECASE)),
}

JUNK_THRESHOLD = 2


class MockClassifier:
    """Indicator-count classifier with no external calls."""

    def matched_indicators(self, message: MessageRecord) -> List[str]:
        fields = {
            'from': message.sender,
            'subject': message.subject,
            'snippet': message.snippet,
            'from_subject': f"{message.sender} {message.subject}",
        }
        return [
            name for name, (field_name, pattern) in INDICATORS.items()
            if pattern.search(fields[field_name])
        ]

    def classify(self, message: MessageRecord) -> ClassificationResult:
        matched = self.matched_indicators(message)
        count = len(matched)
        is_junk = count >= JUNK_THRESHOLD

        # A single indicator never yields a junk category
        if not is_junk:
            category = Category.LEGITIMATE
        elif 'newsletter' in matched:
            category = Category.NEWSLETTER
        elif 'marketing' in matched:
            category = Category.MARKETING
        else:
            category = Category.PROMOTIONAL

        if matched:
            reasoning = f"Heuristic analysis: {count} indicators ({', '.join(matched)})"
        else:
            reasoning = "Heuristic analysis: no junk indicators"

        return ClassificationResult(
            is_junk=is_junk,
            confidence=min(0.3 + count * 0.15, 0.9),
            category=category,
            reasoning=reasoning,
            unsubscribe_method='link' if 'unsubscribe' in matched else 'none',
            source='mock',
        )
