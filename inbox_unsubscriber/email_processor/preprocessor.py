"""
Zero-cost heuristic classification.

Obvious junk and obvious legitimate mail are decided from sender, subject
and snippet patterns alone; only ambiguous messages go on to the paid
classification service.
"""

import re
import time
from typing import List, Optional, Pattern

from ..classification.models import Category, PreprocessResult
from .message import MessageRecord, extract_address, extract_domain

OBVIOUS_JUNK_PATTERNS: List[Pattern] = [
    # Sender patterns
    re.compile(r'noreply@', re.IGNORECASE),
    re.compile(r'no-reply@', re.IGNORECASE),
    re.compile(r'donotreply@', re.IGNORECASE),
    re.compile(r'newsletter@', re.IGNORECASE),
    re.compile(r'marketing@', re.IGNORECASE),
    re.compile(r'promo@', re.IGNORECASE),
    re.compile(r'notification@', re.IGNORECASE),
    re.compile(r'updates@', re.IGNORECASE),
    re.compile(r'info@', re.IGNORECASE),
    re.compile(r'support@.*\.(shopify|mailchimp|constantcontact|sendgrid)', re.IGNORECASE),
    # Subject patterns
    re.compile(r'unsubscribe', re.IGNORECASE),
    re.compile(r'promotional', re.IGNORECASE),
    re.compile(r'newsletter', re.IGNORECASE),
    re.compile(r'sale|deal|discount|offer|coupon', re.IGNORECASE),
    re.compile(r'limited time|act now|urgent|expires', re.IGNORECASE),
    re.compile(r'free|save \$|% off', re.IGNORECASE),
    re.compile(r'click here|learn more', re.IGNORECASE),
]

# Matched against the bare sender address
LEGITIMATE_ADDRESS_PATTERNS: List[Pattern] = [
    re.compile(r'@(gmail|yahoo|hotmail|outlook|icloud)\.com$', re.IGNORECASE),
    re.compile(r'@(amazon|apple|google|microsoft|paypal|bank|creditcard)\.com$', re.IGNORECASE),
]

# Matched against sender header and subject
LEGITIMATE_TEXT_PATTERNS: List[Pattern] = [
    re.compile(r'security alert|password|account|verification', re.IGNORECASE),
]

MARKETING_DOMAINS = (
    'mailchimp.com',
    'constantcontact.com',
    'sendgrid.net',
    'mailgun.org',
    'amazonses.com',
    'sparkpostmail.com',
    'mandrill.com',
)

PROMO_WORDS = ('sale', 'deal', 'offer', 'discount', 'free', 'limited time')
EXTENDED_PROMO_WORDS = PROMO_WORDS + ('act now', 'expires')
AUTOMATION_PATTERNS = ('newsletter', 'automated', 'no-reply', 'noreply', 'donotreply')

JUNK_THRESHOLD = 3
LEGITIMATE_THRESHOLD = 2


def is_marketing_domain(domain: str) -> bool:
    return any(d in domain for d in MARKETING_DOMAINS)


class EmailPreprocessor:
    """Rule engine deciding obvious cases without an external call."""

    def junk_score(self, message: MessageRecord) -> int:
        sender = message.sender
        subject = message.subject
        text = f"{subject} {message.snippet}".lower()

        score = sum(
            1 for pattern in OBVIOUS_JUNK_PATTERNS
            if pattern.search(sender) or pattern.search(subject)
        )
        if is_marketing_domain(extract_domain(sender)):
            score += 2
        if 'unsubscribe' in message.snippet.lower():
            score += 1
        score += min(sum(1 for word in PROMO_WORDS if word in text), 2)
        return score

    def legitimate_score(self, message: MessageRecord) -> int:
        sender = message.sender
        address = extract_address(sender) or ''
        score = sum(1 for pattern in LEGITIMATE_ADDRESS_PATTERNS if pattern.search(address))
        score += sum(
            1 for pattern in LEGITIMATE_TEXT_PATTERNS
            if pattern.search(sender) or pattern.search(message.subject)
        )
        lowered = sender.lower()
        if 'noreply' not in lowered and 'no-reply' not in lowered:
            score += 1
        return score

    def preprocess(self, message: MessageRecord) -> PreprocessResult:
        """Classify ``message`` or flag it for the external classifier."""
        junk = self.junk_score(message)
        if junk >= JUNK_THRESHOLD:
            return PreprocessResult(
                needs_ai=False,
                confidence=min(0.7 + (junk - JUNK_THRESHOLD) * 0.1, 0.95),
                category=Category.MARKETING,
                reasoning=f"High junk score ({junk}) based on sender/subject patterns",
            )

        legitimate = self.legitimate_score(message)
        if legitimate >= LEGITIMATE_THRESHOLD:
            return PreprocessResult(
                needs_ai=False,
                confidence=min(0.6 + legitimate * 0.1, 0.9),
                category=Category.LEGITIMATE,
                reasoning=f"High legitimate score ({legitimate}) based on sender patterns",
            )

        return PreprocessResult(
            needs_ai=True,
            confidence=0.0,
            category=Category.UNKNOWN,
            reasoning="Requires AI analysis for accurate classification",
        )

    def confidence_score(
        self,
        message: MessageRecord,
        group_size: int = 1,
        has_unsubscribe_link: bool = False,
        now: Optional[float] = None,
    ) -> float:
        """Junk confidence for a message pulled in by domain expansion.

        Args:
            message: Message to score
            group_size: Number of messages seen from the same sender
            has_unsubscribe_link: Whether the sender offers an unsubscribe link
            now: Current epoch seconds, defaults to ``time.time()``

        Returns:
            Confidence clamped to [0.3, 0.95]
        """
        sender = message.sender.lower()
        subject = message.subject.lower()
        snippet = message.snippet.lower()

        confidence = 0.5
        confidence += min(self.junk_score(message) * 0.08, 0.3)
        if group_size > 1:
            confidence += min((group_size - 1) * 0.05, 0.2)
        if has_unsubscribe_link:
            confidence += 0.1
        if is_marketing_domain(extract_domain(message.sender)):
            confidence += 0.15

        if message.internal_date is not None:
            now = time.time() if now is None else now
            age_days = (now - message.internal_date / 1000) / 86400
            if age_days > 30:
                confidence += min(age_days / 365 * 0.1, 0.1)

        promo_count = sum(1 for word in EXTENDED_PROMO_WORDS if word in subject or word in snippet)
        confidence += min(promo_count * 0.03, 0.15)

        if any(p in sender or p in subject for p in AUTOMATION_PATTERNS):
            confidence += 0.1

        return max(0.3, min(0.95, confidence))
