"""
Unsubscribe option analysis for a single message.

Sources, in order of trust:
- List-Unsubscribe header (RFC 2369), with List-Unsubscribe-Post (RFC 8058)
- HTML body links, or the plain-text body when no HTML part exists
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from ..message import MessageRecord
from .constants import (
    BODY_URL_PATTERNS, HEADER_HTTP_PATTERN, HEADER_MAILTO_PATTERN,
    HREF_KEYWORD_PATTERN, LINK_PRIORITY_KEYWORDS, MARKETING_INDICATORS
)
from .types import Complexity, UnsubscribeInfo, UnsubscribeMethod
from ...logging import PipelineLogger

TRACKING_PATH_PATTERN = re.compile(r'/u/\d+/')


class UnsubscribeLinkExtractor:
    """Extract and rank unsubscribe options from message headers and body."""

    def __init__(self):
        self.logger = PipelineLogger("link_extractor")

    def _unwrap_quoted_printable_lines(self, text: str) -> str:
        """
        Undo quoted-printable soft line breaks so wrapped URLs are whole again.

        Example:
            "https://example.com/unsubscribe?id=3D\\nabc123"
            becomes "https://example.com/unsubscribe?id=abc123"
        """
        text = re.sub(r'=\r?\n', '', text)
        return text.replace('=3D', '=')

    def parse_list_unsubscribe(self, header_value: str):
        """Return ``(http_url, mailto_target)`` from a List-Unsubscribe value."""
        http_match = HEADER_HTTP_PATTERN.search(header_value or '')
        mailto_match = HEADER_MAILTO_PATTERN.search(header_value or '')
        return (
            http_match.group(1).strip() if http_match else None,
            mailto_match.group(1).strip() if mailto_match else None,
        )

    def _is_candidate_href(self, href: str) -> bool:
        lowered = href.lower()
        if not (lowered.startswith('http') or lowered.startswith('mailto:')):
            return False
        return bool(HREF_KEYWORD_PATTERN.search(href) or TRACKING_PATH_PATTERN.search(href))

    def _extract_from_html(self, html_content: str) -> List[str]:
        links = []
        soup = BeautifulSoup(self._unwrap_quoted_printable_lines(html_content), 'html.parser')

        for a_tag in soup.find_all('a', href=True):
            href = a_tag['href'].strip()
            if href and self._is_candidate_href(href):
                links.append(href)

        links.extend(self._extract_from_text(soup.get_text(" ")))
        return links

    def _extract_from_text(self, text_content: str) -> List[str]:
        text = self._unwrap_quoted_printable_lines(text_content)
        links = []
        for pattern in BODY_URL_PATTERNS:
            links.extend(match.rstrip('.,;)') for match in pattern.findall(text))
        return links

    def extract_from_body(self, html_content: Optional[str], text_content: Optional[str]) -> List[str]:
        """Find unsubscribe links in the body, HTML preferred over plain text.

        Returns:
            Deduplicated links ranked unsubscribe > opt-out > remove > others,
            discovery order kept within each rank
        """
        if html_content:
            links = self._extract_from_html(html_content)
        elif text_content:
            links = self._extract_from_text(text_content)
        else:
            links = []
        return self.prioritize(list(dict.fromkeys(links)))

    def prioritize(self, links: List[str]) -> List[str]:
        def rank(link: str) -> int:
            lowered = link.lower()
            for index, keywords in enumerate(LINK_PRIORITY_KEYWORDS):
                if any(keyword in lowered for keyword in keywords):
                    return index
            return len(LINK_PRIORITY_KEYWORDS)

        # sorted() is stable, so discovery order survives within a rank
        return sorted(links, key=rank)

    def is_marketing_message(self, message: MessageRecord, body: str) -> bool:
        combined = f"{message.sender} {message.subject} {body}".lower()
        return any(indicator in combined for indicator in MARKETING_INDICATORS)

    def analyze(self, message: MessageRecord) -> UnsubscribeInfo:
        """Derive the unsubscribe options for ``message``."""
        header_value = message.get_header('List-Unsubscribe')
        header_url, header_mailto = self.parse_list_unsubscribe(header_value)
        post_value = message.get_header('List-Unsubscribe-Post') or None
        has_header = bool(header_url or header_mailto)

        text_body, html_body = message.decode_body()
        links = self.extract_from_body(html_body, text_body)

        if has_header or len(links) == 1:
            complexity = Complexity.SIMPLE
        elif len(links) > 1:
            complexity = Complexity.MEDIUM
        else:
            complexity = Complexity.COMPLEX

        if header_url:
            method = UnsubscribeMethod.LIST_HEADER
        elif header_mailto:
            method = UnsubscribeMethod.LIST_HEADER_MAILTO
        elif links:
            method = UnsubscribeMethod.BODY_LINK
        else:
            method = UnsubscribeMethod.NONE

        is_marketing = self.is_marketing_message(message, html_body or text_body)
        confidence = 0.3
        if has_header:
            confidence += 0.4
        if links:
            confidence += 0.2
        if is_marketing:
            confidence += 0.1

        info = UnsubscribeInfo(
            has_link=has_header or bool(links),
            links=tuple(links),
            method=method,
            complexity=complexity,
            confidence=min(round(confidence, 2), 0.95),
            header_url=header_url,
            header_mailto=header_mailto,
            list_unsubscribe_post=post_value,
            is_marketing=is_marketing,
        )
        self.logger.debug("Analyzed unsubscribe options", message_id=message.id,
                          method=method.value, link_count=len(links))
        return info
