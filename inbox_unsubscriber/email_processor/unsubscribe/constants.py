"""
Shared patterns and keywords for unsubscribe link analysis.
"""

import re
from typing import List, Pattern, Tuple

# List-Unsubscribe header targets
HEADER_HTTP_PATTERN: Pattern = re.compile(r'<(https?://[^>]+)>', re.IGNORECASE)
HEADER_MAILTO_PATTERN: Pattern = re.compile(r'<mailto:([^>]+)>', re.IGNORECASE)

UNSUBSCRIBE_KEYWORD_RE = r'(?:unsubscribe|unsub|opt-out|optout|remove|preference)'

# Candidate link patterns in body text; href values are handled by the HTML parser
BODY_URL_PATTERNS: List[Pattern] = [
    re.compile(r'https?://[^\s<>"\']*' + UNSUBSCRIBE_KEYWORD_RE + r'[^\s<>"\']*', re.IGNORECASE),
    re.compile(r'https?://[^\s<>"\']*/u/\d+/[^\s<>"\']*', re.IGNORECASE),
    re.compile(r'mailto:[^\s<>"\']*unsubscribe[^\s<>"\']*', re.IGNORECASE),
]

HREF_KEYWORD_PATTERN: Pattern = re.compile(UNSUBSCRIBE_KEYWORD_RE, re.IGNORECASE)

# Earlier entries rank higher; links matching none keep discovery order after these
LINK_PRIORITY_KEYWORDS: Tuple[Tuple[str, ...], ...] = (
    ('unsubscribe',),
    ('opt-out', 'optout'),
    ('remove',),
)

MARKETING_INDICATORS: Tuple[str, ...] = (
    'noreply', 'no-reply', 'newsletter', 'marketing',
    'promo', 'deals', 'offer', 'sale', 'discount',
    'update', 'news', 'unsubscribe'
)
