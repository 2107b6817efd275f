"""
Unsubscribe analysis and resolution.

- Link extraction from List-Unsubscribe headers and message bodies
- Priority-ordered strategy chain (header, single link, browser, manual)
- Resolver tracking per-message resolution state
"""

from .extractors import UnsubscribeLinkExtractor
from .resolver import UnsubscribeResolver
from .strategies import (
    UnsubscribeStrategy, default_strategies, list_header_strategy,
    simple_link_strategy, browser_automation_strategy, manual_fallback_strategy
)
from .types import (
    UnsubscribeInfo, UnsubscribeResult, BulkUnsubscribeResult,
    UnsubscribeMethod, Complexity, ResolutionState
)

__all__ = [
    'UnsubscribeLinkExtractor',
    'UnsubscribeResolver',
    'UnsubscribeStrategy', 'default_strategies', 'list_header_strategy',
    'simple_link_strategy', 'browser_automation_strategy', 'manual_fallback_strategy',
    'UnsubscribeInfo', 'UnsubscribeResult', 'BulkUnsubscribeResult',
    'UnsubscribeMethod', 'Complexity', 'ResolutionState'
]
