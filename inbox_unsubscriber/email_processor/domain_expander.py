"""
Domain expansion: pull every inbox message from a confirmed-junk sender domain.

One expander lives for one scan. It remembers which domains it already
expanded and which message ids it already returned, so repeated requests
within the scan never yield duplicates.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from ..services.cache import CacheService, MISS
from .gmail_client import MessageProvider
from .message import MessageRecord

logger = logging.getLogger(__name__)


def domain_query(domain: str) -> str:
    return f"in:inbox from:@{domain}"


class DomainExpander:
    """Scoped domain search with per-scan deduplication.

    Args:
        provider: Message provider to search
        cache: Shared cache; expansion results go into the ``domain`` namespace
        max_results: Upper bound on messages fetched per domain
    """

    def __init__(self, provider: MessageProvider, cache: CacheService, max_results: int = 500):
        self.provider = provider
        self.cache = cache
        self.max_results = max_results
        self.expanded_domains: Set[str] = set()
        self.seen_ids: Set[str] = set()
        self.failed_domains: Set[str] = set()

    def mark_seen(self, message_ids: Iterable[str]) -> None:
        """Exclude ids already held by the scan from future expansion results."""
        self.seen_ids.update(message_ids)

    async def _search_domain(self, domain: str) -> List[MessageRecord]:
        cached = self.cache.get_cached_domain_messages(domain)
        if cached is not MISS:
            return cached
        messages = await self.provider.search(domain_query(domain), self.max_results)
        self.cache.cache_domain_messages(domain, messages)
        return messages

    async def expand(self, domain: str) -> List[MessageRecord]:
        """Return the not-yet-seen messages from ``domain``.

        A domain is searched at most once per expander; later calls return [].
        Failures are logged and yield [].
        """
        key = domain.lower()
        if key in self.expanded_domains or key == 'unknown':
            return []
        self.expanded_domains.add(key)

        try:
            messages = await self._search_domain(key)
        except Exception as e:
            self.failed_domains.add(key)
            logger.error(f"Domain expansion failed for {key}: {e}")
            return []

        fresh: List[MessageRecord] = []
        for message in messages:
            if message.id in self.seen_ids:
                continue
            self.seen_ids.add(message.id)
            fresh.append(message)
        logger.info(f"Expanded {key}: {len(fresh)} new of {len(messages)} found")
        return fresh

    async def expand_many(
        self,
        domains: Iterable[str],
        concurrency: int = 3,
        on_domain_done: Optional[Callable[[str, int], None]] = None,
    ) -> Dict[str, List[MessageRecord]]:
        """Expand domains in batches of ``concurrency``.

        Args:
            domains: Domains to expand; duplicates are ignored
            concurrency: Domains searched in parallel per batch
            on_domain_done: Called with (domain, new message count) as each finishes

        Returns:
            Mapping of domain to its newly found messages
        """
        unique = list(dict.fromkeys(d.lower() for d in domains))
        results: Dict[str, List[MessageRecord]] = {}

        async def run(domain: str) -> None:
            found = await self.expand(domain)
            results[domain] = found
            if on_domain_done:
                on_domain_done(domain, len(found))

        for start in range(0, len(unique), max(concurrency, 1)):
            batch = unique[start:start + max(concurrency, 1)]
            await asyncio.gather(*(run(domain) for domain in batch))
        return results
