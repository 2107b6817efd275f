"""
Bulk scanner: discovery, classification, expansion and grouping in one pass.

A scan runs the discovery queries, decides each new message with the
heuristic preprocessor where possible, sends the rest through the
classification service in fixed-size batches, expands every confirmed
junk domain and returns a sender-grouped report. Unsubscribing and
archiving a sender is a separate, user-triggered call.
"""

import asyncio
import contextlib
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..classification.models import Category, ClassificationResult
from ..classification.service import ClassificationService
from ..config.settings import ScanConfig
from ..database.analysis_cache import AnalysisCache
from ..database.skip_list import SkipListStore
from ..exceptions import NotAuthenticatedError, ProviderError
from ..logging import PipelineLogger
from ..services.cache import CacheService
from .domain_expander import DomainExpander
from .gmail_client import MessageProvider
from .message import MessageRecord
from .preprocessor import EmailPreprocessor
from .progress import ScanProgress, ScanProgressTracker, ScanStatus
from .unsubscribe.resolver import UnsubscribeResolver
from .unsubscribe.types import BulkUnsubscribeResult, UnsubscribeInfo, UnsubscribeResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageSummary:
    id: str
    sender: str
    subject: str
    date: str
    classification: ClassificationResult
    unsubscribe_info: Optional[UnsubscribeInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'sender': self.sender,
            'subject': self.subject,
            'date': self.date,
            'classification': self.classification.to_dict(),
            'unsubscribe_info': self.unsubscribe_info.to_dict() if self.unsubscribe_info else None,
        }


@dataclass
class SenderGroup:
    """Junk messages from one sender domain, built fresh per scan."""

    domain: str
    sender_name: str
    messages: List[MessageSummary] = field(default_factory=list)
    total_confidence: float = 0.0
    has_unsubscribe: bool = False

    def add(self, summary: MessageSummary) -> None:
        self.messages.append(summary)
        self.total_confidence += summary.classification.confidence
        if summary.unsubscribe_info and summary.unsubscribe_info.has_link:
            self.has_unsubscribe = True

    @property
    def count(self) -> int:
        return len(self.messages)

    @property
    def email_ids(self) -> List[str]:
        return [m.id for m in self.messages]

    @property
    def average_confidence(self) -> int:
        """Mean confidence with a small group-size boost, as an integer percent."""
        if not self.messages:
            return 0
        average = self.total_confidence / self.count
        boost = min((self.count - 1) * 0.02, 0.1)
        return round(min(average + boost, 0.95) * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'sender_name': self.sender_name,
            'count': self.count,
            'average_confidence': self.average_confidence,
            'has_unsubscribe': self.has_unsubscribe,
            'email_ids': self.email_ids,
            'messages': [m.to_dict() for m in self.messages],
        }


@dataclass
class ScanReport:
    total: int
    processed: int
    junk_messages: int
    expanded_messages: int
    groups: List[SenderGroup]
    stats: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'processed': self.processed,
            'junk_messages': self.junk_messages,
            'expanded_messages': self.expanded_messages,
            'groups': [g.to_dict() for g in self.groups],
            'stats': self.stats,
        }


@dataclass
class _Analysis:
    message: MessageRecord
    classification: ClassificationResult
    unsubscribe_info: Optional[UnsubscribeInfo] = None


class BulkScanner:
    """
    End-to-end scan over a message provider.

    Args:
        provider: Inbox access
        classifier: Cached, rate-limited classification service
        resolver: Unsubscribe strategy chain
        cache: Shared cache layer, used for domain expansion
        preprocessor: Heuristic pass, defaults to ``EmailPreprocessor``
        analysis_cache: Optional persisted analysis cache
        skip_list: Optional skip list; skipped domains are never reported
        config: Batch sizes, delays and limits
        sleep: Awaitable sleep for inter-batch delays
        clock: Wall clock for progress timestamps
        dry_run: If True, bulk unsubscribe reports what it would archive
            instead of archiving
    """

    def __init__(
        self,
        provider: MessageProvider,
        classifier: ClassificationService,
        resolver: UnsubscribeResolver,
        cache: CacheService,
        preprocessor: Optional[EmailPreprocessor] = None,
        analysis_cache: Optional[AnalysisCache] = None,
        skip_list: Optional[SkipListStore] = None,
        config: Optional[ScanConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        dry_run: bool = False,
    ):
        self.provider = provider
        self.classifier = classifier
        self.resolver = resolver
        self.cache = cache
        self.preprocessor = preprocessor or EmailPreprocessor()
        self.analysis_cache = analysis_cache
        self.skip_list = skip_list
        self.config = config or ScanConfig()
        self.sleep = sleep
        self.clock = clock
        self.dry_run = dry_run
        self.pipeline_logger = PipelineLogger("bulk_scanner")

    async def scan(self, tracker: Optional[ScanProgressTracker] = None) -> ScanReport:
        """Run one full scan.

        Raises:
            NotAuthenticatedError: Provider has no usable credentials.
        """
        tracker = tracker or ScanProgressTracker()
        progress = ScanProgress(status=ScanStatus.STARTING, started_at=self.clock())
        tracker.publish(progress)

        # The cache sweeps on its own timer for as long as the scan runs
        sweeper = asyncio.create_task(self.cache.run_eviction_loop(self.config.cache_sweep_interval))
        try:
            with self.pipeline_logger.timed("scan"):
                report = await self._run_scan(progress, tracker)
        except Exception as e:
            progress.status = ScanStatus.ERROR
            progress.error = str(e) if not isinstance(e, NotAuthenticatedError) else "Not authenticated"
            progress.finished_at = self.clock()
            tracker.publish(progress)
            raise
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

        progress.status = ScanStatus.COMPLETE
        progress.finished_at = self.clock()
        tracker.publish(progress)
        return report

    async def _run_scan(self, progress: ScanProgress, tracker: ScanProgressTracker) -> ScanReport:
        started = time.monotonic()
        calls_before = self.classifier.calls

        if not self.provider.is_authenticated():
            raise NotAuthenticatedError("Not authenticated")

        candidates = await self._discover()
        progress.total = len(candidates)
        progress.status = ScanStatus.PREPROCESSING
        tracker.publish(progress)

        analyses: Dict[str, _Analysis] = {}
        queue: List[MessageRecord] = []
        cache_hits = 0
        new_messages = 0
        over_limit = 0

        for message in candidates:
            cached = self.analysis_cache.get(message) if self.analysis_cache else None
            if cached is not None:
                classification, info = cached
                analyses[message.id] = _Analysis(message, classification, info)
                cache_hits += 1
                progress.processed += 1
                continue

            if new_messages >= self.config.max_new_messages:
                over_limit += 1
                continue
            new_messages += 1

            result = self.preprocessor.preprocess(message)
            if result.needs_ai:
                queue.append(message)
                continue
            analysis = self._record(message, result.to_classification())
            if analysis is not None:
                analyses[message.id] = analysis
                progress.processed += 1
            progress.preprocessed += 1
        tracker.publish(progress)

        if over_limit:
            logger.info(f"Deferred {over_limit} new messages beyond the per-scan limit")

        progress.status = ScanStatus.AI_ANALYSIS
        batch_size = max(self.config.batch_size, 1)
        progress.total_batches = math.ceil(len(queue) / batch_size)
        tracker.publish(progress)

        for index in range(progress.total_batches):
            if index > 0:
                await self.sleep(self.config.batch_delay)
            batch = queue[index * batch_size:(index + 1) * batch_size]
            progress.current_batch = index + 1
            tracker.publish(progress)

            results = await asyncio.gather(*(self._classify(m) for m in batch))
            for analysis in results:
                if analysis is not None:
                    analyses[analysis.message.id] = analysis
                    progress.processed += 1
            progress.ai_calls = self.classifier.calls - calls_before
            tracker.publish(progress)

        junk = [a for a in analyses.values() if a.classification.is_junk]
        skipped = self.skip_list.skipped_domains() if self.skip_list else set()

        progress.status = ScanStatus.EXPANDING
        expanded, failed_domains = await self._expand(junk, candidates, skipped, progress, tracker)

        groups = self.group_by_sender(junk + expanded, skipped)

        stats = {
            'cache_hits': cache_hits,
            'preprocessed': progress.preprocessed,
            'ai_analyzed': len(queue),
            'total_ai_calls': self.classifier.calls - calls_before,
            'deferred': over_limit,
            'processing_time': round(time.monotonic() - started, 3),
            'failed_domains': failed_domains,
            'classifier': self.classifier.health(),
        }
        logger.info(f"Scan complete: {len(junk)} junk, {len(expanded)} expanded, {len(groups)} senders")
        return ScanReport(
            total=len(candidates),
            processed=progress.processed,
            junk_messages=len(junk),
            expanded_messages=len(expanded),
            groups=groups,
            stats=stats,
        )

    async def _discover(self) -> List[MessageRecord]:
        """Run every discovery query, deduplicating by message id."""
        found: Dict[str, MessageRecord] = {}
        for query in self.config.discovery_queries:
            try:
                messages = await self.provider.search(query, self.config.discovery_max_results)
            except NotAuthenticatedError:
                raise
            except ProviderError as e:
                logger.error(f"Discovery query '{query}' failed: {e}")
                continue
            for message in messages:
                found.setdefault(message.id, message)
        logger.info(f"Discovered {len(found)} candidate messages")
        return list(found.values())

    def _record(self, message: MessageRecord, classification: ClassificationResult) -> Optional[_Analysis]:
        """Attach unsubscribe analysis to junk and persist.

        Fallback results are kept out of the analysis cache so the next scan
        asks the classification service again. Failures isolate to the message.
        """
        try:
            info = self.resolver.analyze(message) if classification.is_junk else None
        except Exception as e:
            logger.error(f"Unsubscribe analysis failed for {message.id}: {e}")
            return None
        if self.analysis_cache and not classification.degraded:
            self.analysis_cache.put(message, classification, info)
        return _Analysis(message, classification, info)

    async def _classify(self, message: MessageRecord) -> Optional[_Analysis]:
        classification = await self.classifier.classify(message)
        return self._record(message, classification)

    async def _expand(
        self,
        junk: List[_Analysis],
        candidates: List[MessageRecord],
        skipped: set,
        progress: ScanProgress,
        tracker: ScanProgressTracker,
    ) -> Tuple[List[_Analysis], List[str]]:
        """Expand confirmed junk domains; returns the new analyses and the domains whose search failed."""
        by_domain: Dict[str, List[_Analysis]] = {}
        for analysis in junk:
            domain = analysis.message.sender_domain
            if domain in skipped or domain == 'unknown':
                continue
            by_domain.setdefault(domain, []).append(analysis)

        progress.total_domains = len(by_domain)
        progress.expanding_domains = 0
        tracker.publish(progress)

        expander = DomainExpander(self.provider, self.cache, self.config.expansion_max_results)
        expander.mark_seen(m.id for m in candidates)

        def on_domain_done(domain: str, count: int) -> None:
            progress.expanding_domains += 1
            progress.expanded_messages += count
            tracker.publish(progress)

        results = await expander.expand_many(
            by_domain.keys(), self.config.expansion_concurrency, on_domain_done
        )

        expanded: List[_Analysis] = []
        for domain, messages in results.items():
            if not messages:
                continue
            seeds = by_domain[domain]
            info = seeds[0].unsubscribe_info
            has_link = bool(info and info.has_link)
            group_size = len(seeds) + len(messages)
            for message in messages:
                confidence = self.preprocessor.confidence_score(message, group_size, has_link)
                classification = ClassificationResult(
                    is_junk=True,
                    confidence=confidence,
                    category=Category.MARKETING,
                    reasoning=f"Expanded from confirmed junk sender ({round(confidence * 100)}% confidence)",
                    source='expansion',
                )
                expanded.append(_Analysis(message, classification, info))
        return expanded, sorted(expander.failed_domains)

    def group_by_sender(self, analyses: Sequence[_Analysis], skipped: set) -> List[SenderGroup]:
        """Group junk by sender domain, dropping skip-listed domains, largest first."""
        groups: Dict[str, SenderGroup] = {}
        for analysis in analyses:
            message = analysis.message
            domain = message.sender_domain
            if domain in skipped:
                continue
            group = groups.get(domain)
            if group is None:
                group = groups[domain] = SenderGroup(domain=domain, sender_name=message.sender_name)
            if message.id in group.email_ids:
                continue
            group.add(MessageSummary(
                id=message.id,
                sender=message.sender,
                subject=message.subject,
                date=message.date,
                classification=analysis.classification,
                unsubscribe_info=analysis.unsubscribe_info,
            ))
        return sorted(groups.values(), key=lambda g: g.count, reverse=True)

    async def unsubscribe_message(self, message_id: str) -> UnsubscribeResult:
        message = await self.provider.get(message_id)
        return await self.resolver.resolve(message)

    async def bulk_unsubscribe(self, domain: str, message_ids: Sequence[str]) -> BulkUnsubscribeResult:
        """Unsubscribe from ``domain`` using its first message, then archive every id.

        Archival runs regardless of the unsubscribe outcome. In dry-run mode
        nothing is archived and the ids are returned as ``would_archive``.
        """
        ids = list(message_ids)
        results: List[UnsubscribeResult] = []
        unsubscribed = False
        method = 'archive-only'
        details = ''

        with self.pipeline_logger.scoped(domain=domain, email_count=len(ids)):
            if ids:
                try:
                    result = await self.unsubscribe_message(ids[0])
                    results.append(result)
                    if result.success:
                        unsubscribed = True
                        method = result.method
                    details = result.message
                except Exception as e:
                    self.pipeline_logger.exception(e)
                    details = 'Error during unsubscribe attempt'

            archived_ids: List[str] = []
            if self.dry_run:
                details = f"{details} Would archive {len(ids)} emails.".strip()
            else:
                try:
                    archived_ids = await self.provider.archive(ids)
                except Exception as e:
                    self.pipeline_logger.exception(e)

            archived = bool(ids) and len(archived_ids) > 0
            if archived:
                details = f"{details} Archived {len(archived_ids)} of {len(ids)} emails.".strip()
            self.pipeline_logger.count('bulk_unsubscribe', unsubscribed)
            self.pipeline_logger.info("Bulk unsubscribe finished", unsubscribed=unsubscribed,
                                      archived=len(archived_ids), method=method)

        return BulkUnsubscribeResult(
            domain=domain,
            success=unsubscribed or archived,
            method=method,
            details=details,
            archived=archived,
            email_count=len(ids),
            archived_count=len(archived_ids),
            results=results,
            dry_run=self.dry_run,
            would_archive=ids if self.dry_run else [],
        )
