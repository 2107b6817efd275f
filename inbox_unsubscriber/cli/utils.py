"""
Common utilities for CLI commands.

Wires the shared cache, rate limiter, provider and stores into a scanner.
"""

from typing import List, Optional

from ..classification.service import ClassificationService, build_adapter
from ..config.settings import (
    CacheConfig, ClassifierConfig, Config, RateLimitConfig, ResolverConfig, ScanConfig
)
from ..database import DatabaseManager, init_database
from ..database.analysis_cache import AnalysisCache
from ..database.skip_list import SkipListStore
from ..email_processor.bulk_scanner import BulkScanner
from ..email_processor.gmail_client import GmailProvider
from ..email_processor.unsubscribe.resolver import UnsubscribeResolver
from ..email_processor.unsubscribe.strategies import default_strategies
from ..services.cache import CacheService
from ..services.rate_limiter import RateLimiter
from ..unsubscribe_executor.http_executor import HttpUnsubscribeExecutor


def get_database(database_url: Optional[str] = None) -> DatabaseManager:
    """Database manager with tables created."""
    return init_database(database_url)


def build_scanner(db_manager: DatabaseManager, dry_run: bool = False) -> BulkScanner:
    """
    Build a scanner from environment configuration.

    Args:
        db_manager: Database holding the skip list and analysis cache
        dry_run: If True, unsubscribe requests and archiving are reported
            but not carried out

    Returns:
        Ready-to-use BulkScanner
    """
    cache = CacheService(CacheConfig.defaults(), memory_threshold_mb=Config.MEMORY_THRESHOLD_MB)
    classifier_config = ClassifierConfig.from_env()
    classifier = ClassificationService(
        cache=cache,
        rate_limiter=RateLimiter(RateLimitConfig.from_env()),
        config=classifier_config,
        adapter=build_adapter(classifier_config),
    )
    resolver_config = ResolverConfig.from_env()
    http = HttpUnsubscribeExecutor(
        timeout=resolver_config.timeout,
        user_agent=resolver_config.user_agent,
        dry_run=dry_run,
    )
    return BulkScanner(
        provider=GmailProvider(cache, token_path=Config.get_token_path()),
        classifier=classifier,
        resolver=UnsubscribeResolver(default_strategies(http)),
        cache=cache,
        analysis_cache=AnalysisCache(db_manager, max_age_days=Config.ANALYSIS_CACHE_DAYS),
        skip_list=SkipListStore(db_manager),
        config=ScanConfig.from_env(),
        dry_run=dry_run,
    )


def parse_message_ids(id_string: str) -> List[str]:
    """
    Parse message IDs from a comma- or whitespace-separated string.

    Duplicates are dropped, first occurrence kept.
    """
    parts = id_string.replace(',', ' ').split()
    return list(dict.fromkeys(p.strip() for p in parts if p.strip()))
