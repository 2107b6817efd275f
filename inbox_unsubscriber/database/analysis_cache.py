"""
Persisted per-campaign analysis cache.

Rows are keyed by a SHA-256 of sender, subject and the first 100 snippet
characters, so repeat sends of one campaign reuse a single analysis.
Read and write failures are logged and behave as a cache miss.
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..classification.models import ClassificationResult
from ..email_processor.message import MessageRecord
from ..email_processor.unsubscribe.types import UnsubscribeInfo
from . import DatabaseManager
from .models import CachedAnalysis

logger = logging.getLogger(__name__)

SNIPPET_KEY_LENGTH = 100


def analysis_cache_key(message: MessageRecord) -> str:
    raw = f"{message.sender}:{message.subject}:{message.snippet[:SNIPPET_KEY_LENGTH]}"
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()


class AnalysisCache:
    """Classification and unsubscribe analysis stored across scans.

    Args:
        db_manager: Database access
        max_age_days: Entries older than this are ignored and purged
        now: Clock returning a naive datetime, injectable for tests
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        max_age_days: int = 7,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.db_manager = db_manager
        self.max_age = timedelta(days=max_age_days)
        self.now = now

    def get(self, message: MessageRecord) -> Optional[Tuple[ClassificationResult, Optional[UnsubscribeInfo]]]:
        key = analysis_cache_key(message)
        try:
            with self.db_manager.get_session() as session:
                row = session.query(CachedAnalysis).filter_by(cache_key=key).first()
                if row is None or self.now() - row.cached_at > self.max_age:
                    return None
                classification = ClassificationResult.from_dict(json.loads(row.classification_json))
                unsubscribe = (
                    UnsubscribeInfo.from_dict(json.loads(row.unsubscribe_json))
                    if row.unsubscribe_json else None
                )
                return classification, unsubscribe
        except (SQLAlchemyError, ValueError, KeyError) as e:
            logger.error(f"Failed to read analysis cache for {message.id}: {e}")
            return None

    def put(
        self,
        message: MessageRecord,
        classification: ClassificationResult,
        unsubscribe: Optional[UnsubscribeInfo] = None,
    ) -> bool:
        key = analysis_cache_key(message)
        try:
            with self.db_manager.get_session() as session:
                row = session.query(CachedAnalysis).filter_by(cache_key=key).first()
                if row is None:
                    row = CachedAnalysis(cache_key=key)
                    session.add(row)
                row.message_id = message.id
                row.sender = message.sender
                row.subject = message.subject
                row.classification_json = json.dumps(classification.to_dict())
                row.unsubscribe_json = json.dumps(unsubscribe.to_dict()) if unsubscribe else None
                row.cached_at = self.now()
                session.commit()
            self.purge_expired()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to write analysis cache for {message.id}: {e}")
            return False

    def purge_expired(self) -> int:
        cutoff = self.now() - self.max_age
        try:
            with self.db_manager.get_session() as session:
                removed = session.query(CachedAnalysis).filter(CachedAnalysis.cached_at < cutoff).delete()
                session.commit()
            if removed:
                logger.info(f"Purged {removed} expired analysis cache entries")
            return removed
        except SQLAlchemyError as e:
            logger.error(f"Failed to purge analysis cache: {e}")
            return 0

    def stats(self) -> Dict[str, Any]:
        try:
            with self.db_manager.get_session() as session:
                total = session.query(CachedAnalysis).count()
                oldest = session.query(CachedAnalysis.cached_at).order_by(CachedAnalysis.cached_at).first()
            return {'entries': total, 'oldest': oldest[0].isoformat() if oldest else None}
        except SQLAlchemyError as e:
            logger.error(f"Failed to read analysis cache stats: {e}")
            return {'entries': 0, 'oldest': None}

    def clear(self) -> int:
        try:
            with self.db_manager.get_session() as session:
                removed = session.query(CachedAnalysis).delete()
                session.commit()
            return removed
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear analysis cache: {e}")
            return 0
