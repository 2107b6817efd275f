"""
Skip list of sender domains the user wants to keep receiving.

Store errors are logged and degrade to "not skipped" / empty list so a
broken database never blocks a scan.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from . import DatabaseManager
from .models import SkippedSender

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkipListEntry:
    """A skipped sender domain."""

    domain: str
    sender_name: str
    skipped_at: datetime
    reason: Optional[str] = None

    def to_dict(self):
        return {
            'domain': self.domain,
            'sender_name': self.sender_name,
            'skipped_at': self.skipped_at.isoformat(),
            'reason': self.reason,
        }


def _normalize(domain: str) -> str:
    return domain.strip().lower()


class SkipListStore:
    """Domain-keyed skip list persisted through SQLAlchemy."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def add(self, domain: str, sender_name: str, reason: Optional[str] = None) -> bool:
        """Add or replace the entry for ``domain``.

        Returns:
            True if the entry was written
        """
        key = _normalize(domain)
        try:
            with self.db_manager.get_session() as session:
                entry = session.query(SkippedSender).filter_by(domain=key).first()
                if entry is None:
                    entry = SkippedSender(domain=key)
                    session.add(entry)
                entry.sender_name = sender_name
                entry.reason = reason
                entry.skipped_at = datetime.now()
                session.commit()
            logger.info(f"Added {key} to skip list")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to add {key} to skip list: {e}")
            return False

    def is_skipped(self, domain: str) -> bool:
        try:
            with self.db_manager.get_session() as session:
                return session.query(SkippedSender).filter_by(domain=_normalize(domain)).count() > 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to read skip list: {e}")
            return False

    def remove(self, domain: str) -> bool:
        """Remove ``domain`` from the skip list.

        Returns:
            True if an entry was removed
        """
        key = _normalize(domain)
        try:
            with self.db_manager.get_session() as session:
                removed = session.query(SkippedSender).filter_by(domain=key).delete()
                session.commit()
            if removed:
                logger.info(f"Removed {key} from skip list")
            return bool(removed)
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove {key} from skip list: {e}")
            return False

    def list(self) -> List[SkipListEntry]:
        try:
            with self.db_manager.get_session() as session:
                rows = session.query(SkippedSender).order_by(SkippedSender.domain).all()
                return [
                    SkipListEntry(
                        domain=row.domain,
                        sender_name=row.sender_name or row.domain,
                        skipped_at=row.skipped_at,
                        reason=row.reason,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            logger.error(f"Failed to read skip list: {e}")
            return []

    def skipped_domains(self) -> set:
        """Set of skipped domains, read once per grouping pass."""
        return {entry.domain for entry in self.list()}

    def clear(self) -> int:
        try:
            with self.db_manager.get_session() as session:
                removed = session.query(SkippedSender).delete()
                session.commit()
            logger.info(f"Cleared {removed} entries from skip list")
            return removed
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear skip list: {e}")
            return 0
