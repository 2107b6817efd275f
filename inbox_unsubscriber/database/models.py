"""
Database models for the inbox unsubscriber.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SkippedSender(Base):
    """Sender domain the user chose to keep; suppressed from scan reports."""
    __tablename__ = 'skipped_senders'

    id = Column(Integer, primary_key=True)
    domain = Column(String(255), unique=True, nullable=False)
    sender_name = Column(String(255))
    reason = Column(Text, nullable=True)
    skipped_at = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SkippedSender(domain='{self.domain}', reason='{self.reason}')>"


class CachedAnalysis(Base):
    """Persisted classification + unsubscribe analysis for a message campaign.

    Keyed by a hash of sender, subject and snippet prefix so that
    near-identical messages from one campaign share a single row.
    """
    __tablename__ = 'cached_analyses'

    id = Column(Integer, primary_key=True)
    cache_key = Column(String(64), unique=True, nullable=False, index=True)
    message_id = Column(String(255))
    sender = Column(String(512))
    subject = Column(Text)
    classification_json = Column(Text, nullable=False)
    unsubscribe_json = Column(Text, nullable=True)
    cached_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<CachedAnalysis(key='{self.cache_key[:12]}', sender='{self.sender}')>"
