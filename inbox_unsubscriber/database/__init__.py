"""
Database setup for the skip list and the persisted analysis cache.

One ``DatabaseManager`` is built per CLI invocation; stores receive it in
their constructor and open short sessions through ``get_session``.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..config.settings import Config
from .models import Base


class DatabaseManager:
    """Engine plus session factory for one database URL."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or Config.get_database_path()
        self.engine = create_engine(self.database_url, echo=False)
        self._sessions = sessionmaker(bind=self.engine)

    def initialize_database(self) -> None:
        """Create missing tables. Existing tables and rows are left alone."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Yield a session; roll back if the block raises. Callers commit."""
        session = self._sessions()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def init_database(database_url: Optional[str] = None) -> DatabaseManager:
    """Build a manager for ``database_url`` (default from Config) with tables created."""
    manager = DatabaseManager(database_url)
    manager.initialize_database()
    return manager
