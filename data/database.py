"""
Engine and transaction scope for the uploaded image registry.

The registry is a single table, so one DatabaseManager per application owns
the engine and hands out short-lived sessions to the image store.
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .db_models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the registry engine and opens transactional sessions on it."""

    def __init__(self, database_url: str):
        """
        Build the registry engine and session factory.

        Args:
            database_url: SQLAlchemy URL of the registry (SQLite file by default)
        """
        self.database_url = database_url

        # SQLite connections are shared with the threadpool
        if self.database_url.startswith('sqlite'):
            self.engine = create_engine(
                self.database_url,
                connect_args={'check_same_thread': False},
                echo=False
            )
        else:
            self.engine = create_engine(self.database_url, echo=False)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    def create_tables(self):
        """Create the registry table if it is missing."""
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database tables ready at: {self.database_url}")

    def drop_tables(self):
        """Drop the registry table; stored files stop resolving to image ids."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning(f"Database tables dropped from: {self.database_url}")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        One registry transaction.

        Commits when the block exits cleanly; any exception rolls the
        transaction back and propagates. Rows stay readable after the block
        because sessions do not expire on commit.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        """Close all pooled connections."""
        self.engine.dispose()
