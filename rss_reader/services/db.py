"""
Feed-source store.

This module provides the SourceStore class, which keeps the subscribed feed
URLs in a single SQLAlchemy table. Adding a URL twice is a no-op.
"""

import datetime
import logging
from typing import List

from sqlalchemy import Column, DateTime, Integer, String, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def utc_now() -> datetime.datetime:
    """Get current UTC timestamp."""
    return datetime.datetime.now(datetime.timezone.utc)


class FeedSource(Base):
    """A subscribed feed."""

    __tablename__ = "feed_sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(2048), nullable=False, unique=True)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"<FeedSource(id={self.id}, url={self.url!r})>"


class SourceStore:
    """Handles add/remove/list of feed sources."""

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine)
        logger.info("Using feed store at %s", self.engine.url.render_as_string())

    def add(self, url: str) -> bool:
        """Subscribes to ``url``. Returns False if it was already present."""
        with self._session_factory() as session:
            exists = session.scalar(select(FeedSource.id).where(FeedSource.url == url))
            if exists is not None:
                logger.info("Already subscribed to %s", url)
                return False
            session.add(FeedSource(url=url))
            try:
                session.commit()
            except IntegrityError:
                # Lost a race with a concurrent add of the same URL
                session.rollback()
                return False
        logger.info("Subscribed to %s", url)
        return True

    def remove(self, url: str) -> bool:
        """Unsubscribes from ``url``. Returns False if it was not present."""
        with self._session_factory() as session:
            source = session.scalar(select(FeedSource).where(FeedSource.url == url))
            if source is None:
                return False
            session.delete(source)
            session.commit()
        logger.info("Unsubscribed from %s", url)
        return True

    def list_sources(self) -> List[str]:
        """Returns subscribed URLs in the order they were added."""
        with self._session_factory() as session:
            return list(session.scalars(select(FeedSource.url).order_by(FeedSource.id)))
