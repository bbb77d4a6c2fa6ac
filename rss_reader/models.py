"""
Data models for the RSS reader.
"""

from datetime import datetime
from typing import List, Optional, TypedDict


class Article(TypedDict):
    """One syndication entry, as emitted by the feed parser."""

    title: str
    description: str
    publish_date: Optional[datetime]  # None when missing or unparseable
    link: Optional[str]  # None when missing or not an absolute URL


class FeedResult(TypedDict):
    """Outcome of processing a single source."""

    source: str
    articles: List[Article]
    error: Optional[str]


def new_article() -> Article:
    """Returns an empty article with every field at its default."""
    return Article(title="", description="", publish_date=None, link=None)
