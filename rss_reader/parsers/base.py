"""
Base classes and interfaces for feed parsers.

This module defines the contract that all feed parsers must follow.
"""

from datetime import tzinfo
from typing import List, Optional, Protocol, Sequence, Union

from rss_reader.models import Article

Payload = Union[str, bytes]


class FeedParseError(Exception):
    """
    Raised when a payload is not well-formed markup.

    ``articles`` holds the records that were completed before the failure;
    they are valid output even though the rest of the feed is lost.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        articles: Optional[Sequence[Article]] = None,
    ):
        super().__init__(message)
        self.source = source
        self.articles: List[Article] = list(articles or [])

    def __str__(self) -> str:
        message = super().__str__()
        if self.source:
            return f"{self.source}: {message}"
        return message


class FeedParser(Protocol):
    """
    Protocol for feed parsers.

    Classes implementing this protocol turn one in-memory feed document into
    the list of articles it contains, in document order.
    """

    def parse(
        self,
        payload: Payload,
        tz: Optional[tzinfo] = None,
        source: Optional[str] = None,
    ) -> List[Article]:
        """Parses a feed document."""
