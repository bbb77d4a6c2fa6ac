"""
Multi-source aggregation.

Each source is parsed (and, with get_articles, fetched) as an independent unit
of work on a thread pool. Results come back tagged per source and in the order
the sources were given, whatever order the work finishes in.
"""

import concurrent.futures
import logging
from datetime import tzinfo
from typing import List, Optional, Sequence, Tuple

from rss_reader.models import Article, FeedResult
from rss_reader.parsers.base import FeedParseError, FeedParser, Payload
from rss_reader.parsers.fields import local_timezone
from rss_reader.parsers.rss import RSSParser
from rss_reader.services.transport import FeedFetcher, TransportError

logger = logging.getLogger(__name__)

ON_ERROR_POLICIES = ("skip", "abort")


class AggregationError(Exception):
    """Raised when a failed source aborts the whole run."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


def _parse_one(
    parser: FeedParser, source: str, payload: Payload, tz: tzinfo
) -> FeedResult:
    try:
        articles = parser.parse(payload, tz=tz, source=source)
    except FeedParseError as exc:
        logger.error("Error parsing %s: %s", source, exc)
        return FeedResult(source=source, articles=[], error=str(exc))
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.error("%s generated an exception: %s", source, exc)
        return FeedResult(source=source, articles=[], error=f"{source}: {exc}")
    return FeedResult(source=source, articles=articles, error=None)


def _fetch_one(
    fetcher: FeedFetcher, parser: FeedParser, source: str, tz: tzinfo
) -> FeedResult:
    try:
        payload = fetcher.fetch(source)
    except TransportError as exc:
        logger.error("Network error fetching %s: %s", source, exc)
        return FeedResult(source=source, articles=[], error=str(exc))
    return _parse_one(parser, source, payload, tz)


def _run_in_order(
    max_workers: Optional[int], jobs: Sequence[Tuple]
) -> List[FeedResult]:
    """Runs ``(fn, *args)`` jobs concurrently and returns results in job order."""
    if not jobs:
        return []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(*job) for job in jobs]
        return [future.result() for future in futures]


def parse_sources(
    feeds: Sequence[Tuple[str, Payload]],
    parser: Optional[FeedParser] = None,
    tz: Optional[tzinfo] = None,
    max_workers: Optional[int] = None,
) -> List[FeedResult]:
    """Parses pre-fetched payloads, one result per source, in source order."""
    parser = parser or RSSParser()
    tz = tz or local_timezone()
    results = _run_in_order(
        max_workers,
        [(_parse_one, parser, source, payload, tz) for source, payload in feeds],
    )
    logger.info(
        "Parsed %d sources (%d failed).",
        len(results),
        sum(1 for r in results if r["error"] is not None),
    )
    return results


def get_articles(
    sources: Sequence[str],
    fetcher: FeedFetcher,
    parser: Optional[FeedParser] = None,
    tz: Optional[tzinfo] = None,
    max_workers: Optional[int] = None,
) -> List[FeedResult]:
    """Fetches and parses each source URL, one result per source, in order."""
    parser = parser or RSSParser()
    tz = tz or local_timezone()
    logger.info("--- Reading %d feeds ---", len(sources))
    return _run_in_order(
        max_workers,
        [(_fetch_one, fetcher, parser, source, tz) for source in sources],
    )


def collect_articles(
    results: Sequence[FeedResult], on_error: str = "skip"
) -> List[Article]:
    """
    Concatenates the articles of successful results, in source order.

    With ``on_error="skip"`` failed sources are left out; with "abort" the
    first failed source raises AggregationError.
    """
    if on_error not in ON_ERROR_POLICIES:
        raise ValueError(f"Unknown on_error policy: {on_error!r}")

    articles: List[Article] = []
    for result in results:
        if result["error"] is not None:
            if on_error == "abort":
                raise AggregationError(result["source"], result["error"])
            logger.warning("Skipping %s: %s", result["source"], result["error"])
            continue
        articles.extend(result["articles"])
    return articles
