"""
RSS Reader
This script reads the subscribed RSS feeds, turns every item into an article
and prints them. Subscriptions are kept in a small SQL table.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError

from rss_reader.aggregator import (
    ON_ERROR_POLICIES,
    AggregationError,
    collect_articles,
    get_articles,
)
from rss_reader.parsers.fields import validate_link
from rss_reader.parsers.rss import RSSParser
from rss_reader.services.db import SourceStore
from rss_reader.services.presenter import render_articles
from rss_reader.services.transport import DEFAULT_USER_AGENT, FeedFetcher


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_config(config_filename: str = "config.json") -> Dict[str, Any]:
    """Loads configuration from a JSON file."""
    # Build absolute path relative to this script
    base_dir = os.path.dirname(os.path.abspath(__file__))
    config_path = os.path.join(base_dir, config_filename)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Using empty config.", config_path)
        return {"feeds": []}


CONFIG: Dict[str, Any] = load_config()
FEEDS: List[str] = CONFIG.get("feeds", [])
REQUEST_TIMEOUT: float = cast(float, CONFIG.get("request_timeout", 10))
USER_AGENT: str = cast(str, CONFIG.get("user_agent", DEFAULT_USER_AGENT))
MAX_WORKERS: Optional[int] = CONFIG.get("max_workers")

# Env Vars
DATABASE_URL: str = os.environ.get(
    "RSS_READER_DB_URL", CONFIG.get("database_url", "sqlite:///feeds.db")
)
ON_ERROR: str = os.environ.get("RSS_READER_ON_ERROR", CONFIG.get("on_error", "skip"))


def build_arg_parser() -> argparse.ArgumentParser:
    """Returns the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="rss-reader", description="Read and manage RSS feed subscriptions."
    )
    subparsers = parser.add_subparsers(dest="command")

    read = subparsers.add_parser("read", help="fetch every feed and print its articles")
    read.add_argument(
        "--on-error",
        choices=ON_ERROR_POLICIES,
        default=None,
        help=f"skip failed feeds or abort the run (default: {ON_ERROR})",
    )

    add = subparsers.add_parser("add", help="subscribe to a feed")
    add.add_argument("url")

    remove = subparsers.add_parser("remove", help="unsubscribe from a feed")
    remove.add_argument("url")

    subparsers.add_parser("list", help="list subscribed feeds")
    return parser


def read_feeds(store: SourceStore, on_error: str) -> int:
    """Fetches all sources, prints their articles and returns an exit status."""
    if on_error not in ON_ERROR_POLICIES:
        logger.error("Error: unknown on_error policy %r.", on_error)
        return 1

    sources = store.list_sources()
    if not sources:
        logger.info("No subscriptions yet. Reading configured feeds.")
        sources = FEEDS
    if not sources:
        logger.info("No feeds to read.")
        return 0

    fetcher = FeedFetcher(timeout=REQUEST_TIMEOUT, user_agent=USER_AGENT)
    results = get_articles(sources, fetcher, RSSParser(), max_workers=MAX_WORKERS)

    for result in results:
        if result["error"] is not None:
            print(f"[failed] {result['source']}: {result['error']}", file=sys.stderr)

    try:
        articles = collect_articles(results, on_error=on_error)
    except AggregationError as e:
        logger.error("Aborting: %s", e)
        return 1

    print(render_articles(articles), end="")
    logger.info("Read %d articles from %d feeds.", len(articles), len(sources))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution entry point."""
    args = build_arg_parser().parse_args(argv)
    command = args.command or "read"

    url: Optional[str] = None
    if command in ("add", "remove"):
        url = validate_link(args.url)
        if command == "add" and url is None:
            logger.error("Error: %r is not an absolute URL.", args.url)
            return 1

    try:
        store = SourceStore(DATABASE_URL)

        if command == "add":
            if store.add(cast(str, url)):
                print(f"Subscribed to {args.url}")
            else:
                print(f"Already subscribed to {args.url}")
            return 0

        if command == "remove":
            if store.remove(url or args.url):
                print(f"Unsubscribed from {args.url}")
                return 0
            print(f"Not subscribed to {args.url}")
            return 1

        if command == "list":
            for url in store.list_sources():
                print(url)
            return 0

        return read_feeds(store, getattr(args, "on_error", None) or ON_ERROR)
    except SQLAlchemyError as e:
        logger.error("Feed store error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
