"""Unit tests for multi-source aggregation."""

import time
import unittest
from datetime import timezone
from unittest.mock import MagicMock

from rss_reader.aggregator import (
    AggregationError,
    collect_articles,
    get_articles,
    parse_sources,
)
from rss_reader.models import FeedResult, new_article
from rss_reader.services.transport import TransportError

UTC = timezone.utc


def feed_with(*titles: str) -> str:
    items = "".join(f"<item><title>{t}</title></item>" for t in titles)
    return f"<rss><channel>{items}</channel></rss>"


class SlowFirstParser:
    """Parser double that finishes sources in reverse order."""

    def parse(self, payload, tz=None, source=None):
        if source == "first":
            time.sleep(0.1)
        article = new_article()
        article["title"] = payload
        return [article]


class TestParseSources(unittest.TestCase):
    def test_two_sources_in_order(self):
        results = parse_sources(
            [("http://a.example/rss", feed_with("A")),
             ("http://b.example/rss", feed_with("B"))],
            tz=UTC,
        )
        articles = collect_articles(results)

        self.assertEqual(len(articles), 2)
        self.assertEqual([a["title"] for a in articles], ["A", "B"])
        self.assertEqual(
            [r["source"] for r in results],
            ["http://a.example/rss", "http://b.example/rss"],
        )

    def test_order_does_not_depend_on_completion(self):
        results = parse_sources(
            [("first", "1"), ("second", "2"), ("third", "3")],
            parser=SlowFirstParser(),
            tz=UTC,
            max_workers=3,
        )
        self.assertEqual(
            [a["title"] for a in collect_articles(results)], ["1", "2", "3"]
        )

    def test_per_feed_order_is_kept(self):
        results = parse_sources(
            [("a", feed_with("A1", "A2")), ("b", feed_with("B1", "B2", "B3"))],
            tz=UTC,
        )
        self.assertEqual(
            [a["title"] for a in collect_articles(results)],
            ["A1", "A2", "B1", "B2", "B3"],
        )

    def test_broken_source_is_isolated(self):
        results = parse_sources(
            [("good", feed_with("G1")), ("bad", "<rss><channel><item>"),
             ("also-good", feed_with("G2"))],
            tz=UTC,
        )
        self.assertIsNone(results[0]["error"])
        self.assertEqual(results[1]["source"], "bad")
        self.assertEqual(results[1]["articles"], [])
        self.assertIn("bad", results[1]["error"])
        self.assertEqual(
            [a["title"] for a in collect_articles(results, on_error="skip")],
            ["G1", "G2"],
        )

    def test_out_of_range_date_does_not_sink_the_run(self):
        far_future = (
            "<rss><channel><item><title>F</title>"
            "<pubDate>Fri, 31 Dec 9999 23:59:59 -2359</pubDate>"
            "</item></channel></rss>"
        )
        results = parse_sources(
            [("ok", feed_with("A")), ("far-future", far_future)], tz=UTC
        )
        self.assertEqual([r["error"] for r in results], [None, None])
        articles = collect_articles(results)
        self.assertEqual([a["title"] for a in articles], ["A", "F"])
        self.assertIsNone(articles[1]["publish_date"])

    def test_unexpected_parser_error_is_isolated(self):
        parser = MagicMock()
        parser.parse.side_effect = [RuntimeError("boom"), [new_article()]]
        results = parse_sources([("bad", "x"), ("good", "y")], parser=parser, max_workers=1)
        self.assertEqual(results[0]["articles"], [])
        self.assertIn("boom", results[0]["error"])
        self.assertIsNone(results[1]["error"])
        self.assertEqual(len(results[1]["articles"]), 1)

    def test_no_sources(self):
        self.assertEqual(parse_sources([]), [])


class TestCollectArticles(unittest.TestCase):
    def setUp(self):
        article = new_article()
        article["title"] = "ok"
        self.results = [
            FeedResult(source="one", articles=[article], error=None),
            FeedResult(source="two", articles=[], error="boom"),
        ]

    def test_skip(self):
        self.assertEqual(len(collect_articles(self.results, on_error="skip")), 1)

    def test_abort(self):
        with self.assertRaises(AggregationError) as ctx:
            collect_articles(self.results, on_error="abort")
        self.assertEqual(ctx.exception.source, "two")
        self.assertIn("boom", str(ctx.exception))

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            collect_articles(self.results, on_error="retry")


class TestGetArticles(unittest.TestCase):
    def test_fetch_and_parse(self):
        payloads = {
            "http://a.example/rss": feed_with("A").encode("utf-8"),
            "http://b.example/rss": feed_with("B").encode("utf-8"),
        }
        fetcher = MagicMock()
        fetcher.fetch.side_effect = payloads.__getitem__

        results = get_articles(list(payloads), fetcher, tz=UTC)

        self.assertEqual([r["error"] for r in results], [None, None])
        self.assertEqual([a["title"] for a in collect_articles(results)], ["A", "B"])
        self.assertEqual(fetcher.fetch.call_count, 2)

    def test_transport_failure_is_tagged(self):
        def fetch(url):
            if "down" in url:
                raise TransportError(url, "connection refused")
            return feed_with("up").encode("utf-8")

        fetcher = MagicMock()
        fetcher.fetch.side_effect = fetch

        results = get_articles(
            ["http://down.example/rss", "http://up.example/rss"], fetcher, tz=UTC
        )

        self.assertEqual(results[0]["source"], "http://down.example/rss")
        self.assertEqual(results[0]["articles"], [])
        self.assertIn("connection refused", results[0]["error"])
        self.assertEqual([a["title"] for a in collect_articles(results)], ["up"])


if __name__ == "__main__":
    unittest.main()
