"""
Plain-text presentation of articles.

This module renders articles for the terminal. Absent dates and links are
shown as placeholders; descriptions are stripped of HTML.
"""

import html
import re
from typing import Optional, Sequence

from rss_reader.models import Article

DATE_PLACEHOLDER = "unknown date"
LINK_PLACEHOLDER = "no link"
_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S %z"


def clean_html(raw_html: Optional[str]) -> str:
    """Removes HTML tags from a string."""
    if not raw_html:
        return ""
    cleaner = re.compile("<.*?>", re.DOTALL)
    text = html.unescape(re.sub(cleaner, "", raw_html))
    return " ".join(text.split())


def render_article(article: Article) -> str:
    """Renders a single article as a short text block."""
    published = (
        article["publish_date"].strftime(_DATE_FORMAT)
        if article["publish_date"] is not None
        else DATE_PLACEHOLDER
    )
    return (
        f"\nPublished: {published}\n"
        f" -- {article['title'].strip()} --\n"
        f"{clean_html(article['description'])}\n"
        f"Read more: {article['link'] or LINK_PLACEHOLDER}\n"
    )


def render_articles(articles: Sequence[Article], newest_last: bool = True) -> str:
    """
    Renders a list of articles.

    Feeds list their newest entry first; with ``newest_last`` the order is
    reversed so the newest entry ends up nearest the prompt.
    """
    ordered = reversed(articles) if newest_last else iter(articles)
    return "".join(render_article(article) for article in ordered)
