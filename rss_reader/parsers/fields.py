"""
Field routing and per-field normalization for RSS items.

This module maps element names to the article field they feed and applies
text content to an in-progress article. Invalid dates and links are dropped
without touching the field's previous value.
"""

import enum
import logging
from datetime import datetime, timezone, tzinfo
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urlsplit

from rss_reader.models import Article

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    """What an element means to the article being built."""

    ITEM = "item"
    TITLE = "title"
    DESCRIPTION = "description"
    PUBLISH_DATE = "pubDate"
    LINK = "link"
    OTHER = None


_ROLES_BY_NAME = {
    role.value: role for role in Role if role is not Role.OTHER
}


def route(name: str) -> Role:
    """Classifies an element name. Matching is exact and case-sensitive."""
    return _ROLES_BY_NAME.get(name, Role.OTHER)


def local_timezone() -> tzinfo:
    """Returns the process's current local offset."""
    return datetime.now().astimezone().tzinfo or timezone.utc


def normalize_date(text: str, tz: tzinfo) -> Optional[datetime]:
    """Parses an RFC 2822 date and re-expresses it in ``tz``."""
    try:
        parsed = parsedate_to_datetime(text.strip())
        if parsed is None:
            return None
        # "-0000" and zoneless dates come back naive
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        # Shifting a date at the edge of the calendar can leave datetime's range
        return parsed.astimezone(tz)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def validate_link(text: str) -> Optional[str]:
    """
    Returns the normalized form of an absolute URL, or None.

    A valid link has a scheme and a host, no embedded whitespace, and a
    numeric port if one is given. The returned string validates to itself.
    """
    candidate = text.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    try:
        parts = urlsplit(candidate)
        parts.port  # pylint: disable=pointless-statement
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts.geturl()


def apply_field(article: Article, role: Role, text: str, tz: tzinfo) -> None:
    """Applies one piece of text content to ``article`` according to ``role``."""
    if role is Role.TITLE:
        article["title"] = text
    elif role is Role.DESCRIPTION:
        article["description"] = text
    elif role is Role.PUBLISH_DATE:
        publish_date = normalize_date(text, tz)
        if publish_date is None:
            logger.debug("Ignoring unparseable pubDate %r", text)
            return
        article["publish_date"] = publish_date
    elif role is Role.LINK:
        link = validate_link(text)
        if link is None:
            logger.debug("Ignoring invalid link %r", text)
            return
        article["link"] = link
