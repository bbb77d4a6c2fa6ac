"""
RSS feed parser implementation.

This module provides the RSSParser class, which turns an RSS document into a
list of articles without building a tree. lxml reports element and text
events to FeedStateMachine, which keeps a stack of open elements and the item
currently being assembled.
"""

import logging
import re
from datetime import tzinfo
from typing import List, Optional, Tuple

from lxml import etree

from rss_reader.models import Article, new_article
from rss_reader.parsers.base import FeedParseError, FeedParser, Payload
from rss_reader.parsers.fields import Role, apply_field, local_timezone, route

logger = logging.getLogger(__name__)

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)

# Markup tokens, enough to tell tags apart from comments, CDATA, PIs and
# doctypes. Group 1 marks an end tag, group 2 a self-closing tag.
_RE_MARKUP = re.compile(
    rb"<!--.*?-->"
    rb"|<!\[CDATA\[.*?\]\]>"
    rb"|<\?.*?\?>"
    rb"|<!(?:[^>\[]|\[.*?\])*>"
    rb"|<(/?)[^\s/>!?](?:[^>\"']|\"[^\"]*\"|'[^']*')*?(/?)>",
    re.DOTALL,
)


def find_unmatched_end_tag(data: bytes, end_events: int) -> Optional[Tuple[int, int]]:
    """
    Locates the end tag a strict parse stopped at.

    ``end_events`` is how many elements the parser closed before failing.
    The next end tag in ``data`` (self-closing tags count as one) is the one
    it rejected. Returns its ``(start, end)`` offsets, or None when the next
    closing markup is a self-closing tag or there is none.
    """
    seen = 0
    for match in _RE_MARKUP.finditer(data):
        closes = match.group(1) == b"/"
        if closes or match.group(2) == b"/":
            if seen == end_events:
                return match.span() if closes else None
            seen += 1
    return None


class FeedStateMachine:
    """
    Assembles articles from a stream of markup events.

    Text is routed by the innermost open element. An article is emitted when
    its ``item`` element closes; an item still open at end of input is never
    emitted. Fields seen outside any item (a channel title, say) land in a
    scratch article that is thrown away.
    """

    def __init__(self, tz: tzinfo):
        self.tz = tz
        self.articles: List[Article] = []
        self._stack: List[Tuple[Role, str]] = []
        self._current: Article = new_article()

    @property
    def depth(self) -> int:
        """Number of currently open elements."""
        return len(self._stack)

    def start_element(self, name: str) -> None:
        """Handles an element-open event."""
        role = route(name)
        if role is Role.ITEM:
            self._current = new_article()
        self._stack.append((role, name))

    def end_element(self) -> None:
        """Handles an element-close event, emitting the item if one closes."""
        # A close with nothing open is tolerated
        if not self._stack:
            return
        role, _ = self._stack.pop()
        if role is Role.ITEM:
            self.articles.append(self._current.copy())

    def text(self, content: str) -> None:
        """Handles text or CDATA content of the innermost open element."""
        if not self._stack:
            return
        role, _ = self._stack[-1]
        apply_field(self._current, role, content, self.tz)


class _EventTarget:
    """
    lxml parser target that forwards events to a FeedStateMachine.

    lxml may deliver one run of character data in several pieces (around
    entity references, or a CDATA section next to plain text). The pieces are
    joined and handed over as a single text event when the next markup event
    arrives.
    """

    def __init__(self, machine: FeedStateMachine):
        self.machine = machine
        self.end_events = 0
        self._pending: List[str] = []

    def _flush(self) -> None:
        if self._pending:
            text = "".join(self._pending)
            self._pending = []
            self.machine.text(text)

    def start(self, tag, attrib):  # pylint: disable=unused-argument
        self._flush()
        self.machine.start_element(tag)

    def end(self, tag):  # pylint: disable=unused-argument
        self._flush()
        self.end_events += 1
        self.machine.end_element()

    def data(self, data):
        self._pending.append(data)

    def comment(self, text):  # pylint: disable=unused-argument
        self._flush()

    def pi(self, target, data=None):  # pylint: disable=unused-argument
        self._flush()

    def close(self) -> List[Article]:
        self._flush()
        return self.machine.articles


class RSSParser(FeedParser):
    """Parses standard RSS 2.0 documents."""

    def _prepare(self, payload: Payload) -> bytes:
        """Returns the payload as bytes lxml can decode on its own."""
        if isinstance(payload, bytes):
            return payload
        # Text gets re-encoded as UTF-8, so the declaration must say so
        payload = _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", payload, count=1)
        return payload.encode("utf-8")

    def _run(self, target: _EventTarget, data: bytes) -> None:
        parser = etree.XMLParser(
            target=target,
            resolve_entities=False,
            no_network=True,
        )
        parser.feed(data)
        parser.close()

    def parse(
        self,
        payload: Payload,
        tz: Optional[tzinfo] = None,
        source: Optional[str] = None,
    ) -> List[Article]:
        """
        Parses a single RSS document into articles, in document order.

        Dates are expressed in ``tz``, which defaults to the local offset at
        the time of the call. A closing tag the parser cannot match, inside
        the root element or after it, is cut out and the document parsed
        again, strictly. Any other well-formedness error raises
        FeedParseError with the articles completed so far.
        """
        if tz is None:
            tz = local_timezone()

        # Nothing may precede the XML declaration
        data = self._prepare(payload).lstrip()
        if not data:
            raise FeedParseError("empty document", source=source)

        while True:
            machine = FeedStateMachine(tz)
            target = _EventTarget(machine)
            try:
                self._run(target, data)
                break
            except (etree.XMLSyntaxError, etree.ParserError) as exc:
                span = None
                # A mismatched end tag, or markup left over after the root
                if (
                    getattr(exc, "code", None) == etree.ErrorTypes.ERR_TAG_NAME_MISMATCH
                    or machine.depth == 0
                ):
                    span = find_unmatched_end_tag(data, target.end_events)
                if span is None:
                    raise FeedParseError(
                        str(exc), source=source, articles=machine.articles
                    ) from exc

                start, end = span
                logger.warning(
                    "Skipping unmatched end tag %s in %s",
                    data[start:end].decode("ascii", "replace"),
                    source or "feed",
                )
                data = data[:start] + data[end:]

        logger.debug("Parsed %d articles from %s", len(machine.articles), source)
        return machine.articles
