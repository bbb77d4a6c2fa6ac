"""
HTTP transport for feed documents.

This module provides the FeedFetcher class, which downloads a feed and hands
back the raw response body. It does not parse anything.
"""

import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "RSSReader/1.0"


class TransportError(Exception):
    """Raised when a source cannot be downloaded."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class FeedFetcher:
    """Fetches feed documents over HTTP."""

    def __init__(self, timeout: float = 10, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch(self, url: str) -> bytes:
        """Returns the response body for ``url``."""
        # Some blogs answer 403 without a user-agent
        try:
            resp = requests.get(
                url, timeout=self.timeout, headers={"User-Agent": self.user_agent}
            )
            resp.raise_for_status()
        except requests.RequestException as req_err:
            raise TransportError(url, str(req_err)) from req_err
        logger.info("Fetched %s (%d bytes).", url, len(resp.content))
        return resp.content
