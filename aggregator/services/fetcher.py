"""
Feed fetching service.

This module provides the FeedFetcher class, which downloads the list of feed
URLs and then each individual feed. A failing feed is logged and skipped; only
a failure to obtain the list itself is treated as fatal.
"""

import logging
import time
from typing import List, Optional

import requests

from aggregator.models import ParsedFeed
from aggregator.parsers.base import FeedParser
from aggregator.parsers.rss import RSSParser

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15
CHUNK_SIZE = 64 * 1024
DEFAULT_USER_AGENT = "PodcastAggregatorBot/1.0"


class FeedListError(RuntimeError):
    """Raised when the list of feed URLs cannot be obtained."""


class FeedFetcher:
    """Fetches the feed list and individual feeds over HTTP."""

    def __init__(
        self,
        parser: Optional[FeedParser] = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.parser = parser if parser is not None else RSSParser()
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}

    def fetch_feed_list(self, source_url: str) -> List[str]:
        """
        Downloads a plaintext list of feed URLs, one per line.

        Blank lines and lines starting with '#' are ignored.

        Raises:
            FeedListError: If the list cannot be downloaded or contains no URLs.
        """
        try:
            resp = requests.get(source_url, timeout=self.timeout, headers=self.headers)
            resp.raise_for_status()
        except requests.RequestException as req_err:
            raise FeedListError(
                f"Failed to fetch feed list from {source_url}: {req_err}"
            ) from req_err

        urls = []
        for line in resp.text.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                urls.append(line)

        if not urls:
            raise FeedListError(f"Feed list at {source_url} is empty (no URLs found)")
        return urls

    def _download(self, url: str) -> bytes:
        """Downloads a feed body, raising requests.Timeout past an overall deadline."""
        deadline = time.monotonic() + self.timeout
        resp = requests.get(url, timeout=self.timeout, headers=self.headers, stream=True)
        try:
            resp.raise_for_status()
            chunks = []
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise requests.Timeout(f"Download of {url} exceeded {self.timeout}s")
            return b"".join(chunks)
        finally:
            resp.close()

    def fetch_and_parse(self, url: str) -> Optional[ParsedFeed]:
        """Fetches and parses a single feed, returning None on any failure."""
        try:
            content = self._download(url)
        except requests.Timeout:
            logger.warning("Feed fetch timed out after %ss for %s", self.timeout, url)
            return None
        except requests.RequestException as req_err:
            logger.warning("Feed fetch failed for %s: %s", url, req_err)
            return None

        try:
            feed = self.parser.parse(content)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Error parsing %s: %s", url, e)
            return None

        if feed is None:
            logger.warning("No usable RSS channel in %s", url)
        return feed
