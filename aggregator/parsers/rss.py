"""
RSS feed parser implementation.

This module provides the RSSParser class, which turns RSS 2.0 documents (with
optional iTunes podcast tags) into ParsedFeed dictionaries.
"""

import datetime
import logging
from typing import Callable, List, Optional, Union

from aggregator.models import ParsedEpisode, ParsedFeed
from aggregator.parsers.base import FeedParser
from aggregator.parsers.fields import parse_duration, parse_pub_date
from aggregator.parsers.xml_tree import ITUNES_NS, XmlNode, parse_xml

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"
MAX_EPISODES = 10


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RSSParser(FeedParser):
    """Parses standard RSS feeds."""

    def __init__(
        self,
        max_episodes: int = MAX_EPISODES,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ):
        self.max_episodes = max_episodes
        self.clock = clock

    def _image_url(self, channel: XmlNode) -> Optional[str]:
        """Prefers <image><url>, falling back to <itunes:image href>."""
        image = channel.child("image")
        if image is not None:
            url = image.child_text("url")
            if url:
                return url

        itunes_image = channel.child("image", ITUNES_NS)
        if itunes_image is not None:
            return itunes_image.attribute("href")
        return None

    def _guid(
        self, item: XmlNode, link: Optional[str], enclosure_url: str, fallback: str
    ) -> str:
        """Picks a non-empty identifier for an item that may not carry a guid."""
        guid = item.child_text("guid") or link or ""
        if not guid or guid == "undefined":
            guid = enclosure_url or fallback
        return guid

    def _parse_item(self, item: XmlNode) -> ParsedEpisode:
        title = item.child_text("title") or DEFAULT_TITLE
        pub_date = parse_pub_date(item.child_text("pubDate"), now=self.clock())
        link = item.child_text("link")

        enclosure = item.child("enclosure")
        enclosure_url = ""
        if enclosure is not None:
            enclosure_url = enclosure.attribute("url") or ""

        description = (
            item.child_text("description")
            or item.child_text("summary", ITUNES_NS)
            or ""
        )

        return ParsedEpisode(
            guid=self._guid(item, link, enclosure_url, f"{title}|{pub_date}"),
            title=title,
            link=link,
            pubDate=pub_date,
            duration=parse_duration(item.child_text("duration", ITUNES_NS)),
            enclosureUrl=enclosure_url,
            description=description,
        )

    def parse(self, xml: Union[str, bytes]) -> Optional[ParsedFeed]:
        """Parses an RSS document, returning None if it is not a usable feed."""
        try:
            root = parse_xml(xml)
            if root.name != "rss":
                logger.warning("Document root is <%s>, not <rss>.", root.name)
                return None

            channel = root.child("channel")
            if channel is None:
                logger.warning("RSS document has no <channel>.")
                return None

            items: List[XmlNode] = channel.children("item")[: self.max_episodes]
            return ParsedFeed(
                title=channel.child_text("title") or DEFAULT_TITLE,
                imageUrl=self._image_url(channel),
                episodes=[self._parse_item(item) for item in items],
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to parse RSS XML: %s", e)
            return None


def parse_rss_feed(xml: Union[str, bytes]) -> Optional[ParsedFeed]:
    """Parses an RSS document with the default settings."""
    return RSSParser().parse(xml)
