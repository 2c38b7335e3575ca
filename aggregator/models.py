"""
Data models for the podcast feed aggregator.

Keys match the JSON written to episodes.json, which the web player reads as-is.
"""

from typing import TypedDict, Optional, List


class ParsedEpisode(TypedDict):
    """Type definition for a single episode as read from a feed."""

    guid: str
    title: str
    link: Optional[str]
    pubDate: str
    duration: Optional[int]
    enclosureUrl: str
    description: str


class ParsedFeed(TypedDict):
    """Type definition for a parsed RSS feed."""

    title: str
    imageUrl: Optional[str]
    episodes: List[ParsedEpisode]


class OutputEpisode(ParsedEpisode):
    """Episode with its feed's metadata copied on, as written to episodes.json."""

    feedTitle: str
    feedSlug: str
    artworkSrc: Optional[str]


class FeedResult(TypedDict):
    """A parsed feed together with the slug and artwork assigned during a run."""

    feed: ParsedFeed
    slug: str
    artwork_src: Optional[str]
