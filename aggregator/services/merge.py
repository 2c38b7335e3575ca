"""
Merging of parsed feeds into the single ranked episode list.
"""

import datetime
import logging
from typing import List, Tuple

from aggregator.models import FeedResult, OutputEpisode
from aggregator.parsers.fields import parse_iso

logger = logging.getLogger(__name__)

_EARLIEST = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def _sort_key(episode: OutputEpisode) -> Tuple[float, str, str]:
    """
    Newest first, then feed title ascending.

    Titles compare case-insensitively; titles differing only in case put
    lowercase first ("alpha pod" before "Alpha Pod").
    """
    instant = parse_iso(episode["pubDate"])
    if instant is None:
        logger.warning(
            "Unparseable pubDate %r on %s, sorting last.",
            episode["pubDate"],
            episode["guid"],
        )
        instant = _EARLIEST
    # Negated offset from the epoch gives a descending date order
    age = -(instant - _EARLIEST).total_seconds()
    title = episode["feedTitle"]
    return age, title.casefold(), title.swapcase()


def merge_and_sort(feeds: List[FeedResult]) -> List[OutputEpisode]:
    """
    Flattens every feed's episodes into one list, newest first.

    Each episode gets its own copy of the feed title, slug and artwork path so
    entries stay self-describing after merging. Episodes published at the same
    instant are ordered by feed title; beyond that the input order is kept.
    """
    episodes: List[OutputEpisode] = []
    for result in feeds:
        feed = result["feed"]
        for episode in feed["episodes"]:
            episodes.append(
                OutputEpisode(
                    guid=episode["guid"],
                    title=episode["title"],
                    link=episode["link"],
                    pubDate=episode["pubDate"],
                    duration=episode["duration"],
                    enclosureUrl=episode["enclosureUrl"],
                    description=episode["description"],
                    feedTitle=feed["title"],
                    feedSlug=result["slug"],
                    artworkSrc=result["artwork_src"],
                )
            )

    episodes.sort(key=_sort_key)
    return episodes
