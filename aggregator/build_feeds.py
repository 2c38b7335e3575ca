"""
Podcast Feed Aggregator
This script fetches a list of podcast RSS feeds, parses each feed, caches
resized artwork, and writes every episode to one date-ordered episodes.json
for the web player.
"""

import concurrent.futures
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, cast

from aggregator.models import FeedResult, OutputEpisode, ParsedFeed
from aggregator.parsers.rss import RSSParser
from aggregator.services.artwork import ArtworkProcessor
from aggregator.services.fetcher import FeedFetcher, FeedListError
from aggregator.services.merge import merge_and_sort
from aggregator.slugs import SlugRegistry


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

EPISODES_FILENAME = "episodes.json"


def load_config(config_filename: str = "config.json") -> Dict[str, Any]:
    """Loads configuration from a JSON file."""
    # Build absolute path relative to this script
    base_dir = os.path.dirname(os.path.abspath(__file__))
    config_path = os.path.join(base_dir, config_filename)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Using defaults.", config_path)
        return {}


CONFIG: Dict[str, Any] = load_config()
FEED_TIMEOUT: float = cast(float, CONFIG.get("feed_timeout", 15))
ARTWORK_TIMEOUT: float = cast(float, CONFIG.get("artwork_timeout", 15))
MAX_EPISODES: int = cast(int, CONFIG.get("max_episodes", 10))
MAX_WORKERS: int = cast(int, CONFIG.get("max_workers", 8))
ARTWORK_SIZES: List[int] = cast(List[int], CONFIG.get("artwork_sizes", [48, 96]))
ARTWORK_URL_PREFIX: str = cast(str, CONFIG.get("artwork_url_prefix", "data/artwork"))
USER_AGENT: str = cast(str, CONFIG.get("user_agent", "PodcastAggregatorBot/1.0"))

# Env Vars
FEED_LIST_URL: Optional[str] = os.environ.get("FEED_LIST_URL")
OUTPUT_DIR: str = os.environ.get(
    "OUTPUT_DIR", cast(str, CONFIG.get("output_dir", "public/data"))
)


def fetch_feeds(fetcher: FeedFetcher, urls: List[str]) -> List[Optional[ParsedFeed]]:
    """
    Fetches and parses feeds in parallel.

    The result list lines up with `urls`; failed feeds are None.
    """
    results: List[Optional[ParsedFeed]] = [None] * len(urls)

    with concurrent.futures.ThreadPoolExecutor(max_workers=MAX_WORKERS) as executor:
        future_to_index = {
            executor.submit(fetcher.fetch_and_parse, url): i
            for i, url in enumerate(urls)
        }
        for future in concurrent.futures.as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("%s generated an exception: %s", urls[index], exc)

    return results


def process_artwork(
    artwork: ArtworkProcessor, feeds: List[FeedResult]
) -> List[FeedResult]:
    """Fills in artwork_src for every feed that advertises an image, in parallel."""
    with concurrent.futures.ThreadPoolExecutor(max_workers=MAX_WORKERS) as executor:
        future_to_result = {
            executor.submit(
                artwork.process, cast(str, result["feed"]["imageUrl"]), result["slug"]
            ): result
            for result in feeds
            if result["feed"]["imageUrl"]
        }
        for future in concurrent.futures.as_completed(future_to_result):
            result = future_to_result[future]
            try:
                result["artwork_src"] = future.result()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning(
                    "Artwork for %s generated an exception: %s", result["slug"], exc
                )

    return feeds


def collect_feeds(
    urls: List[str], parsed: List[Optional[ParsedFeed]]
) -> List[FeedResult]:
    """Assigns slugs in feed-list order and drops feeds that failed."""
    registry = SlugRegistry()
    results: List[FeedResult] = []
    for url, feed in zip(urls, parsed):
        if feed is None:
            logger.warning("Skipping feed: %s", url)
            continue
        slug = registry.claim(feed["title"])
        results.append(FeedResult(feed=feed, slug=slug, artwork_src=None))
        logger.info("  -> %s (%d episodes)", feed["title"], len(feed["episodes"]))
    return results


def write_episodes(episodes: List[OutputEpisode], out_dir: str) -> str:
    """Writes the episode list as pretty-printed JSON and returns its path."""
    path = os.path.join(out_dir, EPISODES_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(episodes, f, indent=2, ensure_ascii=False)
    return path


def build(feed_list_url: str, out_dir: str) -> List[OutputEpisode]:
    """
    Runs the whole pipeline once.

    Raises:
        FeedListError: If the feed list cannot be fetched or is empty.
        OSError: If the output cannot be written.
    """
    fetcher = FeedFetcher(
        parser=RSSParser(max_episodes=MAX_EPISODES),
        timeout=FEED_TIMEOUT,
        user_agent=USER_AGENT,
    )
    urls = fetcher.fetch_feed_list(feed_list_url)
    logger.info("Fetched %d feed URLs from the feed list", len(urls))

    os.makedirs(out_dir, exist_ok=True)

    feeds = collect_feeds(urls, fetch_feeds(fetcher, urls))

    artwork = ArtworkProcessor(
        out_dir,
        sizes=ARTWORK_SIZES,
        url_prefix=ARTWORK_URL_PREFIX,
        timeout=ARTWORK_TIMEOUT,
        user_agent=USER_AGENT,
    )
    feeds = process_artwork(artwork, feeds)

    episodes = merge_and_sort(feeds)
    path = write_episodes(episodes, out_dir)
    logger.info("Wrote %d episodes to %s", len(episodes), path)
    return episodes


def main():
    """Main execution entry point."""
    if not FEED_LIST_URL:
        logger.error("Error: FEED_LIST_URL environment variable is required.")
        sys.exit(1)

    try:
        build(FEED_LIST_URL, os.path.abspath(OUTPUT_DIR))
    except FeedListError as e:
        logger.error("Fatal: %s", e)
        sys.exit(1)
    except OSError as e:
        logger.error("Fatal: could not write output to %s: %s", OUTPUT_DIR, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
