"""
Slug generation for feed titles.

Slugs key the artwork files on disk and the per-feed lookups in the web player.
"""

import logging
import re
from typing import Dict

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def to_slug(title: str) -> str:
    """Converts a title to a lowercase, hyphen-separated ASCII slug."""
    return _NON_ALNUM.sub("-", title.lower()).strip("-")


class SlugRegistry:
    """
    Hands out slugs for the feeds of a single run.

    Two feeds whose titles normalize to the same slug would overwrite each
    other's artwork, so later claimants get a numeric suffix. Empty slugs are
    passed through untouched.
    """

    def __init__(self) -> None:
        self._seen: Dict[str, int] = {}

    def claim(self, title: str) -> str:
        """Returns a slug for the title that no earlier claim in this run received."""
        base = to_slug(title)
        if not base:
            return base

        count = self._seen.get(base, 0) + 1
        self._seen[base] = count
        if count == 1:
            return base

        slug = f"{base}-{count}"
        # A literal title like "Show 2" may already own the suffixed form
        while slug in self._seen:
            count += 1
            slug = f"{base}-{count}"
        self._seen[base] = count
        self._seen[slug] = 1
        logger.warning("Slug collision for %r, using %s", title, slug)
        return slug
