"""
Artwork service for feed cover images.

Downloads a feed's cover image and writes small square WebP copies for the
player's episode list. Artwork is optional: every failure is logged and
reported as None.
"""

import io
import logging
import os
from typing import Optional, Sequence

import requests
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

DEFAULT_SIZES = (48, 96)
DEFAULT_URL_PREFIX = "data/artwork"
WEBP_QUALITY = 80


class ArtworkProcessor:
    """Downloads and resizes feed artwork into an output directory."""

    def __init__(
        self,
        out_dir: str,
        sizes: Sequence[int] = DEFAULT_SIZES,
        url_prefix: str = DEFAULT_URL_PREFIX,
        timeout: float = 15,
        user_agent: str = "PodcastAggregatorBot/1.0",
    ):
        if not sizes:
            raise ValueError("At least one artwork size is required.")
        self.artwork_dir = os.path.join(out_dir, "artwork")
        self.sizes = sorted(sizes)
        self.url_prefix = url_prefix.rstrip("/")
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}

    def _file_name(self, slug: str, size: int) -> str:
        return f"{slug}-{size}.webp"

    def _write_sizes(self, image: Image.Image, slug: str) -> None:
        """Center-crops the image to each square size and saves it as WebP."""
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
        os.makedirs(self.artwork_dir, exist_ok=True)
        for size in self.sizes:
            resized = ImageOps.fit(image, (size, size), Image.Resampling.LANCZOS)
            resized.save(
                os.path.join(self.artwork_dir, self._file_name(slug, size)),
                format="WEBP",
                quality=WEBP_QUALITY,
            )

    def _remove_sizes(self, slug: str) -> None:
        """Deletes any size already written for a slug whose artwork failed."""
        for size in self.sizes:
            path = os.path.join(self.artwork_dir, self._file_name(slug, size))
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not remove partial artwork %s: %s", path, e)

    def process(self, image_url: str, slug: str) -> Optional[str]:
        """
        Produces the resized artwork for one feed.

        Returns:
            The path of the largest (thumbnail) variant, relative to the web
            root, or None if the artwork could not be produced.
        """
        if not slug:
            logger.warning("Skipping artwork for %s: feed has an empty slug.", image_url)
            return None

        try:
            try:
                resp = requests.get(image_url, timeout=self.timeout, headers=self.headers)
                resp.raise_for_status()
            except requests.RequestException as req_err:
                logger.warning("Artwork download failed for %s: %s", slug, req_err)
                return None

            with Image.open(io.BytesIO(resp.content)) as image:
                image.load()
                self._write_sizes(image, slug)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Artwork processing failed for %s: %s", slug, e)
            self._remove_sizes(slug)
            return None

        return f"{self.url_prefix}/{self._file_name(slug, self.sizes[-1])}"


def process_artwork(image_url: str, slug: str, out_dir: str) -> Optional[str]:
    """Processes artwork with the default sizes."""
    return ArtworkProcessor(out_dir).process(image_url, slug)
