"""Unit tests for the fetcher, artwork and merge services."""

import io
import itertools
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests
from PIL import Image

from aggregator.services.artwork import ArtworkProcessor, process_artwork
from aggregator.services.fetcher import FeedFetcher, FeedListError
from aggregator.services.merge import merge_and_sort

FEED_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Fetched Feed</title>
  <item><guid>f1</guid><title>Fetched Episode</title>
    <pubDate>Mon, 03 Feb 2025 14:00:00 GMT</pubDate></item>
</channel></rss>"""


def make_image_bytes(size=(200, 100), mode="RGB", image_format="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size).save(buf, format=image_format)
    return buf.getvalue()


def make_episode(guid, pub_date, **overrides):
    episode = {
        "guid": guid,
        "title": guid.upper(),
        "link": None,
        "pubDate": pub_date,
        "duration": None,
        "enclosureUrl": "",
        "description": "",
    }
    episode.update(overrides)
    return episode


def make_result(title, slug, episodes, artwork_src=None):
    return {
        "feed": {"title": title, "imageUrl": None, "episodes": episodes},
        "slug": slug,
        "artwork_src": artwork_src,
    }


class TestFeedFetcher(unittest.TestCase):
    @patch("requests.get")
    def test_fetch_feed_list_filters_comments_and_blanks(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.text = (
            "# my podcasts\n\nhttps://a.example/feed.xml\n"
            "   https://b.example/rss   \n  # disabled\n"
        )
        mock_get.return_value = mock_resp

        urls = FeedFetcher().fetch_feed_list("https://lists.example/feeds.txt")

        self.assertEqual(urls, ["https://a.example/feed.xml", "https://b.example/rss"])

    @patch("requests.get")
    def test_fetch_feed_list_empty_is_fatal(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.text = "# nothing here\n\n   \n"
        mock_get.return_value = mock_resp

        with self.assertRaises(FeedListError):
            FeedFetcher().fetch_feed_list("https://lists.example/feeds.txt")

    @patch("requests.get")
    def test_fetch_feed_list_http_error_is_fatal(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        mock_get.return_value = mock_resp

        with self.assertRaises(FeedListError) as ctx:
            FeedFetcher().fetch_feed_list("https://lists.example/feeds.txt")
        self.assertIn("404", str(ctx.exception))

    @patch("requests.get")
    def test_fetch_and_parse(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.iter_content.return_value = [FEED_XML]
        mock_get.return_value = mock_resp

        feed = FeedFetcher(timeout=15).fetch_and_parse("https://a.example/feed.xml")

        self.assertEqual(feed["title"], "Fetched Feed")
        self.assertEqual(feed["episodes"][0]["guid"], "f1")
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs["timeout"], 15)
        self.assertIn("User-Agent", kwargs["headers"])
        self.assertTrue(kwargs["stream"])
        mock_resp.close.assert_called_once()

    @patch("aggregator.services.fetcher.time.monotonic")
    @patch("requests.get")
    def test_fetch_and_parse_slow_body_hits_deadline(self, mock_get, mock_monotonic):
        # Every chunk arrives well inside the socket timeout, but the total
        # transfer runs past 15 seconds.
        mock_monotonic.side_effect = itertools.count(0, 10)
        mock_resp = MagicMock()
        mock_resp.iter_content.return_value = iter([b"<rss>", b"<channel>", b"</channel></rss>"])
        mock_get.return_value = mock_resp

        self.assertIsNone(FeedFetcher(timeout=15).fetch_and_parse("https://slow.example/rss"))
        mock_resp.close.assert_called_once()

    @patch("requests.get")
    def test_fetch_and_parse_timeout(self, mock_get):
        mock_get.side_effect = requests.Timeout("timed out")
        self.assertIsNone(FeedFetcher().fetch_and_parse("https://slow.example/rss"))

    @patch("requests.get")
    def test_fetch_and_parse_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")
        self.assertIsNone(FeedFetcher().fetch_and_parse("https://down.example/rss"))

    @patch("requests.get")
    def test_fetch_and_parse_http_error(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        mock_get.return_value = mock_resp
        self.assertIsNone(FeedFetcher().fetch_and_parse("https://err.example/rss"))

    @patch("requests.get")
    def test_fetch_and_parse_bad_xml(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.iter_content.return_value = [b"<html><body>Moved</body></html>"]
        mock_get.return_value = mock_resp
        self.assertIsNone(FeedFetcher().fetch_and_parse("https://html.example/"))

    @patch("requests.get")
    def test_parser_exceptions_do_not_escape(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.iter_content.return_value = [FEED_XML]
        mock_get.return_value = mock_resp
        parser = MagicMock()
        parser.parse.side_effect = RuntimeError("boom")

        self.assertIsNone(FeedFetcher(parser=parser).fetch_and_parse("https://a/rss"))


class TestArtworkProcessor(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.out_dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    @patch("requests.get")
    def test_writes_both_sizes(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.content = make_image_bytes()
        mock_get.return_value = mock_resp

        src = process_artwork("https://example.com/art.png", "my-show", self.out_dir)

        self.assertEqual(src, "data/artwork/my-show-96.webp")
        for size in (48, 96):
            path = os.path.join(self.out_dir, "artwork", f"my-show-{size}.webp")
            self.assertTrue(os.path.exists(path))
            with Image.open(path) as image:
                self.assertEqual(image.size, (size, size))
                self.assertEqual(image.format, "WEBP")

    @patch("requests.get")
    def test_palette_images_are_converted(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.content = make_image_bytes(mode="P", image_format="GIF")
        mock_get.return_value = mock_resp

        processor = ArtworkProcessor(self.out_dir, url_prefix="static/art/")
        src = processor.process("https://example.com/art.gif", "gif-show")

        self.assertEqual(src, "static/art/gif-show-96.webp")

    @patch("requests.get")
    def test_undecodable_image_returns_none(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.content = b"definitely not an image"
        mock_get.return_value = mock_resp

        self.assertIsNone(
            process_artwork("https://example.com/art.png", "broken", self.out_dir)
        )
        self.assertFalse(
            os.path.exists(os.path.join(self.out_dir, "artwork", "broken-96.webp"))
        )

    @patch("requests.get")
    def test_download_failure_returns_none(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")
        self.assertIsNone(
            process_artwork("https://example.com/art.png", "offline", self.out_dir)
        )

    @patch("requests.get")
    def test_empty_slug_is_skipped(self, mock_get):
        self.assertIsNone(process_artwork("https://example.com/art.png", "", self.out_dir))
        mock_get.assert_not_called()

    @patch("aggregator.services.artwork.ImageOps.fit")
    @patch("requests.get")
    def test_failed_size_removes_written_sizes(self, mock_get, mock_fit):
        mock_resp = MagicMock()
        mock_resp.content = make_image_bytes()
        mock_get.return_value = mock_resp
        mock_fit.side_effect = [Image.new("RGB", (48, 48)), OSError("disk full")]

        self.assertIsNone(
            process_artwork("https://example.com/art.png", "half-done", self.out_dir)
        )
        for size in (48, 96):
            self.assertFalse(
                os.path.exists(
                    os.path.join(self.out_dir, "artwork", f"half-done-{size}.webp")
                )
            )


class TestMergeAndSort(unittest.TestCase):
    def test_sorted_by_date_descending_across_feeds(self):
        feeds = [
            make_result(
                "Feed A",
                "feed-a",
                [
                    make_episode("a1", "2025-02-01T10:00:00Z"),
                    make_episode("a2", "2025-02-03T10:00:00Z"),
                ],
            ),
            make_result(
                "Feed B",
                "feed-b",
                [make_episode("b1", "2025-02-02T10:00:00Z")],
                artwork_src="data/artwork/feed-b-96.webp",
            ),
        ]

        result = merge_and_sort(feeds)

        self.assertEqual([e["guid"] for e in result], ["a2", "b1", "a1"])

    def test_compares_instants_not_strings(self):
        feeds = [
            make_result(
                "Feed A",
                "feed-a",
                [
                    make_episode("early", "2025-02-01T10:00:00.000Z"),
                    make_episode("late", "2025-02-01T09:00:00-05:00"),
                ],
            )
        ]
        result = merge_and_sort(feeds)
        self.assertEqual([e["guid"] for e in result], ["late", "early"])

    def test_same_date_orders_by_feed_title(self):
        feeds = [
            make_result("Zebra Cast", "zebra-cast", [make_episode("z1", "2025-02-01T10:00:00Z")]),
            make_result("Alpha Pod", "alpha-pod", [make_episode("a1", "2025-02-01T10:00:00Z")]),
            make_result("beta show", "beta-show", [make_episode("b1", "2025-02-01T10:00:00Z")]),
        ]

        result = merge_and_sort(feeds)

        self.assertEqual(
            [e["feedTitle"] for e in result], ["Alpha Pod", "beta show", "Zebra Cast"]
        )

    def test_same_title_ignoring_case_puts_lowercase_first(self):
        feeds = [
            make_result("Alpha Pod", "alpha-pod", [make_episode("upper", "2025-02-01T10:00:00Z")]),
            make_result("alpha pod", "alpha-pod-2", [make_episode("lower", "2025-02-01T10:00:00Z")]),
        ]
        result = merge_and_sort(feeds)
        self.assertEqual([e["guid"] for e in result], ["lower", "upper"])

    def test_full_ties_keep_input_order(self):
        feeds = [
            make_result(
                "Same",
                "same",
                [
                    make_episode("first", "2025-02-01T10:00:00Z"),
                    make_episode("second", "2025-02-01T10:00:00Z"),
                ],
            )
        ]
        result = merge_and_sort(feeds)
        self.assertEqual([e["guid"] for e in result], ["first", "second"])

    def test_denormalizes_feed_info(self):
        feeds = [
            make_result(
                "My Show",
                "my-show",
                [
                    make_episode(
                        "e1",
                        "2025-02-01T10:00:00Z",
                        duration=60,
                        enclosureUrl="https://example.com/e1.mp3",
                        description="desc",
                    )
                ],
                artwork_src="data/artwork/my-show-96.webp",
            )
        ]

        result = merge_and_sort(feeds)

        self.assertEqual(result[0]["feedTitle"], "My Show")
        self.assertEqual(result[0]["feedSlug"], "my-show")
        self.assertEqual(result[0]["artworkSrc"], "data/artwork/my-show-96.webp")
        self.assertEqual(result[0]["duration"], 60)
        self.assertEqual(result[0]["enclosureUrl"], "https://example.com/e1.mp3")
        self.assertIsNot(result[0], feeds[0]["feed"]["episodes"][0])

    def test_invalid_dates_sort_last(self):
        feeds = [
            make_result(
                "Feed",
                "feed",
                [
                    make_episode("bad", "not a date"),
                    make_episode("good", "2020-01-01T00:00:00Z"),
                ],
            )
        ]
        result = merge_and_sort(feeds)
        self.assertEqual([e["guid"] for e in result], ["good", "bad"])

    def test_empty_input(self):
        self.assertEqual(merge_and_sort([]), [])


if __name__ == "__main__":
    unittest.main()
