"""
Base classes and interfaces for feed parsers.

This module defines the contract that all feed parsers must follow.
"""

from typing import Optional, Protocol, Union

from aggregator.models import ParsedFeed


class FeedParser(Protocol):
    """
    Protocol for feed parsers.

    Classes implementing this protocol turn a raw feed document into a
    ParsedFeed, returning None instead of raising when the document is unusable.
    """

    def parse(self, xml: Union[str, bytes]) -> Optional[ParsedFeed]:
        """Parses a feed document."""
