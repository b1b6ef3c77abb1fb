"""Error types shared across the feed pipeline."""

from __future__ import annotations

from typing import Optional


class FeedError(Exception):
    """Base class for failures tied to a single feed URL."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class FetchError(FeedError):
    """Raised when a feed cannot be downloaded or the response is empty."""


class ParseError(FeedError):
    """Raised when a document is not a well-formed RSS or Atom feed."""


class DuplicateFeedError(FeedError):
    """Raised when subscribing to a URL that is already in the collection."""


__all__ = ["FeedError", "FetchError", "ParseError", "DuplicateFeedError"]
