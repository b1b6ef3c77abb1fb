"""High-level orchestration of the feed refresh pipeline."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from . import db
from .collection import feed_counts, find_feed, merge_feeds, merge_folders
from .config import parse_opml
from .errors import DuplicateFeedError
from .extractors import enrich_items
from .feeds import fetch_feed_xml, parse_feed_document
from .media import apply_media_tags, classify_feed, place_feed, resolve_youtube_feed_url
from .models import DEFAULT_TAGS, Feed, MediaSettings, Tag, feed_to_dict, feed_from_dict
from .reconcile import reconcile

logger = logging.getLogger(__name__)

Fetcher = Callable[..., str]


class FeedRefresher:
    """Runs fetch, parse, extract, classify and reconcile for feeds."""

    def __init__(
        self,
        media_settings: Optional[MediaSettings] = None,
        available_tags: Sequence[Tag] = DEFAULT_TAGS,
        *,
        timeout: float = 10.0,
        summary_length: int = 150,
        fetcher: Fetcher = fetch_feed_xml,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.media_settings = media_settings or MediaSettings()
        self.available_tags = tuple(available_tags)
        self.timeout = timeout
        self.summary_length = summary_length
        self._fetch = fetcher
        self._clock = clock

    def parse_feed(self, url: str, existing_feed: Optional[Feed] = None) -> Feed:
        """Fetch and normalise a single feed; errors propagate to the caller."""
        if not url:
            raise ValueError("Feed URL is required")

        text = self._fetch(url, timeout=self.timeout)
        raw_feed = parse_feed_document(text)
        raw_feed = enrich_items(raw_feed, self.summary_length)
        raw_feed = classify_feed(url, raw_feed)

        title = (existing_feed.title if existing_feed else "") or raw_feed.title or "Unnamed Feed"
        feed = reconcile(
            existing_feed,
            raw_feed.items,
            url=url,
            title=title,
            now=self._clock() if self._clock else None,
        )
        feed = replace(feed, media_type=raw_feed.media_type)

        if self.media_settings.auto_detect_media_type:
            had_folder = bool(existing_feed and existing_feed.folder)
            feed = place_feed(feed, self.media_settings, had_folder)
            feed = apply_media_tags(feed, self.available_tags, self.media_settings)

        logger.info(
            "Parsed feed '%s' (%s): %d %s items",
            feed.title,
            feed.url,
            len(feed.items),
            feed.media_type,
        )
        return feed

    def refresh_feed(self, feed: Feed) -> Feed:
        """Refresh one feed, returning it unchanged if anything fails."""
        try:
            return self.parse_feed(feed.url, feed)
        except Exception:
            logger.exception("Error refreshing feed '%s' (%s)", feed.title, feed.url)
            return feed

    def refresh_all_feeds(self, feeds: Sequence[Feed]) -> List[Feed]:
        """Refresh feeds one after another; output order matches input."""
        updated: List[Feed] = []
        for feed in feeds:
            try:
                updated.append(self.refresh_feed(feed))
            except Exception:
                logger.exception("Error refreshing feed '%s' (%s)", feed.title, feed.url)
                updated.append(feed)
        logger.info("Refreshed %d feeds", len(updated))
        return updated

    def add_feed(
        self,
        feeds: Sequence[Feed],
        url: str,
        title: Optional[str] = None,
        folder: str = "",
    ) -> List[Feed]:
        """Subscribe to ``url`` and fetch it straight away."""
        if find_feed(feeds, url) is not None:
            raise DuplicateFeedError(f"This feed URL already exists: {url}", url=url)

        placeholder = Feed(title=title or "", url=url, folder=folder, items=[])
        feed = self.parse_feed(url, placeholder)
        logger.info("Added feed '%s' into folder '%s'", feed.title, feed.folder)
        return [*feeds, feed]

    def add_youtube_feed(
        self, feeds: Sequence[Feed], value: str, title: Optional[str] = None
    ) -> List[Feed]:
        """Resolve a YouTube channel reference and subscribe to its feed."""
        feed_url = resolve_youtube_feed_url(value, timeout=self.timeout)
        if not feed_url:
            raise ValueError(f"Unable to determine YouTube feed URL from {value!r}")
        return self.add_feed(
            feeds,
            feed_url,
            title=title or f"YouTube: {value}",
            folder=self.media_settings.default_youtube_folder,
        )


@dataclass
class RunConfig:
    """Runtime options for executing the application."""

    connection_string: str
    media_settings: MediaSettings = field(default_factory=MediaSettings)
    available_tags: List[Tag] = field(default_factory=lambda: list(DEFAULT_TAGS))
    timeout: float = 10.0
    summary_length: int = 150
    opml_file: Optional[str] = None
    add_feed_url: Optional[str] = None
    add_feed_title: Optional[str] = None
    add_feed_folder: str = ""
    add_youtube: Optional[str] = None
    load_feeds_path: Optional[str] = None
    refresh: bool = True
    save_feeds_path: Optional[str] = None


@dataclass
class RunResult:
    """Returned data after executing the app."""

    feeds: List[Feed]
    counts: dict


def load_feeds_from_file(path: str) -> List[Feed]:
    location = Path(path)
    try:
        payload = json.loads(location.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise RuntimeError(f"Feed snapshot not found: {location}") from exc
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Feed snapshot is not valid JSON: {location}") from exc

    if not isinstance(payload, list):
        raise RuntimeError("Feed snapshot must contain a JSON array.")
    return [feed_from_dict(item) for item in payload]


def save_feeds_to_file(path: str, feeds: Sequence[Feed]) -> None:
    location = Path(path)
    if location.parent and not location.parent.exists():
        location.parent.mkdir(parents=True, exist_ok=True)

    serialisable = [feed_to_dict(feed) for feed in feeds]
    location.write_text(
        json.dumps(serialisable, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    logger.info("Saved %d feeds to %s", len(serialisable), location)


def execute(config: RunConfig, session_factory=None) -> RunResult:
    """Run the application logic and return the refreshed collection."""
    if session_factory is None:
        engine = db.init_engine(config.connection_string)
        if engine is None:
            raise RuntimeError("A database connection string is required.")
        session_factory = db.get_session_factory(engine)

    with session_factory() as session:
        feeds = db.load_feeds(session)
        folders = db.load_folders(session)
    logger.info("Loaded %d feeds from the store", len(feeds))

    if config.load_feeds_path:
        feeds = load_feeds_from_file(config.load_feeds_path)
        logger.info("Replaced collection with %d feeds from %s", len(feeds), config.load_feeds_path)

    refresher = FeedRefresher(
        config.media_settings,
        config.available_tags,
        timeout=config.timeout,
        summary_length=config.summary_length,
    )

    if config.opml_file:
        imported_feeds, imported_folders = parse_opml(config.opml_file)
        feeds = merge_feeds(feeds, imported_feeds)
        folders = merge_folders(folders, imported_folders)

    if config.add_feed_url:
        feeds = refresher.add_feed(
            feeds,
            config.add_feed_url,
            title=config.add_feed_title,
            folder=config.add_feed_folder,
        )

    if config.add_youtube:
        feeds = refresher.add_youtube_feed(feeds, config.add_youtube, config.add_feed_title)

    if config.refresh:
        feeds = refresher.refresh_all_feeds(feeds)

    with session_factory() as session:
        db.save_feeds(session, feeds)
        db.save_folders(session, folders)

    if config.save_feeds_path:
        save_feeds_to_file(config.save_feeds_path, feeds)

    counts = feed_counts(feeds)
    logger.info(
        "Collection has %d feeds, %d items (%d unread, %d starred, %d saved)",
        counts["feeds"],
        counts["items"],
        counts["unread"],
        counts["starred"],
        counts["saved"],
    )
    return RunResult(feeds=feeds, counts=counts)

