"""Merge freshly parsed items into a stored feed without losing user state."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from .models import DEFAULT_FOLDER, Feed, FeedItem, RawItem

logger = logging.getLogger(__name__)


def build_item(
    raw: RawItem, feed_title: str, feed_url: str, previous: Optional[FeedItem] = None
) -> FeedItem:
    """Create a stored item from a parsed one, carrying over user state."""
    return FeedItem(
        title=raw.title,
        link=raw.link,
        guid=raw.guid,
        pub_date=raw.pub_date,
        feed_title=feed_title,
        feed_url=feed_url,
        description=raw.description,
        content=raw.content,
        cover_image=raw.cover_image,
        summary=raw.summary,
        author=raw.author,
        media_type=raw.media_type,
        video_id=raw.video_id,
        audio_url=raw.audio_url,
        duration=raw.duration,
        enclosure=raw.enclosure,
        explicit=raw.explicit,
        image=raw.image,
        category=raw.category,
        episode_type=raw.episode_type,
        season=raw.season,
        episode=raw.episode,
        read=previous.read if previous else False,
        starred=previous.starred if previous else False,
        saved=previous.saved if previous else False,
        tags=list(previous.tags) if previous else [],
    )


def reconcile(
    existing_feed: Optional[Feed],
    raw_items: Iterable[RawItem],
    *,
    url: str,
    title: str,
    now: Optional[datetime] = None,
) -> Feed:
    """Return the refreshed feed for ``raw_items``.

    Items are matched to ``existing_feed`` by guid. Matched items keep their
    read, starred, saved and tag state; everything else comes from the fresh
    parse. The item list is replaced, so items the source no longer lists are
    dropped.
    """
    previous: Dict[str, FeedItem] = {}
    if existing_feed is not None:
        for item in existing_feed.items:
            previous.setdefault(item.guid, item)

    feed_title = existing_feed.title if existing_feed and existing_feed.title else title
    feed_url = existing_feed.url if existing_feed else url
    folder = existing_feed.folder if existing_feed and existing_feed.folder else DEFAULT_FOLDER

    items = [
        build_item(raw, feed_title, feed_url, previous.get(raw.guid))
        for raw in raw_items
    ]
    kept = sum(1 for item in items if item.guid in previous)
    logger.debug(
        "Reconciled %s: %d items (%d known, %d new)",
        feed_url,
        len(items),
        kept,
        len(items) - kept,
    )

    return Feed(
        title=feed_title,
        url=feed_url,
        folder=folder,
        items=items,
        last_updated=now or datetime.now(timezone.utc),
        media_type=existing_feed.media_type if existing_feed else None,
    )
