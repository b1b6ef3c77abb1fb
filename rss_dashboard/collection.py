"""Operations on the stored feed collection."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .models import USER_STATE_FIELDS, Feed, Folder

logger = logging.getLogger(__name__)


def find_feed(feeds: Iterable[Feed], url: str) -> Optional[Feed]:
    return next((feed for feed in feeds if feed.url == url), None)


def merge_feeds(existing: List[Feed], imported: Iterable[Feed]) -> List[Feed]:
    """Append imported feeds whose URL is not already subscribed."""
    merged = list(existing)
    known = {feed.url for feed in merged}
    added = 0
    for feed in imported:
        if feed.url in known:
            logger.debug("Skipping already subscribed feed %s", feed.url)
            continue
        merged.append(feed)
        known.add(feed.url)
        added += 1
    logger.info("Merged %d new feeds into collection of %d", added, len(existing))
    return merged


def merge_folders(existing: List[Folder], imported: Iterable[Folder]) -> List[Folder]:
    """Merge two folder trees by folder name."""
    merged = [replace(folder, subfolders=list(folder.subfolders)) for folder in existing]
    for folder in imported:
        match = next((f for f in merged if f.name == folder.name), None)
        if match is None:
            merged.append(folder)
        else:
            match.subfolders = merge_folders(match.subfolders, folder.subfolders)
    return merged


def update_item(feeds: List[Feed], feed_url: str, guid: str, **changes) -> List[Feed]:
    """Apply read/starred/saved/tags changes to a single item.

    Unknown feeds or items leave the collection untouched.
    """
    unknown = set(changes) - set(USER_STATE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update item fields: {', '.join(sorted(unknown))}")

    updated: List[Feed] = []
    for feed in feeds:
        if feed.url != feed_url:
            updated.append(feed)
            continue
        items = [
            replace(item, **changes) if item.guid == guid else item
            for item in feed.items
        ]
        updated.append(replace(feed, items=items))
    return updated


def feed_counts(feeds: Iterable[Feed]) -> Dict[str, int]:
    counts = {"feeds": 0, "items": 0, "unread": 0, "starred": 0, "saved": 0}
    for feed in feeds:
        counts["feeds"] += 1
        for item in feed.items:
            counts["items"] += 1
            counts["unread"] += 0 if item.read else 1
            counts["starred"] += 1 if item.starred else 0
            counts["saved"] += 1 if item.saved else 0
    return counts
