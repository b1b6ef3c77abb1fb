"""Media type detection, default placement and YouTube helpers."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, Optional

import requests

from .extractors import (
    extract_podcast_audio,
    extract_podcast_duration,
    extract_youtube_video_id,
)
from .feeds import USER_AGENT
from .models import (
    ARTICLE,
    PODCAST,
    VIDEO,
    Feed,
    MediaSettings,
    RawFeed,
    RawItem,
    Tag,
)

logger = logging.getLogger(__name__)

YOUTUBE_PATTERNS = (
    "youtube.com/feeds/videos.xml",
    "youtube.com/channel/",
    "youtube.com/user/",
    "youtube.com/c/",
    "youtube.com/@",
    "youtube.com/watch",
    "youtu.be/",
)

PODCAST_MARKERS = (
    "<enclosure",
    "audio/",
    ".mp3",
    "podcast",
    "episode",
    "duration",
    "length",
)

PODCAST_SAMPLE_SIZE = 3

YOUTUBE_THUMBNAIL = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"
YOUTUBE_FEED = "https://www.youtube.com/feeds/videos.xml"

_CHANNEL_ID = re.compile(r"^UC[\w-]{22}$")
_CHANNEL_URL = re.compile(r"youtube\.com/channel/(UC[\w-]{22})")
_CHANNEL_ID_IN_PAGE = re.compile(r"channelId\"?\s*:\s*\"(UC[\w-]{22})\"")
_USER_URL = re.compile(r"youtube\.com/user/([^/?#]+)")
_CUSTOM_URL = re.compile(r"youtube\.com/c/([^/?#]+)")


def is_youtube_feed(url: Optional[str]) -> bool:
    if not url:
        return False
    return any(pattern in url for pattern in YOUTUBE_PATTERNS)


def is_podcast_feed(raw_feed: RawFeed) -> bool:
    """Return True when the first few items look like podcast episodes."""
    if raw_feed.is_podcast:
        return True
    for item in raw_feed.items[:PODCAST_SAMPLE_SIZE]:
        if not item.description:
            continue
        if extract_podcast_audio(item.description):
            return True
        description = item.description.lower()
        if any(marker in description for marker in PODCAST_MARKERS):
            return True
    return False


def _video_item(item: RawItem) -> RawItem:
    video_id = extract_youtube_video_id(item.link)
    cover_image = (
        YOUTUBE_THUMBNAIL.format(video_id=video_id) if video_id else item.cover_image
    )
    return replace(item, media_type=VIDEO, video_id=video_id, cover_image=cover_image)


def _podcast_item(item: RawItem) -> RawItem:
    audio_url = extract_podcast_audio(item.description)
    if not audio_url and item.enclosure and item.enclosure.type.startswith("audio/"):
        audio_url = item.enclosure.url
    duration = extract_podcast_duration(item.description) or item.duration
    return replace(item, media_type=PODCAST, audio_url=audio_url, duration=duration)


def classify_feed(url: str, raw_feed: RawFeed) -> RawFeed:
    """Tag the feed and each of its items with a media type."""
    if is_youtube_feed(url):
        media_type, convert = VIDEO, _video_item
    elif is_podcast_feed(raw_feed):
        media_type, convert = PODCAST, _podcast_item
    else:
        media_type, convert = ARTICLE, lambda item: replace(item, media_type=ARTICLE)

    logger.debug("Classified %s as %s", url, media_type)
    return replace(
        raw_feed,
        media_type=media_type,
        items=[convert(item) for item in raw_feed.items],
    )


def place_feed(feed: Feed, settings: MediaSettings, had_folder: bool) -> Feed:
    """Route new media feeds into the configured default folder."""
    if not settings.auto_detect_media_type or had_folder:
        return feed
    if feed.media_type == VIDEO:
        return replace(feed, folder=settings.default_youtube_folder)
    if feed.media_type == PODCAST:
        return replace(feed, folder=settings.default_podcast_folder)
    return feed


def media_tag_name(media_type: Optional[str], settings: MediaSettings) -> Optional[str]:
    if media_type == VIDEO:
        return settings.default_youtube_tag
    if media_type == PODCAST:
        return settings.default_podcast_tag
    return None


def apply_media_tags(
    feed: Feed, available_tags: Iterable[Tag], settings: MediaSettings
) -> Feed:
    """Append the media tag to every item of a video or podcast feed."""
    tag_name = media_tag_name(feed.media_type, settings)
    if not tag_name:
        return feed

    wanted = tag_name.lower()
    media_tag = next((tag for tag in available_tags if tag.name.lower() == wanted), None)
    if media_tag is None:
        logger.debug("No '%s' tag configured; skipping media tags", tag_name)
        return feed

    items = []
    for item in feed.items:
        if any(tag.name.lower() == wanted for tag in item.tags):
            items.append(item)
        else:
            items.append(replace(item, tags=[*item.tags, replace(media_tag)]))
    return replace(feed, items=items)


def _channel_id_from_page(page_url: str, timeout: float) -> Optional[str]:
    try:
        response = requests.get(
            page_url, headers={"User-Agent": USER_AGENT}, timeout=timeout
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch YouTube page %s: %s", page_url, exc)
        return None

    match = _CHANNEL_ID_IN_PAGE.search(response.text or "")
    if not match:
        logger.warning("No channel id found on YouTube page %s", page_url)
        return None
    return match.group(1)


def resolve_youtube_feed_url(value: str, timeout: float = 10.0) -> Optional[str]:
    """Turn a channel id, channel/user/handle URL or username into a feed URL."""
    value = (value or "").strip()
    if not value:
        logger.error("No input provided for YouTube feed conversion")
        return None

    channel_id = None
    username = None

    if _CHANNEL_ID.match(value):
        channel_id = value
    elif "youtube.com/channel/" in value:
        match = _CHANNEL_URL.search(value)
        channel_id = match.group(1) if match else None
    elif "@" in value:
        handle = ""
        if "youtube.com/@" in value:
            handle = re.split(r"[?#/]", value.split("youtube.com/@", 1)[1])[0]
        elif value.startswith("@"):
            handle = value[1:]
        if handle:
            channel_id = _channel_id_from_page(
                f"https://www.youtube.com/@{handle}", timeout
            )
    elif "youtube.com/user/" in value:
        match = _USER_URL.search(value)
        username = match.group(1) if match else None
    elif "youtube.com/c/" in value:
        match = _CUSTOM_URL.search(value)
        if match:
            channel_id = _channel_id_from_page(
                f"https://www.youtube.com/c/{match.group(1)}", timeout
            )
    elif not re.search(r"\s", value) and "/" not in value:
        username = value

    if channel_id:
        return f"{YOUTUBE_FEED}?channel_id={channel_id}"
    if username:
        return f"{YOUTUBE_FEED}?user={username}"
    return None
