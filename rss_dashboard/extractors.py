"""Heuristic extraction of images, summaries and media links from item HTML."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional

from bs4 import BeautifulSoup

from .models import RawFeed, RawItem

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")

_AUDIO_EXT = r"\.(?:mp3|m4a|wav|ogg|opus|aac|flac)"
AUDIO_PATTERNS = (
    re.compile(rf"<enclosure[^>]*url=[\"']([^\"']*{_AUDIO_EXT})[\"']", re.I),
    re.compile(rf"<audio[^>]*src=[\"']([^\"']*{_AUDIO_EXT})[\"']", re.I),
    re.compile(rf"href=[\"']([^\"']*{_AUDIO_EXT})[\"']", re.I),
    re.compile(rf"<source[^>]*src=[\"']([^\"']*{_AUDIO_EXT})[\"']", re.I),
)

_CLOCK = r"(\d+:\d+(?::\d+)?)"
DURATION_PATTERNS = (
    re.compile(rf"duration[^0-9]*{_CLOCK}", re.I),
    re.compile(rf"length[^0-9]*{_CLOCK}", re.I),
    re.compile(rf"time[^0-9]*{_CLOCK}", re.I),
    re.compile(rf"{_CLOCK}\s*(?:min|minutes|mins)", re.I),
)

YOUTUBE_ID_PATTERNS = (
    re.compile(
        r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/"
        r"|youtube\.com/e/|youtube\.com/user/[^/]+/u/\d+/videos/"
        r"|youtube\.com/user/[^/]+/|youtube\.com/.*[?&]v=|youtube\.com/.*[?&]v%3D"
        r"|youtube\.com/.+/|youtube\.com/(?:user|c)/[^/]+/#p/a/u/\d+/"
        r"|youtube\.com/playlist\?list=|youtube\.com/user/[^/]+/videos/)"
        r"([^\"&?/\s]{11})",
        re.I,
    ),
    re.compile(r"(?:youtube\.com/embed/|youtube\.com/v/|youtu\.be/)([^\"&?/\s]{11})", re.I),
)

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def _strip_html(raw_value: str) -> str:
    """Return text content extracted from HTML fragments."""
    soup = BeautifulSoup(raw_value, "html.parser")
    return soup.get_text()


def _http_attr(tag, attr: str) -> Optional[str]:
    if tag is None:
        return None
    value = tag.get(attr)
    if isinstance(value, str) and value.startswith("http"):
        return value
    return None


def extract_cover_image(html: Optional[str]) -> str:
    """Return the most likely cover image URL in ``html``, or an empty string.

    Structured metadata (Open Graph, then Twitter cards) is preferred over
    inline images.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    og_image = _http_attr(soup.find("meta", attrs={"property": "og:image"}), "content")
    if og_image:
        return og_image

    twitter_image = _http_attr(
        soup.find("meta", attrs={"name": "twitter:image"}), "content"
    )
    if twitter_image:
        return twitter_image

    first_img = _http_attr(soup.find("img"), "src")
    if first_img:
        return first_img

    for img in soup.find_all("img"):
        src = _http_attr(img, "src")
        if src and (src.endswith(IMAGE_EXTENSIONS) or "image" in src):
            return src

    return ""


def extract_summary(html: Optional[str], max_length: int = 150) -> str:
    """Return a plain-text summary of ``html`` truncated to ``max_length``."""
    if not html:
        return ""

    text = re.sub(r"\s+", " ", _strip_html(html))
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = text.strip()

    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def extract_podcast_audio(html: Optional[str]) -> Optional[str]:
    """Return the first audio file URL referenced in ``html``."""
    if not html:
        return None
    for pattern in AUDIO_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def extract_podcast_duration(html: Optional[str]) -> Optional[str]:
    """Return a ``h:mm:ss`` style duration mentioned in ``html``, if any."""
    if not html:
        return None
    for pattern in DURATION_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def extract_youtube_video_id(link: Optional[str]) -> Optional[str]:
    """Return the 11 character video id from a YouTube URL."""
    if not link:
        return None
    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(link)
        if match and len(match.group(1)) == 11:
            return match.group(1)
    return None


def enrich_item(item: RawItem, summary_length: int = 150) -> RawItem:
    html = item.content or item.description
    return replace(
        item,
        cover_image=extract_cover_image(html) or item.image or "",
        summary=extract_summary(html, summary_length),
    )


def enrich_items(raw_feed: RawFeed, summary_length: int = 150) -> RawFeed:
    """Fill cover image and summary for every item of a parsed feed."""
    items = [enrich_item(item, summary_length) for item in raw_feed.items]
    logger.debug("Extracted cover images and summaries for %d items", len(items))
    return replace(raw_feed, items=items)
