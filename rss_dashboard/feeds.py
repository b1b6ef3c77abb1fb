"""Feed download and parsing helpers."""

from __future__ import annotations

import calendar
import logging
import re
import time
import xml.sax
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import feedparser
import requests

from .errors import FetchError, ParseError
from .models import Enclosure, RawFeed, RawItem

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Feedbro/4.0"
)
ACCEPT = (
    "application/rss+xml, application/xml, application/atom+xml, "
    "text/xml;q=0.9, */*;q=0.8"
)
REQUEST_HEADERS = {"User-Agent": USER_AGENT, "Accept": ACCEPT}

ITUNES_NAMESPACE = "http://www.itunes.com/dtds/podcast-1.0.dtd"

_INSECURE_SCHEME = re.compile(r"^http://", re.IGNORECASE)


def secure_url(url: str) -> str:
    """Upgrade plain http URLs to https."""
    return _INSECURE_SCHEME.sub("https://", url)


def fetch_feed_xml(url: str, timeout: float = 10.0) -> str:
    """Download a feed document and return its text."""
    target = secure_url(url)
    logger.info("Fetching feed from %s", target)
    try:
        response = requests.get(target, headers=REQUEST_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch feed {target}: {exc}", url=url) from exc

    logger.debug("Feed response status for %s: %s", target, response.status_code)
    text = response.text
    if not text:
        raise FetchError(f"Empty response from feed {target}", url=url)
    return text


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser UTC timestamps to timezone-aware datetimes."""
    if value is None:
        return None
    return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    return int(text) if text.isdigit() else None


def _image_url(image: Any) -> Optional[str]:
    if not isinstance(image, Mapping):
        return None
    return image.get("href") or image.get("url") or None


def _first_content(entry: Mapping[str, Any]) -> str:
    content = entry.get("content")
    if not content:
        return ""
    try:
        return content[0].get("value") or ""
    except (TypeError, KeyError, IndexError, AttributeError):
        return ""


def _pub_date(entry: Mapping[str, Any]) -> str:
    for attr in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = to_datetime(entry.get(attr))
        if parsed is not None:
            return parsed.isoformat()
    for attr in ("published", "updated"):
        raw = entry.get(attr)
        if raw:
            return raw
    return datetime.now(timezone.utc).isoformat()


def _enclosure(entry: Mapping[str, Any]) -> Optional[Enclosure]:
    for enclosure in entry.get("enclosures") or []:
        url = enclosure.get("href") or enclosure.get("url")
        if url:
            return Enclosure(
                url=url,
                type=enclosure.get("type") or "",
                length=str(enclosure.get("length") or ""),
            )
    return None


def _category(entry: Mapping[str, Any]) -> Optional[str]:
    for tag in entry.get("tags") or []:
        term = tag.get("term") or tag.get("label")
        if term:
            return term
    return None


def _build_item(entry: Mapping[str, Any], channel: Mapping[str, Any]) -> RawItem:
    raw_link = entry.get("link") or ""
    content = _first_content(entry)
    return RawItem(
        title=entry.get("title") or "No title",
        link=raw_link or "#",
        guid=entry.get("id") or raw_link or "",
        pub_date=_pub_date(entry),
        description=entry.get("summary") or content,
        content=content,
        author=entry.get("author") or channel.get("author"),
        enclosure=_enclosure(entry),
        duration=entry.get("itunes_duration") or None,
        explicit=entry.get("itunes_explicit") is True,
        image=_image_url(entry.get("image")) or _image_url(channel.get("image")),
        category=_category(entry),
        episode_type=entry.get("itunes_episodetype") or None,
        season=_to_int(entry.get("itunes_season")),
        episode=_to_int(entry.get("itunes_episode")),
    )


def _has_itunes_namespace(parsed: Mapping[str, Any]) -> bool:
    namespaces = parsed.get("namespaces") or {}
    return any(uri.lower() == ITUNES_NAMESPACE for uri in namespaces.values())


def _looks_like_podcast(parsed: Mapping[str, Any], items: List[RawItem]) -> bool:
    channel = parsed.get("feed") or {}
    if _has_itunes_namespace(parsed) and channel.get("author"):
        return True
    if channel.get("itunes_type"):
        return True
    return any(
        item.enclosure is not None and item.enclosure.type.startswith("audio/")
        for item in items
    )


def parse_feed_document(text: str) -> RawFeed:
    """Parse RSS or Atom text into a format-independent ``RawFeed``."""
    parsed = feedparser.parse(
        text.encode("utf-8"), sanitize_html=False, resolve_relative_uris=False
    )

    error = parsed.get("bozo_exception") if parsed.get("bozo") else None
    if isinstance(error, xml.sax.SAXException):
        raise ParseError(f"Feed document is not well-formed XML: {error}")
    if not parsed.get("version"):
        raise ParseError("Document has no recognisable RSS or Atom root")

    channel = parsed.get("feed") or {}
    items = [_build_item(entry, channel) for entry in parsed.get("entries") or []]

    raw_feed = RawFeed(
        title=channel.get("title") or "",
        items=items,
        author=channel.get("author") or None,
        image=_image_url(channel.get("image")),
        is_podcast=_looks_like_podcast(parsed, items),
    )
    logger.info(
        "Parsed %d items from %s document '%s'",
        len(items),
        parsed.get("version"),
        raw_feed.title,
    )
    return raw_feed
