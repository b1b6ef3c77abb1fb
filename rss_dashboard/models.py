"""Shared data models for rss_dashboard."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

ARTICLE = "article"
VIDEO = "video"
PODCAST = "podcast"

DEFAULT_FOLDER = "Uncategorized"


@dataclass(frozen=True)
class Tag:
    """User tag; identity is the name, colour is display only."""

    name: str
    color: str = "#888888"


DEFAULT_TAGS = (
    Tag("Important", "#e74c3c"),
    Tag("Read Later", "#3498db"),
    Tag("Favorite", "#f1c40f"),
    Tag("YouTube", "#ff0000"),
    Tag("Podcast", "#8e44ad"),
    Tag("Saved", "#16a085"),
)


@dataclass
class Folder:
    name: str
    subfolders: List["Folder"] = field(default_factory=list)


def folder_paths(folders: Iterable[Folder], prefix: str = "") -> List[str]:
    """Flatten a folder tree into ``Parent/Child`` path strings."""
    paths: List[str] = []
    for folder in folders:
        path = f"{prefix}/{folder.name}" if prefix else folder.name
        paths.append(path)
        paths.extend(folder_paths(folder.subfolders, path))
    return paths


def build_folder_tree(paths: Iterable[str]) -> List[Folder]:
    """Rebuild a folder tree from path strings, keeping first-seen order."""
    roots: List[Folder] = []
    for path in paths:
        level = roots
        for name in (part for part in path.split("/") if part):
            node = next((f for f in level if f.name == name), None)
            if node is None:
                node = Folder(name)
                level.append(node)
            level = node.subfolders
    return roots


@dataclass(frozen=True)
class MediaSettings:
    """Media classification settings supplied by the settings store."""

    default_youtube_folder: str = "Videos"
    default_youtube_tag: str = "youtube"
    default_podcast_folder: str = "Podcasts"
    default_podcast_tag: str = "podcast"
    auto_detect_media_type: bool = True


@dataclass
class Enclosure:
    url: str
    type: str = ""
    length: str = ""


@dataclass
class RawItem:
    """Format-independent entry produced by the feed parser.

    The last block of fields is empty after parsing and gets filled in by
    the extraction and classification stages.
    """

    title: str
    link: str
    guid: str
    pub_date: str
    description: str = ""
    content: str = ""
    author: Optional[str] = None
    enclosure: Optional[Enclosure] = None
    duration: Optional[str] = None
    explicit: bool = False
    image: Optional[str] = None
    category: Optional[str] = None
    episode_type: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None

    cover_image: str = ""
    summary: str = ""
    media_type: str = ARTICLE
    video_id: Optional[str] = None
    audio_url: Optional[str] = None


@dataclass
class RawFeed:
    """Parsed feed document before reconciliation."""

    title: str
    items: List[RawItem] = field(default_factory=list)
    author: Optional[str] = None
    image: Optional[str] = None
    is_podcast: bool = False
    media_type: Optional[str] = None


@dataclass
class FeedItem:
    """A single article, video or podcast episode stored in a feed."""

    title: str
    link: str
    guid: str
    pub_date: str
    feed_title: str
    feed_url: str
    description: str = ""
    content: str = ""
    cover_image: str = ""
    summary: str = ""
    author: Optional[str] = None
    media_type: str = ARTICLE
    video_id: Optional[str] = None
    audio_url: Optional[str] = None
    duration: Optional[str] = None
    enclosure: Optional[Enclosure] = None
    explicit: bool = False
    image: Optional[str] = None
    category: Optional[str] = None
    episode_type: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None

    read: bool = False
    starred: bool = False
    saved: bool = False
    tags: List[Tag] = field(default_factory=list)


USER_STATE_FIELDS = ("read", "starred", "saved", "tags")


@dataclass
class Feed:
    """A subscribed source identified by its URL."""

    title: str
    url: str
    folder: str = DEFAULT_FOLDER
    items: List[FeedItem] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    media_type: Optional[str] = None


def item_from_dict(data: Dict[str, Any]) -> FeedItem:
    payload = dict(data)
    enclosure = payload.get("enclosure")
    if isinstance(enclosure, dict):
        payload["enclosure"] = Enclosure(**enclosure)
    payload["tags"] = [Tag(**tag) for tag in payload.get("tags") or []]
    return FeedItem(**payload)


def feed_to_dict(feed: Feed) -> Dict[str, Any]:
    """Return a JSON-compatible representation of a feed."""
    payload = asdict(feed)
    payload["last_updated"] = (
        feed.last_updated.isoformat() if feed.last_updated else None
    )
    return payload


def feed_from_dict(data: Dict[str, Any]) -> Feed:
    last_updated = data.get("last_updated")
    if isinstance(last_updated, str):
        last_updated = datetime.fromisoformat(last_updated)
    return Feed(
        title=data.get("title", ""),
        url=data["url"],
        folder=data.get("folder") or DEFAULT_FOLDER,
        items=[item_from_dict(item) for item in data.get("items") or []],
        last_updated=last_updated,
        media_type=data.get("media_type"),
    )
