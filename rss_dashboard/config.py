"""Configuration loading and OPML subscription import."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

from .models import DEFAULT_FOLDER, DEFAULT_TAGS, Feed, Folder, MediaSettings, Tag

logger = logging.getLogger(__name__)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DatabaseConfig:
    connection_string: str = "sqlite:///feeds.db"


@dataclass
class AppConfig:
    opml_file: Optional[str] = None
    timeout: float = 10.0
    summary_length: int = 150
    media: MediaSettings = field(default_factory=MediaSettings)
    tags: List[Tag] = field(default_factory=lambda: list(DEFAULT_TAGS))
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def parse_opml(path: str) -> Tuple[List[Feed], List[Folder]]:
    """Parse an OPML subscription list into feeds and a folder tree."""
    logger.info("Loading OPML subscriptions from %s", path)
    root = ET.parse(path).getroot()
    body = root.find("body")
    if body is None:
        raise ValueError("OPML document is missing the <body> section.")

    feeds: List[Feed] = []
    folders: List[Folder] = []

    def walk(outline: ET.Element, path_prefix: str, siblings: List[Folder]) -> None:
        title = outline.attrib.get("title") or outline.attrib.get("text")
        feed_url = outline.attrib.get("xmlUrl")
        outline_type = outline.attrib.get("type")
        children = list(outline.findall("outline"))

        if outline_type == "rss" or feed_url:
            if not feed_url:
                return
            feeds.append(
                Feed(
                    title=title or "Unnamed Feed",
                    url=feed_url,
                    folder=outline.attrib.get("category") or path_prefix or DEFAULT_FOLDER,
                )
            )
            logger.debug(
                "Registered feed '%s' (folder='%s')", feed_url, feeds[-1].folder
            )
            return

        if not children:
            return

        name = title or "Unnamed Folder"
        folder_path = f"{path_prefix}/{name}" if path_prefix else name
        folder = next((f for f in siblings if f.name == name), None)
        if folder is None:
            folder = Folder(name)
            siblings.append(folder)
        for child in children:
            walk(child, folder_path, folder.subfolders)

    for outline in body.findall("outline"):
        walk(outline, "", folders)

    logger.info("Loaded %d feeds and %d top-level folders", len(feeds), len(folders))
    return feeds, folders


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() == "true"


def _parse_media(node: Optional[ET.Element]) -> MediaSettings:
    defaults = MediaSettings()
    if node is None:
        return defaults
    return MediaSettings(
        default_youtube_folder=node.findtext(
            "youtube-folder", defaults.default_youtube_folder
        ),
        default_youtube_tag=node.findtext("youtube-tag", defaults.default_youtube_tag),
        default_podcast_folder=node.findtext(
            "podcast-folder", defaults.default_podcast_folder
        ),
        default_podcast_tag=node.findtext("podcast-tag", defaults.default_podcast_tag),
        auto_detect_media_type=_parse_bool(
            node.findtext("auto-detect"), defaults.auto_detect_media_type
        ),
    )


def _parse_tags(node: Optional[ET.Element]) -> List[Tag]:
    if node is None:
        return list(DEFAULT_TAGS)
    tags: Dict[str, Tag] = {}
    for tag_node in node.findall("tag"):
        name = (tag_node.attrib.get("name") or "").strip()
        if not name:
            continue
        color = tag_node.attrib.get("color") or "#888888"
        tags.setdefault(name, Tag(name, color))
    return list(tags.values())


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    root = ET.parse(config_path).getroot()

    opml_node = root.find("opml")
    opml_file = (
        _resolve_path(config_path, opml_node.text.strip())
        if opml_node is not None and opml_node.text
        else None
    )

    timeout = float(root.findtext("timeout", "10"))
    if timeout <= 0:
        raise ValueError("<timeout> must be positive.")
    summary_length = int(root.findtext("summary-length", "150"))

    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    db_node = root.find("database")
    db_config = DatabaseConfig()
    if db_node is not None:
        connection_string = db_node.findtext("connection-string")
        if connection_string:
            db_config.connection_string = connection_string.strip()

    return AppConfig(
        opml_file=opml_file,
        timeout=timeout,
        summary_length=summary_length,
        media=_parse_media(root.find("media")),
        tags=_parse_tags(root.find("tags")),
        logging=logging_config,
        database=db_config,
    )
