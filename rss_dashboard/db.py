"""Database persistence for the feed collection."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .models import (
    USER_STATE_FIELDS,
    Feed,
    FeedItem,
    Folder,
    build_folder_tree,
    folder_paths,
    item_from_dict,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class FeedModel(Base):
    """A subscribed feed."""

    __tablename__ = "feeds"

    url = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False, default="")
    folder = Column(String, nullable=False, default="")
    media_type = Column(String, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=True)


class ItemModel(Base):
    """A feed item; content is kept as JSON next to the user-owned state."""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    feed_url = Column(String, ForeignKey("feeds.url"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    guid = Column(String, nullable=False, default="")
    read = Column(Boolean, nullable=False, default=False)
    starred = Column(Boolean, nullable=False, default=False)
    saved = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    payload = Column(JSON, nullable=False, default=dict)


class FolderModel(Base):
    __tablename__ = "folders"

    path = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, default=0)


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine."""
    if not connection_string:
        return None

    logger.info("Initializing database connection: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def _commit(session: Session) -> None:
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


def _item_row(feed_url: str, position: int, item: FeedItem) -> ItemModel:
    payload = asdict(item)
    for name in USER_STATE_FIELDS:
        payload.pop(name)
    return ItemModel(
        feed_url=feed_url,
        position=position,
        guid=item.guid,
        read=item.read,
        starred=item.starred,
        saved=item.saved,
        tags=[{"name": tag.name, "color": tag.color} for tag in item.tags],
        payload=payload,
    )


def _item_from_row(row: ItemModel) -> FeedItem:
    data = dict(row.payload or {})
    data.update(
        read=bool(row.read),
        starred=bool(row.starred),
        saved=bool(row.saved),
        tags=row.tags or [],
    )
    return item_from_dict(data)


def save_feeds(session: Session, feeds: Iterable[Feed]) -> None:
    """Replace the stored feed collection, keeping the given order."""
    session.execute(delete(ItemModel))
    session.execute(delete(FeedModel))

    count = 0
    for position, feed in enumerate(feeds):
        session.add(
            FeedModel(
                url=feed.url,
                position=position,
                title=feed.title,
                folder=feed.folder,
                media_type=feed.media_type,
                last_updated=feed.last_updated,
            )
        )
        for item_position, item in enumerate(feed.items):
            session.add(_item_row(feed.url, item_position, item))
        count += 1

    _commit(session)
    logger.info("Saved %d feeds to the database", count)


def load_feeds(session: Session) -> List[Feed]:
    """Load the stored feed collection in its saved order."""
    feed_rows = session.execute(select(FeedModel).order_by(FeedModel.position)).scalars().all()
    item_rows = session.execute(
        select(ItemModel).order_by(ItemModel.feed_url, ItemModel.position)
    ).scalars().all()

    items_by_feed = {}
    for row in item_rows:
        items_by_feed.setdefault(row.feed_url, []).append(_item_from_row(row))

    feeds: List[Feed] = []
    for row in feed_rows:
        last_updated = row.last_updated
        if last_updated is not None and last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        feeds.append(
            Feed(
                title=row.title,
                url=row.url,
                folder=row.folder,
                items=items_by_feed.get(row.url, []),
                last_updated=last_updated,
                media_type=row.media_type,
            )
        )
    logger.debug("Loaded %d feeds from the database", len(feeds))
    return feeds


def save_folders(session: Session, folders: Iterable[Folder]) -> None:
    session.execute(delete(FolderModel))
    for position, path in enumerate(folder_paths(folders)):
        session.add(FolderModel(path=path, position=position))
    _commit(session)


def load_folders(session: Session) -> List[Folder]:
    rows = session.execute(select(FolderModel).order_by(FolderModel.position)).scalars().all()
    return build_folder_tree(row.path for row in rows)

