"""
SQLAlchemy models for the dupmark bookmark store.

The store is the persistence collaborator of the duplicate engine: it hands
out BookmarkSnapshots and receives merged fields and deletions back.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from dupmark.entities import BookmarkSnapshot


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Bookmark(Base):
    """
    Bookmark model representing a saved URL with metadata.

    Attributes:
        id: Primary key
        url: The bookmark URL (duplicates allowed, that's what we detect)
        title: Bookmark title
        description: Optional description
        category: Category name
        tags: Ordered list of tag names
        is_favorite: Whether bookmark is starred/favorited
        date_added: Timestamp when bookmark was added
        date_modified: Timestamp of the last change
        visits: Number of times visited
        favicon: Favicon reference (URL, path or emoji)
    """
    __tablename__ = 'bookmarks'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False, default='')
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(256), nullable=False, default='')
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    date_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favicon: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    __table_args__ = (
        Index('ix_bookmarks_date_added', 'date_added'),
    )

    def to_snapshot(self) -> BookmarkSnapshot:
        """Immutable projection handed to the duplicate engine."""
        return BookmarkSnapshot(
            id=str(self.id),
            title=self.title or '',
            url=self.url,
            description=self.description,
            category=self.category or '',
            tags=list(self.tags or []),
            is_favorite=bool(self.is_favorite),
            date_added=_as_utc(self.date_added),
            date_modified=_as_utc(self.date_modified),
            visits=self.visits or 0,
            favicon=self.favicon,
        )

    def __repr__(self):
        return f"<Bookmark(id={self.id}, title='{(self.title or '')[:50]}', url='{self.url[:50]}')>"
