from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    User entity with unique email and hashed password.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan")
    bookmarks = relationship("Bookmark", back_populates="owner", cascade="all, delete-orphan")


class TaggedMixin:
    """Exposes the ordered tag rows of a record as a plain list of strings."""

    tag_model = None

    @property
    def tags(self) -> List[str]:
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names: List[str]) -> None:
        self.tag_rows = [self.tag_model(name=name, position=i) for i, name in enumerate(names)]

    def touch(self) -> None:
        """Refresh updated_at; tag-only changes never reach the row's own UPDATE."""
        self.updated_at = utcnow()


class NoteTag(Base):
    __tablename__ = "note_tags"

    id = Column(Integer, primary_key=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(30), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)


class BookmarkTag(Base):
    __tablename__ = "bookmark_tags"

    id = Column(Integer, primary_key=True)
    bookmark_id = Column(
        Integer, ForeignKey("bookmarks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(30), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)


class Note(TaggedMixin, Base):
    """
    Note entity owned by a user with tags, favorite flag and timestamps.
    """
    __tablename__ = "notes"

    tag_model = NoteTag

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    content = Column(Text, default="", nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="notes")
    tag_rows = relationship(
        NoteTag,
        order_by=NoteTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_notes_user_title", "user_id", "title"),
        Index("ix_notes_user_created", "user_id", "created_at"),
    )


class Bookmark(TaggedMixin, Base):
    """
    Bookmark entity: a normalized URL plus optional metadata, owned by a user.
    """
    __tablename__ = "bookmarks"

    tag_model = BookmarkTag

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String(2000), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    favicon = Column(String(2000), nullable=True)
    is_favorite = Column(Boolean, default=False, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="bookmarks")
    tag_rows = relationship(
        BookmarkTag,
        order_by=BookmarkTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_bookmarks_user_url"),
        Index("ix_bookmarks_user_created", "user_id", "created_at"),
    )
