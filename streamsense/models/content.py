"""Catalogue content referenced by watchlist rows."""

import enum

from sqlalchemy import JSON, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streamsense.models.base import Base, TimestampMixin


class MediaType(str, enum.Enum):
    """Kind of title, as named by the content-metadata API."""

    MOVIE = "movie"
    TV = "tv"


class Content(Base, TimestampMixin):
    """A movie or TV series known to the user-data store."""

    __tablename__ = "content"

    id: Mapped[int] = mapped_column(primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[MediaType] = mapped_column(
        Enum(MediaType, values_callable=lambda e: [m.value for m in e], name="content_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    genres: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    poster_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    original_language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    origin_country: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (UniqueConstraint("tmdb_id", "type", name="uq_content_tmdb_type"),)

    @property
    def key(self) -> str:
        return f"{self.type.value}-{self.tmdb_id}"

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, key={self.key}, title={self.title})>"
