"""User watchlist rows."""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from streamsense.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from streamsense.models.content import Content


class WatchStatus(str, enum.Enum):
    """Where the user is with a title."""

    WANT_TO_WATCH = "want_to_watch"
    WATCHING = "watching"
    WATCHED = "watched"


class WatchlistItem(Base, TimestampMixin):
    """A title on a user's watchlist, optionally rated (1-5)."""

    __tablename__ = "watchlist_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    content_id: Mapped[int | None] = mapped_column(
        ForeignKey("content.id", ondelete="SET NULL"), nullable=True
    )
    # Legacy denormalized reference; older rows hold "null" or junk here
    tmdb_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[WatchStatus] = mapped_column(
        Enum(WatchStatus, values_callable=lambda e: [m.value for m in e], name="watch_status"),
        default=WatchStatus.WANT_TO_WATCH,
        nullable=False,
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    content: Mapped["Content"] = relationship(lazy="selectin")

    __table_args__ = (Index("ix_watchlist_user_status", "user_id", "status"),)

    def __repr__(self) -> str:
        return f"<WatchlistItem(id={self.id}, user={self.user_id}, status={self.status.value})>"
