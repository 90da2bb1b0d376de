"""Per-title content DNA records."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streamsense.models.base import Base, TimestampMixin, utcnow


class ContentDNARecord(Base, TimestampMixin):
    """Derived tone/theme/setting/pacing/complexity weights for one title."""

    __tablename__ = "content_dna"

    id: Mapped[int] = mapped_column(primary_key=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, nullable=False)
    media_type: Mapped[str] = mapped_column(String(10), nullable=False)

    tone: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    themes: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    setting: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    pacing: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    complexity: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    genres: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    directors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    actors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    keywords: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (UniqueConstraint("tmdb_id", "media_type", name="uq_content_dna_title"),)

    @property
    def key(self) -> str:
        return f"{self.media_type}-{self.tmdb_id}"
