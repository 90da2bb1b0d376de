"""Persisted taste profile, one row per user."""

from sqlalchemy import JSON, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from streamsense.models.base import Base, TimestampMixin


class UserTasteProfileRecord(Base, TimestampMixin):
    """Stored taste profile; ``updated_at`` drives staleness."""

    __tablename__ = "user_taste_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    tone: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    themes: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    setting: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    pacing: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    complexity: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    top_genres: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    top_directors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    top_actors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    top_keywords: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    discovery_opportunities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    watched_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avg_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    taste_signature: Mapped[str] = mapped_column(String(100), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
