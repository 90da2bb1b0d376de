"""Per-user genre affinity scores."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streamsense.models.base import Base, TimestampMixin


class UserGenreAffinity(Base, TimestampMixin):
    """Accumulated interaction weight of one user for one genre."""

    __tablename__ = "user_genre_affinity"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    genre_id: Mapped[int] = mapped_column(Integer, nullable=False)
    genre_name: Mapped[str] = mapped_column(String(100), nullable=False)
    affinity_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    interaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_interaction_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (UniqueConstraint("user_id", "genre_id", name="uq_affinity_user_genre"),)
