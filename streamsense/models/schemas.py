"""Pydantic schemas shared by services and the API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from streamsense.constants import DEFAULT_TASTE_SIGNATURE, DNA_DIMENSIONS
from streamsense.models.content import MediaType

MediaTypeFilter = Literal["movie", "tv", "mixed"]


class UnifiedContent(BaseModel):
    """Normalized movie or TV item as returned to consumers."""

    id: int
    type: MediaType
    title: str = ""
    original_title: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    rating: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    language: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    origin_country: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Identity key; (type, id) pairs are unique, ids alone are not."""
        return f"{self.type.value}-{self.id}"


class GenreGroup(BaseModel):
    """A labelled row of items for one of the user's top genres."""

    genre: str
    genre_id: int
    items: list[UnifiedContent] = Field(default_factory=list)


class SmartRecommendations(BaseModel):
    """Categorized personalized recommendations."""

    for_you: list[UnifiedContent] = Field(default_factory=list)
    because_you_liked: list[GenreGroup] = Field(default_factory=list)
    discovery: list[UnifiedContent] = Field(default_factory=list)
    trending: list[UnifiedContent] = Field(default_factory=list)

    def all_items(self) -> list[UnifiedContent]:
        items = list(self.for_you)
        for group in self.because_you_liked:
            items.extend(group.items)
        items.extend(self.discovery)
        items.extend(self.trending)
        return items


def _zero_vector(dimension: str) -> dict[str, float]:
    return {key: 0.0 for key in DNA_DIMENSIONS[dimension]}


class ContentDNA(BaseModel):
    """Derived characteristics of one title, all weights in [0, 1]."""

    model_config = ConfigDict(from_attributes=True)

    tmdb_id: int
    media_type: MediaType
    tone: dict[str, float] = Field(default_factory=lambda: _zero_vector("tone"))
    themes: dict[str, float] = Field(default_factory=lambda: _zero_vector("themes"))
    setting: dict[str, float] = Field(default_factory=lambda: _zero_vector("setting"))
    pacing: dict[str, float] = Field(default_factory=lambda: _zero_vector("pacing"))
    complexity: dict[str, float] = Field(default_factory=lambda: _zero_vector("complexity"))
    genres: list[int] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.media_type.value}-{self.tmdb_id}"


class TasteProfile(BaseModel):
    """Aggregated taste of one user across the DNA dimensions."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    tone: dict[str, float] = Field(default_factory=lambda: _zero_vector("tone"))
    themes: dict[str, float] = Field(default_factory=lambda: _zero_vector("themes"))
    setting: dict[str, float] = Field(default_factory=lambda: _zero_vector("setting"))
    pacing: dict[str, float] = Field(default_factory=lambda: _zero_vector("pacing"))
    complexity: dict[str, float] = Field(default_factory=lambda: _zero_vector("complexity"))
    top_genres: list[str] = Field(default_factory=list)
    top_directors: list[str] = Field(default_factory=list)
    top_actors: list[str] = Field(default_factory=list)
    top_keywords: list[str] = Field(default_factory=list)
    watched_count: int = 0
    avg_rating: float | None = None
    taste_signature: str = DEFAULT_TASTE_SIGNATURE
    confidence: float = 0.0
    discovery_opportunities: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None


class TasteProfileResponse(BaseModel):
    """Taste profile plus its lifecycle state."""

    state: str
    is_stale: bool
    is_loading: bool
    last_updated: datetime | None = None
    profile: TasteProfile | None = None


InteractionAction = Literal[
    "add_to_watchlist",
    "start_watching",
    "complete_watching",
    "rate",
    "remove_from_watchlist",
]


class InteractionCreate(BaseModel):
    """A watchlist, viewing or rating event reported by a client."""

    tmdb_id: int
    media_type: MediaType
    action: InteractionAction
    genre_ids: list[int] = Field(default_factory=list)
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = None
    poster_path: str | None = None
    original_language: str | None = None


class DNAStatus(BaseModel):
    queue_size: int
    processing: int
    retrying: int
    is_running: bool
