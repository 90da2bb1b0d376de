"""SQLAlchemy models."""

from streamsense.models.affinity import UserGenreAffinity
from streamsense.models.base import Base
from streamsense.models.content import Content, MediaType
from streamsense.models.content_dna import ContentDNARecord
from streamsense.models.taste_profile import UserTasteProfileRecord
from streamsense.models.watchlist import WatchlistItem, WatchStatus

__all__ = [
    "Base",
    "Content",
    "MediaType",
    "WatchlistItem",
    "WatchStatus",
    "UserGenreAffinity",
    "UserTasteProfileRecord",
    "ContentDNARecord",
]
