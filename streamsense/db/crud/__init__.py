"""CRUD operations."""

from streamsense.db.crud.affinity import get_user_affinities, track_genre_interaction
from streamsense.db.crud.content_dna import get_content_dna, get_content_dna_many, save_content_dna
from streamsense.db.crud.taste_profile import get_taste_profile, save_taste_profile
from streamsense.db.crud.watchlist import (
    apply_watchlist_interaction,
    counts_toward_taste,
    get_or_create_content,
    get_taste_state,
    get_user_watchlist,
    get_watchlist_refs,
    parse_tmdb_id,
)

__all__ = [
    "get_user_affinities",
    "track_genre_interaction",
    "get_content_dna",
    "get_content_dna_many",
    "save_content_dna",
    "get_taste_profile",
    "save_taste_profile",
    "apply_watchlist_interaction",
    "counts_toward_taste",
    "get_or_create_content",
    "get_taste_state",
    "get_user_watchlist",
    "get_watchlist_refs",
    "parse_tmdb_id",
]
