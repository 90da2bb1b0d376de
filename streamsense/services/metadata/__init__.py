"""Content-metadata API clients."""

from streamsense.services.metadata.tmdb import TMDBError, TMDBService, tmdb_service

__all__ = ["TMDBError", "TMDBService", "tmdb_service"]
