"""Recommendation services package."""

from streamsense.services.recommendations.cache import RecommendationCache, RecommendationCacheManager
from streamsense.services.recommendations.preferences import UserPreferences, get_user_preferences
from streamsense.services.recommendations.scorer import RecommendationScorer
from streamsense.services.recommendations.session_cache import SessionCache

__all__ = [
    "RecommendationCache",
    "RecommendationCacheManager",
    "RecommendationScorer",
    "SessionCache",
    "UserPreferences",
    "get_user_preferences",
]
