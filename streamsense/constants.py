"""Application constants - centralized configuration values."""

# =============================================================================
# Preference Aggregation
# =============================================================================
TOP_GENRES_LIMIT = 10
RECENT_WINDOW_DAYS = 30
RECENT_AFFINITY_MULTIPLIER = 1.5
RATING_BOOST = {5: 2.0, 4: 1.5}  # star rating -> additive boost to genre weight
POSITIVE_RATING_MIN = 4
MEDIA_PREFERENCE_MIN_ITEMS = 5
MEDIA_PREFERENCE_MOVIE_RATIO = 0.7  # above -> movie
MEDIA_PREFERENCE_TV_RATIO = 0.3  # below -> tv
GENRE_COMBINATION_MIN_COUNT = 2
GENRE_COMBINATIONS_LIMIT = 5

# =============================================================================
# Recommendation Scoring
# =============================================================================
DEFAULT_RECOMMENDATION_LIMIT = 20
FOR_YOU_GENRES = 3
FOR_YOU_MIN_VOTE_COUNT = 100
FOR_YOU_MIN_VOTE_AVERAGE = 6.5
FOR_YOU_MAX_PAGE = 10
DEEP_CUT_COMBINATIONS = 2
DEEP_CUT_MAX_PAGE = 3
DEEP_CUT_BONUS = 15.0
BECAUSE_YOU_LIKED_GENRES = 3
BECAUSE_YOU_LIKED_FETCH = 10
BECAUSE_YOU_LIKED_MAX_ITEMS = 6
DISCOVERY_MIN_INTERACTIONS = 5  # strictly more than this
DISCOVERY_SAMPLE_GENRES = 3
DISCOVERY_MIN_VOTE_COUNT = 500
DISCOVERY_MIN_VOTE_AVERAGE = 7.5
DISCOVERY_MAX_PAGE = 5
TRENDING_LIMIT = 10
GENRE_MATCH_WEIGHT = 40.0  # per fully-weighted matched genre
RATING_BONUS_PER_POINT = 2.0  # up to +20 for a 10/10 item
POPULARITY_BONUS_FACTOR = 5.0  # times log10(popularity + 1)
PREFERRED_MEDIA_BONUS = 10.0

# =============================================================================
# Recommendation Cache
# =============================================================================
CACHE_POOL_LIMIT = 100
CACHE_TOP_UP_THRESHOLD = 10
CACHE_GENRE_BATCH_LIMIT = 15
UNDERREPRESENTED_GENRES = ("Horror", "Documentary", "Thriller", "Crime", "Romance")

# =============================================================================
# Taste Profile
# =============================================================================
TASTE_PROFILE_STALE_HOURS = 6
TASTE_PROFILE_REFRESH_INTERVAL = 24 * 60 * 60  # 24 hours
TASTE_TOP_LIST_LIMIT = 10
TASTE_CONFIDENCE_FULL_AT = 20  # items
TASTE_INCREMENTAL_MIN_ALPHA = 0.05
DEFAULT_TASTE_SIGNATURE = "Eclectic Viewer"
# star rating -> weight of a title's DNA in the profile
TASTE_RATING_WEIGHTS = {5: 1.0, 4: 0.8, 3: 0.5, 2: 0.2, 1: 0.1}
TASTE_UNRATED_WEIGHT = 0.6

# =============================================================================
# Content DNA Queue
# =============================================================================
DNA_MAX_CONCURRENT = 3
DNA_BATCH_DELAY = 0.5  # seconds between batches
DNA_MAX_RETRIES = 3
DNA_RETRY_DELAY = 2.0  # seconds

# =============================================================================
# Genre Affinity
# =============================================================================
AFFINITY_WEIGHTS = {
    "add_to_watchlist": 1.0,
    "start_watching": 2.0,
    "complete_watching": 3.0,
    "rate_high": 2.0,
    "rate_low": -1.0,
    "remove_from_watchlist": -0.5,
}

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
HTTPX_TIMEOUT = 10.0

# =============================================================================
# Background Tasks
# =============================================================================
MAX_CONSECUTIVE_FAILURES = 5
MAX_USER_SESSIONS = 500  # least recently used sessions are evicted beyond this

# =============================================================================
# External API URLs
# =============================================================================
TMDB_API_BASE_URL = "https://api.themoviedb.org/3"

# =============================================================================
# Content DNA Dimensions
# =============================================================================
TONE_KEYS = ("dark", "humorous", "serious", "lighthearted", "suspenseful", "emotional")
THEME_KEYS = (
    "redemption", "betrayal", "sacrifice", "identity", "power", "survival",
    "justice", "loyalty", "family", "love", "loss", "freedom",
    "tradition", "innovation", "nature", "technology",
)
SETTING_KEYS = ("urban", "rural", "historical", "contemporary", "futuristic")
PACING_KEYS = ("slow", "medium", "fast")
COMPLEXITY_KEYS = ("simple", "moderate", "complex")
DNA_DIMENSIONS = {
    "tone": TONE_KEYS,
    "themes": THEME_KEYS,
    "setting": SETTING_KEYS,
    "pacing": PACING_KEYS,
    "complexity": COMPLEXITY_KEYS,
}
