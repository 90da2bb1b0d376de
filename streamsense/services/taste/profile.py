"""Pure taste-profile math: full aggregation and single-interaction updates."""

from collections import Counter
from collections.abc import Iterable

from streamsense.constants import (
    DEFAULT_TASTE_SIGNATURE,
    DNA_DIMENSIONS,
    TASTE_CONFIDENCE_FULL_AT,
    TASTE_INCREMENTAL_MIN_ALPHA,
    TASTE_RATING_WEIGHTS,
    TASTE_TOP_LIST_LIMIT,
    TASTE_UNRATED_WEIGHT,
)
from streamsense.genres import FILTER_GENRES, genre_name
from streamsense.models.schemas import ContentDNA, TasteProfile
from streamsense.services.dna.analyzer import normalize_vector

TONE_ADJECTIVES = {
    "dark": "Dark",
    "humorous": "Comedic",
    "serious": "Serious",
    "lighthearted": "Feel-Good",
    "suspenseful": "Suspense",
    "emotional": "Emotional",
}
SIGNATURE_TONE_MIN = 0.3
DISCOVERY_SUGGESTIONS = 3


def dna_weight(rating: int | None) -> float:
    """How strongly one title's DNA counts toward the profile."""
    if rating is None:
        return TASTE_UNRATED_WEIGHT
    return TASTE_RATING_WEIGHTS.get(rating, TASTE_UNRATED_WEIGHT)


def taste_signature(profile: TasteProfile) -> str:
    """Short label such as "Dark Crime Devotee"."""
    if not profile.watched_count or not profile.top_genres:
        return DEFAULT_TASTE_SIGNATURE
    genre = profile.top_genres[0]
    tone, weight = max(profile.tone.items(), key=lambda kv: kv[1], default=(None, 0.0))
    if tone is not None and weight >= SIGNATURE_TONE_MIN:
        return f"{TONE_ADJECTIVES[tone]} {genre} Devotee"
    return f"{genre} Enthusiast"


def discovery_opportunities(top_genres: list[str]) -> list[str]:
    known = set(top_genres)
    suggestions = []
    for name in FILTER_GENRES:
        if name in known or genre_name(FILTER_GENRES[name][0]) in known:
            continue
        suggestions.append(f"Try highly rated {name} titles")
        if len(suggestions) == DISCOVERY_SUGGESTIONS:
            break
    return suggestions


def _finalize(profile: TasteProfile) -> TasteProfile:
    profile.confidence = round(min(1.0, profile.watched_count / TASTE_CONFIDENCE_FULL_AT), 4)
    profile.taste_signature = taste_signature(profile)
    profile.discovery_opportunities = discovery_opportunities(profile.top_genres)
    return profile


def build_profile(user_id: str, signals: Iterable[tuple[ContentDNA, int | None]]) -> TasteProfile:
    """Rating-weighted average of each DNA vector over the user's titles."""
    sums = {dim: Counter() for dim in DNA_DIMENSIONS}
    genres: Counter[str] = Counter()
    directors: Counter[str] = Counter()
    actors: Counter[str] = Counter()
    keywords: Counter[str] = Counter()
    total_weight = 0.0
    count = 0
    ratings: list[int] = []

    for dna, rating in signals:
        weight = dna_weight(rating)
        total_weight += weight
        count += 1
        if rating is not None:
            ratings.append(rating)
        for dim in DNA_DIMENSIONS:
            for key, value in getattr(dna, dim).items():
                sums[dim][key] += weight * value
        for gid in dna.genres:
            genres[genre_name(gid)] += weight
        for name in dna.directors:
            directors[name] += weight
        for name in dna.actors:
            actors[name] += weight
        for kw in dna.keywords:
            keywords[kw] += weight

    profile = TasteProfile(user_id=user_id)
    if total_weight > 0:
        for dim, keys in DNA_DIMENSIONS.items():
            averaged = {key: sums[dim][key] / total_weight for key in keys}
            setattr(profile, dim, normalize_vector(averaged))

    profile.top_genres = [name for name, _ in genres.most_common(TASTE_TOP_LIST_LIMIT)]
    profile.top_directors = [name for name, _ in directors.most_common(TASTE_TOP_LIST_LIMIT)]
    profile.top_actors = [name for name, _ in actors.most_common(TASTE_TOP_LIST_LIMIT)]
    profile.top_keywords = [name for name, _ in keywords.most_common(TASTE_TOP_LIST_LIMIT)]
    profile.watched_count = count
    profile.avg_rating = round(sum(ratings) / len(ratings), 4) if ratings else None
    return _finalize(profile)


def _promote(ranked: list[str], names: Iterable[str]) -> list[str]:
    """Move each name up one place, or add it at the tail if new.

    A full list makes room for a newcomer by evicting its last entry.
    """
    result = list(ranked)[:TASTE_TOP_LIST_LIMIT]
    for name in names:
        if name in result:
            i = result.index(name)
            if i > 0:
                result[i - 1], result[i] = result[i], result[i - 1]
        elif len(result) < TASTE_TOP_LIST_LIMIT:
            result.append(name)
        else:
            result[-1] = name
    return result


def apply_interaction(
    profile: TasteProfile,
    dna: ContentDNA,
    rating: int | None,
    counted_before: bool = False,
    previous_rating: int | None = None,
) -> TasteProfile:
    """Fold one title into an existing profile without rescanning history.

    Old vectors decay by ``1 - alpha`` and the new signal is added with weight
    ``alpha``, where ``alpha`` shrinks as the profile accumulates titles; each
    vector is then rescaled to a maximum of 1.

    A title the profile already counts (``counted_before``) is re-weighted
    instead: only the change in its rating weight is applied, and the title
    count stays the same.
    """
    if counted_before:
        return _reweight(profile, dna, rating, previous_rating)

    updated = profile.model_copy(deep=True)
    alpha = max(1.0 / (profile.watched_count + 1), TASTE_INCREMENTAL_MIN_ALPHA)
    weight = dna_weight(rating)

    for dim, keys in DNA_DIMENSIONS.items():
        old = getattr(profile, dim)
        new = getattr(dna, dim)
        blended = {
            key: (1 - alpha) * old.get(key, 0.0) + alpha * weight * new.get(key, 0.0)
            for key in keys
        }
        setattr(updated, dim, normalize_vector(blended))

    updated.top_genres = _promote(profile.top_genres, (genre_name(g) for g in dna.genres))
    updated.top_directors = _promote(profile.top_directors, dna.directors)
    updated.top_actors = _promote(profile.top_actors, dna.actors)
    updated.top_keywords = _promote(profile.top_keywords, dna.keywords[:5])

    updated.watched_count = profile.watched_count + 1
    if rating is not None:
        if profile.avg_rating is None:
            updated.avg_rating = float(rating)
        else:
            updated.avg_rating = round(
                profile.avg_rating + (rating - profile.avg_rating) / updated.watched_count, 4
            )
    return _finalize(updated)


def _reweight(
    profile: TasteProfile, dna: ContentDNA, rating: int | None, previous_rating: int | None
) -> TasteProfile:
    if rating is None or rating == previous_rating:
        return profile.model_copy(deep=True)

    updated = profile.model_copy(deep=True)
    share = max(1.0 / max(profile.watched_count, 1), TASTE_INCREMENTAL_MIN_ALPHA)
    delta = dna_weight(rating) - dna_weight(previous_rating)

    for dim, keys in DNA_DIMENSIONS.items():
        old = getattr(profile, dim)
        new = getattr(dna, dim)
        shifted = {key: max(0.0, old.get(key, 0.0) + share * delta * new.get(key, 0.0)) for key in keys}
        setattr(updated, dim, normalize_vector(shifted))

    count = max(profile.watched_count, 1)
    if profile.avg_rating is None:
        updated.avg_rating = float(rating)
    elif previous_rating is None:
        updated.avg_rating = round(profile.avg_rating + (rating - profile.avg_rating) / count, 4)
    else:
        updated.avg_rating = round(profile.avg_rating + (rating - previous_rating) / count, 4)
    return _finalize(updated)
