"""Per-request music profile.

Fuses onboarding answers, interest tags (manual, Spotify, Apple Music) and
the tags of favorited events into one weight map per tag category. Sources
are combined with max, never averaged, so a strong manual signal is not
diluted by a weak streaming one.
"""

from __future__ import annotations

from pulse_recs import db
from pulse_recs.config import settings
from pulse_recs.errors import PulseError
from pulse_recs.log import get_logger
from pulse_recs.models import (
    CandidateEvent,
    InterestSource,
    InterestTag,
    TagCategory,
    TasteProfileData,
    UserMusicProfile,
    UserPreferences,
    clamp_weight,
    split_snapshot_tag,
)
from pulse_recs.recommend.scope import time_of_day
from pulse_recs.recommend.vocabulary import (
    DEFAULT_VOCABULARY,
    GenreVocabulary,
    map_streaming_genres,
    map_streaming_styles,
)

logger = get_logger("music_profile")

ONBOARDING_WEIGHT = 0.9
FAVORITE_BOOST = 0.1
# Streaming genre occurrences needed for a full-weight genre tag
STREAMING_SATURATION = 20
# Snapshot time slots at or above this weight count as a preferred time of day
SNAPSHOT_SLOT_THRESHOLD = 0.5


def _merge_max(weights: dict[str, float], key: str, value: float) -> None:
    weights[key] = max(weights.get(key, 0.0), clamp_weight(value))


def fuse_music_profile(
    interest_tags: list[InterestTag],
    favorites: list[CandidateEvent],
    preferences: UserPreferences | None = None,
) -> UserMusicProfile:
    profile = UserMusicProfile()

    if preferences is not None:
        for genre in preferences.music_preferences:
            _merge_max(profile.genres, genre, ONBOARDING_WEIGHT)
        for category in preferences.category_preferences:
            _merge_max(profile.categories, category, ONBOARDING_WEIGHT)
        for vibe in preferences.vibe_preferences:
            _merge_max(profile.ambiances, vibe, ONBOARDING_WEIGHT)
        profile.preferred_days = list(preferences.preferred_days)
        profile.preferred_times = list(preferences.preferred_times)
        profile.sources.onboarding = bool(
            preferences.music_preferences
            or preferences.category_preferences
            or preferences.vibe_preferences
        )

    for tag in interest_tags:
        _merge_max(profile.weights_for(tag.category), tag.value, tag.score)
        if tag.source == InterestSource.MANUAL:
            profile.sources.manual = True
        elif tag.source == InterestSource.SPOTIFY:
            profile.sources.spotify = True
        elif tag.source == InterestSource.APPLE_MUSIC:
            profile.sources.apple_music = True

    for event in favorites:
        profile.favorite_event_ids.append(event.id)
        for tag in event.tags:
            weights = profile.weights_for(tag.category)
            weights[tag.value] = min(1.0, weights.get(tag.value, 0.0) + FAVORITE_BOOST)
            if tag.category == TagCategory.GENRE and tag.value not in profile.favorite_genres:
                profile.favorite_genres.append(tag.value)
            elif tag.category == TagCategory.STYLE and tag.value not in profile.favorite_styles:
                profile.favorite_styles.append(tag.value)

    return profile


def build_user_music_profile(user_id: str) -> UserMusicProfile:
    """Load the three live sources and fuse them. Empty maps mean cold start."""
    interest_tags = db.get_interest_tags(user_id)
    favorites = db.get_favorite_events(user_id, limit=settings.favorites_limit)
    preferences = db.get_user_preferences(user_id)
    profile = fuse_music_profile(interest_tags, favorites, preferences)
    logger.debug(
        "music_profile_built",
        user_id=user_id,
        interest_tags=len(interest_tags),
        favorites=len(favorites),
        genres=len(profile.genres),
        styles=len(profile.styles),
    )
    return profile


def merge_taste_snapshot(
    profile: UserMusicProfile,
    snapshot: TasteProfileData,
    vocabulary: GenreVocabulary = DEFAULT_VOCABULARY,
) -> UserMusicProfile:
    """Fold an interaction snapshot into a music profile. Returns a new profile."""
    merged = profile.model_copy(deep=True)

    for genre, weight in snapshot.top_genres.items():
        _merge_max(merged.genres, genre, weight)

    for key, weight in snapshot.top_tags.items():
        category, tag = split_snapshot_tag(key)
        if category is not None:
            _merge_max(merged.weights_for(category), tag, weight)
            continue
        # Uncategorized key from an older snapshot
        target = next(
            (
                merged.weights_for(c)
                for c in TagCategory
                if tag in merged.weights_for(c)
            ),
            None,
        )
        if target is None:
            target = merged.weights_for(vocabulary.classify(tag))
        _merge_max(target, tag, weight)

    if not merged.preferred_times:
        times: list[str] = []
        for slot, weight in sorted(snapshot.preferred_time_slots.items(), key=lambda kv: -kv[1]):
            if weight < SNAPSHOT_SLOT_THRESHOLD:
                continue
            hour = int(slot.split(":", 1)[0])
            label = time_of_day(hour)
            if label and label not in times:
                times.append(label)
        merged.preferred_times = times

    return merged


def sync_streaming_genres(
    user_id: str,
    source: InterestSource,
    streaming_genres: list[str],
    vocabulary: GenreVocabulary = DEFAULT_VOCABULARY,
) -> list[InterestTag]:
    """Replace a streaming source's genre/style interest tags from its raw genre list."""
    if source == InterestSource.MANUAL:
        raise PulseError("manual tags are not synced from a streaming service", code="invalid_source")

    counts = map_streaming_genres(streaming_genres, vocabulary)
    tags = [
        InterestTag(
            user_id=user_id,
            category=TagCategory.GENRE,
            value=genre,
            score=min(1.0, count / STREAMING_SATURATION),
            source=source,
        )
        for genre, count in sorted(counts.items())
    ]
    styles: list[str] = []
    for genre in sorted(counts):
        for style in map_streaming_styles(streaming_genres, genre, vocabulary):
            if style not in styles:
                styles.append(style)
    tags.extend(
        InterestTag(
            user_id=user_id,
            category=TagCategory.STYLE,
            value=style,
            score=1.0,
            source=source,
        )
        for style in styles
    )

    db.replace_source_tags(user_id, source, [TagCategory.GENRE, TagCategory.STYLE], tags)
    logger.info(
        "streaming_genres_synced",
        user_id=user_id,
        source=source.value,
        raw=len(streaming_genres),
        genres=len(counts),
        styles=len(styles),
    )
    return tags
