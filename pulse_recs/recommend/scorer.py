from __future__ import annotations

from datetime import tzinfo

from pulse_recs.models import (
    CandidateEvent,
    RecommendationResult,
    TagCategory,
    UserMusicProfile,
    clamp_weight,
)
from pulse_recs.recommend.scope import day_type, local_tz, time_of_day

GENRE_WEIGHT = 0.30
CATEGORY_WEIGHT = 0.30
AMBIANCE_WEIGHT = 0.20
POPULARITY_WEIGHT = 0.10

# No category preference at all is not a mismatch
NEUTRAL_CATEGORY_SCORE = 0.5

DAY_TYPE_BONUS = 0.05
TIME_OF_DAY_BONUS = {"day": 0.033, "evening": 0.033, "night": 0.034}

# favorites_count at which popularity saturates
POPULARITY_SATURATION = 10

GENERIC_REASON_THRESHOLD = 0.3


def _best_match(values: list[str], weights: dict[str, float]) -> float:
    """Highest profile weight among the event's values, 0 if none match."""
    return max((clamp_weight(weights.get(v, 0.0)) for v in values), default=0.0)


def category_match(event: CandidateEvent, profile: UserMusicProfile, category: TagCategory) -> float:
    """Match strength of one tag category. Style and type only feed explanations."""
    values = event.tag_values(category)
    weights = profile.weights_for(category)
    if category == TagCategory.GENRE:
        return _best_match(values, weights)
    if category == TagCategory.CATEGORY:
        if not weights:
            return NEUTRAL_CATEGORY_SCORE
        return _best_match(values, weights)
    if category == TagCategory.AMBIANCE:
        return _best_match(values, weights)
    if category in (TagCategory.STYLE, TagCategory.TYPE):
        return 0.0
    raise ValueError(f"unknown tag category: {category!r}")


def temporal_bonus(
    event: CandidateEvent, profile: UserMusicProfile, tz: tzinfo | None = None
) -> float:
    """Additive bonus (max 0.10) for matching preferred day type and time of day."""
    tz = tz or local_tz()
    bonus = 0.0
    if day_type(event.start_at, tz) in profile.preferred_days:
        bonus += DAY_TYPE_BONUS
    slot = time_of_day(event.start_at.astimezone(tz).hour)
    if slot is not None and slot in profile.preferred_times:
        bonus += TIME_OF_DAY_BONUS[slot]
    return bonus


def popularity(event: CandidateEvent) -> float:
    return min(1.0, max(0, event.favorites_count) / POPULARITY_SATURATION)


def score_components(
    event: CandidateEvent, profile: UserMusicProfile, tz: tzinfo | None = None
) -> dict[str, float]:
    return {
        "genre": category_match(event, profile, TagCategory.GENRE),
        "category": category_match(event, profile, TagCategory.CATEGORY),
        "ambiance": category_match(event, profile, TagCategory.AMBIANCE),
        "temporal": temporal_bonus(event, profile, tz),
        "popularity": popularity(event),
    }


def calculate_event_score(
    event: CandidateEvent, profile: UserMusicProfile, tz: tzinfo | None = None
) -> float:
    """Relevance in [0, 1].

    genre*0.30 + category*0.30 + ambiance*0.20 + temporal bonus + popularity*0.10
    """
    c = score_components(event, profile, tz)
    score = (
        c["genre"] * GENRE_WEIGHT
        + c["category"] * CATEGORY_WEIGHT
        + c["ambiance"] * AMBIANCE_WEIGHT
        + c["temporal"]
        + c["popularity"] * POPULARITY_WEIGHT
    )
    return clamp_weight(score)


def _source_label(profile: UserMusicProfile) -> str:
    if profile.sources.spotify:
        return "Spotify"
    if profile.sources.apple_music:
        return "Apple Music"
    if profile.sources.manual or profile.sources.onboarding:
        return "your preferences"
    return ""


def _display(value: str) -> str:
    return value.replace("_", " ")


def generate_reasons(
    event: CandidateEvent, profile: UserMusicProfile, score: float
) -> list[str]:
    """Human-readable reasons, at most one per rule. Never used for ranking."""
    reasons = []
    genres = event.tag_values(TagCategory.GENRE)

    genre = next((g for g in genres if g in profile.genres), None)
    if genre is not None:
        source = _source_label(profile)
        if source:
            reasons.append(f"You like {_display(genre)} ({source})")
        else:
            reasons.append(f"You like {_display(genre)}")

    style = next(
        (s for s in event.tag_values(TagCategory.STYLE) if s in profile.styles), None
    )
    if style is not None:
        reasons.append(f"{_display(style).capitalize()} style matches your taste")

    if any(g in profile.favorite_genres for g in genres):
        reasons.append("Similar to your favorite events")

    if not reasons and score > GENERIC_REASON_THRESHOLD:
        reasons.append("This event might interest you")

    return reasons


def score_events(
    events: list[CandidateEvent], profile: UserMusicProfile, tz: tzinfo | None = None
) -> list[RecommendationResult]:
    """Score every candidate and rank by score desc.

    Equal scores keep start_at order, so repeated calls never reorder ties.
    """
    tz = tz or local_tz()
    results = []
    for event in events:
        score = calculate_event_score(event, profile, tz)
        results.append(
            RecommendationResult(
                event=event,
                score=score,
                reasons=generate_reasons(event, profile, score),
            )
        )
    return sorted(results, key=lambda r: (-r.score, r.event.start_at))
