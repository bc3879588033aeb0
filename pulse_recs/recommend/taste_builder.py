"""Interaction-based taste snapshots.

Turns the last 30 days of a user's interactions into a compact, decayed,
normalized weight table that many requests can reuse. Weighting:
FAVORITE > SHARE > CLICK > VIEW, DISMISS subtracts. Every signal loses
half its weight per 30 days of age.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo

from pulse_recs import db
from pulse_recs.config import settings
from pulse_recs.errors import UPSTREAM_ERRORS
from pulse_recs.log import get_logger
from pulse_recs.models import (
    Interaction,
    InteractionType,
    TagCategory,
    TasteProfileData,
    snapshot_tag_key,
)
from pulse_recs.recommend.scope import local_tz

logger = get_logger("taste_builder")

INTERACTION_WEIGHTS: dict[InteractionType, float] = {
    InteractionType.FAVORITE: 10.0,
    InteractionType.SHARE: 5.0,
    InteractionType.CLICK: 2.0,
    InteractionType.VIEW: 1.0,
    InteractionType.DISMISS: -5.0,
}

# Style tags are a secondary signal next to genres
STYLE_TAG_FACTOR = 0.5

TOP_TAGS = 20
TOP_GENRES = 10
TOP_TIME_SLOTS = 8
TOP_NEIGHBORHOODS = 5


def recency_decay(days_ago: float, half_life_days: float = 30.0) -> float:
    """0.5 ** (days_ago / half_life). Future timestamps count as age 0."""
    return 0.5 ** (max(0.0, days_ago) / half_life_days)


def _ranked(weights: dict[str, float]) -> list[tuple[str, float]]:
    # Only positive totals are preferences; a tag dominated by DISMISS is dropped.
    positive = [(k, w) for k, w in weights.items() if w > 0]
    return sorted(positive, key=lambda kv: (-kv[1], kv[0]))


def normalize_and_sort(weights: dict[str, float], top_n: int) -> dict[str, float]:
    """Keep the top N weights, scaled so the largest retained one is 1.0."""
    top = _ranked(weights)[:top_n]
    if not top:
        return {}
    max_weight = top[0][1]
    return {key: min(1.0, w / max_weight) for key, w in top}


def build_taste_profile(
    interactions: list[Interaction],
    now: datetime,
    tz: tzinfo | None = None,
    half_life_days: float = 30.0,
) -> TasteProfileData:
    """Pure transform: interactions (joined to their events) -> normalized snapshot."""
    tz = tz or local_tz()
    tag_weights: dict[str, float] = {}
    genre_weights: dict[str, float] = {}
    neighborhood_weights: dict[str, float] = {}
    slot_weights: dict[str, float] = {}

    for interaction in interactions:
        event = interaction.event
        if event is None:
            continue
        days_ago = (now - interaction.created_at).total_seconds() / 86400
        weight = INTERACTION_WEIGHTS[interaction.type] * recency_decay(days_ago, half_life_days)

        for tag in event.tags:
            if tag.category == TagCategory.GENRE:
                genre_weights[tag.value] = genre_weights.get(tag.value, 0.0) + weight
            else:
                key = snapshot_tag_key(tag.category, tag.value)
                factor = STYLE_TAG_FACTOR if tag.category == TagCategory.STYLE else 1.0
                tag_weights[key] = tag_weights.get(key, 0.0) + weight * factor

        if event.neighborhood:
            neighborhood_weights[event.neighborhood] = (
                neighborhood_weights.get(event.neighborhood, 0.0) + weight
            )

        slot = f"{event.start_at.astimezone(tz).hour}:00"
        slot_weights[slot] = slot_weights.get(slot, 0.0) + weight

    return TasteProfileData(
        top_tags=normalize_and_sort(tag_weights, TOP_TAGS),
        top_genres=normalize_and_sort(genre_weights, TOP_GENRES),
        preferred_neighborhoods=[
            name for name, _ in _ranked(neighborhood_weights)[:TOP_NEIGHBORHOODS]
        ],
        preferred_time_slots=normalize_and_sort(slot_weights, TOP_TIME_SLOTS),
    )


def build_user_taste_profile(user_id: str, now: datetime | None = None) -> TasteProfileData:
    """Build a snapshot from the user's interactions in the rolling window."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=settings.taste_window_days)
    interactions = db.get_interactions(user_id, since)
    profile = build_taste_profile(
        interactions, now, half_life_days=settings.decay_half_life_days
    )
    logger.info(
        "taste_profile_built",
        user_id=user_id,
        interactions=len(interactions),
        tags=len(profile.top_tags),
        genres=len(profile.top_genres),
    )
    return profile


def save_user_taste_profile(
    user_id: str, profile: TasteProfileData, now: datetime | None = None
) -> None:
    db.upsert_taste_profile_snapshot(user_id, profile, now or datetime.now(timezone.utc))


def get_user_taste_profile(user_id: str) -> TasteProfileData | None:
    """Stored snapshot, or None if it was never computed (cold start)."""
    return db.get_taste_profile_snapshot(user_id)


def recompute_taste_profiles(
    active_days: int | None = None, now: datetime | None = None
) -> tuple[int, int, int]:
    """Rebuild snapshots for recently active users.

    Returns (processed, succeeded, failed). One user's failure does not stop the batch.
    """
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=active_days or settings.active_user_days)
    user_ids = db.get_active_user_ids(since)
    logger.info("taste_recompute_start", users=len(user_ids))

    succeeded = failed = 0
    for user_id in user_ids:
        try:
            profile = build_user_taste_profile(user_id, now=now)
            save_user_taste_profile(user_id, profile, now=now)
            succeeded += 1
        except UPSTREAM_ERRORS as e:
            failed += 1
            logger.error("taste_recompute_user_failed", user_id=user_id, error=str(e))

    logger.info(
        "taste_recompute_done",
        processed=len(user_ids),
        succeeded=succeeded,
        failed=failed,
    )
    return len(user_ids), succeeded, failed


def track_interaction(user_id: str, event_id: str, type: InteractionType) -> bool:
    """Append an interaction. Failures are logged and reported, never raised."""
    try:
        db.insert_interaction(user_id, event_id, type)
    except UPSTREAM_ERRORS as e:
        logger.warning(
            "interaction_tracking_failed",
            user_id=user_id,
            event_id=event_id,
            type=type.value,
            error=str(e),
        )
        return False
    return True
