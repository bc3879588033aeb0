from __future__ import annotations

from datetime import datetime, timezone

from supabase import create_client

from pulse_recs.config import settings
from pulse_recs.models import (
    LIVE_STATUSES,
    CandidateEvent,
    EventTag,
    Interaction,
    InteractionType,
    InterestSource,
    InterestTag,
    TagCategory,
    TasteProfileData,
    UserPreferences,
)
from pulse_recs.normalize import normalize_neighborhood

_client = None

_KNOWN_CATEGORIES = {c.value for c in TagCategory}

# Columns needed to score an event, shared by every query that embeds events.
EVENT_COLUMNS = (
    "id, title, start_at, status, favorites_count, "
    "event_tags(category, value), venues(neighborhood)"
)


def get_client():
    global _client
    if _client is None:
        _client = create_client(settings.supabase_url, settings.supabase_key)
    return _client


def _parse_event(row: dict) -> CandidateEvent:
    """Convert an `events` row (with embedded tags/venue) to a CandidateEvent."""
    tags = [
        EventTag(category=t["category"], value=t["value"])
        for t in row.get("event_tags") or []
        # taxonomy also has "public" etc. which never take part in scoring
        if t.get("category") in _KNOWN_CATEGORIES
    ]
    venue = row.get("venues") or {}
    neighborhood = venue.get("neighborhood") if isinstance(venue, dict) else None
    return CandidateEvent(
        id=row["id"],
        title=row.get("title") or "",
        start_at=row["start_at"],
        status=row.get("status") or "SCHEDULED",
        tags=tags,
        favorites_count=row.get("favorites_count") or 0,
        neighborhood=normalize_neighborhood(neighborhood) if neighborhood else None,
    )


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


# --- Event catalog ---


def _tag_filter_alias(category: TagCategory) -> str:
    return f"{category.value}_filter"


def get_candidate_events(
    start: datetime,
    end: datetime | None = None,
    genre: str | None = None,
    style: str | None = None,
    limit: int = 200,
) -> list[CandidateEvent]:
    """Live events starting in [start, end), ordered by start_at.

    genre/style are hard filters: an event must carry the tag to be returned.
    Each filter joins `event_tags` a second time under its own alias with
    `!inner`, so the filter drops events without stripping the `event_tags`
    embed used for scoring.
    """
    filters = [
        (category, value)
        for category, value in ((TagCategory.GENRE, genre), (TagCategory.STYLE, style))
        if value
    ]
    columns = EVENT_COLUMNS + "".join(
        f", {_tag_filter_alias(category)}:event_tags!inner(category, value)"
        for category, _ in filters
    )
    q = (
        get_client()
        .table("events")
        .select(columns)
        .in_("status", list(LIVE_STATUSES))
        .gte("start_at", _iso(start))
    )
    if end is not None:
        q = q.lt("start_at", _iso(end))

    for category, value in filters:
        alias = _tag_filter_alias(category)
        q = q.eq(f"{alias}.category", category.value).eq(f"{alias}.value", value)

    result = q.order("start_at").limit(limit).execute()
    return [_parse_event(row) for row in result.data]


def get_popular_events(
    start: datetime, end: datetime | None = None, limit: int = 20
) -> list[CandidateEvent]:
    """Live events in the window, most favorited first, then soonest."""
    q = (
        get_client()
        .table("events")
        .select(EVENT_COLUMNS)
        .in_("status", list(LIVE_STATUSES))
        .gte("start_at", _iso(start))
    )
    if end is not None:
        q = q.lt("start_at", _iso(end))
    result = (
        q.order("favorites_count", desc=True).order("start_at").limit(limit).execute()
    )
    return [_parse_event(row) for row in result.data]


def get_event(event_id: str) -> CandidateEvent | None:
    result = (
        get_client()
        .table("events")
        .select(EVENT_COLUMNS)
        .eq("id", event_id)
        .limit(1)
        .execute()
    )
    return _parse_event(result.data[0]) if result.data else None


# --- Interactions ---


def get_interactions(user_id: str, since: datetime) -> list[Interaction]:
    """Interactions of a user since `since`, newest first, joined to their event."""
    result = (
        get_client()
        .table("user_event_interactions")
        .select(f"user_id, event_id, type, created_at, events({EVENT_COLUMNS})")
        .eq("user_id", user_id)
        .gte("created_at", _iso(since))
        .order("created_at", desc=True)
        .execute()
    )
    interactions = []
    for row in result.data:
        ev = row.get("events")
        interactions.append(
            Interaction(
                user_id=row["user_id"],
                event_id=row["event_id"],
                type=row["type"],
                created_at=row["created_at"],
                event=_parse_event(ev) if ev else None,
            )
        )
    return interactions


def insert_interaction(user_id: str, event_id: str, type: InteractionType) -> None:
    get_client().table("user_event_interactions").insert(
        {"user_id": user_id, "event_id": event_id, "type": type.value}
    ).execute()


def get_active_user_ids(since: datetime) -> list[str]:
    """Users with at least one interaction since `since`."""
    result = (
        get_client()
        .table("user_event_interactions")
        .select("user_id")
        .gte("created_at", _iso(since))
        .execute()
    )
    return sorted({row["user_id"] for row in result.data})


# --- Interest tags ---


def get_interest_tags(
    user_id: str,
    category: TagCategory | None = None,
    source: InterestSource | None = None,
) -> list[InterestTag]:
    q = get_client().table("interest_tags").select("*").eq("user_id", user_id)
    if category is not None:
        q = q.eq("category", category.value)
    if source is not None:
        q = q.eq("source", source.value)
    result = (
        q.order("category").order("score", desc=True).order("value").execute()
    )
    return [InterestTag(**row) for row in result.data]


def upsert_interest_tag(tag: InterestTag) -> InterestTag:
    row = tag.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})
    row["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = (
        get_client()
        .table("interest_tags")
        .upsert(row, on_conflict="user_id,category,value,source")
        .execute()
    )
    return InterestTag(**result.data[0])


def delete_interest_tags(
    user_id: str,
    category: TagCategory,
    value: str,
    source: InterestSource | None = None,
) -> int:
    q = (
        get_client()
        .table("interest_tags")
        .delete()
        .eq("user_id", user_id)
        .eq("category", category.value)
        .eq("value", value)
    )
    if source is not None:
        q = q.eq("source", source.value)
    return len(q.execute().data)


def replace_source_tags(
    user_id: str,
    source: InterestSource,
    categories: list[TagCategory],
    tags: list[InterestTag],
) -> int:
    """Drop a source's tags in `categories`, then insert `tags`. Returns count inserted."""
    (
        get_client()
        .table("interest_tags")
        .delete()
        .eq("user_id", user_id)
        .eq("source", source.value)
        .in_("category", [c.value for c in categories])
        .execute()
    )
    if not tags:
        return 0
    rows = [
        t.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})
        for t in tags
    ]
    result = get_client().table("interest_tags").insert(rows).execute()
    return len(result.data)


# --- Onboarding preferences and favorites ---


def get_user_preferences(user_id: str) -> UserPreferences | None:
    result = (
        get_client()
        .table("user_preferences")
        .select("*")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return UserPreferences(**result.data[0]) if result.data else None


def get_favorite_events(user_id: str, limit: int = 100) -> list[CandidateEvent]:
    """Most recently favorited events of a user, with their tags."""
    result = (
        get_client()
        .table("favorites")
        .select(f"event_id, created_at, events({EVENT_COLUMNS})")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return [_parse_event(row["events"]) for row in result.data if row.get("events")]


# --- Taste profile snapshots ---


def get_taste_profile_snapshot(user_id: str) -> TasteProfileData | None:
    result = (
        get_client()
        .table("user_taste_profiles")
        .select("*")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        return None
    row = result.data[0]
    return TasteProfileData(
        top_tags=row.get("top_tags") or {},
        top_genres=row.get("top_genres") or {},
        preferred_neighborhoods=row.get("preferred_neighborhoods") or [],
        preferred_time_slots=row.get("preferred_time_slots") or {},
        last_computed_at=row.get("last_computed_at"),
    )


def upsert_taste_profile_snapshot(
    user_id: str, profile: TasteProfileData, computed_at: datetime
) -> None:
    """Replace the user's snapshot row wholesale."""
    row = profile.model_dump(mode="json", exclude={"last_computed_at"})
    row["user_id"] = user_id
    row["last_computed_at"] = _iso(computed_at)
    get_client().table("user_taste_profiles").upsert(
        row, on_conflict="user_id"
    ).execute()


# --- Alert log ---


def should_alert(source: str) -> bool:
    """Check if we should send an alert (rate limit: 1 per source per hour)."""
    result = (
        get_client()
        .table("alert_log")
        .select("created_at")
        .eq("source", source)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    if not result.data:
        return True
    last = datetime.fromisoformat(result.data[0]["created_at"].replace("Z", "+00:00"))
    return (datetime.now(last.tzinfo) - last).total_seconds() > 3600


def log_alert(source: str, message: str) -> None:
    get_client().table("alert_log").insert(
        {"source": source, "message": message}
    ).execute()
