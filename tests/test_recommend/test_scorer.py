from datetime import datetime
from zoneinfo import ZoneInfo

from pulse_recs.models import (
    CandidateEvent,
    EventTag,
    ProfileSources,
    TagCategory,
    UserMusicProfile,
    clamp_weight,
)
from pulse_recs.recommend.scorer import (
    calculate_event_score,
    generate_reasons,
    score_events,
    temporal_bonus,
)

MTL = ZoneInfo("America/Montreal")


def _make_event(
    event_id: str = "e1",
    genres: list[str] | None = None,
    styles: list[str] | None = None,
    categories: list[str] | None = None,
    ambiances: list[str] | None = None,
    favorites: int = 0,
    start_at: datetime | None = None,
) -> CandidateEvent:
    tags = []
    for category, values in (
        (TagCategory.GENRE, genres),
        (TagCategory.STYLE, styles),
        (TagCategory.CATEGORY, categories),
        (TagCategory.AMBIANCE, ambiances),
    ):
        tags.extend(EventTag(category=category, value=v) for v in values or [])
    return CandidateEvent(
        id=event_id,
        title=f"Event {event_id}",
        # Wednesday 2025-04-02, 03:00 local: no day-time slot
        start_at=start_at or datetime(2025, 4, 2, 3, 0, tzinfo=MTL),
        tags=tags,
        favorites_count=favorites,
    )


def test_clamp_weight_bounds():
    assert clamp_weight(0.0) == 0.0
    assert clamp_weight(1.0) == 1.0
    assert clamp_weight(1.7) == 1.0
    assert clamp_weight(-0.2) == 0.0
    assert clamp_weight(float("nan")) == 0.0


def test_reggae_fan_ranks_reggae_above_techno():
    profile = UserMusicProfile(genres={"reggae": 1.0})
    a = _make_event("a", genres=["reggae"], favorites=12)
    b = _make_event("b", genres=["techno"], favorites=0)

    score_a = calculate_event_score(a, profile, MTL)
    score_b = calculate_event_score(b, profile, MTL)

    assert score_a >= 0.54
    assert 0.14 <= score_b < 0.2
    ranked = score_events([b, a], profile, MTL)
    assert [r.event.id for r in ranked] == ["a", "b"]


def test_neutral_category_only_without_category_preferences():
    event = _make_event(categories=["concert"])
    no_prefs = UserMusicProfile(genres={"jazz": 1.0})
    other_prefs = UserMusicProfile(genres={"jazz": 1.0}, categories={"festival": 0.9})

    assert calculate_event_score(event, no_prefs, MTL) == 0.5 * 0.30
    assert calculate_event_score(event, other_prefs, MTL) == 0.0


def test_genre_uses_best_matching_tag():
    profile = UserMusicProfile(genres={"house": 0.4, "disco": 0.8}, categories={"x": 1.0})
    event = _make_event(genres=["house", "disco"])
    assert abs(calculate_event_score(event, profile, MTL) - 0.8 * 0.30) < 1e-9


def test_out_of_range_weights_are_clamped():
    profile = UserMusicProfile(genres={"reggae": 5.0}, ambiances={"chill": 3.0})
    event = _make_event(genres=["reggae"], ambiances=["chill"], favorites=500)
    score = calculate_event_score(event, profile, MTL)
    assert 0.0 <= score <= 1.0
    assert abs(score - (0.30 + 0.15 + 0.20 + 0.10)) < 1e-9


def test_score_always_within_bounds():
    profile = UserMusicProfile(
        genres={"reggae": 1.0},
        categories={"concert": 1.0},
        ambiances={"festive": 1.0},
        preferred_days=["weekend"],
        preferred_times=["night"],
    )
    saturday_night = datetime(2025, 4, 5, 23, 0, tzinfo=MTL)
    event = _make_event(
        genres=["reggae"],
        categories=["concert"],
        ambiances=["festive"],
        favorites=40,
        start_at=saturday_night,
    )
    score = calculate_event_score(event, profile, MTL)
    assert 0.0 <= score <= 1.0
    assert abs(score - (0.30 + 0.30 + 0.20 + 0.05 + 0.034 + 0.10)) < 1e-9


def test_temporal_bonus_stacks():
    profile = UserMusicProfile(preferred_days=["weekend"], preferred_times=["evening", "night"])
    saturday_evening = _make_event(start_at=datetime(2025, 4, 5, 19, 0, tzinfo=MTL))
    saturday_late = _make_event(start_at=datetime(2025, 4, 6, 1, 30, tzinfo=MTL))
    tuesday_noon = _make_event(start_at=datetime(2025, 4, 1, 12, 0, tzinfo=MTL))

    assert abs(temporal_bonus(saturday_evening, profile, MTL) - 0.083) < 1e-9
    assert abs(temporal_bonus(saturday_late, profile, MTL) - 0.084) < 1e-9
    assert temporal_bonus(tuesday_noon, profile, MTL) == 0.0


def test_temporal_bonus_without_preferences():
    event = _make_event(start_at=datetime(2025, 4, 5, 19, 0, tzinfo=MTL))
    assert temporal_bonus(event, UserMusicProfile(), MTL) == 0.0


def test_reasons_genre_with_source():
    profile = UserMusicProfile(
        genres={"hip_hop": 0.9},
        styles={"trap": 1.0},
        favorite_genres=["hip_hop"],
        sources=ProfileSources(spotify=True, manual=True),
    )
    event = _make_event(genres=["hip_hop"], styles=["trap"])
    reasons = generate_reasons(event, profile, 0.5)
    assert reasons == [
        "You like hip hop (Spotify)",
        "Trap style matches your taste",
        "Similar to your favorite events",
    ]


def test_reasons_source_omitted_when_unknown():
    profile = UserMusicProfile(genres={"jazz": 0.5})
    reasons = generate_reasons(_make_event(genres=["jazz"]), profile, 0.2)
    assert reasons == ["You like jazz"]


def test_generic_reason_only_above_threshold():
    profile = UserMusicProfile(ambiances={"chill": 1.0})
    event = _make_event(ambiances=["chill"])
    assert generate_reasons(event, profile, 0.35) == ["This event might interest you"]
    assert generate_reasons(event, profile, 0.3) == []


def test_ties_keep_start_order():
    profile = UserMusicProfile(genres={"rock": 1.0})
    early = _make_event("early", genres=["rock"], start_at=datetime(2025, 4, 2, 3, 0, tzinfo=MTL))
    late = _make_event("late", genres=["rock"], start_at=datetime(2025, 4, 9, 3, 0, tzinfo=MTL))

    first = score_events([early, late], profile, MTL)
    second = score_events([early, late], profile, MTL)
    assert [r.event.id for r in first] == ["early", "late"]
    assert [r.event.id for r in second] == ["early", "late"]
