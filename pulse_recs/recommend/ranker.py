from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Callable

from pulse_recs import db
from pulse_recs.config import settings
from pulse_recs.errors import UPSTREAM_ERRORS, RecommendationsUnavailable
from pulse_recs.log import get_logger
from pulse_recs.models import (
    CandidateEvent,
    RecommendationExplanation,
    RecommendationOptions,
    RecommendationResult,
    Scope,
    UserMusicProfile,
)
from pulse_recs.recommend.cache import RecommendationCache, recommendation_cache_key
from pulse_recs.recommend.music_profile import build_user_music_profile, merge_taste_snapshot
from pulse_recs.recommend.scope import date_window, in_window, local_tz
from pulse_recs.recommend.scorer import (
    calculate_event_score,
    generate_reasons,
    score_components,
    score_events,
)
from pulse_recs.recommend.taste_builder import get_user_taste_profile

logger = get_logger("ranker")

POPULAR_SCORE = 0.5
POPULAR_REASON = "Popular event"
DEFAULT_EXPLANATION = "This event might interest you."

Window = tuple[datetime, datetime | None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationService:
    """Composes profile building, scoring and caching, with a popularity fallback.

    Never raises for a data-poor user: missing profile, empty candidate pool
    and all-below-threshold scores all fall back to popular events. Upstream
    fetch failures raise RecommendationsUnavailable instead of ranking on a
    partial profile.
    """

    def __init__(
        self,
        cache: RecommendationCache | None = None,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] = _utcnow,
        ttl_seconds: int | None = None,
        candidate_pool_size: int | None = None,
    ) -> None:
        self.cache = cache if cache is not None else RecommendationCache(settings.rec_cache_ttl_seconds)
        self.tz = tz or local_tz()
        self._now = now
        self.ttl_seconds = ttl_seconds or settings.rec_cache_ttl_seconds
        self.candidate_pool_size = candidate_pool_size or settings.candidate_pool_size

    def load_profile(self, user_id: str) -> UserMusicProfile:
        """Live music profile, fused with the interaction snapshot when one exists."""
        profile = build_user_music_profile(user_id)
        snapshot = get_user_taste_profile(user_id)
        if snapshot is not None:
            profile = merge_taste_snapshot(profile, snapshot)
        return profile

    def get_personalized_recommendations(
        self, user_id: str, options: RecommendationOptions | None = None
    ) -> list[RecommendationResult]:
        options = options or RecommendationOptions()
        window = date_window(options.scope, self._now(), self.tz)
        try:
            ranked = self._ranked(user_id, options, window)
            results = [r for r in ranked if r.score >= options.min_score][: options.limit]
            if results:
                return results
            if ranked:
                logger.info(
                    "fallback_popular",
                    user_id=user_id,
                    reason="below_min_score",
                    min_score=options.min_score,
                )
            return self._popular(options, window)
        except UPSTREAM_ERRORS as e:
            logger.error("recommendations_unavailable", user_id=user_id, error=str(e))
            raise RecommendationsUnavailable(f"recommendations unavailable: {e}") from e

    def _ranked(
        self, user_id: str, options: RecommendationOptions, window: Window
    ) -> list[RecommendationResult]:
        """Full ranked list for the user and filters, from cache when fresh.

        The cached list is not cut by min_score or limit, so callers with
        different thresholds share it. Events that left the window since it
        was cached are dropped.
        """
        key = recommendation_cache_key(user_id, options.genre, options.style, options.scope.value)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", user_id=user_id, key=key)
            return [r for r in cached if in_window(r.event.start_at, window)]

        profile = self.load_profile(user_id)
        if profile.is_empty():
            logger.info("fallback_popular", user_id=user_id, reason="empty_profile")
            return []

        start, end = window
        candidates = db.get_candidate_events(
            start,
            end,
            genre=options.genre,
            style=options.style,
            limit=self.candidate_pool_size,
        )
        if not candidates:
            logger.info("fallback_popular", user_id=user_id, reason="no_candidates")
            return []

        ranked = score_events(candidates, profile, self.tz)
        self.cache.set(key, ranked, self.ttl_seconds)
        logger.info(
            "recommendations_ranked",
            user_id=user_id,
            candidates=len(candidates),
            top_score=ranked[0].score,
        )
        return ranked

    def _popular(self, options: RecommendationOptions, window: Window) -> list[RecommendationResult]:
        start, end = window
        events = db.get_popular_events(start, end, limit=options.limit)
        logger.info("popular_events_loaded", scope=options.scope.value, count=len(events))
        return [
            RecommendationResult(event=e, score=POPULAR_SCORE, reasons=[POPULAR_REASON])
            for e in events
        ]

    def get_recommendations_by_genre(
        self, user_id: str, genre: str, limit: int = 10
    ) -> list[RecommendationResult]:
        return self.get_personalized_recommendations(
            user_id, RecommendationOptions(genre=genre, limit=limit)
        )

    def get_recommendations_by_style(
        self, user_id: str, style: str, limit: int = 10
    ) -> list[RecommendationResult]:
        return self.get_personalized_recommendations(
            user_id, RecommendationOptions(style=style, limit=limit)
        )

    def explain_recommendation(
        self, user_id: str, event_id: str
    ) -> RecommendationExplanation | None:
        """Score and reasons of one event for one user. None if the event does not exist."""
        try:
            event = db.get_event(event_id)
            if event is None:
                return None
            profile = self.load_profile(user_id)
        except UPSTREAM_ERRORS as e:
            logger.error("explain_unavailable", user_id=user_id, event_id=event_id, error=str(e))
            raise RecommendationsUnavailable(f"recommendations unavailable: {e}") from e
        return explain(event, profile, self.tz)


def explain(
    event: CandidateEvent, profile: UserMusicProfile, tz: tzinfo | None = None
) -> RecommendationExplanation:
    score = calculate_event_score(event, profile, tz)
    reasons = generate_reasons(event, profile, score)
    return RecommendationExplanation(
        event_id=event.id,
        score=score,
        reasons=reasons,
        explanation=". ".join(reasons) if reasons else DEFAULT_EXPLANATION,
        components=score_components(event, profile, tz),
    )


_service: RecommendationService | None = None


def get_service() -> RecommendationService:
    global _service
    if _service is None:
        _service = RecommendationService()
    return _service


def get_personalized_recommendations(
    user_id: str,
    limit: int = 20,
    genre: str | None = None,
    style: str | None = None,
    scope: Scope = Scope.ALL,
    min_score: float = 0.1,
) -> list[RecommendationResult]:
    options = RecommendationOptions(
        limit=limit, genre=genre, style=style, scope=scope, min_score=min_score
    )
    return get_service().get_personalized_recommendations(user_id, options)


def get_recommendations_by_genre(user_id: str, genre: str, limit: int = 10) -> list[RecommendationResult]:
    return get_service().get_recommendations_by_genre(user_id, genre, limit)


def get_recommendations_by_style(user_id: str, style: str, limit: int = 10) -> list[RecommendationResult]:
    return get_service().get_recommendations_by_style(user_id, style, limit)
