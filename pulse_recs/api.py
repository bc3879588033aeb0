from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field

from pulse_recs import db
from pulse_recs.errors import UPSTREAM_ERRORS, NotFound, PulseError
from pulse_recs.log import bind_request_context, get_logger
from pulse_recs.models import (
    InteractionType,
    InterestSource,
    InterestTag,
    RecommendationExplanation,
    RecommendationOptions,
    Scope,
    TagCategory,
)
from pulse_recs.normalize import normalize_tag_value
from pulse_recs.recommend.music_profile import sync_streaming_genres
from pulse_recs.recommend.ranker import get_service
from pulse_recs.recommend.taste_builder import track_interaction

logger = get_logger("api")

router = APIRouter()


def current_user_id(x_user_id: str = Header(min_length=1)) -> str:
    """Authentication happens upstream; the gateway forwards the user id."""
    return x_user_id


class InterestTagIn(BaseModel):
    category: TagCategory
    value: str = Field(min_length=1)
    source: InterestSource = InterestSource.MANUAL
    score: float = Field(default=1.0, ge=0.0, le=1.0)


class InterestTagDelete(BaseModel):
    category: TagCategory
    value: str = Field(min_length=1)
    source: InterestSource | None = None


class InteractionIn(BaseModel):
    event_id: str = Field(min_length=1)
    type: InteractionType


class StreamingSyncIn(BaseModel):
    source: InterestSource = InterestSource.SPOTIFY
    genres: list[str] = Field(default_factory=list)


def _upstream_failure(e: Exception) -> PulseError:
    logger.error("upstream_failed", error=str(e))
    return PulseError(str(e), code="upstream_unavailable", status=503)


@router.get("/recommendations")
def recommendations(
    user_id: str = Depends(current_user_id),
    limit: int = Query(default=20, ge=1, le=100),
    genre: str | None = None,
    style: str | None = None,
    scope: Scope = Scope.ALL,
    min_score: float = Query(default=0.1, ge=0.0, le=1.0),
) -> dict:
    bind_request_context(user_id=user_id, scope=scope.value)
    options = RecommendationOptions(
        limit=limit, genre=genre, style=style, scope=scope, min_score=min_score
    )
    results = get_service().get_personalized_recommendations(user_id, options)
    logger.info("recommendations_served", count=len(results))
    return {
        "recommendations": [r.model_dump(mode="json") for r in results],
        "count": len(results),
    }


@router.get("/recommendations/explain/{event_id}")
def explain_recommendation(event_id: str, user_id: str = Depends(current_user_id)) -> RecommendationExplanation:
    bind_request_context(user_id=user_id)
    explanation = get_service().explain_recommendation(user_id, event_id)
    if explanation is None:
        raise NotFound(f"event {event_id} not found")
    return explanation


@router.get("/interest-tags")
def list_interest_tags(
    user_id: str = Depends(current_user_id),
    category: TagCategory | None = None,
    source: InterestSource | None = None,
) -> dict:
    try:
        tags = db.get_interest_tags(user_id, category=category, source=source)
    except UPSTREAM_ERRORS as e:
        raise _upstream_failure(e) from e
    return {"tags": [t.model_dump(mode="json") for t in tags]}


@router.post("/interest-tags")
def add_interest_tag(body: InterestTagIn, user_id: str = Depends(current_user_id)) -> dict:
    bind_request_context(user_id=user_id)
    tag = InterestTag(
        user_id=user_id,
        category=body.category,
        value=normalize_tag_value(body.value),
        source=body.source,
        score=body.score,
    )
    try:
        saved = db.upsert_interest_tag(tag)
    except UPSTREAM_ERRORS as e:
        raise _upstream_failure(e) from e
    get_service().cache.invalidate_user(user_id)
    logger.info("interest_tag_saved", category=tag.category.value, value=tag.value)
    return {"tag": saved.model_dump(mode="json")}


@router.delete("/interest-tags")
def remove_interest_tag(body: InterestTagDelete, user_id: str = Depends(current_user_id)) -> dict:
    bind_request_context(user_id=user_id)
    try:
        deleted = db.delete_interest_tags(
            user_id, body.category, normalize_tag_value(body.value), body.source
        )
    except UPSTREAM_ERRORS as e:
        raise _upstream_failure(e) from e
    get_service().cache.invalidate_user(user_id)
    return {"deleted": deleted}


@router.post("/interactions")
def record_interaction(body: InteractionIn, user_id: str = Depends(current_user_id)) -> dict:
    return {"tracked": track_interaction(user_id, body.event_id, body.type)}


@router.post("/music-taste/sync")
def sync_music_taste(body: StreamingSyncIn, user_id: str = Depends(current_user_id)) -> dict:
    bind_request_context(user_id=user_id)
    try:
        tags = sync_streaming_genres(user_id, body.source, body.genres)
    except UPSTREAM_ERRORS as e:
        raise _upstream_failure(e) from e
    get_service().cache.invalidate_user(user_id)
    return {
        "source": body.source.value,
        "streaming_genres": len(body.genres),
        "genres": [t.value for t in tags if t.category == TagCategory.GENRE],
        "styles": [t.value for t in tags if t.category == TagCategory.STYLE],
    }
