from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class TagCategory(str, Enum):
    GENRE = "genre"
    STYLE = "style"
    TYPE = "type"
    AMBIANCE = "ambiance"
    CATEGORY = "category"


class InterestSource(str, Enum):
    MANUAL = "manual"
    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple_music"


class InteractionType(str, Enum):
    VIEW = "VIEW"
    CLICK = "CLICK"
    SHARE = "SHARE"
    FAVORITE = "FAVORITE"
    DISMISS = "DISMISS"


class Scope(str, Enum):
    TODAY = "today"
    WEEKEND = "weekend"
    ALL = "all"


# Event statuses eligible for recommendation
LIVE_STATUSES = ("SCHEDULED", "UPDATED")


def clamp_weight(value: float) -> float:
    """Clamp a weight into [0, 1]. Non-finite input maps to 0."""
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


class EventTag(BaseModel):
    category: TagCategory
    value: str


class CandidateEvent(BaseModel):
    """Read-only view of a catalog event, as needed for scoring."""

    id: str
    title: str = ""
    start_at: datetime
    status: str = "SCHEDULED"
    tags: list[EventTag] = Field(default_factory=list)
    favorites_count: int = 0
    neighborhood: str | None = None

    @field_validator("start_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    def tag_values(self, category: TagCategory) -> list[str]:
        return [t.value for t in self.tags if t.category == category]


class InterestTag(BaseModel):
    id: str | None = None
    user_id: str
    category: TagCategory
    value: str
    score: float = 1.0
    source: InterestSource = InterestSource.MANUAL
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Interaction(BaseModel):
    user_id: str
    event_id: str
    type: InteractionType
    created_at: datetime
    event: CandidateEvent | None = None

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class UserPreferences(BaseModel):
    """Answers collected during onboarding."""

    user_id: str
    music_preferences: list[str] = Field(default_factory=list)
    category_preferences: list[str] = Field(default_factory=list)
    vibe_preferences: list[str] = Field(default_factory=list)
    preferred_days: list[str] = Field(default_factory=list)  # weekday | weekend
    preferred_times: list[str] = Field(default_factory=list)  # day | evening | night


def snapshot_tag_key(category: TagCategory, value: str) -> str:
    """Key of a non-genre tag in `TasteProfileData.top_tags`: "ambiance:chill"."""
    return f"{category.value}:{value}"


def split_snapshot_tag(key: str) -> tuple[TagCategory | None, str]:
    """Inverse of snapshot_tag_key. Keys written before categories were
    recorded come back as (None, key)."""
    prefix, sep, value = key.partition(":")
    if sep and value and prefix in {c.value for c in TagCategory}:
        return TagCategory(prefix), value
    return None, key


class TasteProfileData(BaseModel):
    top_tags: dict[str, float] = Field(default_factory=dict)
    top_genres: dict[str, float] = Field(default_factory=dict)
    preferred_neighborhoods: list[str] = Field(default_factory=list)
    preferred_time_slots: dict[str, float] = Field(default_factory=dict)
    last_computed_at: datetime | None = None

    @field_validator("top_tags", "top_genres", "preferred_time_slots")
    @classmethod
    def _clamp_weights(cls, v: dict[str, float]) -> dict[str, float]:
        return {k: clamp_weight(w) for k, w in v.items()}

    def is_empty(self) -> bool:
        return not (
            self.top_tags
            or self.top_genres
            or self.preferred_neighborhoods
            or self.preferred_time_slots
        )


class ProfileSources(BaseModel):
    """Which signal sources contributed. Used for explanations only."""

    manual: bool = False
    spotify: bool = False
    apple_music: bool = False
    onboarding: bool = False


class UserMusicProfile(BaseModel):
    genres: dict[str, float] = Field(default_factory=dict)
    styles: dict[str, float] = Field(default_factory=dict)
    types: dict[str, float] = Field(default_factory=dict)
    ambiances: dict[str, float] = Field(default_factory=dict)
    categories: dict[str, float] = Field(default_factory=dict)
    favorite_event_ids: list[str] = Field(default_factory=list)
    favorite_genres: list[str] = Field(default_factory=list)
    favorite_styles: list[str] = Field(default_factory=list)
    preferred_days: list[str] = Field(default_factory=list)
    preferred_times: list[str] = Field(default_factory=list)
    sources: ProfileSources = Field(default_factory=ProfileSources)

    def weights_for(self, category: TagCategory) -> dict[str, float]:
        if category == TagCategory.GENRE:
            return self.genres
        if category == TagCategory.STYLE:
            return self.styles
        if category == TagCategory.TYPE:
            return self.types
        if category == TagCategory.AMBIANCE:
            return self.ambiances
        if category == TagCategory.CATEGORY:
            return self.categories
        raise ValueError(f"unknown tag category: {category!r}")

    def is_empty(self) -> bool:
        return not any(self.weights_for(c) for c in TagCategory)


class RecommendationOptions(BaseModel):
    limit: int = Field(default=20, ge=1)
    genre: str | None = None
    style: str | None = None
    scope: Scope = Scope.ALL
    min_score: float = 0.1


class RecommendationResult(BaseModel):
    event: CandidateEvent
    score: float
    reasons: list[str] = Field(default_factory=list)


class RecommendationExplanation(BaseModel):
    event_id: str
    score: float
    reasons: list[str] = Field(default_factory=list)
    explanation: str = ""
    components: dict[str, float] = Field(default_factory=dict)
