"""Pydantic v2 schemas for score results and API request/response validation.

Score results are frozen models: a re-score produces a new instance, and the
cache stores them as JSON (``model_dump(mode="json")`` / ``model_validate``).
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fedmatch.domain.enums import Grade, Ownership


# ---------------------------------------------------------------------------
# Match score
# ---------------------------------------------------------------------------


class CategoryScore(BaseModel):
    """One weighted category of a match score."""

    model_config = ConfigDict(frozen=True)

    name: str
    score: float = Field(ge=0, le=100)
    weight: float = Field(ge=0, le=1)
    weighted: float
    details: dict[str, Any] = Field(default_factory=dict)


class MatchScore(BaseModel):
    """Explainable result of scoring one property against one opportunity."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    opportunity_id: str
    overall_score: float = Field(ge=0, le=100)
    grade: Grade
    qualified: bool
    competitive: bool
    categories: dict[str, CategoryScore]
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    disqualifiers: tuple[str, ...] = ()
    computed_at: datetime


# ---------------------------------------------------------------------------
# Presence score
# ---------------------------------------------------------------------------


class PresenceSubScores(BaseModel):
    """Six sub-scores; field bounds are each sub-score maximum."""

    model_config = ConfigDict(frozen=True)

    density: float = Field(ge=0, le=25)
    lease_activity: float = Field(ge=0, le=25)
    expiring_leases: float = Field(ge=0, le=20)
    demand: float = Field(ge=0, le=15)
    vacancy_competition: float = Field(ge=0, le=10)
    growth: float = Field(ge=0, le=5)

    def total(self) -> float:
        return (
            self.density
            + self.lease_activity
            + self.expiring_leases
            + self.demand
            + self.vacancy_competition
            + self.growth
        )


class PresenceMetrics(BaseModel):
    """Supporting counts behind a presence score."""

    model_config = ConfigDict(frozen=True)

    total_properties: int = 0
    leased_properties: int = 0
    owned_properties: int = 0
    total_rsf: float = 0.0
    vacant_rsf: float = 0.0
    density_per_sq_mile: float = 0.0
    search_area_sq_miles: float = 0.0
    expiring_leases_count: int = 0
    expiring_leases_rsf: float = 0.0
    recent_construction_count: int = 0


class PresenceScore(BaseModel):
    """Federal real-estate activity within a radius of a point."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    radius_miles: float
    score: float = Field(ge=0, le=100)
    grade: Grade
    sub_scores: PresenceSubScores
    metrics: PresenceMetrics
    percentile: float = Field(ge=0, le=100)
    percentile_source: str = "static"
    computed_at: datetime


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class CalculateMatchRequest(BaseModel):
    """Request body for scoring a property against an opportunity."""

    property_id: str
    opportunity_id: str


class MatchScoreResponse(BaseModel):
    score: MatchScore
    cached: bool


class RankPropertiesRequest(BaseModel):
    """Request body for ranking every active listing against one opportunity."""

    opportunity_id: str
    limit: int = 20
    min_score: float = 0.0


class RankedProperty(BaseModel):
    property_id: str
    name: str | None = None
    city: str | None = None
    state: str | None = None
    score: MatchScore


class PropertyRanking(BaseModel):
    """Best listings first.  ``skipped`` counts listings ruled out before scoring."""

    opportunity_id: str
    matches: list[RankedProperty]
    evaluated: int
    scored: int
    skipped: dict[str, int] = Field(default_factory=dict)


class PresenceScoreResponse(BaseModel):
    success: bool = True
    data: PresenceScore
    cached: bool


class FederalPropertyResponse(BaseModel):
    """A federal record as returned by the nearby / expiring-lease endpoints."""

    id: str
    latitude: float
    longitude: float
    ownership: Ownership
    rsf: float
    vacant_rsf: float
    lease_expiration: date | None = None
    construction_year: int | None = None
    agency: str | None = None
    building_name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    distance_miles: float | None = None


class CacheCleanupResponse(BaseModel):
    property_scores_removed: int
    presence_scores_removed: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
