"""Tunable constants for the match and presence scorers.

Every weight, threshold and default fallback lives here so it can be audited
and overridden from settings instead of being buried in scoring code.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta

from fedmatch.domain.enums import BuildingClass


@dataclass(frozen=True)
class CategoryWeights:
    """Composite weights for the five match categories (must sum to 1.0)."""

    location: float = 0.25
    space: float = 0.25
    building: float = 0.20
    timeline: float = 0.15
    experience: float = 0.15

    def __post_init__(self):
        total = self.location + self.space + self.building + self.timeline + self.experience
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"category weights must sum to 1.0, got {total}")

    def as_dict(self) -> dict[str, float]:
        return {
            "location": self.location,
            "space": self.space,
            "building": self.building,
            "timeline": self.timeline,
            "experience": self.experience,
        }


@dataclass(frozen=True)
class ScoringConfig:
    """Configuration passed into the extractor and both scorers."""

    weights: CategoryWeights = field(default_factory=CategoryWeights)

    # Grade / insight thresholds
    competitive_threshold: float = 70.0
    strong_threshold: float = 80.0
    weak_threshold: float = 60.0

    # Requirement defaults
    default_state: str = "DC"
    default_radius_miles: float = 10.0
    occupancy_buffer_days: int = 90
    default_min_sqft: int = 40_000
    default_target_sqft: int = 50_000
    default_max_sqft: int = 120_000
    default_firm_term_months: int = 60
    default_total_term_months: int = 240
    default_acceptable_classes: frozenset[BuildingClass] = frozenset(
        {BuildingClass.A_PLUS, BuildingClass.A, BuildingClass.B}
    )

    # Location
    city_match_bonus: float = 15.0
    outside_radius_state_floor: float = 10.0

    # Space
    space_shortfall_tolerance: float = 0.10
    contiguity_penalty: float = 30.0

    # Timeline
    timeline_grace_days: int = 0
    timeline_comfort_days: int = 90

    # Presence
    presence_reference_density: float = 10.0  # federal properties per sq mile
    presence_reference_rsf: float = 1_000_000.0
    presence_expiring_horizon_months: int = 24
    presence_growth_window_years: int = 5
    presence_min_reference_samples: int = 20
    presence_fetch_timeout_seconds: float = 30.0
    max_presence_radius_miles: float = 100.0
    presence_key_precision: int = 4

    # Cache
    cache_ttl: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls, settings) -> ScoringConfig:
        """Build a config from application ``Settings`` overrides."""
        return cls(
            competitive_threshold=settings.competitive_threshold,
            default_state=settings.default_state,
            default_radius_miles=settings.default_radius_miles,
            occupancy_buffer_days=settings.occupancy_buffer_days,
            space_shortfall_tolerance=settings.space_shortfall_tolerance,
            timeline_grace_days=settings.timeline_grace_days,
            presence_fetch_timeout_seconds=settings.presence_fetch_timeout_seconds,
            max_presence_radius_miles=settings.max_presence_radius_miles,
            cache_ttl=timedelta(hours=settings.score_cache_ttl_hours),
        )


DEFAULT_CONFIG = ScoringConfig()
