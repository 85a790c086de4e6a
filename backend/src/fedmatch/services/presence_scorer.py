"""Federal Neighborhood Presence Scorer.

Rates federal real-estate activity within a radius of a point, from the GSA
Inventory of Owned and Leased Properties (IOLP):

    density               25  federal properties per square mile
    lease_activity        25  share of records that are leases
    expiring_leases       20  share of leases expiring inside the horizon
    demand                15  total federal RSF against a reference footprint
    vacancy_competition   10  penalized by vacant federal RSF
    growth                 5  share of records built recently

``compute_presence_score`` is pure; ``PresenceScorer`` wraps it with the
bounded-time fetch of records from the repository.
"""

import asyncio
import bisect
import logging
from datetime import date, datetime, timezone
from typing import Protocol, Sequence

from dateutil.relativedelta import relativedelta

from fedmatch.domain.contracts import FederalPropertyRecord, GeoPoint
from fedmatch.domain.enums import Ownership
from fedmatch.domain.errors import UpstreamUnavailable
from fedmatch.domain.schemas import PresenceMetrics, PresenceScore, PresenceSubScores
from fedmatch.services.grading import assign_grade, round_score
from fedmatch.services.geo import circle_area_sq_miles
from fedmatch.services.scoring_config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger(__name__)

MAX_DENSITY = 25.0
MAX_LEASE_ACTIVITY = 25.0
MAX_EXPIRING = 20.0
MAX_DEMAND = 15.0
MAX_VACANCY = 10.0
MAX_GROWTH = 5.0

# (lower bound, percentile), used until enough cached composites exist
STATIC_PERCENTILE_BANDS = (
    (86.0, 95.0),
    (71.0, 82.0),
    (51.0, 62.0),
    (31.0, 37.0),
)
STATIC_PERCENTILE_FLOOR = 15.0


class FederalPropertySource(Protocol):
    async def find_within_radius(
        self, center: GeoPoint, radius_miles: float
    ) -> list[tuple[FederalPropertyRecord, float]]:
        ...


# ── Percentile ──────────────────────────────────────────────────────────────

def static_percentile(score: float) -> float:
    if score <= 0:
        return 0.0
    for lower, percentile in STATIC_PERCENTILE_BANDS:
        if score >= lower:
            return percentile
    return STATIC_PERCENTILE_FLOOR


def rank_percentile(score: float, reference: Sequence[float]) -> float:
    """Share of reference composites strictly below ``score``, as 0-100."""
    ordered = sorted(reference)
    below = bisect.bisect_left(ordered, score)
    return round(100.0 * below / len(ordered), 2)


def compute_percentile(
    score: float,
    reference: Sequence[float] | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> tuple[float, str]:
    """Return ``(percentile, source)`` where source is "distribution" or "static"."""
    if score <= 0:
        return 0.0, "static"
    if reference and len(reference) >= config.presence_min_reference_samples:
        return rank_percentile(score, reference), "distribution"
    return static_percentile(score), "static"


# ── Scoring ─────────────────────────────────────────────────────────────────

def compute_presence_score(
    records: Sequence[FederalPropertyRecord],
    center: GeoPoint,
    radius_miles: float,
    config: ScoringConfig = DEFAULT_CONFIG,
    *,
    reference: Sequence[float] | None = None,
    today: date | None = None,
) -> PresenceScore:
    """Score the records already known to lie inside the radius.

    An empty record set scores 0 everywhere with percentile 0.
    """
    today = today or datetime.now(timezone.utc).date()
    area = circle_area_sq_miles(radius_miles)
    total = len(records)

    leased = [r for r in records if r.ownership is Ownership.LEASED]
    total_rsf = sum(max(0.0, r.rsf or 0.0) for r in records)
    vacant_rsf = sum(max(0.0, r.vacant_rsf or 0.0) for r in records)

    horizon = today + relativedelta(months=config.presence_expiring_horizon_months)
    expiring = [
        r for r in leased
        if r.lease_expiration is not None and today <= r.lease_expiration <= horizon
    ]
    growth_cutoff = today.year - config.presence_growth_window_years
    recent = [
        r for r in records
        if r.construction_year is not None and r.construction_year >= growth_cutoff
    ]

    density = total / area if area > 0 else 0.0
    if total:
        sub_scores = PresenceSubScores(
            density=round(min(MAX_DENSITY, density / config.presence_reference_density * MAX_DENSITY), 2),
            lease_activity=round(len(leased) / total * MAX_LEASE_ACTIVITY, 2),
            expiring_leases=round(min(MAX_EXPIRING, len(expiring) / total * MAX_EXPIRING), 2),
            demand=round(min(MAX_DEMAND, total_rsf / config.presence_reference_rsf * MAX_DEMAND), 2),
            vacancy_competition=round(
                max(0.0, MAX_VACANCY - vacant_rsf / total_rsf * MAX_VACANCY * 2), 2
            ) if total_rsf > 0 else 0.0,
            growth=round(max(0.0, min(MAX_GROWTH, len(recent) / total * MAX_GROWTH)), 2),
        )
    else:
        sub_scores = PresenceSubScores(
            density=0, lease_activity=0, expiring_leases=0,
            demand=0, vacancy_competition=0, growth=0,
        )

    score = round_score(sub_scores.total())
    percentile, source = compute_percentile(score, reference, config)

    metrics = PresenceMetrics(
        total_properties=total,
        leased_properties=len(leased),
        owned_properties=total - len(leased),
        total_rsf=round(total_rsf, 2),
        vacant_rsf=round(vacant_rsf, 2),
        density_per_sq_mile=round(density, 4),
        search_area_sq_miles=round(area, 2),
        expiring_leases_count=len(expiring),
        expiring_leases_rsf=round(sum(r.rsf or 0.0 for r in expiring), 2),
        recent_construction_count=len(recent),
    )
    return PresenceScore(
        latitude=center.lat,
        longitude=center.lng,
        radius_miles=radius_miles,
        score=score,
        grade=assign_grade(score),
        sub_scores=sub_scores,
        metrics=metrics,
        percentile=percentile,
        percentile_source=source,
        computed_at=datetime.now(timezone.utc),
    )


class PresenceScorer:
    """Fetches federal records for a radius and scores them."""

    def __init__(self, source: FederalPropertySource, config: ScoringConfig = DEFAULT_CONFIG):
        self.source = source
        self.config = config

    async def fetch_records(self, center: GeoPoint, radius_miles: float) -> list[FederalPropertyRecord]:
        """Load records inside the radius, bounded by the fetch timeout.

        Raises:
            UpstreamUnavailable: the source timed out or failed.
        """
        try:
            matches = await asyncio.wait_for(
                self.source.find_within_radius(center, radius_miles),
                timeout=self.config.presence_fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Federal property fetch timed out after %ss (%.4f, %.4f, r=%s)",
                self.config.presence_fetch_timeout_seconds, center.lat, center.lng, radius_miles,
            )
            raise UpstreamUnavailable("Federal property data timed out")
        except UpstreamUnavailable:
            raise
        except Exception as exc:
            logger.warning("Federal property fetch failed: %s", exc)
            raise UpstreamUnavailable(f"Federal property data unavailable: {exc}") from exc
        return [record for record, _distance in matches]

    async def score(
        self,
        center: GeoPoint,
        radius_miles: float,
        *,
        reference: Sequence[float] | None = None,
        today: date | None = None,
    ) -> PresenceScore:
        records = await self.fetch_records(center, radius_miles)
        return compute_presence_score(
            records, center, radius_miles, self.config, reference=reference, today=today,
        )
