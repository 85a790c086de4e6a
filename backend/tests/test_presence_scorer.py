"""Tests for the federal presence scorer."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from fedmatch.domain.contracts import FederalPropertyRecord, GeoPoint
from fedmatch.domain.enums import Grade, Ownership
from fedmatch.domain.errors import UpstreamUnavailable
from fedmatch.services.presence_scorer import (
    PresenceScorer,
    compute_percentile,
    compute_presence_score,
    static_percentile,
)
from fedmatch.services.scoring_config import ScoringConfig

TODAY = date(2026, 3, 2)
CENTER = GeoPoint(38.8951, -77.0364)


def _record(
    record_id: str = "lease_1",
    ownership: Ownership = Ownership.LEASED,
    rsf: float = 100_000,
    vacant_rsf: float = 0,
    lease_expiration: date | None = None,
    construction_year: int | None = 1990,
) -> FederalPropertyRecord:
    return FederalPropertyRecord(
        id=record_id,
        latitude=CENTER.lat,
        longitude=CENTER.lng,
        ownership=ownership,
        rsf=rsf,
        vacant_rsf=vacant_rsf,
        lease_expiration=lease_expiration,
        construction_year=construction_year,
    )


class _FakeSource:
    def __init__(self, records=(), delay: float = 0.0, error: Exception | None = None):
        self.records = list(records)
        self.delay = delay
        self.error = error
        self.calls = 0

    async def find_within_radius(self, center, radius_miles):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [(r, 0.0) for r in self.records]


# ═══════════════════════════════════════════════════════════════════════════
# 1. Sub-scores
# ═══════════════════════════════════════════════════════════════════════════

class TestComputePresenceScore:

    def test_empty_radius_scores_zero(self):
        result = compute_presence_score([], CENTER, 5.0, today=TODAY)
        assert result.score == 0.0
        assert result.grade is Grade.D
        assert result.percentile == 0.0
        subs = result.sub_scores
        assert (subs.density, subs.lease_activity, subs.expiring_leases, subs.demand,
                subs.vacancy_competition, subs.growth) == (0, 0, 0, 0, 0, 0)
        assert result.metrics.total_properties == 0

    def test_single_expiring_new_lease(self):
        record = _record(lease_expiration=date(2027, 1, 1), construction_year=2024)
        result = compute_presence_score([record], CENTER, 1.0, today=TODAY)
        subs = result.sub_scores
        assert subs.density == pytest.approx(0.8)
        assert subs.lease_activity == 25.0
        assert subs.expiring_leases == 20.0
        assert subs.demand == pytest.approx(1.5)
        assert subs.vacancy_competition == 10.0
        assert subs.growth == 5.0
        assert result.score == pytest.approx(62.3)
        assert result.grade is Grade.C
        assert result.percentile == 62.0
        assert result.percentile_source == "static"

    def test_mixed_portfolio_metrics(self):
        records = [
            _record("lease_1", lease_expiration=date(2026, 12, 31)),
            _record("lease_2", lease_expiration=date(2030, 1, 1)),
            _record("building_1", Ownership.OWNED, vacant_rsf=20_000),
            _record("building_2", Ownership.OWNED),
        ]
        result = compute_presence_score(records, CENTER, 2.0, today=TODAY)
        metrics = result.metrics
        assert (metrics.total_properties, metrics.leased_properties, metrics.owned_properties) == (4, 2, 2)
        assert metrics.total_rsf == 400_000
        assert metrics.vacant_rsf == 20_000
        assert metrics.expiring_leases_count == 1
        assert metrics.expiring_leases_rsf == 100_000
        assert result.sub_scores.lease_activity == 12.5
        assert result.sub_scores.expiring_leases == 5.0
        # 10 - (20,000 / 400,000) * 20
        assert result.sub_scores.vacancy_competition == 9.0
        assert result.sub_scores.growth == 0.0

    def test_expired_leases_are_not_expiring(self):
        result = compute_presence_score(
            [_record(lease_expiration=date(2025, 1, 1))], CENTER, 1.0, today=TODAY,
        )
        assert result.metrics.expiring_leases_count == 0

    def test_heavy_vacancy_floors_at_zero(self):
        result = compute_presence_score([_record(vacant_rsf=90_000)], CENTER, 1.0, today=TODAY)
        assert result.sub_scores.vacancy_competition == 0.0

    def test_no_floor_area_gives_no_vacancy_credit(self):
        result = compute_presence_score([_record(rsf=0)], CENTER, 1.0, today=TODAY)
        assert result.sub_scores.vacancy_competition == 0.0

    def test_saturated_area_stays_within_maxima(self):
        records = [
            _record(f"lease_{i}", lease_expiration=date(2027, 6, 1), construction_year=2025, rsf=50_000)
            for i in range(500)
        ]
        result = compute_presence_score(records, CENTER, 1.0, today=TODAY)
        subs = result.sub_scores
        assert subs.density == 25.0
        assert subs.demand == 15.0
        assert subs.total() <= 100
        assert result.score == 100.0
        assert result.grade is Grade.A_PLUS

    def test_reference_values_from_config(self):
        config = ScoringConfig(presence_reference_density=1.0, presence_reference_rsf=100_000)
        result = compute_presence_score([_record()], CENTER, 1.0, config, today=TODAY)
        # 1 / pi per sq mi against a reference of 1 -> 25 / pi
        assert result.sub_scores.density == pytest.approx(7.96)
        assert result.sub_scores.demand == 15.0


# ═══════════════════════════════════════════════════════════════════════════
# 2. Percentile
# ═══════════════════════════════════════════════════════════════════════════

class TestPercentile:

    @pytest.mark.parametrize(
        "score, expected",
        [(0, 0.0), (10, 15.0), (31, 37.0), (51, 62.0), (71, 82.0), (86, 95.0), (100, 95.0)],
    )
    def test_static_bands(self, score, expected):
        assert static_percentile(score) == expected

    def test_distribution_used_with_enough_samples(self):
        reference = [float(v) for v in range(0, 100, 5)]  # 20 samples
        percentile, source = compute_percentile(62.3, reference)
        assert source == "distribution"
        assert percentile == 65.0

    def test_static_used_with_few_samples(self):
        percentile, source = compute_percentile(62.3, [10.0, 20.0])
        assert (percentile, source) == (62.0, "static")

    def test_zero_score_is_always_zero(self):
        reference = [float(v) for v in range(20)]
        assert compute_percentile(0.0, reference) == (0.0, "static")

    def test_top_of_distribution(self):
        reference = [10.0] * 25
        percentile, _ = compute_percentile(50.0, reference)
        assert percentile == 100.0


# ═══════════════════════════════════════════════════════════════════════════
# 3. PresenceScorer (fetch + timeout)
# ═══════════════════════════════════════════════════════════════════════════

class TestPresenceScorer:

    @pytest.mark.asyncio
    async def test_scores_fetched_records(self):
        source = _FakeSource([_record(lease_expiration=date(2027, 1, 1), construction_year=2024)])
        result = await PresenceScorer(source).score(CENTER, 1.0, today=TODAY)
        assert source.calls == 1
        assert result.score == pytest.approx(62.3)
        assert result.radius_miles == 1.0

    @pytest.mark.asyncio
    async def test_timeout_raises_upstream_unavailable(self):
        config = ScoringConfig(presence_fetch_timeout_seconds=0.01)
        scorer = PresenceScorer(_FakeSource(delay=1.0), config)
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await scorer.score(CENTER, 1.0)
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_source_error_raises_upstream_unavailable(self):
        scorer = PresenceScorer(_FakeSource(error=RuntimeError("db gone")))
        with pytest.raises(UpstreamUnavailable, match="db gone"):
            await scorer.score(CENTER, 1.0)


class TestExpiringHorizon:

    def test_horizon_clamps_to_month_end(self):
        config = ScoringConfig(presence_expiring_horizon_months=1)
        records = [
            _record("lease_edge", lease_expiration=date(2026, 2, 28)),
            _record("lease_past", lease_expiration=date(2026, 3, 1)),
        ]
        result = compute_presence_score(records, CENTER, 5.0, config, today=date(2026, 1, 31))
        assert result.metrics.expiring_leases_count == 1

    def test_horizon_from_leap_day(self):
        records = [
            _record("lease_edge", lease_expiration=date(2026, 2, 28)),
            _record("lease_past", lease_expiration=date(2026, 3, 1)),
        ]
        result = compute_presence_score(records, CENTER, 5.0, today=date(2024, 2, 29))
        assert result.metrics.expiring_leases_count == 1

    def test_horizon_crosses_year(self):
        config = ScoringConfig(presence_expiring_horizon_months=1)
        records = [_record(lease_expiration=date(2027, 1, 15))]
        result = compute_presence_score(records, CENTER, 5.0, config, today=date(2026, 12, 15))
        assert result.metrics.expiring_leases_count == 1
