"""Orchestrates scoring requests: validate, cache lookup, score, cache store.

Control flow for both scores:

    caller -> cache lookup -> (miss) single-flight -> scorer -> cache store -> caller

Cache failures degrade to recomputation; a failed store never fails the
request.  Only invalid input, missing records and an unavailable federal
data source surface as errors.
"""

import logging
import math

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fedmatch.domain.contracts import (
    FederalPropertyRecord,
    GeoPoint,
    OpportunityRequirement,
    Property as ScoredProperty,
)
from fedmatch.domain.enums import SkipReason
from fedmatch.domain.errors import InvalidInput, NotFound
from fedmatch.domain.models import BrokerProfile, Opportunity, Property
from fedmatch.domain.schemas import MatchScore, PresenceScore, PropertyRanking, RankedProperty
from fedmatch.services import requirement_extractor
from fedmatch.services.federal_property_repository import FederalPropertyRepository
from fedmatch.services.match_scorer import compute_match_score
from fedmatch.services.presence_scorer import PresenceScorer
from fedmatch.services.property_serializer import (
    experience_from_row,
    opportunity_to_raw,
    property_from_row,
)
from fedmatch.services.score_cache import MatchCacheKey, PresenceCacheKey, ScoreCache
from fedmatch.services.scoring_config import DEFAULT_CONFIG, ScoringConfig
from fedmatch.services.single_flight import SingleFlight

logger = logging.getLogger(__name__)

MAX_EXPIRING_MONTHS = 60
MAX_RANK_LIMIT = 100

# Listings offering less than this share of the minimum area are not scored
RANK_MIN_SPACE_RATIO = 0.7

# Process-wide: concurrent requests for one key share a computation
_match_flights = SingleFlight()
_presence_flights = SingleFlight()


def validate_point(lat, lng, radius_miles, max_radius_miles: float) -> None:
    """Raise ``InvalidInput`` for coordinates or a radius outside their domain."""
    for name, value in (("lat", lat), ("lng", lng), ("radius_miles", radius_miles)):
        if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInput(f"{name} must be a finite number")
    if not -90 <= lat <= 90:
        raise InvalidInput("lat must be between -90 and 90")
    if not -180 <= lng <= 180:
        raise InvalidInput("lng must be between -180 and 180")
    if radius_miles <= 0 or radius_miles > max_radius_miles:
        raise InvalidInput(f"radius_miles must be greater than 0 and at most {max_radius_miles:g}")


def _require_id(name: str, value) -> str:
    cleaned = str(value).strip() if value is not None else ""
    if not cleaned:
        raise InvalidInput(f"{name} is required")
    return cleaned


def early_skip_reason(prop: ScoredProperty, requirement: OpportunityRequirement) -> SkipReason | None:
    """Cheap checks that rule a listing out of a ranking without scoring it."""
    if (prop.state or "").strip().upper() != requirement.location.state.strip().upper():
        return SkipReason.STATE_MISMATCH
    min_sqft = requirement.space.min_sqft
    if min_sqft and prop.space.available_sqft < min_sqft * RANK_MIN_SPACE_RATIO:
        return SkipReason.SPACE_TOO_SMALL
    return None


class ScoringService:
    """Request-scoped facade over the scorers and the score cache."""

    def __init__(
        self,
        session: AsyncSession,
        session_factory: async_sessionmaker,
        config: ScoringConfig = DEFAULT_CONFIG,
        cache: ScoreCache | None = None,
    ):
        self.session = session
        self.config = config
        self.cache = cache or ScoreCache(session_factory, config)

    # ------------------------------------------------------------------
    # Match scores
    # ------------------------------------------------------------------

    async def calculate_match(self, property_id: str, opportunity_id: str) -> tuple[MatchScore, bool]:
        """Score a property against an opportunity; returns ``(score, cached)``.

        Raises:
            InvalidInput: blank identifiers.
            NotFound: unknown property or opportunity.
        """
        key = MatchCacheKey(
            property_id=_require_id("property_id", property_id),
            opportunity_id=_require_id("opportunity_id", opportunity_id),
        )

        lookup = await self.cache.get(key)
        if lookup.is_hit:
            return lookup.value, True

        score = await _match_flights.do(key, lambda: self._compute_match(key))
        return score, False

    async def get_cached_match(self, property_id: str, opportunity_id: str) -> MatchScore:
        """Return an unexpired cached score without computing one."""
        key = MatchCacheKey(
            property_id=_require_id("property_id", property_id),
            opportunity_id=_require_id("opportunity_id", opportunity_id),
        )
        lookup = await self.cache.get(key)
        if not lookup.is_hit:
            raise NotFound("Score", f"{key.property_id}/{key.opportunity_id}")
        return lookup.value

    async def _compute_match(self, key: MatchCacheKey) -> MatchScore:
        prop_row = await self.session.get(Property, key.property_id)
        if prop_row is None:
            raise NotFound("Property", key.property_id)
        opp_row = await self.session.get(Opportunity, key.opportunity_id)
        if opp_row is None:
            raise NotFound("Opportunity", key.opportunity_id)

        broker_row = None
        if prop_row.broker_id:
            result = await self.session.execute(
                select(BrokerProfile).where(BrokerProfile.user_id == prop_row.broker_id)
            )
            broker_row = result.scalar_one_or_none()

        requirement = requirement_extractor.extract(opportunity_to_raw(opp_row), self.config)
        score = compute_match_score(
            property_from_row(prop_row),
            requirement,
            experience_from_row(broker_row),
            self.config,
        )

        stored = await self.cache.put(key, score)
        if not stored.ok:
            logger.warning("Returning uncached match score for %s: %s", key, stored.error)
        logger.info(
            "Scored property %s vs opportunity %s: %.2f (%s)",
            key.property_id, key.opportunity_id, score.overall_score, score.grade.value,
        )
        return score

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    async def rank_properties(
        self, opportunity_id: str, limit: int = 20, min_score: float = 0.0
    ) -> PropertyRanking:
        """Score every active listing against one opportunity, best first.

        Listings in another state, or offering well under the minimum area,
        are counted in ``skipped`` without being scored.  Scores go through
        the match cache, so a ranked pair is served cached afterwards.

        Raises:
            InvalidInput: blank identifier, or limit / min_score out of range.
            NotFound: unknown opportunity.
        """
        opportunity_id = _require_id("opportunity_id", opportunity_id)
        if not 1 <= limit <= MAX_RANK_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_RANK_LIMIT}")
        if not 0 <= min_score <= 100:
            raise InvalidInput("min_score must be between 0 and 100")

        opp_row = await self.session.get(Opportunity, opportunity_id)
        if opp_row is None:
            raise NotFound("Opportunity", opportunity_id)
        requirement = requirement_extractor.extract(opportunity_to_raw(opp_row), self.config)

        result = await self.session.execute(
            select(Property).where(Property.status == "active").order_by(Property.id)
        )
        rows = result.scalars().all()

        skipped = {reason.value: 0 for reason in SkipReason}
        candidates = []
        for row in rows:
            prop = property_from_row(row)
            reason = early_skip_reason(prop, requirement)
            if reason is not None:
                skipped[reason.value] += 1
                continue
            candidates.append((row, prop))

        broker_ids = {prop.broker_id for _, prop in candidates if prop.broker_id}
        profiles = {}
        if broker_ids:
            profile_rows = await self.session.execute(
                select(BrokerProfile).where(BrokerProfile.user_id.in_(broker_ids))
            )
            profiles = {p.user_id: p for p in profile_rows.scalars().all()}

        ranked = []
        for row, prop in candidates:
            key = MatchCacheKey(property_id=prop.id, opportunity_id=opportunity_id)
            lookup = await self.cache.get(key)
            if lookup.is_hit:
                score = lookup.value
            else:
                score = compute_match_score(
                    prop, requirement, experience_from_row(profiles.get(prop.broker_id)), self.config,
                )
                stored = await self.cache.put(key, score)
                if not stored.ok:
                    logger.warning("Ranking without caching %s: %s", key, stored.error)
            if score.overall_score >= min_score:
                ranked.append(RankedProperty(
                    property_id=prop.id,
                    name=row.name,
                    city=row.city,
                    state=row.state,
                    score=score,
                ))

        ranked.sort(key=lambda r: (-r.score.overall_score, r.property_id))
        logger.info(
            "Ranked %d listings for opportunity %s: %d scored, skipped %s",
            len(rows), opportunity_id, len(candidates), skipped,
        )
        return PropertyRanking(
            opportunity_id=opportunity_id,
            matches=ranked[:limit],
            evaluated=len(rows),
            scored=len(candidates),
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Presence scores
    # ------------------------------------------------------------------

    async def get_presence_score(self, lat: float, lng: float, radius_miles: float) -> tuple[PresenceScore, bool]:
        """Presence score around a point; returns ``(score, cached)``.

        Raises:
            InvalidInput: coordinates or radius out of range.
            UpstreamUnavailable: federal records could not be loaded in time.
        """
        validate_point(lat, lng, radius_miles, self.config.max_presence_radius_miles)
        key = PresenceCacheKey.from_point(lat, lng, radius_miles, self.config.presence_key_precision)

        lookup = await self.cache.get(key)
        if lookup.is_hit:
            return lookup.value, True

        score = await _presence_flights.do(key, lambda: self._compute_presence(key))
        return score, False

    async def _compute_presence(self, key: PresenceCacheKey) -> PresenceScore:
        reference = await self.cache.reference_composites()
        scorer = PresenceScorer(FederalPropertyRepository(self.session), self.config)
        score = await scorer.score(
            GeoPoint(key.latitude, key.longitude), key.radius_miles, reference=reference,
        )

        stored = await self.cache.put(key, score)
        if not stored.ok:
            logger.warning("Returning uncached presence score for %s: %s", key, stored.error)
        return score

    # ------------------------------------------------------------------
    # Federal inventory lookups
    # ------------------------------------------------------------------

    async def find_nearby(
        self, lat: float, lng: float, radius_miles: float
    ) -> list[tuple[FederalPropertyRecord, float]]:
        validate_point(lat, lng, radius_miles, self.config.max_presence_radius_miles)
        return await FederalPropertyRepository(self.session).find_within_radius(
            GeoPoint(lat, lng), radius_miles
        )

    async def find_expiring_leases(
        self, months_ahead: int, state: str | None = None
    ) -> list[FederalPropertyRecord]:
        if not 1 <= months_ahead <= MAX_EXPIRING_MONTHS:
            raise InvalidInput(f"months_ahead must be between 1 and {MAX_EXPIRING_MONTHS}")
        state = state.strip().upper() if state else None
        return await FederalPropertyRepository(self.session).find_expiring_leases(months_ahead, state)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def cleanup_cache(self) -> tuple[int, int]:
        return await self.cache.purge_expired()
