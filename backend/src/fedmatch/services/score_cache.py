"""Time-bounded, best-effort cache for match and presence scores.

Lookups and writes return a ``CacheResult`` instead of raising: a broken
cache degrades to recomputation, never to a failed scoring request.  The
explicit purge raises ``CacheUnavailable`` so its caller can report it.  Each call opens its
own session from the factory, so a failed write cannot poison the caller's
read session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from fedmatch.domain.enums import CacheStatus
from fedmatch.domain.errors import CacheUnavailable
from fedmatch.domain.models import PresenceScoreRecord, PropertyScore
from fedmatch.domain.schemas import MatchScore, PresenceScore
from fedmatch.services.scoring_config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the cache tables store time."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class CacheResult:
    """Outcome of a cache operation.

    Attributes:
        status: hit, miss, stored or error.
        value: The cached score on a hit (or the stored one).
        error: The ``CacheUnavailable`` describing the failure when
            ``status`` is error. Never raised.
    """

    status: CacheStatus
    value: Any = None
    error: Optional[CacheUnavailable] = None

    @property
    def ok(self) -> bool:
        return self.status is not CacheStatus.ERROR

    @property
    def is_hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @classmethod
    def hit(cls, value: Any) -> "CacheResult":
        return cls(status=CacheStatus.HIT, value=value)

    @classmethod
    def miss(cls) -> "CacheResult":
        return cls(status=CacheStatus.MISS)

    @classmethod
    def stored(cls, value: Any) -> "CacheResult":
        return cls(status=CacheStatus.STORED, value=value)

    @classmethod
    def failure(cls, message: str) -> "CacheResult":
        return cls(status=CacheStatus.ERROR, error=CacheUnavailable(message))


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchCacheKey:
    property_id: str
    opportunity_id: str


@dataclass(frozen=True)
class PresenceCacheKey:
    latitude: float
    longitude: float
    radius_miles: float

    @classmethod
    def from_point(cls, lat: float, lng: float, radius_miles: float, precision: int = 4) -> "PresenceCacheKey":
        """Round coordinates so nearby lookups share one entry."""
        return cls(round(lat, precision), round(lng, precision), float(radius_miles))


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class ScoreCache:
    """Cache backed by the ``property_scores`` and ``presence_scores`` tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: ScoringConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config
        self.clock = clock

    # ------------------------------------------------------------------
    # Generic entry points
    # ------------------------------------------------------------------

    async def get(self, key) -> CacheResult:
        if isinstance(key, MatchCacheKey):
            return await self.get_match(key)
        if isinstance(key, PresenceCacheKey):
            return await self.get_presence(key)
        raise TypeError(f"unsupported cache key: {key!r}")

    async def put(self, key, payload, ttl: timedelta | None = None) -> CacheResult:
        if isinstance(key, MatchCacheKey):
            return await self.put_match(key, payload, ttl)
        if isinstance(key, PresenceCacheKey):
            return await self.put_presence(key, payload, ttl)
        raise TypeError(f"unsupported cache key: {key!r}")

    # ------------------------------------------------------------------
    # Match scores
    # ------------------------------------------------------------------

    async def get_match(self, key: MatchCacheKey) -> CacheResult:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PropertyScore).where(
                        PropertyScore.property_id == key.property_id,
                        PropertyScore.opportunity_id == key.opportunity_id,
                        PropertyScore.expires_at > self.clock(),
                    )
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.warning("Match cache read failed for %s: %s", key, exc)
            return CacheResult.failure(str(exc))

        if row is None:
            return CacheResult.miss()
        try:
            return CacheResult.hit(MatchScore.model_validate(row.payload))
        except ValidationError:
            logger.warning("Discarding malformed match cache entry for %s", key)
            return CacheResult.miss()

    async def put_match(self, key: MatchCacheKey, score: MatchScore, ttl: timedelta | None = None) -> CacheResult:
        now = self.clock()
        expires_at = now + (ttl or self.config.cache_ttl)
        values = {
            "payload": score.model_dump(mode="json"),
            "overall_score": score.overall_score,
            "grade": score.grade.value,
            "qualified": score.qualified,
            "competitive": score.competitive,
            "computed_at": now,
            "expires_at": expires_at,
        }
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PropertyScore).where(
                        PropertyScore.property_id == key.property_id,
                        PropertyScore.opportunity_id == key.opportunity_id,
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(PropertyScore(
                        property_id=key.property_id,
                        opportunity_id=key.opportunity_id,
                        **values,
                    ))
                else:
                    for attr, value in values.items():
                        setattr(row, attr, value)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Match cache write failed for %s: %s", key, exc)
            return CacheResult.failure(str(exc))
        return CacheResult.stored(score)

    # ------------------------------------------------------------------
    # Presence scores
    # ------------------------------------------------------------------

    async def get_presence(self, key: PresenceCacheKey) -> CacheResult:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PresenceScoreRecord).where(
                        PresenceScoreRecord.latitude == key.latitude,
                        PresenceScoreRecord.longitude == key.longitude,
                        PresenceScoreRecord.radius_miles == key.radius_miles,
                        PresenceScoreRecord.expires_at > self.clock(),
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    return CacheResult.miss()
                try:
                    score = PresenceScore.model_validate(row.payload)
                except ValidationError:
                    logger.warning("Discarding malformed presence cache entry for %s", key)
                    return CacheResult.miss()

                row.hit_count = (row.hit_count or 0) + 1
                row.last_accessed_at = self.clock()
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Presence cache read failed for %s: %s", key, exc)
            return CacheResult.failure(str(exc))
        return CacheResult.hit(score)

    async def put_presence(
        self, key: PresenceCacheKey, score: PresenceScore, ttl: timedelta | None = None
    ) -> CacheResult:
        now = self.clock()
        values = {
            "payload": score.model_dump(mode="json"),
            "overall_score": score.score,
            "grade": score.grade.value,
            "percentile": score.percentile,
            "total_properties": score.metrics.total_properties,
            "computed_at": now,
            "expires_at": now + (ttl or self.config.cache_ttl),
        }
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PresenceScoreRecord).where(
                        PresenceScoreRecord.latitude == key.latitude,
                        PresenceScoreRecord.longitude == key.longitude,
                        PresenceScoreRecord.radius_miles == key.radius_miles,
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(PresenceScoreRecord(
                        latitude=key.latitude,
                        longitude=key.longitude,
                        radius_miles=key.radius_miles,
                        hit_count=0,
                        **values,
                    ))
                else:
                    for attr, value in values.items():
                        setattr(row, attr, value)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Presence cache write failed for %s: %s", key, exc)
            return CacheResult.failure(str(exc))
        return CacheResult.stored(score)

    async def reference_composites(self) -> list[float]:
        """Composites of unexpired presence entries, for percentile ranking."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PresenceScoreRecord.overall_score).where(
                        PresenceScoreRecord.expires_at > self.clock(),
                        PresenceScoreRecord.overall_score.is_not(None),
                    )
                )
                return [float(v) for v in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.warning("Could not load presence reference distribution: %s", exc)
            return []

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_expired(self) -> tuple[int, int]:
        """Delete expired rows; returns (property_scores, presence_scores) removed.

        Raises:
            CacheUnavailable: the delete failed; nothing was removed.
        """
        now = self.clock()
        try:
            async with self.session_factory() as session:
                match_result = await session.execute(
                    delete(PropertyScore).where(PropertyScore.expires_at <= now)
                )
                presence_result = await session.execute(
                    delete(PresenceScoreRecord).where(PresenceScoreRecord.expires_at <= now)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Cache purge failed: %s", exc)
            raise CacheUnavailable(f"Score cache unavailable: {exc}") from exc
        removed = (match_result.rowcount or 0, presence_result.rowcount or 0)
        logger.info("Purged expired scores: %d match, %d presence", *removed)
        return removed
