"""Match scoring API routes.

Scores a broker's property against a government lease opportunity and
manages the score cache.
"""

import logging

from fastapi import APIRouter, Depends, Query

from fedmatch.app.dependencies import get_scoring_service, http_error
from fedmatch.app.routes.auth import get_current_identity
from fedmatch.domain.errors import ScoringError
from fedmatch.domain.schemas import (
    CacheCleanupResponse,
    CalculateMatchRequest,
    MatchScoreResponse,
    PropertyRanking,
    RankPropertiesRequest,
)
from fedmatch.services.auth_service import Identity
from fedmatch.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/scoring", tags=["scoring"])


@router.post("/calculate-match", response_model=MatchScoreResponse)
async def calculate_match(
    body: CalculateMatchRequest,
    identity: Identity = Depends(get_current_identity),
    service: ScoringService = Depends(get_scoring_service),
):
    """Score a property against an opportunity, reusing a fresh cached score."""
    try:
        score, cached = await service.calculate_match(body.property_id, body.opportunity_id)
    except ScoringError as exc:
        raise http_error(exc)
    logger.info(
        "Match requested by %s: %s vs %s (cached=%s)",
        identity.user_id, body.property_id, body.opportunity_id, cached,
    )
    return MatchScoreResponse(score=score, cached=cached)


@router.get("/calculate-match", response_model=MatchScoreResponse)
async def get_cached_match(
    property_id: str = Query(...),
    opportunity_id: str = Query(...),
    identity: Identity = Depends(get_current_identity),
    service: ScoringService = Depends(get_scoring_service),
):
    """Return a cached score, or 404 when none is fresh."""
    try:
        score = await service.get_cached_match(property_id, opportunity_id)
    except ScoringError as exc:
        raise http_error(exc)
    return MatchScoreResponse(score=score, cached=True)


@router.post("/rank-properties", response_model=PropertyRanking)
async def rank_properties(
    body: RankPropertiesRequest,
    identity: Identity = Depends(get_current_identity),
    service: ScoringService = Depends(get_scoring_service),
):
    """Rank every active listing against an opportunity, best match first."""
    try:
        ranking = await service.rank_properties(body.opportunity_id, body.limit, body.min_score)
    except ScoringError as exc:
        raise http_error(exc)
    logger.info(
        "Ranking requested by %s for %s: %d matches",
        identity.user_id, body.opportunity_id, len(ranking.matches),
    )
    return ranking


@router.post("/cache/cleanup", response_model=CacheCleanupResponse)
async def cleanup_cache(
    identity: Identity = Depends(get_current_identity),
    service: ScoringService = Depends(get_scoring_service),
):
    """Delete expired match and presence scores."""
    try:
        property_removed, presence_removed = await service.cleanup_cache()
    except ScoringError as exc:
        raise http_error(exc)
    logger.info("Cache cleanup by %s", identity.user_id)
    return CacheCleanupResponse(
        property_scores_removed=property_removed,
        presence_scores_removed=presence_removed,
    )
