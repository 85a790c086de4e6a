"""Federal presence API routes: presence score, nearby federal properties,
and leases nearing expiration."""

from fastapi import APIRouter, Depends, Query

from fedmatch.app.dependencies import get_scoring_service, http_error
from fedmatch.domain.errors import ScoringError
from fedmatch.domain.schemas import FederalPropertyResponse, PresenceScoreResponse
from fedmatch.services.property_serializer import serialize_federal_record
from fedmatch.services.scoring_service import ScoringService

router = APIRouter(prefix="/api/presence", tags=["presence"])


@router.get("/score", response_model=PresenceScoreResponse)
async def get_presence_score(
    lat: float = Query(...),
    lng: float = Query(...),
    radius_miles: float = Query(5.0),
    service: ScoringService = Depends(get_scoring_service),
):
    try:
        score, cached = await service.get_presence_score(lat, lng, radius_miles)
    except ScoringError as exc:
        raise http_error(exc)
    return PresenceScoreResponse(data=score, cached=cached)


@router.get("/nearby", response_model=list[FederalPropertyResponse])
async def get_nearby_properties(
    lat: float = Query(...),
    lng: float = Query(...),
    radius_miles: float = Query(5.0),
    service: ScoringService = Depends(get_scoring_service),
):
    """Federal owned and leased properties within the radius, nearest first."""
    try:
        matches = await service.find_nearby(lat, lng, radius_miles)
    except ScoringError as exc:
        raise http_error(exc)
    return [serialize_federal_record(record, dist) for record, dist in matches]


@router.get("/expiring-leases", response_model=list[FederalPropertyResponse])
async def get_expiring_leases(
    months_ahead: int = Query(24),
    state: str | None = Query(None),
    service: ScoringService = Depends(get_scoring_service),
):
    """Federal leases expiring within ``months_ahead`` months, soonest first."""
    try:
        records = await service.find_expiring_leases(months_ahead, state)
    except ScoringError as exc:
        raise http_error(exc)
    return [serialize_federal_record(record) for record in records]
