"""Shared FastAPI dependencies and error mapping for the scoring routes."""

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fedmatch.app.config import get_settings
from fedmatch.domain.errors import (
    CacheUnavailable,
    InvalidInput,
    NotFound,
    ScoringError,
    UpstreamUnavailable,
)
from fedmatch.infra.database import get_db, get_session_factory
from fedmatch.services.scoring_config import ScoringConfig
from fedmatch.services.scoring_service import ScoringService

_STATUS_BY_ERROR = (
    (InvalidInput, 400),
    (NotFound, 404),
    (UpstreamUnavailable, 503),
    (CacheUnavailable, 503),
)


def get_scoring_config() -> ScoringConfig:
    return ScoringConfig.from_settings(get_settings())


async def get_scoring_service(
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    config: ScoringConfig = Depends(get_scoring_config),
) -> ScoringService:
    return ScoringService(db, session_factory, config)


def http_error(exc: ScoringError) -> HTTPException:
    """Translate an engine error into the matching HTTP error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=500, detail=exc.message)
