"""FedMatch scoring API: match scores, federal presence scores and the score cache."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fedmatch.app.config import get_settings
from fedmatch.app.dependencies import http_error
from fedmatch.app.routes.presence import router as presence_router
from fedmatch.app.routes.scoring import router as scoring_router
from fedmatch.domain.errors import ScoringError
from fedmatch.domain.schemas import HealthResponse
from fedmatch.infra.database import init_db

settings = get_settings()

logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("FedMatch scoring API ready (debug=%s)", settings.debug)
    yield


app = FastAPI(title="FedMatch Scoring API", lifespan=lifespan, debug=settings.debug)

origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(ScoringError)
async def scoring_error_handler(request: Request, exc: ScoringError):
    """Engine errors that escape a route map to the same statuses the routes use."""
    error = http_error(exc)
    if error.status_code >= 500:
        logger.error("Unhandled scoring error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


app.include_router(scoring_router)
app.include_router(presence_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok", service="fedmatch")


def run() -> None:
    """Console entry point (``fedmatch``)."""
    uvicorn.run("fedmatch.app.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    run()
