"""
Health check endpoints.

Provides liveness and readiness probes. Readiness checks that the card
database file is present.
"""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from commanderforge.config import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    card_database: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check dependencies.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(response: Response) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 until the card database has been downloaded.
    """
    if settings.card_data_path.exists():
        return HealthResponse(status="ready", card_database="available")

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(status="not_ready", card_database="missing")
