"""
Health check endpoint.

Provides system health status for monitoring and load balancers.
"""

from fastapi import APIRouter

from bizdoc import __version__
from bizdoc.api.schemas import HealthResponse
from bizdoc.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report service status and whether refinement is configured."""
    settings = get_settings()

    return HealthResponse(
        status="healthy",
        version=__version__,
        refinement="enabled" if settings.openai_api_key else "disabled",
    )
