"""Health endpoint."""

from fastapi import APIRouter

from rate_anybody import __version__
from rate_anybody.api.models import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check with the installed package version."""
    return HealthResponse(status="ok", version=__version__)
