from fastapi import APIRouter, Depends, Response, status

from draftboard.api.dependencies import get_session
from draftboard.api.schemas import HealthResponse, ReadinessResponse
from draftboard.session import Session

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe: is the process alive?"""
    return HealthResponse()


@router.get("/healthz/ready", response_model=ReadinessResponse)
async def readiness(
    response: Response,
    session: Session = Depends(get_session),
) -> ReadinessResponse:
    """Readiness probe: has the session loaded the project into the preview?"""
    preview_errors = len(session.sync.errors)
    if session.started:
        return ReadinessResponse(status="ok", session="up", preview_errors=preview_errors)
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="degraded", session="down", preview_errors=preview_errors)
