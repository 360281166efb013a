from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """
    Minimal health check response. Side-effect free.
    """

    status: str
    environment: str
    phase: str


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
def health(request: Request) -> HealthResponse:
    engine = request.app.state.engine
    return HealthResponse(
        status="ok",
        environment=request.app.state.settings.env,
        phase=engine.state.phase.value,
    )
