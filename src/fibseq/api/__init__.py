from __future__ import annotations

from fastapi import APIRouter

from fibseq.api.routes.commands import router as commands_router
from fibseq.api.routes.health import router as health_router

# Top-level API router
router = APIRouter()

# Route composition
router.include_router(health_router)
router.include_router(commands_router)
