"""Health check endpoint."""

from fastapi import APIRouter

from backend.core.config import settings
from backend.services.simulation_manager import SimulationManager

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "active_simulations": SimulationManager().active_count,
    }
