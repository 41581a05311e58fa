"""Combustion Trainer - Burner Sequencing and Flue-Gas Simulation Engine

FastAPI backend hosting real-time boiler combustion trainer simulations.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.core.config import settings
from backend.api.routes import simulation, websocket, controls, fuels, health
from backend.services.simulation_manager import SimulationManager

# ── Logging ──────────────────────────────────────────────────

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger("combustion")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting %s v%s", settings.PROJECT_NAME, settings.VERSION)
    yield
    stopped = await SimulationManager().stop_all()
    logger.info("Stopped %d simulation(s)", stopped)
    logger.info("Shutting down %s", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Boiler combustion trainer: burner programmer, chemistry and analyzer simulation",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router, tags=["health"])
app.include_router(
    simulation.router,
    prefix=f"{settings.API_V1_STR}/simulation",
    tags=["simulation"],
)
app.include_router(
    controls.router,
    prefix=f"{settings.API_V1_STR}/controls",
    tags=["controls"],
)
app.include_router(
    fuels.router,
    prefix=f"{settings.API_V1_STR}/fuels",
    tags=["fuels"],
)
app.include_router(
    websocket.router,
    prefix=f"{settings.API_V1_STR}/ws",
    tags=["websocket"],
)
