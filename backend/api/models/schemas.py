"""Pydantic schemas for API request/response models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from backend.core.config import settings


class SimulationStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


class AnalyzerAction(str, Enum):
    START = "start"
    INSERT_PROBE = "insert_probe"
    HOLD = "hold"
    RESUME = "resume"
    STOP = "stop"
    POWER_OFF = "power_off"


class SimulationCreate(BaseModel):
    """Request to start a new trainer simulation."""
    fuel_type: str = Field(default=settings.DEFAULT_FUEL, description="Fuel catalog key")
    speed_multiplier: float = Field(
        default=settings.DEFAULT_SPEED_MULTIPLIER,
        ge=settings.MIN_SPEED_MULTIPLIER,
        le=settings.MAX_SPEED_MULTIPLIER,
    )
    ambient_f: float = Field(default=settings.DEFAULT_AMBIENT_F, description="Ambient air temperature (F)")


class SimulationResponse(BaseModel):
    """Response after creating a simulation."""
    id: UUID
    status: SimulationStatus
    fuel_type: str
    created_at: datetime


class ControlInputs(BaseModel):
    """Operator inputs; omitted fields are left unchanged."""
    boiler_on: bool | None = None
    fuel_type: str | None = None
    rheostat: float | None = Field(default=None, description="Firing-rate control (0-100 %)")
    ambient_f: float | None = None
    reg_press: float | None = Field(default=None, ge=0.0, description="Regulator outlet pressure")
    tuning_mode: bool | None = None
    fuel_flow: float | None = Field(default=None, ge=0.0, description="Manual fuel flow (tuning only)")
    air_flow: float | None = Field(default=None, ge=0.0, description="Manual air flow (tuning only)")
    speed_multiplier: float | None = Field(default=None, gt=0.0)


class CamCommand(BaseModel):
    """Cam point edit; pct defaults to the current rheostat decile."""
    pct: float | None = Field(default=None, description="Firing rate (rounded to 10 %)")


class AnalyzerCommand(BaseModel):
    action: AnalyzerAction


class SavedReadingCreate(BaseModel):
    notes: str = Field(default="", max_length=500)


class FlameFault(BaseModel):
    """Force the flame scanner to a fixed signal (training/test affordance)."""
    value: float | None = Field(default=None, ge=0.0, le=80.0)
