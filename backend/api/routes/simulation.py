"""Simulation lifecycle endpoints.

Start, stop, pause, and query combustion trainer simulations.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException

from backend.api.models.schemas import SimulationCreate, SimulationResponse
from backend.services.simulation_manager import SimulationManager

router = APIRouter()
manager = SimulationManager()


@router.post("/start", response_model=SimulationResponse)
async def start_simulation(params: SimulationCreate):
    """Start a new trainer simulation."""
    try:
        sim = await manager.create_simulation(
            fuel_type=params.fuel_type,
            speed_multiplier=params.speed_multiplier,
            ambient_f=params.ambient_f,
        )
    except RuntimeError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SimulationResponse(
        id=sim.id,
        status=sim.status,
        fuel_type=sim.fuel_type,
        created_at=sim.created_at,
    )


@router.get("/list")
async def list_simulations():
    """List all simulations."""
    return {
        "simulations": manager.all_simulations,
        "active_count": manager.active_count,
    }


@router.get("/{simulation_id}/state")
async def get_simulation_state(simulation_id: UUID):
    """Full trainer snapshot: programmer, flame, stack, chemistry, analyzer, metering."""
    state = await manager.get_state(simulation_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return state


@router.post("/{simulation_id}/pause")
async def pause_simulation(simulation_id: UUID):
    """Pause a running simulation."""
    success = await manager.pause_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found or not running")
    return {"status": "paused", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/resume")
async def resume_simulation(simulation_id: UUID):
    """Resume a paused simulation."""
    success = await manager.resume_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found or not paused")
    return {"status": "running", "simulation_id": str(simulation_id)}


@router.post("/{simulation_id}/stop")
async def stop_simulation(simulation_id: UUID):
    """Stop and clean up a simulation."""
    success = await manager.stop_simulation(simulation_id)
    if not success:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return {"status": "stopped", "simulation_id": str(simulation_id)}
