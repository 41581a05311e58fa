"""Operator control endpoints.

Writes trainer inputs through the simulation's control handle: boiler call,
fuel, rheostat, regulator pressure, tuning overrides, programmer commands,
cam map edits, analyzer operation, and the tuning log.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from backend.api.models.schemas import (
    AnalyzerCommand,
    CamCommand,
    ControlInputs,
    FlameFault,
    SavedReadingCreate,
)
from backend.services.simulation_manager import SimulationInstance, SimulationManager

router = APIRouter()
manager = SimulationManager()


def _get_simulation(simulation_id: UUID) -> SimulationInstance:
    sim = manager.get_simulation(simulation_id)
    if sim is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return sim


@router.post("/{simulation_id}/inputs")
async def apply_inputs(simulation_id: UUID, inputs: ControlInputs):
    """Apply operator inputs. Manual flows only take effect while tuning in RUN_AUTO."""
    sim = _get_simulation(simulation_id)
    controls = sim.controls
    applied = inputs.model_dump(exclude_none=True)

    if inputs.fuel_type is not None:
        try:
            controls.set_fuel(inputs.fuel_type)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    if inputs.reg_press is not None:
        controls.set_regulator_pressure(inputs.reg_press)
    if inputs.ambient_f is not None:
        controls.set_ambient(inputs.ambient_f)
    if inputs.rheostat is not None:
        controls.set_rheostat(inputs.rheostat)
    if inputs.tuning_mode is not None:
        controls.set_tuning_mode(inputs.tuning_mode)
    if inputs.boiler_on is not None:
        controls.set_boiler_on(inputs.boiler_on)
    if inputs.speed_multiplier is not None:
        applied["speed_multiplier"] = controls.set_speed_multiplier(inputs.speed_multiplier)

    manual_applied = None
    if inputs.fuel_flow is not None or inputs.air_flow is not None:
        manual_applied = controls.set_manual_flows(fuel_flow=inputs.fuel_flow, air_flow=inputs.air_flow)

    return {
        "simulation_id": str(simulation_id),
        "applied": applied,
        "manual_flows_applied": manual_applied,
    }


@router.post("/{simulation_id}/programmer/advance")
async def advance_programmer(simulation_id: UUID):
    """Force-complete the current timed programmer state."""
    sim = _get_simulation(simulation_id)
    advanced = sim.controls.advance_programmer()
    return {"advanced": advanced, "state": sim.orchestrator.programmer.state.value}


@router.post("/{simulation_id}/programmer/reset")
async def reset_programmer(simulation_id: UUID):
    """Manual lockout reset."""
    sim = _get_simulation(simulation_id)
    reset = sim.controls.reset_programmer()
    return {"reset": reset, "state": sim.orchestrator.programmer.state.value}


@router.get("/{simulation_id}/cam")
async def get_cam_map(simulation_id: UUID):
    sim = _get_simulation(simulation_id)
    return {"fuel_type": sim.fuel_type, "cam_map": sim.orchestrator.cam_map.to_dict()}


@router.post("/{simulation_id}/cam/set")
async def set_cam_point(simulation_id: UUID, command: CamCommand):
    """Save the current fuel/air flows at a cam decile."""
    sim = _get_simulation(simulation_id)
    point = sim.controls.save_cam_point(command.pct)
    return {"fuel_type": sim.fuel_type, "point": point.to_dict(),
            "cam_map": sim.orchestrator.cam_map.to_dict()}


@router.post("/{simulation_id}/cam/clear")
async def clear_cam_point(simulation_id: UUID, command: CamCommand):
    sim = _get_simulation(simulation_id)
    cleared = sim.controls.clear_cam_point(command.pct)
    return {"cleared": cleared, "cam_map": sim.orchestrator.cam_map.to_dict()}


@router.post("/{simulation_id}/cam/safe-defaults")
async def apply_safe_cam_map(simulation_id: UUID):
    """Replace the current fuel's cam with conservative defaults."""
    sim = _get_simulation(simulation_id)
    points = sim.controls.apply_safe_cam_map()
    return {"fuel_type": sim.fuel_type, "points": points}


@router.post("/{simulation_id}/analyzer")
async def analyzer_command(simulation_id: UUID, command: AnalyzerCommand):
    sim = _get_simulation(simulation_id)
    accepted = sim.controls.analyzer_command(command.action.value)
    return {"accepted": accepted, "analyzer": sim.orchestrator.analyzer.get_state()}


@router.get("/{simulation_id}/readings")
async def list_readings(simulation_id: UUID):
    sim = _get_simulation(simulation_id)
    return {"readings": sim.orchestrator.recorder.readings()}


@router.post("/{simulation_id}/readings")
async def save_reading(simulation_id: UUID, body: SavedReadingCreate):
    """Snapshot the analyzer into the tuning log."""
    sim = _get_simulation(simulation_id)
    return sim.controls.save_reading(notes=body.notes)


@router.delete("/{simulation_id}/readings")
async def clear_readings(simulation_id: UUID):
    sim = _get_simulation(simulation_id)
    sim.orchestrator.recorder.clear_readings()
    return {"readings": []}


@router.get("/{simulation_id}/trend")
async def get_trend(simulation_id: UUID, limit: int | None = Query(None, ge=1)):
    sim = _get_simulation(simulation_id)
    return {"trend": sim.orchestrator.recorder.history(limit)}


@router.post("/{simulation_id}/flame-fault")
async def inject_flame_fault(simulation_id: UUID, fault: FlameFault):
    sim = _get_simulation(simulation_id)
    kwargs = {"value": fault.value} if fault.value is not None else {}
    sim.controls.inject_flame_fault("stuck", **kwargs)
    return {"flame": sim.orchestrator.flame.get_state()}


@router.delete("/{simulation_id}/flame-fault")
async def clear_flame_fault(simulation_id: UUID):
    sim = _get_simulation(simulation_id)
    sim.controls.clear_flame_fault()
    return {"flame": sim.orchestrator.flame.get_state()}
