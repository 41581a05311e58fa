"""WebSocket route — real-time trainer state streaming."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.core.config import settings
from backend.services.simulation_manager import SimulationManager

router = APIRouter()
manager = SimulationManager()


@router.websocket("/{simulation_id}")
async def simulation_stream(websocket: WebSocket, simulation_id: UUID):
    """Stream burner, flame and analyzer readings every WS_STREAM_INTERVAL seconds."""
    await websocket.accept()

    try:
        while True:
            state = await manager.get_state(simulation_id)
            if state is None:
                await websocket.send_json({"error": "simulation not found"})
                break

            status = state.get("status", "stopped")
            if status == "stopped":
                await websocket.send_json({"event": "stopped"})
                break

            programmer = state["programmer"]
            payload = {
                "simulation_time": state["simulation_time"],
                "status": status,
                "burner_state": programmer["state"],
                "countdown": programmer["countdown"],
                "lockout_reason": programmer["lockout_reason"],
                "lockout_pending": programmer["lockout_pending"],
                "relays": {k: programmer[k] for k in ("t5_spark", "t6_pilot", "t7_main")},
                "firing_rate": state["firing_rate"],
                "flame": state["flame"],
                "stack_f": state["stack"]["temperature_f"],
                "flows": state["flows"],
                "combustion": state["combustion"],
                "analyzer": state["analyzer"],
                "metering": state["metering"],
                "targets": state["targets"],
            }

            await websocket.send_json(payload)
            await asyncio.sleep(settings.WS_STREAM_INTERVAL)

    except WebSocketDisconnect:
        pass
