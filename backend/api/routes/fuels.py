"""Fuel catalog endpoints."""

from fastapi import APIRouter, HTTPException

from combustion.control.cam import EXCESS_AIR_PROFILES
from combustion.physics.fuels import get_fuel, list_fuels as catalog_keys

router = APIRouter()


@router.get("")
async def list_fuels(phase: str | None = None):
    """List catalog fuels, optionally filtered by phase (gas/oil)."""
    try:
        keys = catalog_keys(phase)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown fuel phase: {phase}")
    return {"fuels": [get_fuel(k).to_dict() for k in keys]}


@router.get("/{fuel_key}")
async def get_fuel_detail(fuel_key: str):
    try:
        fuel = get_fuel(fuel_key)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {**fuel.to_dict(), "excess_air_profile": EXCESS_AIR_PROFILES[fuel.key]}
