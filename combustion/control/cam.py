"""Cam / firing-rate schedule mapper.

A jackshaft burner links the fuel valve and the air damper to one modulating
motor. The "cam" here is a table of saved (fuel, air) set-points at 10 %
firing-rate increments per fuel; between saved points, or with none saved,
the schedule falls back to a linear fuel ramp at a fixed excess-air target.
"""

import logging
from dataclasses import dataclass

import numpy as np

from combustion.physics.chemistry import stoichiometric_air
from combustion.physics.fuels import Fuel, FuelType

logger = logging.getLogger(__name__)

TARGET_EXCESS_AIR = 1.2
DECILES = tuple(range(0, 101, 10))
FLOW_LIMIT_FUEL = 20.0
FLOW_LIMIT_AIR = 200.0

# Excess-air ratio per decile (index 0 = 0 %, 10 = 100 %). More air at low
# turndown for flame stability.
EXCESS_AIR_PROFILES: dict[FuelType, list[float]] = {
    FuelType.NATURAL_GAS: [0, 1.4, 1.35, 1.32, 1.29, 1.26, 1.24, 1.23, 1.22, 1.21, 1.2],
    FuelType.PROPANE: [0, 1.4, 1.35, 1.32, 1.29, 1.26, 1.24, 1.23, 1.22, 1.21, 1.2],
    FuelType.FUEL_OIL_2: [0, 1.45, 1.4, 1.35, 1.32, 1.3, 1.28, 1.26, 1.24, 1.22, 1.2],
    FuelType.BIODIESEL: [0, 1.45, 1.4, 1.35, 1.32, 1.3, 1.28, 1.26, 1.24, 1.22, 1.2],
}


def cam_position(pct: float) -> int:
    """Nearest cam decile for a firing rate, clamped to 0..100."""
    decile = int(np.floor(float(pct) / 10.0 + 0.5)) * 10
    return int(np.clip(decile, 0, 100))


@dataclass(frozen=True)
class CamPoint:
    fuel: float
    air: float

    def to_dict(self) -> dict:
        return {"fuel": self.fuel, "air": self.air}


class CamMap:
    """Saved cam set-points keyed by (fuel type, decile)."""

    def __init__(self):
        self._points: dict[tuple[FuelType, int], CamPoint] = {}

    def __len__(self) -> int:
        return len(self._points)

    def set(self, fuel_key: FuelType | str, pct: float, fuel: float, air: float) -> CamPoint:
        key = (FuelType(fuel_key), cam_position(pct))
        point = CamPoint(fuel=float(fuel), air=float(air))
        self._points[key] = point
        logger.info("Cam %s @ %d%% set to fuel=%.2f air=%.2f", key[0].value, key[1], point.fuel, point.air)
        return point

    def clear(self, fuel_key: FuelType | str, pct: float) -> bool:
        key = (FuelType(fuel_key), cam_position(pct))
        removed = self._points.pop(key, None) is not None
        if removed:
            logger.info("Cam %s @ %d%% cleared", key[0].value, key[1])
        return removed

    def get(self, fuel_key: FuelType | str, pct: float) -> CamPoint | None:
        return self._points.get((FuelType(fuel_key), cam_position(pct)))

    def points_for(self, fuel_key: FuelType | str) -> dict[int, CamPoint]:
        fuel_key = FuelType(fuel_key)
        return {pct: p for (k, pct), p in sorted(self._points.items(), key=lambda kv: kv[0][1])
                if k == fuel_key}

    def replace(self, fuel_key: FuelType | str, points: dict[int, CamPoint]):
        """Bulk-replace every saved point of one fuel."""
        fuel_key = FuelType(fuel_key)
        self._points = {k: p for k, p in self._points.items() if k[0] != fuel_key}
        for pct, point in points.items():
            self._points[(fuel_key, cam_position(pct))] = point
        logger.info("Cam map for %s replaced (%d points)", fuel_key.value, len(points))

    def to_dict(self) -> dict:
        out: dict[str, dict[str, dict]] = {}
        for (fuel_key, pct), point in sorted(self._points.items(), key=lambda kv: (kv[0][0].value, kv[0][1])):
            out.setdefault(fuel_key.value, {})[str(pct)] = point.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "CamMap":
        cam = cls()
        for fuel_key, points in data.items():
            for pct, point in points.items():
                cam._points[(FuelType(fuel_key), cam_position(float(pct)))] = CamPoint(
                    fuel=float(point["fuel"]), air=float(point["air"]))
        return cam


def map_firing_rate(pct: float, cam_map: CamMap, fuel: Fuel,
                    min_fuel: float, max_fuel: float) -> tuple[float, float]:
    """Firing rate (0-100 %) -> (fuel_flow, air_flow).

    A saved cam point at the nearest decile wins and is returned verbatim;
    otherwise fuel is interpolated between the regulator bounds and air is set
    for the target excess-air ratio.
    """
    saved = cam_map.get(fuel.key, pct)
    if saved is not None:
        return saved.fuel, saved.air

    mn = float(np.clip(min_fuel, 0.0, FLOW_LIMIT_FUEL))
    mx = float(np.clip(max_fuel, 0.0, FLOW_LIMIT_FUEL))
    frac = float(np.clip(pct, 0.0, 100.0)) / 100.0
    fuel_flow = mn + (mx - mn) * frac
    air_flow = stoichiometric_air(fuel, max(0.0001, fuel_flow)) * TARGET_EXCESS_AIR
    return fuel_flow, float(np.clip(air_flow, 0.0, FLOW_LIMIT_AIR))


def build_safe_cam_map(fuel: Fuel, min_fuel: float, max_fuel: float) -> dict[int, CamPoint]:
    """Conservative cam points for every decile using the fuel's excess-air profile."""
    profile = EXCESS_AIR_PROFILES[fuel.key]
    points = {}
    for idx, pct in enumerate(DECILES):
        if pct == 0:
            points[pct] = CamPoint(fuel=0.0, air=0.0)
            continue
        t = (pct - 10) / 90.0
        fuel_flow = min_fuel + (max_fuel - min_fuel) * t
        air_flow = stoichiometric_air(fuel, fuel_flow) * profile[idx]
        points[pct] = CamPoint(fuel=round(fuel_flow, 2), air=round(air_flow, 2))
    return points
