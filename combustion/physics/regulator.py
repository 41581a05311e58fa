"""Fuel regulator and metering model.

The regulator outlet pressure sets the fuel-flow envelope through the burner
orifice (gas) or nozzle (oil). Flow through a fixed restriction follows the
square-root law, so the min/max firing bounds scale with sqrt(P / P_base).

Metering converts the simulated fuel flow into the numbers a technician clocks
in the field: gas meter CFH / MBH and oil nozzle GPH / MBH.
"""

import logging
import math

import numpy as np

from combustion.physics.fuels import Fuel

logger = logging.getLogger(__name__)

BASE_MIN_FUEL = 2.0
BASE_MAX_FUEL = 18.0


class FuelRegulator:
    """Regulator pressure -> [min_fuel, max_fuel] envelope."""

    def __init__(self, fuel: Fuel):
        self.fuel = fuel
        self.reg_press = fuel.base_pressure
        self.min_fuel = BASE_MIN_FUEL
        self.max_fuel = BASE_MAX_FUEL
        self._recompute()

    @property
    def scale(self) -> float:
        return math.sqrt(max(0.0, self.reg_press) / max(0.0001, self.fuel.base_pressure))

    def set_fuel(self, fuel: Fuel):
        """Switch fuel; pressure returns to that fuel's base setting."""
        self.fuel = fuel
        self.reg_press = fuel.base_pressure
        self._recompute()

    def set_pressure(self, reg_press: float):
        self.reg_press = max(0.0, float(reg_press))
        self._recompute()

    def clamp(self, fuel_flow: float) -> float:
        """Force a requested fuel flow into the current envelope."""
        return float(np.clip(fuel_flow, self.min_fuel, self.max_fuel))

    def _recompute(self):
        scale = self.scale
        self.min_fuel = max(0.0, BASE_MIN_FUEL * scale)
        self.max_fuel = max(self.min_fuel, BASE_MAX_FUEL * scale)
        logger.debug("Regulator %s @ %.2f %s -> fuel range [%.3f, %.3f]",
                     self.fuel.key.value, self.reg_press, self.fuel.pressure_unit,
                     self.min_fuel, self.max_fuel)

    def get_state(self) -> dict:
        return {
            "reg_press": round(self.reg_press, 3),
            "base_press": self.fuel.base_pressure,
            "pressure_unit": self.fuel.pressure_unit,
            "scale": round(self.scale, 4),
            "min_fuel": round(self.min_fuel, 4),
            "max_fuel": round(self.max_fuel, 4),
        }


def pilot_fuel(fuel_flow: float, min_fuel: float) -> float:
    """Fuel delivered through the pilot valve alone."""
    return min(fuel_flow, max(0.5, min_fuel * 0.5))


def compute_metering(fuel: Fuel, fuel_flow: float, burner_fuel: float,
                     gas_dial_size: float = 1.0,
                     nozzle_gph_100: float = 0.75,
                     oil_pressure_psi: float = 100.0) -> dict:
    """Gas meter and oil nozzle readings for the current flows.

    Args:
        fuel: Selected fuel.
        fuel_flow: Commanded (cam) fuel flow.
        burner_fuel: Fuel actually delivered past the safety valves.
        gas_dial_size: Cubic feet per test-dial revolution.
        nozzle_gph_100: Oil nozzle rating at 100 psi.
        oil_pressure_psi: Oil pump pressure.
    """
    gas_cfh = max(0.0, fuel_flow) if fuel.is_gas else 0.0
    gas_burner_cfh = max(0.0, burner_fuel) if fuel.is_gas else 0.0
    oil_gph = nozzle_gph_100 * math.sqrt(max(0.0, oil_pressure_psi) / 100.0)
    oil_burner_gph = max(0.0, burner_fuel) if fuel.is_oil else 0.0

    return {
        "gas_cfh": round(gas_cfh, 2),
        "gas_burner_cfh": round(gas_burner_cfh, 2),
        "gas_mbh": round(gas_burner_cfh * fuel.hhv / 1000.0, 1),
        "gas_sec_per_rev": round(3600.0 * gas_dial_size / gas_burner_cfh, 2) if gas_burner_cfh > 0 else 0.0,
        "oil_nozzle_gph": round(oil_gph, 3),
        "oil_nozzle_mbh": round(oil_gph * fuel.hhv / 1000.0, 1),
        "oil_cam_gph": round(max(0.0, fuel_flow), 2) if fuel.is_oil else 0.0,
        "oil_burner_gph": round(oil_burner_gph, 2),
        "oil_sec_per_gal": round(3600.0 / oil_burner_gph, 1) if oil_burner_gph > 0 else 0.0,
    }
