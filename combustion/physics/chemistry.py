"""Flue-gas chemistry for hydrocarbon fuels.

Models a single burner flame with simple conservation of C/H/O atoms and a
few empirical correlations. Intentionally simplified for instruction.

Key sub-models:
    - Stoichiometry: O2 demand from fuel formula, excess-air ratio
    - Oxygen partition: hydrogen oxidizes first, carbon to CO2 then CO
    - Dry-basis flue gas: O2 %, CO2 %, CO ppm (analyzer convention)
    - Flame temperature, stack/unburned losses, thermal NOx
"""

from dataclasses import asdict, dataclass

import numpy as np

from combustion.physics.fuels import Fuel

OXYGEN_IN_AIR_PERCENT = 20.9
OXYGEN_IN_AIR_FRACTION = OXYGEN_IN_AIR_PERCENT / 100.0
NITROGEN_IN_AIR_FRACTION = 1.0 - OXYGEN_IN_AIR_FRACTION

BURNING_MIN_FUEL = 0.05     # fuel flow below this is "no flame"
CO_PPM_MAX = 40000.0
NOX_PPM_MAX = 2000.0
_TINY = 1e-9


@dataclass(frozen=True)
class CombustionWarnings:
    soot: bool = False
    over_temp: bool = False
    under_temp: bool = False


@dataclass(frozen=True)
class CombustionResult:
    O2_pct: float
    CO2_pct: float
    CO_ppm: float
    CO_airfree: float
    NOx_ppm: float
    stack_temp_f: float
    excess_air: float
    efficiency_pct: float
    flame_temp_f: float
    warnings: CombustionWarnings

    @property
    def excess_air_pct(self) -> float:
        """Excess air as shown on analyzers: (ratio - 1) x 100."""
        return round((self.excess_air - 1.0) * 100.0, 1)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["excess_air_pct"] = self.excess_air_pct
        return d


def stoichiometric_air(fuel: Fuel, fuel_flow: float) -> float:
    """Air flow that exactly supplies the O2 demand of `fuel_flow`."""
    return max(0.0, fuel_flow) * fuel.o2_per_mol / OXYGEN_IN_AIR_FRACTION


def excess_air_ratio(fuel: Fuel, fuel_flow: float, air_flow: float) -> float:
    """Excess-air ratio used by the programmer and flame models.

    Flows are floored so a stopped fuel valve reads as extremely lean
    rather than dividing by zero.
    """
    air_stoich = max(0.0001, fuel_flow) * fuel.o2_per_mol / OXYGEN_IN_AIR_FRACTION
    return max(0.1, air_flow / max(0.001, air_stoich))


def co_air_free(co_ppm: float, o2_pct: float) -> float:
    """Correct measured CO to 0 % O2 (20.9 / (20.9 - O2))."""
    return round(co_ppm * OXYGEN_IN_AIR_PERCENT / max(0.1, OXYGEN_IN_AIR_PERCENT - o2_pct))


def compute_combustion(fuel: Fuel, fuel_flow: float, air_flow: float,
                       stack_temp_f: float, ambient_f: float) -> CombustionResult:
    """Compute flue-gas composition for one operating point.

    Args:
        fuel: Fuel definition (C/H/O formula).
        fuel_flow: Fuel flow (mol/min equivalent).
        air_flow: Combustion air flow (mol/min equivalent).
        stack_temp_f: Actual stack temperature (F).
        ambient_f: Combustion-air temperature (F).
    """
    fuel_mol = max(0.0, fuel_flow)
    air = max(0.0001, air_flow)

    # Stoichiometry
    o2_needed = fuel_mol * fuel.o2_per_mol
    air_stoich = o2_needed / OXYGEN_IN_AIR_FRACTION
    excess_air = air / air_stoich if air_stoich > 0 else 0.0

    o2_in = OXYGEN_IN_AIR_FRACTION * air
    n2_in = NITROGEN_IN_AIR_FRACTION * air

    # Hydrogen takes its oxygen first (H2O), carbon gets the rest
    o2_for_h2o = fuel_mol * fuel.H / 4.0
    o2_after_h = max(0.0, o2_in - o2_for_h2o)

    carbon = fuel_mol * fuel.C
    if o2_after_h >= carbon:
        co2 = carbon
        co = 0.0
        o2_left = o2_after_h - carbon
    else:
        co2 = o2_after_h
        co = carbon - co2
        o2_left = 0.0

    # Dry basis (water condensed out in the analyzer)
    total_dry = co2 + co + o2_left + n2_in + _TINY
    o2_pct = float(np.clip(o2_left / total_dry * 100.0, 0.0, OXYGEN_IN_AIR_PERCENT))
    co2_pct = float(np.clip(co2 / total_dry * 100.0, 0.0, 20.0))
    co_ppm = float(np.clip(co / total_dry * 1e6, 0.0, CO_PPM_MAX))

    # Flame temperature: bell curve around slightly lean, rising with firing rate
    ea = float(np.clip(excess_air, 0.2, 3.0))
    flame_temp_f = (
        ambient_f
        + 1800.0 * np.exp(-(((ea - 1.1) / 0.35) ** 2))
        + 400.0 * np.tanh(fuel_mol / 10.0)
    )

    burning = fuel_mol > BURNING_MIN_FUEL

    # Heat balance
    flue_flow = air + fuel_mol
    fuel_energy_rate = fuel_mol * 100.0
    stack_loss = np.clip(
        flue_flow * (stack_temp_f - ambient_f) / max(1.0, fuel_energy_rate) / 1000.0,
        0.0, 0.45,
    )
    unburned_loss = np.clip(co_ppm / CO_PPM_MAX, 0.0, 0.12)
    efficiency = float(np.clip(1.0 - stack_loss - unburned_loss, 0.45, 0.995)) if burning else 0.0

    # Thermal NOx
    if burning:
        ea_factor = np.clip(1.0 + 0.5 * (ea - 1.0), 0.2, 1.8)
        nox_ppm = float(np.clip(6.0 * np.exp((flame_temp_f - 1400.0) / 300.0) * ea_factor,
                                0.0, NOX_PPM_MAX))
    else:
        nox_ppm = 0.0

    warnings = CombustionWarnings(
        soot=co_ppm > 400.0,
        over_temp=stack_temp_f > 500.0,
        under_temp=stack_temp_f < 180.0,
    )

    return CombustionResult(
        O2_pct=round(o2_pct, 2),
        CO2_pct=round(co2_pct, 2),
        CO_ppm=round(co_ppm),
        CO_airfree=co_air_free(co_ppm, o2_pct),
        NOx_ppm=round(nox_ppm),
        stack_temp_f=round(stack_temp_f),
        excess_air=round(excess_air, 2),
        efficiency_pct=round(efficiency * 100.0, 1),
        flame_temp_f=round(float(flame_temp_f)),
        warnings=warnings,
    )
