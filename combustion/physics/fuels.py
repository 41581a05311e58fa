"""Fuel property catalog.

Provides the chemical makeup, heating value and recommended analyzer
targets for the fuels a training burner can be fired on. Heating values are
simplified and expressed in BTU per metering unit (scfh for gases, gph for
liquids).
"""

from dataclasses import dataclass
from enum import Enum


class FuelType(str, Enum):
    NATURAL_GAS = "natural_gas"
    PROPANE = "propane"
    FUEL_OIL_2 = "fuel_oil_2"
    BIODIESEL = "biodiesel"


class FuelPhase(str, Enum):
    GAS = "gas"
    OIL = "oil"


@dataclass(frozen=True)
class FuelTargets:
    """Recommended combustion-quality band for tuning."""
    o2_min: float            # % dry
    o2_max: float
    stack_min_f: float       # F
    stack_max_f: float
    co_airfree_max: float    # ppm air-free


@dataclass(frozen=True)
class Fuel:
    key: FuelType
    name: str
    C: float
    H: float
    O: float
    hhv: float
    unit: str
    phase: FuelPhase
    base_pressure: float     # in. w.c. for gas, psi for oil
    pressure_unit: str
    targets: FuelTargets

    @property
    def o2_per_mol(self) -> float:
        """Moles of O2 needed to burn one mole of fuel (C + H/4 - O/2)."""
        return self.C + self.H / 4.0 - self.O / 2.0

    @property
    def is_oil(self) -> bool:
        return self.phase == FuelPhase.OIL

    @property
    def is_gas(self) -> bool:
        return self.phase == FuelPhase.GAS

    def to_dict(self) -> dict:
        return {
            "key": self.key.value,
            "name": self.name,
            "formula": {"C": self.C, "H": self.H, "O": self.O},
            "hhv": self.hhv,
            "unit": self.unit,
            "phase": self.phase.value,
            "base_pressure": self.base_pressure,
            "pressure_unit": self.pressure_unit,
            "targets": {
                "o2": [self.targets.o2_min, self.targets.o2_max],
                "stack_f": [self.targets.stack_min_f, self.targets.stack_max_f],
                "co_airfree_max": self.targets.co_airfree_max,
            },
        }


FUEL_DB: dict[FuelType, Fuel] = {
    FuelType.NATURAL_GAS: Fuel(
        key=FuelType.NATURAL_GAS,
        name="Natural Gas",
        C=1, H=4, O=0,                  # CH4
        hhv=1000.0,                     # BTU/scf
        unit="scfh",
        phase=FuelPhase.GAS,
        base_pressure=3.5,
        pressure_unit="in_wc",
        targets=FuelTargets(3.0, 6.0, 300.0, 475.0, 100.0),
    ),
    FuelType.PROPANE: Fuel(
        key=FuelType.PROPANE,
        name="Propane",
        C=3, H=8, O=0,                  # C3H8
        hhv=2500.0,
        unit="scfh",
        phase=FuelPhase.GAS,
        base_pressure=11.0,
        pressure_unit="in_wc",
        targets=FuelTargets(3.0, 6.0, 320.0, 500.0, 100.0),
    ),
    FuelType.FUEL_OIL_2: Fuel(
        key=FuelType.FUEL_OIL_2,
        name="Fuel Oil #2",
        C=12, H=23, O=0,                # approx. C12H23
        hhv=138500.0,                   # BTU/gal
        unit="gph",
        phase=FuelPhase.OIL,
        base_pressure=100.0,
        pressure_unit="psi",
        targets=FuelTargets(2.0, 5.0, 350.0, 550.0, 200.0),
    ),
    FuelType.BIODIESEL: Fuel(
        key=FuelType.BIODIESEL,
        name="Biodiesel",
        C=19, H=36, O=2,                # typical methyl ester
        hhv=119000.0,
        unit="gph",
        phase=FuelPhase.OIL,
        base_pressure=100.0,
        pressure_unit="psi",
        targets=FuelTargets(2.0, 5.0, 340.0, 520.0, 200.0),
    ),
}


def get_fuel(key: FuelType | str) -> Fuel:
    """Get fuel properties by key."""
    try:
        return FUEL_DB[FuelType(key)]
    except ValueError:
        raise ValueError(
            f"Unknown fuel: {key}. Available: {[k.value for k in FUEL_DB]}"
        ) from None


def list_fuels(phase: FuelPhase | str | None = None) -> list[str]:
    """List available fuel keys, optionally filtered by phase."""
    if phase:
        return [k.value for k, f in FUEL_DB.items() if f.phase == FuelPhase(phase)]
    return [k.value for k in FUEL_DB]
