"""Flame scanner and stack temperature dynamics.

Both are discrete first-order relaxations evaluated on the main 100 ms tick.
Their targets depend on the burner programmer state:

    - Flame signal: only trial-for-ignition and run states have a flame;
      strength follows a Gaussian "goodness" curve around EA = 1.05.
    - Stack temperature: cools toward ambient when no flame, heats toward a
      firing-rate dependent setpoint with state-specific time constants.
"""

import math
import random

import numpy as np

from combustion.control.programmer import BurnerState
from combustion.physics.fuels import Fuel
from combustion.physics.chemistry import excess_air_ratio

IGNITABLE_EA = (0.85, 1.6)
FLAME_STATES = (BurnerState.PTFI, BurnerState.MTFI, BurnerState.RUN_AUTO)
COOLING_STATES = (
    BurnerState.OFF,
    BurnerState.DRIVE_HI,
    BurnerState.PREPURGE_HI,
    BurnerState.DRIVE_LOW,
    BurnerState.LOW_PURGE_MIN,
    BurnerState.POSTPURGE,
    BurnerState.LOCKOUT,
)


def stack_setpoint(fuel: Fuel, fuel_flow: float, air_flow: float) -> float:
    """Steady running stack temperature for the current fuel/air (F)."""
    fuel_mol = max(0.0001, fuel_flow)
    ea = max(0.2, excess_air_ratio(fuel, fuel_flow, air_flow))
    base = 250.0 + 18.0 * fuel_mol + 40.0 * math.tanh((ea - 1.0) * 1.5)
    return float(np.clip(base, 150.0, 600.0))


def flame_goodness(excess_air: float) -> float:
    return math.exp(-(((excess_air - 1.05) / 0.35) ** 2))


class FlameScanner:
    """Simulated flame-scanner amplifier signal (0-80 units)."""

    DEFAULT_PARAMS = {
        "relaxation": 0.25,   # fraction of the gap closed per tick
        "noise": 1.0,         # uniform noise amplitude
        "signal_max": 80.0,
        "pilot_min_fuel": 0.5,
        "seed": None,
    }

    def __init__(self, params: dict | None = None):
        p = {**self.DEFAULT_PARAMS, **(params or {})}
        self.relaxation = p["relaxation"]
        self.noise = p["noise"]
        self.signal_max = p["signal_max"]
        self.pilot_min_fuel = p["pilot_min_fuel"]
        self._rng = random.Random(p["seed"])

        self.signal = 0.0
        self.target = 0.0

        # Fault state
        self._fault_type = None       # None, "stuck"
        self._stuck_value = None

    def compute_target(self, state: BurnerState, fuel_flow: float, excess_air: float) -> float:
        if state not in FLAME_STATES:
            return 0.0
        k = flame_goodness(excess_air)
        if state == BurnerState.PTFI:
            ignitable = (IGNITABLE_EA[0] < excess_air < IGNITABLE_EA[1]
                         and fuel_flow > self.pilot_min_fuel)
            return 22.0 + 6.0 * k if ignitable else 5.0
        return 25.0 + 55.0 * k * math.tanh(fuel_flow / 10.0)

    def step(self, state: BurnerState, fuel_flow: float, excess_air: float) -> float:
        """Advance one tick and return the new signal."""
        self.target = self.compute_target(state, fuel_flow, excess_air)
        noise = self._rng.uniform(-1.0, 1.0) * self.noise
        signal = self.signal + (self.target - self.signal) * self.relaxation + noise
        self.signal = float(np.clip(signal, 0.0, self.signal_max))

        if self._fault_type == "stuck":
            self.signal = self._stuck_value
        return self.signal

    def inject_fault(self, fault_type: str, **kwargs):
        """
        Inject a scanner fault.

        fault_type:
          "stuck" — signal freezes at a value
                    kwargs: value (optional, defaults to current signal)
        """
        if fault_type != "stuck":
            raise ValueError(f"Unknown flame scanner fault: {fault_type}")
        self._fault_type = fault_type
        value = kwargs.get("value", self.signal)
        self._stuck_value = float(np.clip(value, 0.0, self.signal_max))
        self.signal = self._stuck_value

    def clear_fault(self):
        self._fault_type = None
        self._stuck_value = None

    def get_state(self) -> dict:
        return {
            "signal": round(self.signal, 2),
            "target": round(self.target, 2),
            "fault_type": self._fault_type,
        }


class StackTemperature:
    """Stack (flue outlet) temperature with state-dependent lag."""

    DEFAULT_PARAMS = {
        "initial_f": 150.0,
        "tau_cooling": 3.0,     # s
        "tau_ptfi": 2.5,
        "tau_mtfi": 4.0,
        "tau_run": 6.0,
    }

    def __init__(self, params: dict | None = None):
        p = {**self.DEFAULT_PARAMS, **(params or {})}
        self.tau_cooling = p["tau_cooling"]
        self.tau_ptfi = p["tau_ptfi"]
        self.tau_mtfi = p["tau_mtfi"]
        self.tau_run = p["tau_run"]

        self.temperature = p["initial_f"]
        self.target = p["initial_f"]
        self.tau = self.tau_cooling

    def target_for(self, state: BurnerState, ambient_f: float, setpoint_f: float) -> tuple[float, float]:
        """(target F, time constant s) for a programmer state."""
        if state == BurnerState.PTFI:
            return max(ambient_f + 40.0, setpoint_f - 80.0), self.tau_ptfi
        if state == BurnerState.MTFI:
            return max(ambient_f + 80.0, setpoint_f - 40.0), self.tau_mtfi
        if state == BurnerState.RUN_AUTO:
            return setpoint_f, self.tau_run
        return ambient_f, self.tau_cooling

    def step(self, state: BurnerState, ambient_f: float, setpoint_f: float, dt: float = 0.1) -> float:
        """Advance by one integration step of dt seconds."""
        self.target, self.tau = self.target_for(state, ambient_f, setpoint_f)
        self.temperature += (self.target - self.temperature) * (dt / self.tau)
        return self.temperature

    def get_state(self) -> dict:
        return {
            "temperature_f": round(self.temperature, 1),
            "target_f": round(self.target, 1),
            "tau_s": self.tau,
        }
