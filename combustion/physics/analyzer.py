"""
Flue-gas analyzer model — adds instrument realism to chemistry outputs.

Features:
  - First-order lag per channel (cell / thermocouple response time)
  - CO air-free derived from the lagged CO and O2 readings
  - Operating states: OFF -> ZERO -> READY -> SAMPLING <-> HOLD
"""

import logging
from enum import Enum

from combustion.physics.chemistry import OXYGEN_IN_AIR_PERCENT, co_air_free

logger = logging.getLogger(__name__)


# Channel profiles for a portable combustion analyzer
ANALYZER_CHANNELS = {
    "O2": {
        "lag_tau": 0.8,        # seconds
        "source": "O2_pct",
        "unit": "%",
        "digits": 2,
    },
    "CO2": {
        "lag_tau": 1.0,
        "source": "CO2_pct",
        "unit": "%",
        "digits": 2,
    },
    "CO": {
        "lag_tau": 2.0,
        "source": "CO_ppm",
        "unit": "ppm",
        "digits": 0,
    },
    "NOx": {
        "lag_tau": 1.2,
        "source": "NOx_ppm",
        "unit": "ppm",
        "digits": 0,
    },
    "StackF": {
        "lag_tau": 3.0,
        "source": "stack_temp_f",
        "unit": "F",
        "digits": 0,
    },
}

ZERO_DURATION_S = 6.0


class AnalyzerState(str, Enum):
    OFF = "OFF"
    ZERO = "ZERO"
    READY = "READY"
    SAMPLING = "SAMPLING"
    HOLD = "HOLD"


class LagChannel:
    """One analyzer channel: value += (target - value) * dt / tau."""

    def __init__(self, name: str, initial: float, params: dict | None = None):
        p = {**ANALYZER_CHANNELS[name], **(params or {})}
        self.name = name
        self.lag_tau = p["lag_tau"]
        self.source = p["source"]
        self.unit = p["unit"]
        self.digits = p["digits"]
        self.value = float(initial)

    def update(self, target: float, dt: float) -> float:
        if self.lag_tau > 0:
            self.value += (target - self.value) * min(1.0, dt / self.lag_tau)
        else:
            self.value = float(target)
        return self.value

    def reading(self) -> float:
        return round(self.value, self.digits) if self.digits else round(self.value)


class FlueGasAnalyzer:
    """Bank of lagged channels plus the instrument's operating state."""

    def __init__(self, ambient_f: float = 70.0, autostart: bool = False,
                 params: dict | None = None):
        params = params or {}
        self.ambient_f = ambient_f
        self.channels = {
            "O2": LagChannel("O2", OXYGEN_IN_AIR_PERCENT, params.get("O2")),
            "CO2": LagChannel("CO2", 0.0, params.get("CO2")),
            "CO": LagChannel("CO", 0.0, params.get("CO")),
            "NOx": LagChannel("NOx", 0.0, params.get("NOx")),
            "StackF": LagChannel("StackF", ambient_f, params.get("StackF")),
        }
        self.efficiency = 0.0
        self.zero_duration_s = params.get("zero_duration_s", ZERO_DURATION_S)

        self.state = AnalyzerState.SAMPLING if autostart else AnalyzerState.OFF
        self.probe_in = autostart
        self.zero_elapsed_s = 0.0

    @property
    def zero_progress(self) -> float:
        """Zero calibration progress in percent."""
        if self.state != AnalyzerState.ZERO:
            return 100.0 if self.state != AnalyzerState.OFF else 0.0
        return round(min(100.0, self.zero_elapsed_s / self.zero_duration_s * 100.0), 1)

    def baseline(self) -> dict:
        """What the cells read in fresh air."""
        return {
            "O2_pct": OXYGEN_IN_AIR_PERCENT,
            "CO2_pct": 0.0,
            "CO_ppm": 0.0,
            "NOx_ppm": 0.0,
            "stack_temp_f": self.ambient_f,
        }

    def update(self, result: dict, dt: float = 0.2) -> dict:
        """Advance all channels one analyzer tick.

        Args:
            result: Latest combustion result (``CombustionResult.to_dict()``
                with ``stack_temp_f`` holding the simulated stack temperature).
            dt: Analyzer tick in seconds.
        """
        if self.state == AnalyzerState.ZERO:
            self.zero_elapsed_s += dt
            if self.zero_elapsed_s >= self.zero_duration_s:
                self._transition(AnalyzerState.READY)

        if self.state == AnalyzerState.HOLD:
            return self.display()

        sampling = self.state == AnalyzerState.SAMPLING
        targets = result if sampling else self.baseline()
        for channel in self.channels.values():
            channel.update(float(targets[channel.source]), dt)
        self.efficiency = float(result.get("efficiency_pct", 0.0)) if sampling else 0.0
        return self.display()

    # ── Commands ─────────────────────────────────────────────
    def command(self, action: str) -> bool:
        """Apply an operator command; returns False when not applicable."""
        handler = {
            "start": self.start,
            "insert_probe": self.insert_probe,
            "hold": self.hold,
            "resume": self.resume,
            "stop": self.stop,
            "power_off": self.power_off,
        }.get(action)
        if handler is None:
            raise ValueError(f"Unknown analyzer command: {action}")
        return handler()

    def start(self) -> bool:
        if self.state != AnalyzerState.OFF:
            return self._ignored("start")
        self.zero_elapsed_s = 0.0
        self._transition(AnalyzerState.ZERO)
        return True

    def insert_probe(self) -> bool:
        if self.state != AnalyzerState.READY:
            return self._ignored("insert_probe")
        self.probe_in = True
        self._transition(AnalyzerState.SAMPLING)
        return True

    def hold(self) -> bool:
        if self.state != AnalyzerState.SAMPLING:
            return self._ignored("hold")
        self._transition(AnalyzerState.HOLD)
        return True

    def resume(self) -> bool:
        if self.state != AnalyzerState.HOLD:
            return self._ignored("resume")
        self._transition(AnalyzerState.SAMPLING)
        return True

    def stop(self) -> bool:
        if self.state not in (AnalyzerState.SAMPLING, AnalyzerState.HOLD):
            return self._ignored("stop")
        self.probe_in = False
        self._transition(AnalyzerState.READY)
        return True

    def power_off(self) -> bool:
        if self.state == AnalyzerState.OFF:
            return self._ignored("power_off")
        self.probe_in = False
        self.zero_elapsed_s = 0.0
        self._transition(AnalyzerState.OFF)
        return True

    def _transition(self, new_state: AnalyzerState):
        logger.debug("Analyzer %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _ignored(self, action: str) -> bool:
        logger.debug("Analyzer command %s ignored in %s", action, self.state.value)
        return False

    def display(self) -> dict:
        o2 = self.channels["O2"].value
        co = self.channels["CO"].value
        return {
            "O2": self.channels["O2"].reading(),
            "CO2": self.channels["CO2"].reading(),
            "CO": self.channels["CO"].reading(),
            "COaf": co_air_free(co, o2),
            "NOx": self.channels["NOx"].reading(),
            "StackF": self.channels["StackF"].reading(),
            "Eff": round(self.efficiency, 1),
        }

    def get_state(self) -> dict:
        return {
            "state": self.state.value,
            "probe_in": self.probe_in,
            "zero_progress": self.zero_progress,
            "display": self.display(),
        }
