"""SimPy-based combustion trainer orchestrator.

Coordinates the burner programmer, chemistry, flame/stack dynamics and the
flue-gas analyzer. SimPy time is kept in integer milliseconds; three periodic
processes run on it:

    - main tick (100 ms): flows -> chemistry -> flame/stack -> programmer
    - analyzer tick (200 ms): lags the latest chemistry into the display
    - trend tick (1 s): samples the display into the trend history

The speed multiplier stretches programmer time only; tick frequencies and
the dynamics integration step are fixed.
"""

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
import simpy

from combustion.control.cam import CamMap, CamPoint, build_safe_cam_map, cam_position, map_firing_rate
from combustion.control.programmer import BurnerProgrammer, BurnerState
from combustion.core.recorder import TrendRecorder
from combustion.physics.analyzer import FlueGasAnalyzer
from combustion.physics.chemistry import CombustionResult, compute_combustion, excess_air_ratio
from combustion.physics.dynamics import FlameScanner, StackTemperature, stack_setpoint
from combustion.physics.fuels import FuelType, get_fuel
from combustion.physics.regulator import FuelRegulator, compute_metering, pilot_fuel

logger = logging.getLogger(__name__)

MIN_SPEED_MULTIPLIER = 0.1
# PTFI must span at least two ticks for the pilot flame to prove
MAX_SPEED_MULTIPLIER = 50.0
AIR_FLOW_MAX = 200.0


@dataclass(frozen=True)
class ControlHandle:
    """Command/query handles handed to the host application."""
    set_boiler_on: Callable[[bool], None]
    set_fuel: Callable[[str], None]
    set_rheostat: Callable[[float], None]
    set_ambient: Callable[[float], None]
    set_regulator_pressure: Callable[[float], None]
    set_tuning_mode: Callable[[bool], None]
    set_manual_flows: Callable[..., bool]
    save_cam_point: Callable[..., CamPoint]
    clear_cam_point: Callable[..., bool]
    apply_safe_cam_map: Callable[[], dict]
    advance_programmer: Callable[[], bool]
    reset_programmer: Callable[[], bool]
    set_speed_multiplier: Callable[[float], float]
    analyzer_command: Callable[[str], bool]
    save_reading: Callable[..., dict]
    inject_flame_fault: Callable[..., None]
    clear_flame_fault: Callable[[], None]
    snapshot: Callable[[], dict]


class CombustionOrchestrator:
    """Owns one simulated burner and advances it in a SimPy environment."""

    def __init__(
        self,
        fuel_type: FuelType | str = FuelType.NATURAL_GAS,
        ambient_f: float = 70.0,
        speed_multiplier: float = 1.0,
        tick_ms: int = 100,
        analyzer_tick_ms: int = 200,
        trend_sample_s: float = 1.0,
        trend_length: int = 600,
        max_saved_readings: int = 100,
        analyzer_autostart: bool = True,
        min_speed_multiplier: float = MIN_SPEED_MULTIPLIER,
        max_speed_multiplier: float = MAX_SPEED_MULTIPLIER,
        programmer_params: dict | None = None,
        flame_params: dict | None = None,
        stack_params: dict | None = None,
        cam_map: CamMap | None = None,
        on_state_change: Callable[[BurnerState, BurnerState, str], None] | None = None,
    ):
        self.tick_ms = int(tick_ms)
        self.analyzer_tick_ms = int(analyzer_tick_ms)
        self.trend_tick_ms = int(round(trend_sample_s * 1000))
        self.min_speed_multiplier = min_speed_multiplier
        self.max_speed_multiplier = max_speed_multiplier
        self.speed_multiplier = 1.0
        self.set_speed_multiplier(speed_multiplier)
        self.on_state_change = on_state_change

        self.env = simpy.Environment()
        self._running = False
        self._processes: list[simpy.Process] = []

        # Inputs
        self.fuel = get_fuel(fuel_type)
        self.boiler_on = False
        self.rheostat = 0
        self.ambient_f = float(ambient_f)
        self.tuning_mode = False
        self._manual_flows: tuple[float, float] | None = None

        # Sub-models
        self.regulator = FuelRegulator(self.fuel)
        self.cam_map = cam_map or CamMap()
        self.programmer = BurnerProgrammer(programmer_params)
        self.flame = FlameScanner(flame_params)
        self.stack = StackTemperature(stack_params)
        self.analyzer = FlueGasAnalyzer(ambient_f=self.ambient_f, autostart=analyzer_autostart)
        self.recorder = TrendRecorder(trend_length, max_saved_readings)

        # Flow state
        self._update_flows()
        self.burner_fuel = 0.0
        self.excess_air = excess_air_ratio(self.fuel, self.fuel_flow, self.air_flow)
        self.setpoint_f = stack_setpoint(self.fuel, self.fuel_flow, self.air_flow)
        self.result: CombustionResult = compute_combustion(
            self.fuel, 0.0, self.air_flow, self.stack.temperature, self.ambient_f)

    # ── SimPy processes ──────────────────────────────────────
    def _simulation_loop(self, env: simpy.Environment):
        """Main 10 Hz process."""
        try:
            while self._running:
                self._tick()
                yield env.timeout(self.tick_ms)
        except simpy.Interrupt:
            logger.debug("Main loop stopped at t=%.1fs", env.now / 1000.0)

    def _analyzer_loop(self, env: simpy.Environment):
        try:
            while self._running:
                self.analyzer.update(self.result.to_dict(), self.analyzer_tick_ms / 1000.0)
                yield env.timeout(self.analyzer_tick_ms)
        except simpy.Interrupt:
            pass

    def _trend_loop(self, env: simpy.Environment):
        try:
            while self._running:
                self.recorder.sample(
                    env.now / 1000.0,
                    self.programmer.firing_rate_position(self.rheostat),
                    self.fuel_flow,
                    self.air_flow,
                    self.analyzer.display(),
                )
                yield env.timeout(self.trend_tick_ms)
        except simpy.Interrupt:
            pass

    def _tick(self):
        self._update_flows()
        fuel = self.fuel

        # 1. Fuel delivered past the safety valves
        if self.programmer.t7_main:
            self.burner_fuel = self.fuel_flow
        elif self.programmer.t6_pilot:
            self.burner_fuel = pilot_fuel(self.fuel_flow, self.regulator.min_fuel)
        else:
            self.burner_fuel = 0.0

        # 2. Instantaneous chemistry
        self.result = compute_combustion(
            fuel, self.burner_fuel, self.air_flow, self.stack.temperature, self.ambient_f)

        # 3. Flame and stack dynamics (commanded flows)
        self.excess_air = excess_air_ratio(fuel, self.fuel_flow, self.air_flow)
        self.setpoint_f = stack_setpoint(fuel, self.fuel_flow, self.air_flow)
        state = self.programmer.state
        self.flame.step(state, self.fuel_flow, self.excess_air)
        self.stack.step(state, self.ambient_f, self.setpoint_f, dt=self.tick_ms / 1000.0)

        # 4. Programmer
        new_state = self.programmer.step(
            self.tick_ms * self.speed_multiplier,
            self.boiler_on,
            self.flame.signal,
            self.excess_air,
        )
        if new_state != state:
            self._on_transition(state, new_state)

    def _on_transition(self, old: BurnerState, new: BurnerState):
        if new != BurnerState.RUN_AUTO and self._manual_flows is not None:
            self._manual_flows = None
        if self.on_state_change:
            self.on_state_change(old, new, self.programmer.lockout_reason)

    def _scheduled_flows(self) -> tuple[float, float]:
        return map_firing_rate(self.rheostat, self.cam_map, self.fuel,
                               self.regulator.min_fuel, self.regulator.max_fuel)

    def _update_flows(self):
        if self.tuning_mode and self._manual_flows is not None:
            self.fuel_flow, self.air_flow = self._manual_flows
        else:
            fuel_flow, self.air_flow = self._scheduled_flows()
            self.fuel_flow = self.regulator.clamp(fuel_flow)

    # ── Lifecycle ────────────────────────────────────────────
    def start(self):
        """Start the periodic processes."""
        if self._running:
            return
        self._running = True
        self._processes = [
            self.env.process(self._simulation_loop(self.env)),
            self.env.process(self._analyzer_loop(self.env)),
            self.env.process(self._trend_loop(self.env)),
        ]

    def run(self, duration_s: float):
        """Advance simulated wall time by duration_s seconds."""
        if not self._running:
            self.start()
        self.env.run(until=self.env.now + int(round(duration_s * 1000)))

    def step(self):
        """Advance exactly one main tick."""
        self.run(self.tick_ms / 1000.0)

    def stop(self):
        """Stop the simulation and interrupt the periodic processes."""
        self._running = False
        for proc in self._processes:
            if proc.is_alive:
                proc.interrupt("stopped")
        self._processes = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def sim_time_s(self) -> float:
        return self.env.now / 1000.0

    # ── Commands ─────────────────────────────────────────────
    def set_boiler_on(self, on: bool):
        self.boiler_on = bool(on)

    def set_fuel(self, fuel_key: FuelType | str):
        fuel = get_fuel(fuel_key)
        if fuel.key == self.fuel.key:
            return
        logger.info("Fuel changed %s -> %s", self.fuel.key.value, fuel.key.value)
        self.fuel = fuel
        self.regulator.set_fuel(fuel)
        self._manual_flows = None
        self._on_bounds_changed()

    def set_rheostat(self, pct: float):
        self.rheostat = int(np.clip(np.floor(float(pct) + 0.5), 0, 100))

    def set_ambient(self, ambient_f: float):
        self.ambient_f = float(ambient_f)
        self.analyzer.ambient_f = self.ambient_f

    def set_regulator_pressure(self, reg_press: float):
        self.regulator.set_pressure(reg_press)
        self._on_bounds_changed()

    def _on_bounds_changed(self):
        self.fuel_flow = self.regulator.clamp(self.fuel_flow)
        if self._manual_flows is not None:
            fuel_flow, air_flow = self._manual_flows
            self._manual_flows = (self.regulator.clamp(fuel_flow), air_flow)

    def set_tuning_mode(self, on: bool):
        self.tuning_mode = bool(on)
        if not self.tuning_mode:
            self._manual_flows = None

    def set_manual_flows(self, fuel_flow: float | None = None,
                         air_flow: float | None = None) -> bool:
        """Direct fuel/air override; only while tuning a running burner."""
        if not self.tuning_mode or self.programmer.state != BurnerState.RUN_AUTO:
            logger.debug("Manual flows ignored (tuning=%s, state=%s)",
                         self.tuning_mode, self.programmer.state.value)
            return False
        current_fuel, current_air = self._manual_flows or (self.fuel_flow, self.air_flow)
        if fuel_flow is not None:
            current_fuel = self.regulator.clamp(fuel_flow)
        if air_flow is not None:
            current_air = float(np.clip(air_flow, 0.0, AIR_FLOW_MAX))
        self._manual_flows = (current_fuel, current_air)
        self.fuel_flow, self.air_flow = self._manual_flows
        return True

    def save_cam_point(self, pct: float | None = None) -> CamPoint:
        """Save the current flows at the rheostat's decile (or pct)."""
        position = cam_position(self.rheostat if pct is None else pct)
        return self.cam_map.set(self.fuel.key, position, self.fuel_flow, self.air_flow)

    def clear_cam_point(self, pct: float | None = None) -> bool:
        return self.cam_map.clear(self.fuel.key, self.rheostat if pct is None else pct)

    def apply_safe_cam_map(self) -> dict:
        points = build_safe_cam_map(self.fuel, self.regulator.min_fuel, self.regulator.max_fuel)
        self.cam_map.replace(self.fuel.key, points)
        return {str(pct): p.to_dict() for pct, p in points.items()}

    def advance_programmer(self) -> bool:
        return self.programmer.advance()

    def reset_programmer(self) -> bool:
        return self.programmer.reset(self.boiler_on)

    def set_speed_multiplier(self, multiplier: float) -> float:
        self.speed_multiplier = float(np.clip(multiplier, self.min_speed_multiplier,
                                              self.max_speed_multiplier))
        return self.speed_multiplier

    def analyzer_command(self, action: str) -> bool:
        return self.analyzer.command(action)

    def save_reading(self, notes: str = "") -> dict:
        return self.recorder.save_reading(
            fuel=self.fuel.name,
            set_fire=self.programmer.firing_rate_position(self.rheostat),
            air_flow=self.air_flow,
            fuel_flow=self.fuel_flow,
            display=self.analyzer.display(),
            excess_air=self.excess_air,
            notes=notes,
        )

    def inject_flame_fault(self, fault_type: str = "stuck", **kwargs):
        self.flame.inject_fault(fault_type, **kwargs)

    def clear_flame_fault(self):
        self.flame.clear_fault()

    def control_handle(self) -> ControlHandle:
        return ControlHandle(
            set_boiler_on=self.set_boiler_on,
            set_fuel=self.set_fuel,
            set_rheostat=self.set_rheostat,
            set_ambient=self.set_ambient,
            set_regulator_pressure=self.set_regulator_pressure,
            set_tuning_mode=self.set_tuning_mode,
            set_manual_flows=self.set_manual_flows,
            save_cam_point=self.save_cam_point,
            clear_cam_point=self.clear_cam_point,
            apply_safe_cam_map=self.apply_safe_cam_map,
            advance_programmer=self.advance_programmer,
            reset_programmer=self.reset_programmer,
            set_speed_multiplier=self.set_speed_multiplier,
            analyzer_command=self.analyzer_command,
            save_reading=self.save_reading,
            inject_flame_fault=self.inject_flame_fault,
            clear_flame_fault=self.clear_flame_fault,
            snapshot=self.snapshot,
        )

    # ── Queries ──────────────────────────────────────────────
    def target_status(self, display: dict | None = None) -> dict:
        """Compare the analyzer display with the fuel's recommended band."""
        display = display or self.analyzer.display()
        t = self.fuel.targets
        o2_ok = t.o2_min <= display["O2"] <= t.o2_max
        stack_ok = t.stack_min_f <= display["StackF"] <= t.stack_max_f
        co_ok = display["COaf"] <= t.co_airfree_max
        return {
            "o2_ok": o2_ok,
            "stack_ok": stack_ok,
            "co_ok": co_ok,
            "in_band": o2_ok and stack_ok and co_ok,
        }

    def flame_status(self) -> dict:
        relays = self.programmer.relays()
        active = (relays["t7_main"] or relays["t6_pilot"]) and self.flame.signal >= self.programmer.flame_proven
        return {
            **self.flame.get_state(),
            "flame_active": active,
            "pilot_flame": active and relays["t6_pilot"],
            "main_flame": active and relays["t7_main"],
            "spark": self.programmer.state == BurnerState.PTFI,
        }

    def snapshot(self) -> dict:
        """Plain serializable view of the whole trainer."""
        display = self.analyzer.display()
        return {
            "sim_time_s": round(self.sim_time_s, 1),
            "fuel": self.fuel.key.value,
            "fuel_name": self.fuel.name,
            "boiler_on": self.boiler_on,
            "rheostat": self.rheostat,
            "firing_rate": self.programmer.firing_rate_position(self.rheostat),
            "ambient_f": self.ambient_f,
            "tuning_mode": self.tuning_mode,
            "speed_multiplier": self.speed_multiplier,
            "flows": {
                "fuel_flow": round(self.fuel_flow, 4),
                "air_flow": round(self.air_flow, 4),
                "burner_fuel": round(self.burner_fuel, 4),
                "excess_air": round(self.excess_air, 3),
            },
            "regulator": self.regulator.get_state(),
            "programmer": self.programmer.get_state(),
            "flame": self.flame_status(),
            "stack": {**self.stack.get_state(), "setpoint_f": round(self.setpoint_f, 1)},
            "combustion": self.result.to_dict(),
            "analyzer": self.analyzer.get_state(),
            "metering": compute_metering(self.fuel, self.fuel_flow, self.burner_fuel),
            "targets": self.target_status(display),
            "cam_map": self.cam_map.to_dict(),
        }

    @property
    def current_state(self) -> dict:
        return self.snapshot()
