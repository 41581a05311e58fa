"""Simulation lifecycle manager.

Handles creation, execution, and cleanup of combustion trainer simulations.
Each simulation owns one orchestrator; an asyncio background task advances it
one main tick per wall-clock tick, so all reads and writes happen on the
event loop thread.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from backend.api.models.schemas import SimulationStatus
from backend.core.config import settings
from combustion.control.programmer import BurnerState
from combustion.core.orchestrator import CombustionOrchestrator, ControlHandle

logger = logging.getLogger(__name__)


class SimulationInstance:
    """A single trainer simulation wrapping its orchestrator."""

    def __init__(
        self,
        sim_id: uuid.UUID,
        fuel_type: str = settings.DEFAULT_FUEL,
        speed_multiplier: float = settings.DEFAULT_SPEED_MULTIPLIER,
        ambient_f: float = settings.DEFAULT_AMBIENT_F,
    ):
        self.id = sim_id
        self.status = SimulationStatus.PENDING
        self.created_at = datetime.now(timezone.utc)
        self._task: asyncio.Task | None = None

        self.orchestrator = CombustionOrchestrator(
            fuel_type=fuel_type,
            ambient_f=ambient_f,
            speed_multiplier=speed_multiplier,
            tick_ms=settings.SIM_TICK_MS,
            analyzer_tick_ms=settings.ANALYZER_TICK_MS,
            trend_sample_s=settings.TREND_SAMPLE_S,
            trend_length=settings.TREND_LENGTH,
            max_saved_readings=settings.MAX_SAVED_READINGS,
            analyzer_autostart=settings.ANALYZER_AUTOSTART,
            min_speed_multiplier=settings.MIN_SPEED_MULTIPLIER,
            max_speed_multiplier=settings.MAX_SPEED_MULTIPLIER,
            on_state_change=self._on_state_change,
        )
        self.controls: ControlHandle = self.orchestrator.control_handle()

    @property
    def fuel_type(self) -> str:
        return self.orchestrator.fuel.key.value

    @property
    def simulation_time(self) -> float:
        return self.orchestrator.sim_time_s

    def _on_state_change(self, old: BurnerState, new: BurnerState, reason: str):
        if new == BurnerState.LOCKOUT:
            logger.warning("Simulation %s locked out: %s", self.id, reason)
        else:
            logger.debug("Simulation %s burner %s -> %s", self.id, old.value, new.value)

    def step(self):
        """Advance one main tick."""
        self.orchestrator.step()

    def get_state(self) -> dict[str, Any]:
        return {
            "simulation_id": str(self.id),
            "status": self.status.value,
            "simulation_time": round(self.simulation_time, 2),
            **self.orchestrator.snapshot(),
        }

    async def run_loop(self):
        """Main simulation loop — runs as an asyncio background task."""
        self.status = SimulationStatus.RUNNING
        tick_s = self.orchestrator.tick_ms / 1000.0
        logger.info("Simulation %s started (fuel=%s, speed=%.1f)",
                    self.id, self.fuel_type, self.orchestrator.speed_multiplier)
        try:
            while self.status == SimulationStatus.RUNNING:
                self.step()
                await asyncio.sleep(tick_s)
        except asyncio.CancelledError:
            logger.info("Simulation %s cancelled", self.id)
        except Exception as e:
            logger.exception("Simulation %s failed: %s", self.id, e)
            self.status = SimulationStatus.FAILED
        finally:
            if self.status == SimulationStatus.RUNNING:
                self.status = SimulationStatus.STOPPED


class SimulationManager:
    """Singleton manager for all active simulations."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._simulations: dict[uuid.UUID, SimulationInstance] = {}
        return cls._instance

    async def create_simulation(
        self,
        fuel_type: str = settings.DEFAULT_FUEL,
        speed_multiplier: float = settings.DEFAULT_SPEED_MULTIPLIER,
        ambient_f: float = settings.DEFAULT_AMBIENT_F,
    ) -> SimulationInstance:
        """Create and start a new simulation instance."""
        if self.active_count >= settings.MAX_CONCURRENT_SIMULATIONS:
            raise RuntimeError(
                f"Max concurrent simulations ({settings.MAX_CONCURRENT_SIMULATIONS}) reached"
            )

        sim_id = uuid.uuid4()
        sim = SimulationInstance(
            sim_id=sim_id,
            fuel_type=fuel_type,
            speed_multiplier=speed_multiplier,
            ambient_f=ambient_f,
        )
        self._simulations[sim_id] = sim

        # Start background task
        sim.status = SimulationStatus.RUNNING
        sim._task = asyncio.create_task(sim.run_loop())
        return sim

    async def get_state(self, simulation_id: uuid.UUID) -> dict | None:
        """Get current state of a simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return None
        return sim.get_state()

    async def pause_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Pause a running simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None or sim.status != SimulationStatus.RUNNING:
            return False
        sim.status = SimulationStatus.PAUSED
        await self._cancel_task(sim)
        return True

    async def resume_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Resume a paused simulation."""
        sim = self._simulations.get(simulation_id)
        if sim is None or sim.status != SimulationStatus.PAUSED:
            return False
        sim.status = SimulationStatus.RUNNING
        sim._task = asyncio.create_task(sim.run_loop())
        return True

    async def stop_simulation(self, simulation_id: uuid.UUID) -> bool:
        """Stop a simulation and halt its periodic processes."""
        sim = self._simulations.get(simulation_id)
        if sim is None:
            return False
        sim.status = SimulationStatus.STOPPED
        await self._cancel_task(sim)
        sim.orchestrator.stop()
        logger.info("Simulation %s stopped at t=%.1fs", sim.id, sim.simulation_time)
        return True

    async def stop_all(self) -> int:
        """Stop every running or paused simulation (application shutdown)."""
        live = [sid for sid, s in self._simulations.items()
                if s.status in (SimulationStatus.RUNNING, SimulationStatus.PAUSED)]
        for sid in live:
            await self.stop_simulation(sid)
        return len(live)

    @staticmethod
    async def _cancel_task(sim: SimulationInstance):
        if sim._task:
            sim._task.cancel()
            try:
                await sim._task
            except asyncio.CancelledError:
                pass

    def get_simulation(self, simulation_id: uuid.UUID) -> SimulationInstance | None:
        return self._simulations.get(simulation_id)

    @property
    def active_count(self) -> int:
        return sum(
            1 for s in self._simulations.values()
            if s.status == SimulationStatus.RUNNING
        )

    @property
    def all_simulations(self) -> list[dict]:
        return [
            {
                "id": str(s.id),
                "status": s.status.value,
                "fuel_type": s.fuel_type,
                "simulation_time": round(s.simulation_time, 2),
                "created_at": s.created_at.isoformat(),
            }
            for s in self._simulations.values()
        ]
