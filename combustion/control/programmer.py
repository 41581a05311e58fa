"""
Burner programmer — flame-safeguard sequencing state machine.

Sequence (EP160-style timings):
  OFF -> DRIVE_HI -> PREPURGE_HI -> DRIVE_LOW -> LOW_PURGE_MIN
      -> PTFI (spark + pilot) -> MTFI (main) -> RUN_AUTO
  RUN_AUTO -> POSTPURGE -> OFF | LOCKOUT

Safety interlocks:
  - Pilot flame must be proven at the end of PTFI
  - Flame loss in RUN_AUTO locks out after the flame-failure response time
  - Excess air outside the ignitable band blows the flame out
  - Loss of the boiler-on call purges immediately
"""

import logging
import math
from enum import Enum

logger = logging.getLogger(__name__)


class BurnerState(str, Enum):
    OFF = "OFF"
    DRIVE_HI = "DRIVE_HI"
    PREPURGE_HI = "PREPURGE_HI"
    DRIVE_LOW = "DRIVE_LOW"
    LOW_PURGE_MIN = "LOW_PURGE_MIN"
    PTFI = "PTFI"
    MTFI = "MTFI"
    RUN_AUTO = "RUN_AUTO"
    POSTPURGE = "POSTPURGE"
    LOCKOUT = "LOCKOUT"


# Seconds unless noted
EP160_TIMINGS = {
    "drive_hi_s": 1.0,
    "purge_hf_s": 30.0,
    "low_fire_drive_s": 5.0,
    "low_fire_min_s": 30.0,
    "ptfi_s": 10.0,
    "mtfi_spark_off_s": 10.0,
    "mtfi_pilot_off_s": 15.0,
    "post_purge_s": 15.0,
    "ffrt_s": 4.0,
    "flame_proven": 10.0,          # scanner units
    "ignitable_ea": (0.85, 1.6),   # excess-air ratio band
}

REASON_PTFI_FLAME_FAIL = "PTFI FLAME FAIL"
REASON_FLAME_FAIL = "FLAME FAIL"
REASON_FLAME_BLOWOUT = "FLAME BLOWOUT"

UNTIMED_STATES = (BurnerState.OFF, BurnerState.RUN_AUTO, BurnerState.LOCKOUT)
# Firing-rate motor is driven to high fire for purge and to low fire for ignition
HIGH_FIRE_STATES = (BurnerState.DRIVE_HI, BurnerState.PREPURGE_HI)
LOW_FIRE_STATES = (
    BurnerState.DRIVE_LOW,
    BurnerState.LOW_PURGE_MIN,
    BurnerState.OFF,
    BurnerState.POSTPURGE,
    BurnerState.LOCKOUT,
)


class BurnerProgrammer:
    """
    Timed burner sequence with flame-proving interlocks.

    Advanced by `step()` once per simulation tick; elapsed time is given in
    milliseconds so a speed multiplier can stretch it. Relay outputs are read
    from properties and depend only on the current state and time in MTFI.
    """

    DEFAULT_PARAMS = EP160_TIMINGS

    def __init__(self, params: dict | None = None):
        self.params = {**self.DEFAULT_PARAMS, **(params or {})}
        p = self.params
        self._durations_ms = {
            BurnerState.DRIVE_HI: p["drive_hi_s"] * 1000.0,
            BurnerState.PREPURGE_HI: p["purge_hf_s"] * 1000.0,
            BurnerState.DRIVE_LOW: p["low_fire_drive_s"] * 1000.0,
            BurnerState.LOW_PURGE_MIN: p["low_fire_min_s"] * 1000.0,
            BurnerState.PTFI: p["ptfi_s"] * 1000.0,
            BurnerState.MTFI: p["mtfi_pilot_off_s"] * 1000.0,
            BurnerState.POSTPURGE: p["post_purge_s"] * 1000.0,
        }
        self.flame_proven = p["flame_proven"]
        self.ignitable_ea = tuple(p["ignitable_ea"])

        self.state = BurnerState.OFF
        self.state_time_ms = 0.0
        self.flame_out_timer_ms = 0.0
        self.lockout_reason = ""
        self.lockout_pending = False
        self.events: list[dict] = []
        self._time_ms = 0.0

    # ── Relay outputs ────────────────────────────────────────
    @property
    def t5_spark(self) -> bool:
        if self.state == BurnerState.PTFI:
            return True
        if self.state == BurnerState.MTFI:
            return self.state_time_ms < self.params["mtfi_spark_off_s"] * 1000.0
        return False

    @property
    def t6_pilot(self) -> bool:
        if self.state == BurnerState.PTFI:
            return True
        if self.state == BurnerState.MTFI:
            return self.state_time_ms < self.params["mtfi_pilot_off_s"] * 1000.0
        return False

    @property
    def t7_main(self) -> bool:
        return self.state in (BurnerState.MTFI, BurnerState.RUN_AUTO)

    def relays(self) -> dict:
        return {"t5_spark": self.t5_spark, "t6_pilot": self.t6_pilot, "t7_main": self.t7_main}

    def duration_ms(self, state: BurnerState | None = None) -> float | None:
        """Required time in a timed state, None for untimed states."""
        return self._durations_ms.get(state or self.state)

    @property
    def countdown(self) -> int | None:
        """Whole seconds left in the current timed state."""
        duration = self.duration_ms()
        if duration is None:
            return None
        return max(0, math.ceil((duration - self.state_time_ms) / 1000.0))

    def firing_rate_position(self, rheostat: float) -> float:
        """Where the modulating motor sits, as shown on the firing-rate dial."""
        if self.state in HIGH_FIRE_STATES:
            return 100.0
        if self.state in LOW_FIRE_STATES:
            return 0.0
        return float(rheostat)

    # ── Sequencing ───────────────────────────────────────────
    def step(self, dt_ms: float, boiler_on: bool, flame_signal: float,
             excess_air: float) -> BurnerState:
        """
        Advance the sequence by dt_ms of (possibly accelerated) time.

        Args:
            dt_ms: Elapsed programmer time for this tick.
            boiler_on: Operating control / limit string closed.
            flame_signal: Scanner signal (0-80).
            excess_air: Excess-air ratio of the commanded fuel/air.

        Returns:
            State after this tick.
        """
        self._time_ms += dt_ms
        self.state_time_ms += dt_ms
        state = self.state

        if not boiler_on and state not in (BurnerState.OFF, BurnerState.POSTPURGE):
            if state == BurnerState.LOCKOUT:
                self.lockout_pending = True
            self._transition(BurnerState.POSTPURGE, "boiler call removed")
            return self.state

        if state == BurnerState.OFF:
            if boiler_on:
                self.lockout_reason = ""
                self._transition(BurnerState.DRIVE_HI, "boiler call")

        elif state == BurnerState.DRIVE_HI:
            if self._timed_out():
                self._transition(BurnerState.PREPURGE_HI)

        elif state == BurnerState.PREPURGE_HI:
            if self._timed_out():
                self._transition(BurnerState.DRIVE_LOW)

        elif state == BurnerState.DRIVE_LOW:
            if self._timed_out():
                self._transition(BurnerState.LOW_PURGE_MIN)

        elif state == BurnerState.LOW_PURGE_MIN:
            if self._timed_out():
                self._transition(BurnerState.PTFI)

        elif state == BurnerState.PTFI:
            if self._timed_out():
                if flame_signal >= self.flame_proven:
                    self._transition(BurnerState.MTFI, f"pilot proven ({flame_signal:.1f})")
                else:
                    self._lockout(REASON_PTFI_FLAME_FAIL)

        elif state == BurnerState.MTFI:
            if self._timed_out():
                self._transition(BurnerState.RUN_AUTO)

        elif state == BurnerState.RUN_AUTO:
            lo, hi = self.ignitable_ea
            if excess_air < lo or excess_air > hi:
                self.lockout_reason = REASON_FLAME_BLOWOUT
                self.lockout_pending = True
                logger.warning("Flame blowout at excess air %.2f", excess_air)
                self._transition(BurnerState.POSTPURGE, REASON_FLAME_BLOWOUT)
            elif flame_signal < self.flame_proven:
                self.flame_out_timer_ms += dt_ms
                if self.flame_out_timer_ms >= self.params["ffrt_s"] * 1000.0:
                    self._lockout(REASON_FLAME_FAIL)
            else:
                self.flame_out_timer_ms = 0.0

        elif state == BurnerState.POSTPURGE:
            if self._timed_out():
                pending = self.lockout_pending
                self.lockout_pending = False
                self._transition(BurnerState.LOCKOUT if pending else BurnerState.OFF)

        return self.state

    def advance(self) -> bool:
        """Force-complete the current timed state; the next step evaluates its exit."""
        duration = self.duration_ms()
        if duration is None:
            logger.debug("Advance ignored in %s", self.state.value)
            return False
        self.state_time_ms = max(self.state_time_ms, duration)
        return True

    def reset(self, boiler_on: bool) -> bool:
        """Manual lockout reset."""
        if self.state != BurnerState.LOCKOUT:
            logger.debug("Reset ignored in %s", self.state.value)
            return False
        self.lockout_reason = ""
        self.lockout_pending = False
        self._transition(BurnerState.DRIVE_HI if boiler_on else BurnerState.OFF, "manual reset")
        return True

    def _timed_out(self) -> bool:
        return self.state_time_ms >= self._durations_ms[self.state]

    def _lockout(self, reason: str):
        self.lockout_reason = reason
        logger.warning("Burner lockout: %s", reason)
        self._transition(BurnerState.LOCKOUT, reason)

    def _transition(self, new_state: BurnerState, message: str = ""):
        old = self.state
        self.state = new_state
        self.state_time_ms = 0.0
        self.flame_out_timer_ms = 0.0
        self.events.append({
            "time_s": round(self._time_ms / 1000.0, 2),
            "from_state": old.value,
            "to_state": new_state.value,
            "message": message,
        })
        logger.info("Programmer %s -> %s%s", old.value, new_state.value,
                    f" ({message})" if message else "")

    def get_state(self) -> dict:
        return {
            "state": self.state.value,
            "countdown": self.countdown,
            "state_time_s": round(self.state_time_ms / 1000.0, 2),
            "flame_out_timer_s": round(self.flame_out_timer_ms / 1000.0, 2),
            "lockout_reason": self.lockout_reason,
            "lockout_pending": self.lockout_pending,
            **self.relays(),
            "events": self.events[-10:],
        }
