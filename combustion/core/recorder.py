"""Trend and saved-reading recorder.

Keeps a bounded rolling history of analyzer samples for trend charts and a
short list of operator-saved readings for the tuning log.
"""

from collections import deque
from datetime import datetime, timezone

TREND_FIELDS = ("Rate", "FuelFlow", "AirFlow", "O2", "CO2", "CO", "NOx", "StackF", "Eff")


class TrendRecorder:
    """Rolling analyzer history plus saved readings."""

    def __init__(self, trend_length: int = 600, max_saved_readings: int = 100):
        self.trend_length = trend_length
        self.max_saved_readings = max_saved_readings
        self._trend: deque[dict] = deque(maxlen=trend_length)
        self._readings: deque[dict] = deque(maxlen=max_saved_readings)
        self._total_samples = 0
        self._next_reading_id = 1

    def sample(self, sim_time_s: float, rate: float, fuel_flow: float,
               air_flow: float, display: dict) -> dict:
        """Append one trend row built from the analyzer display."""
        row = {
            "t": round(sim_time_s, 1),
            "Rate": round(rate, 1),
            "FuelFlow": round(fuel_flow, 3),
            "AirFlow": round(air_flow, 3),
            **{k: display[k] for k in TREND_FIELDS[3:]},
        }
        self._trend.append(row)
        self._total_samples += 1
        return row

    def history(self, limit: int | None = None) -> list[dict]:
        rows = list(self._trend)
        return rows[-limit:] if limit and limit > 0 else rows

    def save_reading(self, fuel: str, set_fire: float, air_flow: float, fuel_flow: float,
                     display: dict, excess_air: float, notes: str = "") -> dict:
        """Snapshot the analyzer for the tuning log; newest first."""
        reading = {
            "id": self._next_reading_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fuel": fuel,
            "setFire": round(set_fire, 1),
            "airFlow": round(air_flow, 2),
            "fuelFlow": round(fuel_flow, 2),
            "stackF": display["StackF"],
            "O2": display["O2"],
            "CO2": display["CO2"],
            "COppm": display["CO"],
            "NOxppm": display["NOx"],
            "excessAir": round((excess_air - 1.0) * 100.0, 1),
            "efficiency": display["Eff"],
            "notes": notes,
        }
        self._next_reading_id += 1
        self._readings.appendleft(reading)
        return reading

    def readings(self) -> list[dict]:
        return list(self._readings)

    def clear_readings(self):
        self._readings.clear()

    @property
    def total_samples(self) -> int:
        return self._total_samples
