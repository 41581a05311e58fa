"""Unit tests for the regulator envelope and metering conversions."""

import math

import pytest

from combustion.physics.fuels import get_fuel
from combustion.physics.regulator import (
    BASE_MAX_FUEL,
    BASE_MIN_FUEL,
    FuelRegulator,
    compute_metering,
    pilot_fuel,
)


class TestFuelRegulator:
    def test_base_pressure_gives_base_bounds(self):
        reg = FuelRegulator(get_fuel("natural_gas"))
        assert reg.reg_press == 3.5
        assert reg.scale == pytest.approx(1.0)
        assert reg.min_fuel == pytest.approx(BASE_MIN_FUEL)
        assert reg.max_fuel == pytest.approx(BASE_MAX_FUEL)

    @pytest.mark.parametrize("fuel_key", ["natural_gas", "propane", "fuel_oil_2", "biodiesel"])
    def test_doubling_pressure_scales_by_sqrt2(self, fuel_key):
        fuel = get_fuel(fuel_key)
        reg = FuelRegulator(fuel)
        reg.set_pressure(fuel.base_pressure * 2.0)
        assert reg.min_fuel == pytest.approx(BASE_MIN_FUEL * math.sqrt(2.0))
        assert reg.max_fuel == pytest.approx(BASE_MAX_FUEL * math.sqrt(2.0))

    def test_fuel_change_resets_pressure(self):
        reg = FuelRegulator(get_fuel("natural_gas"))
        reg.set_pressure(7.0)
        reg.set_fuel(get_fuel("propane"))
        assert reg.reg_press == 11.0
        assert reg.scale == pytest.approx(1.0)
        assert reg.max_fuel == pytest.approx(BASE_MAX_FUEL)

    def test_zero_pressure_keeps_invariant(self):
        reg = FuelRegulator(get_fuel("natural_gas"))
        reg.set_pressure(0.0)
        assert reg.max_fuel >= reg.min_fuel >= 0.0
        assert reg.max_fuel == 0.0

    def test_negative_pressure_floored(self):
        reg = FuelRegulator(get_fuel("natural_gas"))
        reg.set_pressure(-5.0)
        assert reg.reg_press == 0.0

    def test_clamp(self):
        reg = FuelRegulator(get_fuel("natural_gas"))
        assert reg.clamp(0.5) == BASE_MIN_FUEL
        assert reg.clamp(25.0) == BASE_MAX_FUEL
        assert reg.clamp(9.0) == 9.0

    def test_get_state(self):
        state = FuelRegulator(get_fuel("fuel_oil_2")).get_state()
        assert state["pressure_unit"] == "psi"
        assert state["min_fuel"] == BASE_MIN_FUEL


class TestPilotFuel:
    def test_pilot_is_half_min_fire(self):
        assert pilot_fuel(10.0, 4.0) == 2.0

    def test_pilot_floor(self):
        assert pilot_fuel(10.0, 0.4) == 0.5

    def test_pilot_never_exceeds_flow(self):
        assert pilot_fuel(0.3, 2.0) == 0.3


class TestMetering:
    def test_gas_meter(self):
        m = compute_metering(get_fuel("natural_gas"), 10.0, 10.0)
        assert m["gas_cfh"] == 10.0
        assert m["gas_mbh"] == 10.0
        assert m["gas_sec_per_rev"] == 360.0
        assert m["oil_burner_gph"] == 0.0
        assert m["oil_cam_gph"] == 0.0

    def test_gas_meter_dial_size(self):
        m = compute_metering(get_fuel("propane"), 8.0, 4.0, gas_dial_size=2.0)
        assert m["gas_burner_cfh"] == 4.0
        assert m["gas_mbh"] == 10.0
        assert m["gas_sec_per_rev"] == 1800.0

    def test_gas_meter_stopped(self):
        m = compute_metering(get_fuel("natural_gas"), 10.0, 0.0)
        assert m["gas_sec_per_rev"] == 0.0
        assert m["gas_mbh"] == 0.0

    def test_oil_nozzle(self):
        m = compute_metering(get_fuel("fuel_oil_2"), 2.0, 1.0)
        assert m["oil_nozzle_gph"] == 0.75
        assert m["oil_burner_gph"] == 1.0
        assert m["oil_sec_per_gal"] == 3600.0
        assert m["oil_cam_gph"] == 2.0
        assert m["gas_cfh"] == 0.0

    def test_oil_nozzle_pressure_law(self):
        m = compute_metering(get_fuel("fuel_oil_2"), 2.0, 1.0, nozzle_gph_100=1.0, oil_pressure_psi=144.0)
        assert m["oil_nozzle_gph"] == pytest.approx(1.2)
