"""Unit tests for the cam / firing-rate schedule mapper."""

import pytest

from combustion.control.cam import (
    DECILES,
    EXCESS_AIR_PROFILES,
    TARGET_EXCESS_AIR,
    CamMap,
    CamPoint,
    build_safe_cam_map,
    cam_position,
    map_firing_rate,
)
from combustion.physics.chemistry import stoichiometric_air
from combustion.physics.fuels import FuelType, get_fuel

NG = get_fuel("natural_gas")


class TestCamPosition:
    @pytest.mark.parametrize("pct,expected", [
        (0, 0), (4.9, 0), (5, 10), (25, 30), (32, 30), (35, 40), (44.9, 40),
        (100, 100), (104, 100), (250, 100), (-5, 0), (-30, 0),
    ])
    def test_rounding(self, pct, expected):
        assert cam_position(pct) == expected


class TestMapFiringRate:
    def test_saved_point_returned_verbatim(self):
        cam = CamMap()
        cam.set(FuelType.NATURAL_GAS, 30, 8.0, 50.0)
        assert map_firing_rate(32, cam, NG, 2.0, 18.0) == (8.0, 50.0)

    def test_default_interpolation(self):
        fuel_flow, air_flow = map_firing_rate(50, CamMap(), NG, 2.0, 18.0)
        assert fuel_flow == pytest.approx(10.0)
        assert air_flow == pytest.approx(stoichiometric_air(NG, 10.0) * TARGET_EXCESS_AIR)

    def test_default_uses_unrounded_rate(self):
        fuel_flow, _ = map_firing_rate(32, CamMap(), NG, 2.0, 18.0)
        assert fuel_flow == pytest.approx(2.0 + 16.0 * 0.32)

    def test_low_fire_is_min_fuel(self):
        fuel_flow, _ = map_firing_rate(0, CamMap(), NG, 2.0, 18.0)
        assert fuel_flow == pytest.approx(2.0)

    def test_out_of_range_rate_clamped(self):
        assert map_firing_rate(140, CamMap(), NG, 2.0, 18.0)[0] == pytest.approx(18.0)
        assert map_firing_rate(-20, CamMap(), NG, 2.0, 18.0)[0] == pytest.approx(2.0)

    def test_air_limited(self):
        _, air_flow = map_firing_rate(100, CamMap(), get_fuel("biodiesel"), 2.0, 18.0)
        assert air_flow == 200.0

    def test_points_are_per_fuel(self):
        cam = CamMap()
        cam.set(FuelType.PROPANE, 30, 8.0, 50.0)
        assert map_firing_rate(30, cam, NG, 2.0, 18.0) != (8.0, 50.0)

    def test_cleared_point_falls_back(self):
        cam = CamMap()
        cam.set(FuelType.NATURAL_GAS, 30, 8.0, 50.0)
        assert cam.clear(FuelType.NATURAL_GAS, 28)
        assert not cam.clear(FuelType.NATURAL_GAS, 30)
        assert map_firing_rate(30, cam, NG, 2.0, 18.0)[0] == pytest.approx(6.8)


class TestCamMap:
    def test_keys_snap_to_deciles(self):
        cam = CamMap()
        cam.set("natural_gas", 57, 9.0, 90.0)
        assert list(cam.points_for("natural_gas")) == [60]

    def test_replace_only_touches_one_fuel(self):
        cam = CamMap()
        cam.set("natural_gas", 10, 3.0, 30.0)
        cam.set("propane", 10, 1.0, 30.0)
        cam.replace("natural_gas", {50: CamPoint(5.0, 55.0)})
        assert cam.points_for("natural_gas") == {50: CamPoint(5.0, 55.0)}
        assert cam.get("propane", 10) == CamPoint(1.0, 30.0)

    def test_serializable_snapshot(self):
        cam = CamMap()
        cam.set("natural_gas", 30, 8.0, 50.0)
        cam.set("fuel_oil_2", 100, 12.0, 180.0)
        data = cam.to_dict()
        assert data == {
            "fuel_oil_2": {"100": {"fuel": 12.0, "air": 180.0}},
            "natural_gas": {"30": {"fuel": 8.0, "air": 50.0}},
        }
        restored = CamMap.from_dict(data)
        assert restored.get("natural_gas", 30) == CamPoint(8.0, 50.0)
        assert len(restored) == 2


class TestSafeCamMap:
    def test_every_decile(self):
        points = build_safe_cam_map(NG, 2.0, 18.0)
        assert tuple(points) == DECILES

    def test_zero_is_off(self):
        assert build_safe_cam_map(NG, 2.0, 18.0)[0] == CamPoint(0.0, 0.0)

    def test_low_and_high_fire(self):
        points = build_safe_cam_map(NG, 2.0, 18.0)
        assert points[10].fuel == 2.0
        assert points[10].air == round(stoichiometric_air(NG, 2.0) * 1.4, 2)
        assert points[100].fuel == 18.0
        assert points[100].air == round(stoichiometric_air(NG, 18.0) * 1.2, 2)

    def test_oil_profile_is_richer_in_air(self):
        oil = get_fuel("fuel_oil_2")
        points = build_safe_cam_map(oil, 2.0, 18.0)
        assert points[10].air == round(stoichiometric_air(oil, 2.0) * 1.45, 2)

    def test_excess_air_decreases_with_rate(self):
        for profile in EXCESS_AIR_PROFILES.values():
            tail = profile[1:]
            assert tail == sorted(tail, reverse=True)
            assert tail[-1] == 1.2
