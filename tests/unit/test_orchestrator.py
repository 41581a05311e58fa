"""Integration tests for the SimPy combustion orchestrator."""

import dataclasses
import json

import pytest

from combustion.control.programmer import BurnerState
from combustion.core.orchestrator import MAX_SPEED_MULTIPLIER, CombustionOrchestrator, ControlHandle
from combustion.core.recorder import TREND_FIELDS
from combustion.physics.chemistry import stoichiometric_air


def _make(**kwargs):
    return CombustionOrchestrator(flame_params={"noise": 0.0}, **kwargs)


def _running_burner(**kwargs):
    orch = _make(**kwargs)
    orch.set_boiler_on(True)
    orch.run(95.0)
    assert orch.programmer.state == BurnerState.RUN_AUTO
    return orch


def _advance_to(orch, target):
    for _ in range(50):
        if orch.programmer.state == target:
            return orch
        orch.advance_programmer()
        orch.step()
    raise AssertionError(f"never reached {target}")


class TestLifecycle:
    def test_one_tick_per_step(self):
        orch = _make()
        orch.step()
        assert orch.sim_time_s == pytest.approx(0.1)
        orch.run(1.0)
        assert orch.sim_time_s == pytest.approx(1.1)

    def test_idle_burner(self):
        orch = _make()
        orch.run(5.0)
        assert orch.programmer.state == BurnerState.OFF
        assert orch.burner_fuel == 0.0
        assert orch.result.CO_ppm == 0
        assert orch.result.NOx_ppm == 0

    def test_stop_and_restart_does_not_duplicate_ticks(self):
        orch = _make()
        orch.set_boiler_on(True)
        orch.run(1.0)
        orch.stop()
        assert not orch.is_running
        orch.run(2.0)
        assert orch.sim_time_s == pytest.approx(3.0)
        # 30 ticks total: one to leave OFF, ten in DRIVE_HI, 19 into prepurge
        assert orch.programmer.state == BurnerState.PREPURGE_HI
        assert orch.programmer.state_time_ms == pytest.approx(1900.0)


class TestSequencing:
    def test_reaches_run_auto(self):
        orch = _running_burner()
        assert orch.flame.signal >= 10.0
        assert orch.programmer.t7_main
        assert orch.burner_fuel == orch.fuel_flow

    def test_speed_multiplier_fast_forwards(self):
        orch = _make(speed_multiplier=10.0)
        orch.set_boiler_on(True)
        orch.run(10.0)
        assert orch.programmer.state == BurnerState.RUN_AUTO

    def test_max_speed_still_proves_pilot(self):
        orch = _make(speed_multiplier=MAX_SPEED_MULTIPLIER)
        orch.set_boiler_on(True)
        orch.run(3.0)
        assert orch.programmer.state == BurnerState.RUN_AUTO
        orch.run(2.0)
        assert orch.programmer.state == BurnerState.RUN_AUTO
        assert orch.programmer.lockout_reason == ""

    def test_speed_multiplier_does_not_change_tick_rate(self):
        orch = _make(speed_multiplier=10.0)
        orch.run(2.0)
        assert orch.sim_time_s == pytest.approx(2.0)
        assert orch.recorder.total_samples == 2

    def test_power_cut(self):
        orch = _running_burner()
        orch.set_boiler_on(False)
        orch.step()
        assert orch.programmer.state == BurnerState.POSTPURGE
        assert orch.programmer.relays() == {"t5_spark": False, "t6_pilot": False, "t7_main": False}

    def test_flame_failure_lockout(self):
        orch = _running_burner()
        orch.inject_flame_fault("stuck", value=0.0)
        orch.run(3.5)
        assert orch.programmer.state == BurnerState.RUN_AUTO
        orch.run(1.0)
        assert orch.programmer.state == BurnerState.LOCKOUT
        assert orch.programmer.lockout_reason == "FLAME FAIL"

    def test_reset_after_lockout(self):
        orch = _running_burner()
        orch.inject_flame_fault("stuck", value=0.0)
        orch.run(5.0)
        orch.clear_flame_fault()
        assert orch.reset_programmer()
        assert orch.programmer.state == BurnerState.DRIVE_HI

    def test_excess_air_blowout(self):
        orch = _running_burner()
        orch.set_tuning_mode(True)
        assert orch.set_manual_flows(air_flow=200.0)
        orch.step()
        assert orch.programmer.state == BurnerState.POSTPURGE
        assert orch.programmer.lockout_reason == "FLAME BLOWOUT"
        orch.run(15.0)
        assert orch.programmer.state == BurnerState.LOCKOUT

    def test_pilot_only_fuel(self):
        orch = _make()
        orch.set_boiler_on(True)
        orch.step()
        _advance_to(orch, BurnerState.PTFI)
        orch.step()
        # min fire 2.0 -> pilot max(0.5, 1.0)
        assert orch.burner_fuel == pytest.approx(1.0)

    def test_state_change_callback(self):
        seen = []
        orch = _make(on_state_change=lambda old, new, reason: seen.append((old, new)))
        orch.set_boiler_on(True)
        orch.run(2.0)
        assert seen == [
            (BurnerState.OFF, BurnerState.DRIVE_HI),
            (BurnerState.DRIVE_HI, BurnerState.PREPURGE_HI),
        ]


class TestInputs:
    def test_rheostat_clamped_and_rounded(self):
        orch = _make()
        orch.set_rheostat(150)
        assert orch.rheostat == 100
        orch.set_rheostat(-3)
        assert orch.rheostat == 0
        orch.set_rheostat(42.5)
        assert orch.rheostat == 43

    def test_speed_multiplier_clamped(self):
        orch = _make()
        assert orch.set_speed_multiplier(0.01) == 0.1
        assert orch.set_speed_multiplier(500) == 50.0

    def test_rheostat_drives_flows(self):
        orch = _make()
        orch.set_rheostat(50)
        orch.step()
        assert orch.fuel_flow == pytest.approx(10.0)
        assert orch.air_flow == pytest.approx(stoichiometric_air(orch.fuel, 10.0) * 1.2)

    def test_regulator_change_clamps_fuel_immediately(self):
        orch = _make()
        orch.set_rheostat(100)
        orch.step()
        assert orch.fuel_flow == pytest.approx(18.0)
        orch.set_regulator_pressure(orch.fuel.base_pressure / 4.0)
        assert orch.fuel_flow == pytest.approx(9.0)

    def test_saved_cam_point_clamped_after_regulator_change(self):
        orch = _make()
        orch.cam_map.set(orch.fuel.key, 30, 8.0, 50.0)
        orch.set_rheostat(32)
        orch.set_regulator_pressure(0.2)
        orch.step()
        assert orch.fuel_flow <= orch.regulator.max_fuel
        assert orch.fuel_flow == pytest.approx(orch.regulator.max_fuel)
        assert orch.air_flow == 50.0
        assert orch.cam_map.get(orch.fuel.key, 30).fuel == 8.0

    def test_fuel_change_resets_regulator(self):
        orch = _make()
        orch.set_regulator_pressure(7.0)
        orch.set_fuel("propane")
        assert orch.regulator.reg_press == 11.0
        assert orch.fuel.key.value == "propane"

    def test_unknown_fuel(self):
        with pytest.raises(ValueError):
            _make().set_fuel("hydrogen")

    def test_manual_flows_need_tuning_mode(self):
        orch = _running_burner()
        assert not orch.set_manual_flows(fuel_flow=5.0)
        orch.set_tuning_mode(True)
        assert orch.set_manual_flows(fuel_flow=5.0, air_flow=60.0)
        orch.step()
        assert (orch.fuel_flow, orch.air_flow) == (5.0, 60.0)

    def test_manual_flows_need_run_auto(self):
        orch = _make()
        orch.set_tuning_mode(True)
        assert not orch.set_manual_flows(fuel_flow=5.0)

    def test_manual_fuel_clamped_to_regulator(self):
        orch = _running_burner()
        orch.set_tuning_mode(True)
        orch.set_manual_flows(fuel_flow=50.0)
        assert orch.fuel_flow == pytest.approx(18.0)

    def test_leaving_tuning_restores_schedule(self):
        orch = _running_burner()
        orch.set_tuning_mode(True)
        orch.set_manual_flows(fuel_flow=5.0)
        orch.set_tuning_mode(False)
        orch.step()
        assert orch.fuel_flow == pytest.approx(2.0)


class TestCamIntegration:
    def test_saved_point_drives_flows(self):
        orch = _make()
        orch.cam_map.set(orch.fuel.key, 30, 8.0, 50.0)
        orch.set_rheostat(32)
        orch.step()
        assert (orch.fuel_flow, orch.air_flow) == (8.0, 50.0)

    def test_save_and_clear_at_rheostat_decile(self):
        orch = _make()
        orch.set_rheostat(68)
        orch.step()
        point = orch.save_cam_point()
        assert orch.cam_map.get(orch.fuel.key, 70) == point
        assert orch.clear_cam_point()
        assert orch.cam_map.get(orch.fuel.key, 70) is None

    def test_safe_defaults(self):
        orch = _make()
        points = orch.apply_safe_cam_map()
        assert len(points) == 11
        assert points["0"] == {"fuel": 0.0, "air": 0.0}
        assert len(orch.cam_map.points_for(orch.fuel.key)) == 11


class TestAnalyzerAndTrend:
    def test_analyzer_tracks_running_burner(self):
        orch = _running_burner()
        orch.run(30.0)
        display = orch.analyzer.display()
        assert display["O2"] == pytest.approx(orch.result.O2_pct, abs=0.05)
        assert display["Eff"] == pytest.approx(orch.result.efficiency_pct, abs=0.2)

    def test_analyzer_command(self):
        orch = _make(analyzer_autostart=False)
        assert orch.analyzer_command("start")
        orch.run(6.5)
        assert orch.analyzer.state.value == "READY"

    def test_trend_sampling(self):
        orch = _make(trend_length=3)
        orch.run(5.0)
        assert orch.recorder.total_samples == 5
        rows = orch.recorder.history()
        assert len(rows) == 3
        assert set(TREND_FIELDS) <= set(rows[-1])

    def test_save_reading(self):
        orch = _running_burner()
        reading = orch.save_reading("after tune")
        assert reading["fuel"] == "Natural Gas"
        assert reading["notes"] == "after tune"
        assert orch.recorder.readings()[0] == reading

    def test_target_status(self):
        orch = _make()
        status = orch.target_status({"O2": 4.0, "StackF": 400, "COaf": 20})
        assert status == {"o2_ok": True, "stack_ok": True, "co_ok": True, "in_band": True}
        status = orch.target_status({"O2": 8.0, "StackF": 400, "COaf": 20})
        assert not status["in_band"]


class TestControlHandle:
    def test_handle_drives_simulation(self):
        orch = _make()
        handle = orch.control_handle()
        assert isinstance(handle, ControlHandle)
        handle.set_boiler_on(True)
        handle.set_rheostat(40)
        orch.step()
        snap = handle.snapshot()
        assert snap["boiler_on"]
        assert snap["programmer"]["state"] == "DRIVE_HI"

    def test_handle_is_frozen(self):
        handle = _make().control_handle()
        with pytest.raises(dataclasses.FrozenInstanceError):
            handle.set_boiler_on = None

    def test_snapshot_is_json_serializable(self):
        orch = _running_burner()
        snap = orch.snapshot()
        json.dumps(snap)
        assert snap["flame"]["flame_active"]
        assert snap["flame"]["main_flame"]
        assert not snap["flame"]["spark"]
        assert snap["metering"]["gas_burner_cfh"] == pytest.approx(orch.fuel_flow, abs=0.01)
        assert snap["firing_rate"] == float(orch.rheostat)
