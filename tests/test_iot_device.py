#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
IoT device tests: task generation, mobility, nearest edge lookup,
wireless link and battery bookkeeping
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import numpy as np
import pytest

from communication.models import LORAWAN, WIFI
from models.data_structures import DEFAULT_APP_PROFILES, Location, SimulationArea
from models.edge_node import EdgeNode
from models.energy_model import BatteryModel
from models.iot_device import IoTDevice
from services.security_manager import SecurityManager


def make_device(seed=0, location=Location(250, 250), **kwargs):
    return IoTDevice(7, "Device-Type-1", 5.0, location,
                     rng=np.random.default_rng(seed), **kwargs)


def test_task_ids_follow_generation_order():
    device = make_device()
    tasks = [device.generate_task(0) for _ in range(3)]
    assert [t.task_id for t in tasks] == ["7-0", "7-1", "7-2"]
    assert all(t.source_device_id == 7 for t in tasks)
    assert device.generated_tasks == tasks


def test_demand_jitter_within_ten_percent():
    device = make_device()
    for app_type, profile in enumerate(DEFAULT_APP_PROFILES):
        for _ in range(20):
            task = device.generate_task(app_type, creation_time=1000.0)
            assert 0.9 * profile.cpu_demand <= task.cpu_demand <= 1.1 * profile.cpu_demand
            assert 0.9 * profile.network_demand <= task.network_demand <= 1.1 * profile.network_demand
            assert task.delay_sensitivity == profile.delay_sensitivity
            assert task.creation_time == 1000.0


def test_out_of_range_app_type_picks_a_profile():
    device = make_device()
    sensitivities = {p.delay_sensitivity for p in DEFAULT_APP_PROFILES}
    for app_type in (-1, 4, 99):
        assert device.generate_task(app_type).delay_sensitivity in sensitivities


def test_same_seed_same_tasks():
    a, b = make_device(seed=11), make_device(seed=11)
    for _ in range(10):
        ta, tb = a.generate_task(-1), b.generate_task(-1)
        assert (ta.cpu_demand, ta.network_demand) == (tb.cpu_demand, tb.network_demand)


def test_secured_task_is_tokened_and_sealed():
    security = SecurityManager(rng=np.random.default_rng(3))
    device = make_device()
    task = device.generate_task(1, 0.0, security, {'security_level': 'high'})
    assert task.security_token.endswith("-7")
    assert security.validate_token(task.security_token)
    assert task.is_high_security
    assert task.verify_integrity()


def test_find_nearest_edge_node():
    device = make_device(location=Location(110, 110))
    near = EdgeNode("edge_0", "Edge-0", Location(100, 100), 1000.0)
    far = EdgeNode("edge_1", "Edge-1", Location(300, 300), 1000.0)
    assert device.find_nearest_edge_node([far, near]) is near
    assert device.find_nearest_edge_node([]) is None


def test_nearest_edge_tie_keeps_first():
    device = make_device(location=Location(200, 200))
    first = EdgeNode("edge_0", "Edge-0", Location(100, 200), 1000.0)
    second = EdgeNode("edge_1", "Edge-1", Location(300, 200), 1000.0)
    assert device.find_nearest_edge_node([first, second]) is first


def test_random_walk_is_bounded_and_clamped():
    area = SimulationArea(500, 500)
    device = make_device()
    for _ in range(100):
        before = device.location
        device.update_location(area)
        assert abs(device.location.x - before.x) <= device.mobility_speed / 2 + 1e-9
        assert abs(device.location.y - before.y) <= device.mobility_speed / 2 + 1e-9
        assert area.contains(device.location)

    corner = make_device(location=Location(0, 0))
    for _ in range(50):
        corner.update_location(area)
        assert area.contains(corner.location)


def test_bandwidth_drops_with_distance():
    device = make_device(location=Location(0, 0), protocol=WIFI, signal_interference=0.0)
    assert device.calculate_bandwidth_to(Location(0, 0)) == pytest.approx(WIFI.max_bandwidth)
    assert device.calculate_bandwidth_to(Location(50, 0)) < WIFI.max_bandwidth


def test_send_data_drains_battery():
    device = make_device(location=Location(0, 0))
    assert device.send_data(Location(10, 0), 1_000_000)
    assert device.battery_level < 1.0
    assert device.total_energy_consumed > 0.0


def test_send_data_refused_when_battery_too_small():
    device = make_device(location=Location(0, 0), protocol=LORAWAN,
                         battery=BatteryModel(capacity_mah=0.001))
    assert not device.send_data(Location(5000, 0), 1_000_000)
    assert device.battery_level == 1.0


def test_idle_drain():
    device = make_device()
    assert device.update_battery_for_idle(1000)
    assert device.battery_level < 1.0


def test_interference_is_clamped():
    device = make_device(signal_interference=3.0)
    assert device.signal_interference == 1.0
    device.set_signal_interference(-1.0)
    assert device.signal_interference == 0.0
