#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Offloading orchestrator tests

Covers device binding, the decision overrides, routing (local, peer,
cloud, migration fallback, energy abort) and the aggregated statistics.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import numpy as np
import pytest

from communication.models import LORAWAN, WIFI
from core.event_queue import EventQueue
from decision.offloading_manager import EdgeOrchestrator
from migration.migration_manager import MigrationState, ServiceMigrationManager
from models.cloud_node import CloudNode
from models.data_structures import ExecutionLocation, Location, Task, TaskStatus
from models.edge_node import EdgeNode
from models.energy_model import BatteryModel
from models.exceptions import UnknownNodeError
from models.iot_device import IoTDevice
from services.security_manager import SecurityManager
from services.service_discovery import ServiceDiscovery

LOCAL = ExecutionLocation.LOCAL_EDGE
OTHER = ExecutionLocation.OTHER_EDGE
CLOUD = ExecutionLocation.CLOUD


def build(migration_manager=None, service_registry=None):
    edges = [
        EdgeNode("edge_0", "Edge-0", Location(100, 100), 10000.0, resource_type=1,
                 service_registry=service_registry),
        EdgeNode("edge_1", "Edge-1", Location(200, 200), 15000.0, resource_type=2,
                 service_registry=service_registry),
    ]
    cloud = CloudNode("cloud", "Cloud", 20000.0, wan_latency_ms=150.0)
    orchestrator = EdgeOrchestrator(edges, cloud, migration_manager=migration_manager,
                                    service_registry=service_registry)
    return orchestrator, edges, cloud


def make_device(protocol=WIFI, battery=None, location=Location(110, 110)):
    return IoTDevice(1, "Device-Type-1", 1.0, location, rng=np.random.default_rng(0),
                     protocol=protocol, battery=battery)


def light_task(task_id="1-0"):
    return Task(task_id, 1, 2000.0, 1000.0, 0.2)


def test_register_device_binds_nearest_edge():
    orchestrator, edges, _ = build()
    device = make_device()
    assert orchestrator.register_device(device) is edges[0]
    device.location = Location(190, 190)
    orchestrator.register_device(device)
    assert orchestrator.get_bound_node(device) is edges[1]


def test_unbound_or_unhealthy_edge_goes_to_cloud():
    orchestrator, edges, _ = build()
    device = make_device()
    assert orchestrator.make_offloading_decision(light_task(), device) == CLOUD

    orchestrator.register_device(device)
    assert orchestrator.make_offloading_decision(light_task(), device) == LOCAL
    edges[0].is_healthy = False
    assert orchestrator.make_offloading_decision(light_task(), device) == CLOUD


def test_low_battery_moves_local_to_peer():
    orchestrator, _, _ = build()
    device = make_device()
    device.battery.charge_level = 0.1
    orchestrator.register_device(device)
    assert orchestrator.make_offloading_decision(light_task(), device) == OTHER


def test_weak_uplink_moves_peer_to_cloud():
    orchestrator, _, _ = build()
    device = make_device(protocol=LORAWAN)
    device.battery.charge_level = 0.1
    orchestrator.register_device(device)
    assert orchestrator.make_offloading_decision(light_task(), device) == CLOUD


def test_high_security_forces_cloud_unless_local():
    orchestrator, _, _ = build()
    device = make_device()
    orchestrator.register_device(device)

    task = light_task()
    task.add_metadata('security_level', 'high')
    assert orchestrator.make_offloading_decision(task, device) == LOCAL

    device.battery.charge_level = 0.1
    assert orchestrator.make_offloading_decision(task, device) == CLOUD


def test_local_routing():
    orchestrator, edges, _ = build()
    device = make_device()
    orchestrator.register_device(device)
    task = light_task()
    assert orchestrator.process_task(task, device, LOCAL)
    assert task.status == TaskStatus.QUEUED
    assert task.execution_location == LOCAL
    assert list(edges[0].task_queue) == [task]


def test_peer_routing_picks_least_loaded_other_edge():
    orchestrator, edges, _ = build()
    device = make_device()
    orchestrator.register_device(device)
    task = light_task()
    assert orchestrator.process_task(task, device, OTHER)
    assert list(edges[1].task_queue) == [task]
    assert task.execution_location == OTHER
    assert orchestrator.statistics.get('successful_migrations') == 1


def test_failed_handshake_falls_back_to_cloud():
    orchestrator, edges, cloud = build()
    device = make_device()
    orchestrator.register_device(device)
    edges[1].is_healthy = False
    task = light_task()
    assert orchestrator.process_task(task, device, OTHER)
    assert list(cloud.task_queue) == [task]
    assert task.execution_location == CLOUD
    assert orchestrator.statistics.get('failed_migrations') == 1
    assert orchestrator.statistics.get('successful_migrations') == 0


def test_handshake_through_migration_manager():
    events = EventQueue()
    manager = ServiceMigrationManager(event_queue=events)
    orchestrator, edges, _ = build(migration_manager=manager)
    device = make_device()
    orchestrator.register_device(device)
    assert orchestrator.process_task(light_task(), device, OTHER, current_tick=0)

    (session_id,) = manager.sessions
    assert manager.get_migration_state(session_id) == MigrationState.PREPARING
    events.run_due(2)
    assert manager.get_migration_state(session_id) == MigrationState.COMPLETED


def test_energy_abort_leaves_task_unrouted():
    orchestrator, edges, cloud = build()
    device = make_device(protocol=LORAWAN, battery=BatteryModel(capacity_mah=0.001))
    orchestrator.register_device(device)
    task = light_task()
    assert not orchestrator.process_task(task, device, CLOUD)
    assert task.status == TaskStatus.CREATED
    assert task.execution_location is None
    assert cloud.queue_size == 0 and edges[0].queue_size == 0
    assert orchestrator.statistics.get('energy_aborted_tasks') == 1


def test_energy_check_without_bound_edge_uses_protocol_range():
    orchestrator, _, cloud = build()
    device = make_device()
    task = light_task()
    assert orchestrator.process_task(task, device, CLOUD)
    assert list(cloud.task_queue) == [task]
    assert device.battery_level < 1.0


def test_pending_tasks_processed_edges_then_cloud():
    orchestrator, edges, cloud = build()
    device = make_device()
    orchestrator.register_device(device)
    local, remote = light_task("1-0"), light_task("1-1")
    orchestrator.process_task(local, device, LOCAL)
    orchestrator.process_task(remote, device, CLOUD)

    processed = orchestrator.process_pending_tasks(0.0)
    assert processed == [local, remote]
    assert local.status == TaskStatus.COMPLETED
    assert remote.status == TaskStatus.COMPLETED
    assert orchestrator.process_pending_tasks(1000.0) == []


def test_integrity_failure_counts_security_incident():
    orchestrator, edges, _ = build()
    device = make_device()
    orchestrator.register_device(device)
    security = SecurityManager()
    task = device.generate_task(0, 0.0, security)
    task.network_demand += 1.0
    orchestrator.process_task(task, device, LOCAL)
    orchestrator.process_pending_tasks(0.0)
    assert task.status == TaskStatus.FAILED
    assert orchestrator.statistics.get('security_incidents') == 1


def test_system_statistics():
    orchestrator, edges, cloud = build()
    device = make_device()
    orchestrator.register_device(device)
    orchestrator.process_task(light_task("1-0"), device, LOCAL)
    orchestrator.process_task(light_task("1-1"), device, CLOUD)
    orchestrator.process_pending_tasks(0.0)

    stats = orchestrator.get_system_statistics()
    assert stats['local_edge_service_time_ms'] == pytest.approx(200.0)
    assert stats['other_edge_service_time_ms'] == 0.0
    assert stats['cloud_service_time_ms'] == pytest.approx(100.0 + 300.0)
    expected_edge_util = (2000 / 15000 * 50) / 2
    assert stats['avg_edge_utilization_pct'] == pytest.approx(expected_edge_util)
    assert stats['cloud_utilization_pct'] == pytest.approx(2000 / 15000 * 20)
    assert stats['tasks_routed'] == 2
    assert stats['total_edge_energy_j'] > 0.0


def test_find_services_delegates_to_registry():
    registry = ServiceDiscovery()
    orchestrator, _, _ = build(service_registry=registry)
    assert len(orchestrator.find_services("computation")) == 2
    assert len(orchestrator.find_services("ANALYTICS")) == 1
    assert build()[0].find_services("COMPUTATION") == []


def test_node_failure_and_recovery_through_orchestrator():
    orchestrator, edges, _ = build()
    device = make_device()
    orchestrator.register_device(device)
    orchestrator.process_task(light_task(), device, LOCAL)
    assert orchestrator.simulate_node_failure("edge_0") == 1
    assert orchestrator.statistics.get('node_failures') == 1
    assert orchestrator.recover_node("edge_0") == 0
    assert edges[0].is_healthy

    with pytest.raises(UnknownNodeError):
        orchestrator.simulate_node_failure("edge_9")


def test_least_loaded_edge_skips_unhealthy_peers():
    edges = [
        EdgeNode("edge_0", "Edge-0", Location(100, 100), 10000.0, resource_type=1),
        EdgeNode("edge_1", "Edge-1", Location(200, 200), 15000.0, resource_type=2),
        EdgeNode("edge_2", "Edge-2", Location(300, 300), 10000.0, resource_type=1),
    ]
    edges[0].cpu_utilization = 90.0
    edges[1].cpu_utilization = 0.0
    edges[2].cpu_utilization = 40.0
    edges[1].is_healthy = False
    orchestrator = EdgeOrchestrator(edges, CloudNode("cloud", "Cloud", 20000.0))
    device = make_device()
    orchestrator.register_device(device)

    assert orchestrator.find_least_loaded_edge(exclude=edges[0]) is edges[2]
    task = light_task()
    assert orchestrator.process_task(task, device, OTHER)
    assert list(edges[2].task_queue) == [task]
    assert edges[1].queue_size == 0
    assert orchestrator.statistics.get('failed_migrations') == 0

    edges[2].is_healthy = False
    assert orchestrator.find_least_loaded_edge(exclude=edges[0]) is None


def basic_orchestrator():
    edges = [
        EdgeNode("edge_0", "Edge-0", Location(100, 100), 10000.0, resource_type=1),
        EdgeNode("edge_1", "Edge-1", Location(200, 200), 15000.0, resource_type=2),
    ]
    cloud = CloudNode("cloud", "Cloud", 20000.0, wan_latency_ms=150.0)
    return EdgeOrchestrator(edges, cloud, advanced=False), edges, cloud


def test_basic_mode_returns_plain_fuzzy_decision():
    orchestrator, edges, _ = basic_orchestrator()
    device = make_device(protocol=LORAWAN)
    device.battery.charge_level = 0.1
    orchestrator.register_device(device)
    edges[0].cpu_utilization = 85.0

    task = Task("1-0", 1, 7000.0, 1000.0, 0.95)
    task.add_metadata('security_level', 'high')
    assert orchestrator.make_offloading_decision(task, device) == OTHER

    advanced = EdgeOrchestrator(edges, CloudNode("cloud", "Cloud", 20000.0))
    advanced.register_device(device)
    assert advanced.make_offloading_decision(task, device) == CLOUD


def test_basic_mode_routing_skips_energy_and_handshake():
    orchestrator, edges, cloud = basic_orchestrator()
    device = make_device(protocol=LORAWAN, battery=BatteryModel(capacity_mah=0.001))
    orchestrator.register_device(device)

    peer_task, cloud_task = light_task("1-0"), light_task("1-1")
    assert orchestrator.process_task(peer_task, device, OTHER)
    assert orchestrator.process_task(cloud_task, device, CLOUD)
    assert list(edges[1].task_queue) == [peer_task]
    assert peer_task.execution_location == OTHER
    assert list(cloud.task_queue) == [cloud_task]
    assert device.battery_level == 1.0
    assert orchestrator.statistics.get('successful_migrations') == 0
    assert orchestrator.statistics.get('energy_aborted_tasks') == 0


def test_basic_mode_peer_falls_back_to_bound_edge():
    orchestrator, edges, _ = basic_orchestrator()
    edges[1].is_healthy = False
    device = make_device()
    orchestrator.register_device(device)
    task = light_task()
    assert orchestrator.process_task(task, device, OTHER)
    assert list(edges[0].task_queue) == [task]
    assert task.execution_location == OTHER
