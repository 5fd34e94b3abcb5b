#!/usr/bin/env python3
"""
Local backend tests
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import pytest

from core.backend import CloudNodeSpec, EdgeNodeSpec, LocalBackend
from models.data_structures import ExecutionLocation, Location, Task
from models.exceptions import EdgeSimError, UnknownNodeError
from services.service_discovery import ServiceDiscovery


def make_backend(registry=None):
    backend = LocalBackend(service_registry=registry)
    backend.create_edge_node(EdgeNodeSpec("edge_0", "Edge-0", Location(100, 100), 10000.0))
    backend.create_cloud_node(CloudNodeSpec("cloud", "Cloud", 20000.0))
    return backend


def routed_task(task_id, location=ExecutionLocation.LOCAL_EDGE):
    task = Task(task_id, 1, 1000.0, 100.0, 0.5)
    task.execution_location = location
    return task


def test_unknown_node_is_a_key_error():
    backend = make_backend()
    with pytest.raises(UnknownNodeError) as excinfo:
        backend.submit_task(routed_task("1-0"), "edge_7")
    assert isinstance(excinfo.value, KeyError)
    assert isinstance(excinfo.value, EdgeSimError)
    assert str(excinfo.value) == "Unknown node: edge_7"


def test_duplicate_node_id_rejected():
    backend = make_backend()
    with pytest.raises(ValueError):
        backend.create_edge_node(EdgeNodeSpec("edge_0", "Again", Location(0, 0), 1000.0))


def test_collect_results_reports_each_task_once():
    backend = make_backend()
    local, remote = routed_task("1-0"), routed_task("1-1", ExecutionLocation.CLOUD)
    backend.submit_task(local, "edge_0")
    backend.submit_task(remote, "cloud")
    assert backend.collect_results() == []

    backend.get_node("edge_0").process_next_task(0.0)
    backend.get_node("cloud").process_next_task(0.0)
    assert backend.collect_results() == [local, remote]
    assert backend.collect_results() == []


def test_created_edges_register_services():
    registry = ServiceDiscovery()
    backend = make_backend(registry)
    assert backend.edge_nodes[0].service_registry is registry
    assert registry.get_service("computation_edge_0") is not None
    assert backend.cloud_node.wan_latency_ms == 150.0
