"""
Offloading orchestration
Binds devices to edge nodes, applies the fuzzy decision and its override
policies, routes tasks and aggregates system-wide statistics
"""
import logging
from typing import Dict, List, Optional

import numpy as np

from core.backend import LocalBackend, SimulationBackend
from models.cloud_node import CloudNode
from models.data_structures import ExecutionLocation, Task, TaskStatus
from models.edge_node import EdgeNode
from models.exceptions import UnknownNodeError
from models.iot_device import IoTDevice
from utils.metrics import StatisticsAggregator
from .fuzzy_controller import FuzzyLogicController

logger = logging.getLogger(__name__)

LOW_BATTERY_THRESHOLD = 0.2
MIN_BANDWIDTH_KBPS = 1000.0


class EdgeOrchestrator:
    """
    Offloading orchestrator

    Decision pipeline:
    1. no bound edge, or bound edge unhealthy -> CLOUD
    2. fuzzy inference on the bound edge's utilization and resource type
    3. overrides, in order: low battery, weak uplink, high security

    With advanced=False the overrides, the transmission energy check and the
    migration handshake are skipped: LOCAL goes to the bound edge, OTHER to
    the least-loaded healthy peer (or the bound edge when there is none) and
    CLOUD to the cloud.
    """

    def __init__(self, edge_nodes: List[EdgeNode], cloud_node: CloudNode,
                 fuzzy_controller: Optional[FuzzyLogicController] = None,
                 backend: Optional[SimulationBackend] = None,
                 migration_manager=None, service_registry=None, fault_tolerance=None,
                 statistics: Optional[StatisticsAggregator] = None,
                 low_battery_threshold: float = LOW_BATTERY_THRESHOLD,
                 min_bandwidth_kbps: float = MIN_BANDWIDTH_KBPS,
                 advanced: bool = True):
        self.edge_nodes = list(edge_nodes)
        self.cloud_node = cloud_node
        self.fuzzy_controller = fuzzy_controller or FuzzyLogicController()
        self.backend = backend or LocalBackend.from_nodes(self.edge_nodes, cloud_node)

        self.migration_manager = migration_manager
        self.service_registry = service_registry
        self.fault_tolerance = fault_tolerance
        self.statistics = statistics or StatisticsAggregator()

        self.low_battery_threshold = low_battery_threshold
        self.min_bandwidth_kbps = min_bandwidth_kbps
        self.advanced = advanced

        self.device_bindings: Dict[int, EdgeNode] = {}
        self.decision_stats: Dict[ExecutionLocation, int] = {loc: 0 for loc in ExecutionLocation}

    # ------------------------------------------------------------------
    # device binding
    # ------------------------------------------------------------------
    def register_device(self, device: IoTDevice) -> Optional[EdgeNode]:
        """Bind a device to its nearest edge node"""
        node = device.find_nearest_edge_node(self.edge_nodes)
        if node is None:
            self.device_bindings.pop(device.device_id, None)
        else:
            self.device_bindings[device.device_id] = node
        return node

    def get_bound_node(self, device: IoTDevice) -> Optional[EdgeNode]:
        return self.device_bindings.get(device.device_id)

    # ------------------------------------------------------------------
    # decision
    # ------------------------------------------------------------------
    def make_offloading_decision(self, task: Task, device: IoTDevice) -> ExecutionLocation:
        bound = self.get_bound_node(device)
        if bound is None or not bound.is_healthy:
            return self._count(ExecutionLocation.CLOUD)

        decision = self.fuzzy_controller.decide(
            task.cpu_demand, task.network_demand, task.delay_sensitivity,
            bound.cpu_utilization, bound.resource_type,
        )
        if not self.advanced:
            return self._count(decision)

        if decision == ExecutionLocation.LOCAL_EDGE and device.battery_level < self.low_battery_threshold:
            logger.debug("Task %s: low battery, LOCAL_EDGE -> OTHER_EDGE", task.task_id)
            decision = ExecutionLocation.OTHER_EDGE

        if decision == ExecutionLocation.OTHER_EDGE:
            bandwidth = device.calculate_bandwidth_to(bound.location)
            if bandwidth < self.min_bandwidth_kbps:
                logger.debug("Task %s: uplink %.1f kbps, OTHER_EDGE -> CLOUD", task.task_id, bandwidth)
                decision = ExecutionLocation.CLOUD

        if task.is_high_security and decision != ExecutionLocation.LOCAL_EDGE:
            decision = ExecutionLocation.CLOUD

        return self._count(decision)

    def _count(self, decision: ExecutionLocation) -> ExecutionLocation:
        self.decision_stats[decision] += 1
        return decision

    # ------------------------------------------------------------------
    # routing
    # ------------------------------------------------------------------
    def process_task(self, task: Task, device: IoTDevice, decision: ExecutionLocation,
                     current_tick: int = 0) -> bool:
        """
        Route a decided task to its node

        Returns:
            True when the task was queued, False when the device could not
            pay for the transmission (task stays CREATED and is dropped)
        """
        bound = self.get_bound_node(device)

        if decision == ExecutionLocation.LOCAL_EDGE and bound is not None:
            self._submit(task, bound, ExecutionLocation.LOCAL_EDGE)
            return True

        if not self.advanced:
            return self._process_task_basic(task, bound, decision)

        target = None
        if decision == ExecutionLocation.OTHER_EDGE:
            target = self.find_least_loaded_edge(exclude=bound)

        if not self._check_transmission_energy(task, device, target or bound):
            return False

        if decision == ExecutionLocation.OTHER_EDGE:
            session_id = self._migration_handshake(task, bound, target, current_tick)
            if session_id is not None:
                self.statistics.record_migration(True)
                self._submit(task, target, ExecutionLocation.OTHER_EDGE)
                return True
            self.statistics.record_migration(False)
            logger.info("Migration of task %s failed, falling back to cloud", task.task_id)

        self._submit(task, self.cloud_node, ExecutionLocation.CLOUD)
        return True

    def find_least_loaded_edge(self, exclude: Optional[EdgeNode] = None) -> Optional[EdgeNode]:
        """Minimum-utilization healthy edge other than exclude; first match wins ties"""
        best = None
        for node in self.edge_nodes:
            if exclude is not None and node.node_id == exclude.node_id:
                continue
            if not node.is_healthy:
                continue
            if best is None or node.cpu_utilization < best.cpu_utilization:
                best = node
        return best

    def _process_task_basic(self, task: Task, bound: Optional[EdgeNode],
                            decision: ExecutionLocation) -> bool:
        if decision == ExecutionLocation.OTHER_EDGE:
            target = self.find_least_loaded_edge(exclude=bound) or bound
            if target is not None:
                self._submit(task, target, ExecutionLocation.OTHER_EDGE)
                return True
        self._submit(task, self.cloud_node, ExecutionLocation.CLOUD)
        return True

    def _check_transmission_energy(self, task: Task, device: IoTDevice,
                                   node: Optional[EdgeNode]) -> bool:
        if node is not None:
            sent = device.send_data(node.location, task.network_demand_bytes)
        else:
            sent = device.send_data_over(device.protocol.max_range, task.network_demand_bytes)
        if not sent:
            self.statistics.record_energy_abort()
            logger.info("Task %s dropped: device %s battery cannot cover the uplink",
                        task.task_id, device.device_id)
        return sent

    def _migration_handshake(self, task: Task, source: Optional[EdgeNode],
                             target: Optional[EdgeNode], current_tick: int):
        if self.migration_manager is not None:
            return self.migration_manager.start_migration(
                source, target, "COMPUTATION", task.task_id, current_tick
            )
        if target is None or not target.is_healthy:
            return None
        return f"direct-{task.task_id}"

    def _submit(self, task: Task, node, location: ExecutionLocation):
        task.execution_location = location
        self.backend.submit_task(task, node.node_id)
        self.statistics.record_task_routed()
        if self.fault_tolerance is not None:
            self.fault_tolerance.register_task(task)

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    def process_pending_tasks(self, current_time: float) -> List[Task]:
        """One task per edge node in list order, then one on the cloud"""
        processed = []
        for node in self.edge_nodes + [self.cloud_node]:
            task = node.process_next_task(current_time)
            if task is None:
                continue
            if task.status == TaskStatus.FAILED:
                self.statistics.record_security_incident()
            else:
                self.statistics.record_service_time(task.actual_service_time)
            processed.append(task)
        return processed

    # ------------------------------------------------------------------
    # failures
    # ------------------------------------------------------------------
    def _edge_node(self, node_id) -> EdgeNode:
        for node in self.edge_nodes:
            if node.node_id == node_id:
                return node
        raise UnknownNodeError(node_id)

    def simulate_node_failure(self, node_id, current_time: float = 0.0) -> int:
        node = self._edge_node(node_id)
        if not node.is_healthy:
            return 0
        lost = node.simulate_failure(current_time)
        self.statistics.record_node_failure()
        return lost

    def recover_node(self, node_id, current_time: float = 0.0) -> int:
        node = self._edge_node(node_id)
        restored = node.recover(current_time)
        self.statistics.record_node_recovery()
        self.statistics.record_recovered_tasks(restored)
        return restored

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def update_energy_statistics(self) -> float:
        """Total computation energy (J) spent by the edge tier"""
        return float(sum(node.total_energy_consumed for node in self.edge_nodes))

    def find_services(self, service_type: str):
        if self.service_registry is None:
            return []
        return self.service_registry.find_services_by_type(service_type)

    def get_system_statistics(self) -> Dict:
        local_times, other_times = [], []
        for node in self.edge_nodes:
            for task in node.completed_tasks:
                if task.execution_location == ExecutionLocation.LOCAL_EDGE:
                    local_times.append(task.actual_service_time)
                elif task.execution_location == ExecutionLocation.OTHER_EDGE:
                    other_times.append(task.actual_service_time)
        cloud_times = [t.actual_service_time for t in self.cloud_node.completed_tasks]

        stats = {
            'local_edge_service_time_ms': _mean(local_times),
            'other_edge_service_time_ms': _mean(other_times),
            'cloud_service_time_ms': _mean(cloud_times),
            'recent_service_time_ms': self.statistics.recent_service_time_ms,
            'avg_edge_utilization_pct': _mean([n.cpu_utilization for n in self.edge_nodes]),
            'cloud_utilization_pct': self.cloud_node.cpu_utilization,
            'total_edge_energy_j': self.update_energy_statistics(),
            'registered_services': len(self.service_registry) if self.service_registry is not None else 0,
            'decisions': {loc.value: count for loc, count in self.decision_stats.items()},
        }
        stats.update(self.statistics.snapshot())
        return stats


def _mean(values) -> float:
    return float(np.mean(values)) if len(values) else 0.0
