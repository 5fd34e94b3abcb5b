"""
Simulation backend interface

The orchestrator and the simulator only talk to resource nodes through this
interface. LocalBackend keeps the nodes in-process.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from models.cloud_node import CloudNode
from models.data_structures import Location, Task
from models.edge_node import LOW_TIER, EdgeNode
from models.energy_model import EnergyModel
from models.exceptions import UnknownNodeError

logger = logging.getLogger(__name__)


@dataclass
class EdgeNodeSpec:
    node_id: str
    name: str
    location: Location
    mips: float
    ram_mb: int = 0
    storage_mb: int = 0
    resource_type: int = LOW_TIER


@dataclass
class CloudNodeSpec:
    node_id: str
    name: str
    mips: float
    ram_mb: int = 0
    storage_mb: int = 0
    wan_bandwidth: float = 10.0        # Mbps
    wan_latency_ms: float = 150.0


class SimulationBackend(ABC):
    """Creates nodes, accepts routed tasks and reports finished ones"""

    @abstractmethod
    def create_edge_node(self, spec: EdgeNodeSpec) -> EdgeNode:
        ...

    @abstractmethod
    def create_cloud_node(self, spec: CloudNodeSpec) -> CloudNode:
        ...

    @abstractmethod
    def submit_task(self, task: Task, target_id: str):
        ...

    @abstractmethod
    def collect_results(self) -> List[Task]:
        ...


class LocalBackend(SimulationBackend):
    """
    In-process backend

    Nodes live in a dict keyed by id, edges in creation order. collect_results
    returns the tasks finished (completed or failed) since the previous call.
    """

    def __init__(self, energy_model: Optional[EnergyModel] = None,
                 service_registry=None, fault_tolerance=None):
        self.energy_model = energy_model
        self.service_registry = service_registry
        self.fault_tolerance = fault_tolerance

        self.nodes: Dict[str, object] = {}
        self.edge_nodes: List[EdgeNode] = []
        self.cloud_node: Optional[CloudNode] = None
        self._cursors: Dict[str, List[int]] = {}

    @classmethod
    def from_nodes(cls, edge_nodes: List[EdgeNode], cloud_node: Optional[CloudNode]):
        """Wrap nodes that were built elsewhere"""
        backend = cls()
        for node in edge_nodes:
            backend._add(node)
            backend.edge_nodes.append(node)
        if cloud_node is not None:
            backend._add(cloud_node)
            backend.cloud_node = cloud_node
        return backend

    def _add(self, node):
        if node.node_id in self.nodes:
            raise ValueError(f"duplicate node id {node.node_id!r}")
        self.nodes[node.node_id] = node
        self._cursors[node.node_id] = [0, 0]

    def create_edge_node(self, spec: EdgeNodeSpec) -> EdgeNode:
        node = EdgeNode(
            spec.node_id, spec.name, spec.location, spec.mips,
            ram_mb=spec.ram_mb, storage_mb=spec.storage_mb,
            resource_type=spec.resource_type, energy_model=self.energy_model,
            service_registry=self.service_registry, fault_tolerance=self.fault_tolerance,
        )
        self._add(node)
        self.edge_nodes.append(node)
        logger.info("Created %s: %.0f MIPS, type %d at (%.1f, %.1f)",
                    node.name, node.mips, node.resource_type, node.location.x, node.location.y)
        return node

    def create_cloud_node(self, spec: CloudNodeSpec) -> CloudNode:
        node = CloudNode(
            spec.node_id, spec.name, spec.mips, ram_mb=spec.ram_mb,
            storage_mb=spec.storage_mb, wan_bandwidth=spec.wan_bandwidth,
            wan_latency_ms=spec.wan_latency_ms, energy_model=self.energy_model,
        )
        self._add(node)
        self.cloud_node = node
        logger.info("Created %s: %.0f MIPS, WAN %.1f Mbps / %.0f ms",
                    node.name, node.mips, node.wan_bandwidth, node.wan_latency_ms)
        return node

    def get_node(self, node_id: str):
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def submit_task(self, task: Task, target_id: str):
        self.get_node(target_id).queue_task(task)

    def collect_results(self) -> List[Task]:
        finished = []
        for node_id, node in self.nodes.items():
            cursor = self._cursors[node_id]
            finished.extend(node.completed_tasks[cursor[0]:])
            finished.extend(node.failed_tasks[cursor[1]:])
            cursor[0] = len(node.completed_tasks)
            cursor[1] = len(node.failed_tasks)
        return finished
