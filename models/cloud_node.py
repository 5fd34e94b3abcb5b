"""
Cloud node implementation
"""
from typing import Optional

from .base_node import BaseNode
from .data_structures import NodeType, Task
from .energy_model import EnergyModel


class CloudNode(BaseNode):
    """
    Remote data-center resource

    Execution time carries a WAN round trip (2 x latency). Utilization
    decays slower and grows in smaller steps than at the edge
    (decay 0.8, scale 20).
    """

    utilization_decay = 0.8
    utilization_scale = 20.0

    def __init__(self, node_id: str, name: str, mips: float, ram_mb: int = 0,
                 storage_mb: int = 0, wan_bandwidth: float = 10.0,
                 wan_latency_ms: float = 150.0,
                 energy_model: Optional[EnergyModel] = None):
        super().__init__(node_id, name, NodeType.CLOUD, mips, ram_mb, storage_mb, energy_model)
        self.wan_bandwidth = wan_bandwidth        # Mbps
        self.wan_latency_ms = wan_latency_ms

    def calculate_execution_time(self, task: Task) -> float:
        return super().calculate_execution_time(task) + 2.0 * self.wan_latency_ms

    def estimate_service_time(self, task: Task) -> float:
        """Upload + round trip + execution, in ms (diagnostic only)"""
        transfer_ms = task.network_demand * 8.0 / (self.wan_bandwidth * 1000.0) * 1000.0
        return transfer_ms + self.calculate_execution_time(task)
