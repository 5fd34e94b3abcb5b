"""
Edge node implementation
Edge computing node bound to nearby devices, with health state, service
registration and per-task checkpointing
"""
import logging
from typing import Optional

from .base_node import BaseNode
from .data_structures import Location, NodeType, Task
from .energy_model import EnergyModel

logger = logging.getLogger(__name__)

LOW_TIER = 1
HIGH_TIER = 2


class EdgeNode(BaseNode):
    """
    Edge node

    Main responsibilities:
    1. FIFO execution of offloaded tasks (decay 0.7, scale 50 utilization)
    2. Health flag: an unhealthy node neither executes nor accepts new work
    3. Registration of its computation/analytics services
    4. Checkpointing of every task it starts
    """

    utilization_decay = 0.7
    utilization_scale = 50.0

    def __init__(self, node_id: str, name: str, location: Location, mips: float,
                 ram_mb: int = 0, storage_mb: int = 0, resource_type: int = LOW_TIER,
                 energy_model: Optional[EnergyModel] = None,
                 service_registry=None, fault_tolerance=None):
        super().__init__(node_id, name, NodeType.EDGE, mips, ram_mb, storage_mb, energy_model)
        self.location = location
        self.resource_type = resource_type
        self.is_healthy = True
        self.failure_count = 0

        self.service_registry = service_registry
        self.fault_tolerance = fault_tolerance

        if self.service_registry is not None:
            self.register_default_services()

    def is_available(self) -> bool:
        return self.is_healthy

    def register_default_services(self, registered_at: float = 0.0):
        """Advertise the computation service, plus analytics on high-tier nodes"""
        metadata = {'mips': self.mips, 'ram': self.ram_mb, 'storage': self.storage_mb}
        self.service_registry.register_service(
            f"computation_{self.node_id}", f"Computation on {self.name}",
            "COMPUTATION", self.node_id, metadata, registered_at,
        )
        if self.resource_type == HIGH_TIER:
            self.service_registry.register_service(
                f"data_analytics_{self.node_id}", f"Data analytics on {self.name}",
                "ANALYTICS", self.node_id, metadata, registered_at,
            )

    def _on_task_started(self, task: Task, current_time: float):
        if self.fault_tolerance is not None:
            self.fault_tolerance.create_task_checkpoint(task, current_time)

    # ------------------------------------------------------------------
    # failure / recovery
    # ------------------------------------------------------------------
    def simulate_failure(self, current_time: float = 0.0) -> int:
        """
        Mark the node unhealthy and fail its queue

        Returns:
            Number of queued tasks that were failed
        """
        if not self.is_healthy:
            return 0
        self.is_healthy = False
        self.failure_count += 1

        queued = list(self.task_queue)
        self.task_queue.clear()
        if self.fault_tolerance is not None:
            failed = self.fault_tolerance.handle_node_failure(self.node_id, queued, current_time)
        else:
            failed = []
            for task in queued:
                task.mark_failed()
                failed.append(task)
        self.failed_tasks.extend(failed)
        logger.warning("%s failed, %d queued tasks lost", self.name, len(failed))
        return len(failed)

    def recover(self, current_time: float = 0.0) -> int:
        """
        Mark the node healthy again

        Returns:
            Number of checkpoint-backed tasks restored
        """
        self.is_healthy = True
        restored = 0
        if self.fault_tolerance is not None:
            restored = len(self.fault_tolerance.recover_tasks(self.node_id, current_time))
        logger.info("%s recovered (%d tasks restored from checkpoints)", self.name, restored)
        return restored

    def distance_to(self, location: Location) -> float:
        return self.location.distance_to(location)
