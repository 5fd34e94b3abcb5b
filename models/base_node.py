"""
Resource node base class
Common queue, execution and utilization logic shared by edge and cloud nodes
"""
import logging
from abc import ABC
from collections import deque
from typing import Deque, List, Optional

import numpy as np

from .data_structures import NodeType, Task
from .energy_model import EnergyModel, LinearEnergyModel

logger = logging.getLogger(__name__)

# cpu demand (MI) that saturates one utilization step
UTILIZATION_REFERENCE_DEMAND = 15000.0


class BaseNode(ABC):
    """
    Abstract resource node

    Holds an unbounded FIFO queue and executes one task per call to
    process_next_task. Utilization is an exponentially decayed estimate:

        u = u * decay + min(scale, cpu_demand / 15000 * scale), clamped to [0, 100]
    """

    utilization_decay: float = 0.7
    utilization_scale: float = 50.0

    def __init__(self, node_id, name: str, node_type: NodeType, mips: float,
                 ram_mb: int = 0, storage_mb: int = 0,
                 energy_model: Optional[EnergyModel] = None):
        if mips <= 0:
            raise ValueError(f"Node {name}: mips must be positive, got {mips}")
        self.node_id = node_id
        self.name = name
        self.node_type = node_type
        self.mips = float(mips)
        self.ram_mb = ram_mb
        self.storage_mb = storage_mb
        self.energy_model = energy_model or LinearEnergyModel()

        self.cpu_utilization: float = 0.0
        self.task_queue: Deque[Task] = deque()
        self.completed_tasks: List[Task] = []
        self.failed_tasks: List[Task] = []
        self.total_energy_consumed: float = 0.0

    # ------------------------------------------------------------------
    # queue
    # ------------------------------------------------------------------
    def queue_task(self, task: Task):
        """Append to the FIFO tail; never rejects"""
        task.mark_queued()
        self.task_queue.append(task)
        logger.debug("%s queued task %s (queue=%d)", self.name, task.task_id, len(self.task_queue))

    @property
    def queue_size(self) -> int:
        return len(self.task_queue)

    def is_available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    def calculate_execution_time(self, task: Task) -> float:
        """Execution time in ms"""
        return Task.calculate_execution_time(task.cpu_demand, self.mips)

    def _on_task_started(self, task: Task, current_time: float):
        """Hook run after the integrity check and before execution"""

    def process_next_task(self, current_time: float) -> Optional[Task]:
        """
        Pop and execute the head of the queue

        Args:
            current_time: virtual time in ms

        Returns:
            The completed or integrity-failed task, or None when idle
        """
        if not self.task_queue or not self.is_available():
            return None

        task = self.task_queue.popleft()
        task.mark_started(current_time)

        if task.has_security_metadata() and not task.verify_integrity():
            task.mark_failed()
            self.failed_tasks.append(task)
            logger.warning("%s: integrity check failed for task %s", self.name, task.task_id)
            return task

        self._on_task_started(task, current_time)

        execution_time = self.calculate_execution_time(task)
        self.update_cpu_utilization(task.cpu_demand)
        self.total_energy_consumed += self.energy_model.calculate_computation_energy(
            self.cpu_utilization / 100.0, execution_time, self.mips
        )

        task.mark_completed(execution_time)
        self.completed_tasks.append(task)
        logger.debug("%s completed task %s in %.2f ms", self.name, task.task_id, execution_time)
        return task

    def update_cpu_utilization(self, cpu_demand: float):
        delta = min(self.utilization_scale,
                    cpu_demand / UTILIZATION_REFERENCE_DEMAND * self.utilization_scale)
        utilization = self.cpu_utilization * self.utilization_decay + delta
        self.cpu_utilization = max(0.0, min(100.0, utilization))

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def average_service_time(self) -> float:
        """Mean completion - creation over completed tasks (0 when none)"""
        if not self.completed_tasks:
            return 0.0
        return float(np.mean([t.actual_service_time for t in self.completed_tasks]))

    def __repr__(self):
        return (f"{type(self).__name__}(id={self.node_id!r}, mips={self.mips}, "
                f"util={self.cpu_utilization:.1f}%, queue={len(self.task_queue)})")
