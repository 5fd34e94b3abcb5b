"""Node health tracking and task checkpointing.

Checkpoints are bookkeeping records only: a failed node's queued tasks are
marked FAILED, and on recovery the checkpoint records of those tasks are
handed back so the caller can count them as recovered. The tasks themselves
are not resubmitted.
"""
import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from models.data_structures import Task, TaskStatus

logger = logging.getLogger(__name__)


class FaultToleranceLevel(Enum):
    """Protection applied to registered tasks"""
    NONE = "none"
    CHECKPOINTING = "checkpointing"
    REPLICATION = "replication"


class HealthStatus(Enum):
    """Node health as seen by the fault-tolerance manager"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class NodeHealth:
    node_id: str
    status: HealthStatus = HealthStatus.UNKNOWN
    metrics: Dict[str, Any] = field(default_factory=dict)
    last_update_time: float = 0.0


@dataclass
class TaskCheckpoint:
    checkpoint_id: str
    task_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0


class FaultToleranceManager:
    """Tracks node health, per-task checkpoints and replicas"""

    def __init__(self, level: FaultToleranceLevel = FaultToleranceLevel.CHECKPOINTING):
        self.level = level
        self.node_health: Dict[str, NodeHealth] = {}
        self.checkpoints: Dict[str, List[TaskCheckpoint]] = defaultdict(list)
        self.replicas: Dict[str, List[str]] = defaultdict(list)
        self._recoverable: Dict[str, List[str]] = defaultdict(list)
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # health
    # ------------------------------------------------------------------
    def update_node_health(self, node_id, status: HealthStatus,
                           metrics: Optional[Dict[str, Any]] = None, current_time: float = 0.0):
        node_id = str(node_id)
        health = self.node_health.setdefault(node_id, NodeHealth(node_id))
        health.status = status
        health.last_update_time = current_time
        if metrics:
            health.metrics.update(metrics)
        if status in (HealthStatus.UNHEALTHY, HealthStatus.FAILED):
            logger.info("Node %s reported %s", node_id, status.value)

    def get_node_health_status(self, node_id) -> Optional[HealthStatus]:
        health = self.node_health.get(str(node_id))
        return health.status if health else None

    # ------------------------------------------------------------------
    # checkpoints / replicas
    # ------------------------------------------------------------------
    def register_task(self, task: Task) -> bool:
        """Apply the configured protection level to a task"""
        if self.level == FaultToleranceLevel.NONE:
            return True
        if self.level == FaultToleranceLevel.CHECKPOINTING:
            self.checkpoints.setdefault(task.task_id, [])
            return True
        self.replicas[task.task_id].append(f"replica-{next(self._ids)}")
        return True

    def create_checkpoint(self, task_id: str, data: Optional[Dict[str, Any]] = None,
                          current_time: float = 0.0) -> str:
        checkpoint_id = f"ckpt-{next(self._ids)}"
        self.checkpoints[task_id].append(
            TaskCheckpoint(checkpoint_id, task_id, dict(data or {}), current_time)
        )
        return checkpoint_id

    def create_task_checkpoint(self, task: Optional[Task], current_time: float = 0.0) -> bool:
        if task is None or self.level == FaultToleranceLevel.NONE:
            return False
        self.create_checkpoint(task.task_id, {
            'status': task.status.name,
            'execution_location': task.execution_location.value if task.execution_location else None,
        }, current_time)
        return True

    def checkpoint_queued_tasks(self, tasks: Iterable[Task], current_time: float = 0.0) -> int:
        """Periodic checkpoint of every task still waiting in a queue"""
        return sum(1 for task in tasks if self.create_task_checkpoint(task, current_time))

    def has_checkpoint(self, task_id: str) -> bool:
        return bool(self.checkpoints.get(task_id))

    def get_latest_checkpoint(self, task_id: str) -> Optional[TaskCheckpoint]:
        checkpoints = self.checkpoints.get(task_id)
        return checkpoints[-1] if checkpoints else None

    def release_task(self, task_id: str) -> bool:
        """Drop the checkpoints and replicas of a finished task

        Tasks waiting for their node to recover keep their checkpoints until
        recover_tasks hands them back.
        """
        if any(task_id in pending for pending in self._recoverable.values()):
            return False
        released = task_id in self.checkpoints or task_id in self.replicas
        self.checkpoints.pop(task_id, None)
        self.replicas.pop(task_id, None)
        return released

    @property
    def tracked_tasks(self) -> int:
        return len(set(self.checkpoints) | set(self.replicas))

    # ------------------------------------------------------------------
    # failure / recovery
    # ------------------------------------------------------------------
    def handle_node_failure(self, node_id, queued_tasks: Iterable[Task],
                            current_time: float = 0.0) -> List[Task]:
        """Fail every queued task; remember the checkpoint-backed ones"""
        node_id = str(node_id)
        self.update_node_health(node_id, HealthStatus.FAILED, current_time=current_time)
        failed = []
        for task in queued_tasks:
            if task.status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
                continue
            task.mark_failed()
            failed.append(task)
            if self.has_checkpoint(task.task_id):
                self._recoverable[node_id].append(task.task_id)
            else:
                self.checkpoints.pop(task.task_id, None)
        logger.info("Node %s failed with %d queued tasks (%d checkpointed)",
                    node_id, len(failed), len(self._recoverable[node_id]))
        return failed

    def recover_tasks(self, node_id, current_time: float = 0.0) -> List[TaskCheckpoint]:
        """Mark the node healthy and release the checkpoints of its failed tasks"""
        node_id = str(node_id)
        self.update_node_health(node_id, HealthStatus.HEALTHY, current_time=current_time)
        task_ids = self._recoverable.pop(node_id, [])
        restored = [self.get_latest_checkpoint(task_id) for task_id in task_ids]
        restored = [cp for cp in restored if cp is not None]
        for task_id in task_ids:
            self.checkpoints.pop(task_id, None)
            self.replicas.pop(task_id, None)
        logger.info("Node %s recovered, %d task checkpoints restored", node_id, len(restored))
        return restored
