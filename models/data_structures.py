"""
Core data structures of the offloading simulator
Tasks, placement labels, locations and the simulation area
"""
import base64
import hashlib
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .exceptions import TaskStateError


class TaskStatus(Enum):
    """Task lifecycle states, ordered by progression"""
    CREATED = 0
    QUEUED = 1
    RUNNING = 2
    COMPLETED = 3
    FAILED = 4


_TERMINAL_STATES = {TaskStatus.COMPLETED, TaskStatus.FAILED}


class ExecutionLocation(Enum):
    """Placement label produced by the offloading decision"""
    LOCAL_EDGE = "LOCAL_EDGE"
    OTHER_EDGE = "OTHER_EDGE"
    CLOUD = "CLOUD"


class NodeType(Enum):
    """Resource node kind"""
    EDGE = "edge"
    CLOUD = "cloud"


@dataclass(frozen=True)
class Location:
    """Point on the simulation plane (metres)"""
    x: float = 0.0
    y: float = 0.0

    def distance_to(self, other: 'Location') -> float:
        """Euclidean distance"""
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class SimulationArea:
    """Rectangular area [0, width] x [0, height] devices move in"""
    width: float = 500.0
    height: float = 500.0

    def clamp(self, x: float, y: float) -> Location:
        """Project a point back into the area"""
        return Location(max(0.0, min(x, self.width)), max(0.0, min(y, self.height)))

    def contains(self, location: Location) -> bool:
        return 0.0 <= location.x <= self.width and 0.0 <= location.y <= self.height


@dataclass
class AppProfile:
    """Nominal demand of an application type"""
    cpu_demand: float           # million instructions
    network_demand: float       # KB
    delay_sensitivity: float    # 0-1


DEFAULT_APP_PROFILES = (
    AppProfile(3000.0, 1500.0, 0.9),    # light CPU, light network, delay critical
    AppProfile(6000.0, 2500.0, 0.7),
    AppProfile(10000.0, 3500.0, 0.5),
    AppProfile(15000.0, 5000.0, 0.1),   # heavy CPU, heavy network, delay tolerant
)


@dataclass
class Task:
    """
    Offloadable unit of work

    Times are virtual milliseconds. Status only moves forward:
    CREATED -> QUEUED -> RUNNING -> COMPLETED, with FAILED reachable
    from any non-terminal state.
    """
    task_id: str
    source_device_id: int
    cpu_demand: float                       # million instructions
    network_demand: float                   # KB
    delay_sensitivity: float                # 0-1
    creation_time: float = 0.0

    start_time: Optional[float] = None
    completion_time: Optional[float] = None
    status: TaskStatus = TaskStatus.CREATED
    execution_location: Optional[ExecutionLocation] = None

    # security
    security_token: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    integrity_hash: Optional[str] = None

    @property
    def network_demand_bytes(self) -> int:
        return int(self.network_demand * 1024)

    @property
    def security_level(self) -> str:
        return str(self.metadata.get('security_level', 'standard'))

    @property
    def is_high_security(self) -> bool:
        return self.security_level.lower() == 'high'

    @property
    def actual_service_time(self) -> float:
        """Elapsed time from creation to completion (0 until completed)"""
        if self.completion_time is None:
            return 0.0
        return self.completion_time - self.creation_time

    def has_security_metadata(self) -> bool:
        """Carries a token or integrity seal that must be verified before execution"""
        return self.security_token is not None or self.integrity_hash is not None

    def add_metadata(self, key: str, value: Any):
        self.metadata[key] = value

    def compute_integrity_hash(self) -> str:
        """Base64 SHA-256 over identity, demand and token"""
        payload = "|".join([
            self.task_id,
            str(self.source_device_id),
            f"{self.cpu_demand:.6f}",
            f"{self.network_demand:.6f}",
            f"{self.delay_sensitivity:.6f}",
            self.security_token or "",
        ])
        digest = hashlib.sha256(payload.encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify_integrity(self) -> bool:
        """True when sealed, untampered and the token names the source device"""
        if self.integrity_hash is None:
            return False
        if self.security_token is not None and not self.security_token.endswith(f"-{self.source_device_id}"):
            return False
        return self.integrity_hash == self.compute_integrity_hash()

    @staticmethod
    def calculate_execution_time(cpu_demand: float, mips: float) -> float:
        """Linear execution time in ms: cpu_demand / mips * 1000"""
        return cpu_demand / mips * 1000.0

    def _advance(self, new_status: TaskStatus):
        if self.status in _TERMINAL_STATES or new_status.value <= self.status.value:
            raise TaskStateError(self.task_id, self.status, new_status)
        self.status = new_status

    def mark_queued(self):
        if self.execution_location is None:
            raise TaskStateError(self.task_id, self.status, TaskStatus.QUEUED)
        self._advance(TaskStatus.QUEUED)

    def mark_started(self, current_time: float):
        self._advance(TaskStatus.RUNNING)
        self.start_time = max(current_time, self.creation_time)

    def mark_completed(self, execution_time_ms: float):
        self._advance(TaskStatus.COMPLETED)
        self.completion_time = self.start_time + execution_time_ms

    def mark_failed(self):
        self._advance(TaskStatus.FAILED)
