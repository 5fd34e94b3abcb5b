"""Service migration manager module.

Tracks migration sessions between edge nodes. A session starts in PREPARING;
the preparation and transfer phases are scheduled on the virtual-time event
queue, so a session reaches TRANSFERRING and then COMPLETED after a fixed
number of ticks without any real concurrency."""
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


class MigrationPolicy(Enum):
    """How service state is moved."""
    COLD = "cold"    # stop on source, transfer, start on target
    WARM = "warm"    # prepare target, brief pause for final state
    LIVE = "live"    # continuous state transfer, no interruption


class MigrationState(Enum):
    """Migration session state."""
    PREPARING = "preparing"
    TRANSFERRING = "transferring"
    ACTIVATING = "activating"
    DEACTIVATING = "deactivating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


_FINAL_STATES = {MigrationState.COMPLETED, MigrationState.FAILED, MigrationState.CANCELED}


@dataclass
class MigrationSession:
    """Migration session data structure."""
    session_id: str
    service_id: str
    source_node_id: str
    target_node_id: str
    policy: MigrationPolicy = MigrationPolicy.LIVE
    state: MigrationState = MigrationState.PREPARING
    start_tick: int = 0
    last_update_tick: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.state in _FINAL_STATES

    @property
    def duration_ticks(self) -> int:
        return self.last_update_tick - self.start_tick


class ServiceMigrationManager:
    """Service migration manager."""

    def __init__(self, service_registry=None, event_queue=None,
                 tick_duration_ms: float = 1000.0,
                 preparation_time_ms: float = 500.0, transfer_time_ms: float = 1000.0,
                 rng: Optional[np.random.Generator] = None):
        self.logger = logging.getLogger(__name__)
        self.service_registry = service_registry
        self.event_queue = event_queue
        self.rng = rng

        self.preparation_ticks = self._ticks_for(preparation_time_ms, tick_duration_ms)
        self.transfer_ticks = self._ticks_for(transfer_time_ms, tick_duration_ms)

        self.sessions: Dict[str, MigrationSession] = {}
        self.migration_stats = {
            'total_attempts': 0,
            'handshakes_accepted': 0,
            'handshakes_rejected': 0,
            'completed': 0,
            'failed': 0,
            'canceled': 0,
        }

    @staticmethod
    def _ticks_for(duration_ms: float, tick_duration_ms: float) -> int:
        return max(1, int(-(-duration_ms // tick_duration_ms)))

    def _new_session_id(self) -> str:
        if self.rng is None:
            return str(uuid.uuid4())
        return str(uuid.UUID(bytes=self.rng.bytes(16), version=4))

    # ------------------------------------------------------------------
    # handshake
    # ------------------------------------------------------------------
    def start_migration(self, source_node, target_node, service_type: str, task_id: str,
                        current_tick: int = 0,
                        policy: MigrationPolicy = MigrationPolicy.LIVE) -> Optional[str]:
        """Open a session for moving a task's service to target_node.

        The handshake is rejected (None) when there is no target, the target
        is the source, or the target is unhealthy.

        Returns:
            Session id, or None when the handshake was rejected.
        """
        self.migration_stats['total_attempts'] += 1
        if target_node is None or not getattr(target_node, 'is_healthy', True):
            self.migration_stats['handshakes_rejected'] += 1
            self.logger.info("Migration of task %s rejected: target unavailable", task_id)
            return None
        if source_node is not None and source_node.node_id == target_node.node_id:
            self.migration_stats['handshakes_rejected'] += 1
            self.logger.info("Migration of task %s rejected: target is the source", task_id)
            return None

        source_id = source_node.node_id if source_node is not None else None
        session = self._open_session(f"{service_type}-{task_id}", source_id,
                                     target_node.node_id, policy, current_tick)
        self.migration_stats['handshakes_accepted'] += 1
        return session.session_id

    def migrate_service(self, service_id: str, source_node, target_node,
                        policy: MigrationPolicy = MigrationPolicy.LIVE,
                        current_tick: int = 0) -> str:
        """Move a registered service between nodes.

        Raises:
            ValueError: the service is not registered on the source node.
        """
        registration = self.service_registry.get_service(service_id) if self.service_registry else None
        if registration is None or registration.provider_id != str(source_node.node_id):
            raise ValueError(f"Service {service_id} not found on source node {source_node.node_id}")
        self.migration_stats['total_attempts'] += 1
        self.migration_stats['handshakes_accepted'] += 1
        session = self._open_session(service_id, source_node.node_id, target_node.node_id,
                                     policy, current_tick)
        return session.session_id

    def _open_session(self, service_id, source_id, target_id, policy, current_tick):
        session = MigrationSession(
            session_id=self._new_session_id(),
            service_id=service_id,
            source_node_id=source_id,
            target_node_id=target_id,
            policy=policy,
            start_tick=current_tick,
            last_update_tick=current_tick,
        )
        self.sessions[session.session_id] = session

        if self.event_queue is not None:
            transfer_tick = current_tick + self.preparation_ticks
            self.event_queue.schedule(
                transfer_tick, "migration_transfer", self.update_migration_state,
                session_id=session.session_id, new_state=MigrationState.TRANSFERRING,
                current_tick=transfer_tick,
            )
            complete_tick = transfer_tick + self.transfer_ticks
            self.event_queue.schedule(
                complete_tick, "migration_complete", self.update_migration_state,
                session_id=session.session_id, new_state=MigrationState.COMPLETED,
                current_tick=complete_tick,
            )
        self.logger.debug("Migration %s: %s -> %s (%s)", session.session_id,
                          source_id, target_id, policy.value)
        return session

    # ------------------------------------------------------------------
    # state transitions
    # ------------------------------------------------------------------
    def update_migration_state(self, session_id: str, new_state: MigrationState,
                               metadata: Optional[Dict[str, Any]] = None,
                               current_tick: Optional[int] = None) -> bool:
        """Move a session to new_state; finished sessions are left untouched."""
        session = self.sessions.get(session_id)
        if session is None or session.is_finished:
            return False

        session.state = new_state
        if current_tick is not None:
            session.last_update_tick = current_tick
        if metadata:
            session.metadata.update(metadata)

        if new_state == MigrationState.COMPLETED:
            self.migration_stats['completed'] += 1
            self._move_registration(session)
        elif new_state == MigrationState.FAILED:
            self.migration_stats['failed'] += 1
        return True

    def _move_registration(self, session: MigrationSession):
        if self.service_registry is None:
            return
        registration = self.service_registry.get_service(session.service_id)
        if registration is None or registration.provider_id != str(session.source_node_id):
            return
        self.service_registry.unregister_service(registration.service_id)
        self.service_registry.register_service(
            registration.service_id, registration.service_name, registration.service_type,
            session.target_node_id, registration.metadata, session.last_update_tick,
        )
        self.logger.info("Service %s now provided by %s", registration.service_id,
                         session.target_node_id)

    def cancel_migration(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None or session.is_finished:
            return False
        session.state = MigrationState.CANCELED
        self.migration_stats['canceled'] += 1
        return True

    def get_migration_state(self, session_id: str) -> Optional[MigrationState]:
        session = self.sessions.get(session_id)
        return session.state if session else None

    def get_migration_session(self, session_id: str) -> Optional[MigrationSession]:
        return self.sessions.get(session_id)

    @property
    def active_sessions(self) -> int:
        return sum(1 for s in self.sessions.values() if not s.is_finished)
