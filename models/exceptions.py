"""
Exception hierarchy for the simulator

Runtime conditions (integrity failures, energy exhaustion, migration
failures, node outages) are reported through task status and counters.
These exceptions are reserved for misuse of the API.
"""


class EdgeSimError(Exception):
    """Base class for simulator errors"""


class TaskStateError(EdgeSimError):
    """Illegal task lifecycle transition"""

    def __init__(self, task_id: str, current, requested):
        self.task_id = task_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Task {task_id}: cannot move from {getattr(current, 'name', current)} "
            f"to {getattr(requested, 'name', requested)}"
        )


class UnknownNodeError(EdgeSimError, KeyError):
    """Lookup of a node id that was never created"""

    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"Unknown node: {node_id}")

    def __str__(self):
        return self.args[0]
