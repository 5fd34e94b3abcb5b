"""
Core module
Virtual-time event queue and the simulation backend interface
"""

from .event_queue import EventQueue, ScheduledEvent
from .backend import SimulationBackend, LocalBackend, EdgeNodeSpec, CloudNodeSpec

__all__ = [
    'EventQueue', 'ScheduledEvent',
    'SimulationBackend', 'LocalBackend', 'EdgeNodeSpec', 'CloudNodeSpec',
]
