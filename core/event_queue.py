"""
Virtual-time event queue

Delayed effects (node recovery, migration state transitions) are scheduled
at a future tick and applied by the tick loop when that tick is reached.
Events due at the same tick fire in scheduling order.
"""
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class ScheduledEvent:
    """Callback due at a tick"""
    tick: int
    sequence: int
    name: str
    action: Callable[..., Any] = field(repr=False)
    payload: Dict[str, Any] = field(default_factory=dict)
    cancelled: bool = False

    def __lt__(self, other):
        if self.tick != other.tick:
            return self.tick < other.tick
        return self.sequence < other.sequence

    def fire(self):
        return self.action(**self.payload)


class EventQueue:
    """Min-heap of ScheduledEvent ordered by (tick, sequence)"""

    def __init__(self):
        self._heap: List[ScheduledEvent] = []
        self._sequence = itertools.count()
        self.stats = {
            'total_scheduled': 0,
            'total_fired': 0,
            'total_cancelled': 0,
        }

    def schedule(self, tick: int, name: str, action: Callable[..., Any], /,
                 **payload) -> ScheduledEvent:
        """payload is passed to action as keyword arguments; any key is allowed"""
        if tick < 0:
            raise ValueError(f"cannot schedule event {name!r} at negative tick {tick}")
        event = ScheduledEvent(tick, next(self._sequence), name, action, payload)
        heapq.heappush(self._heap, event)
        self.stats['total_scheduled'] += 1
        logger.debug("Scheduled %s at tick %d", name, tick)
        return event

    def cancel(self, event: ScheduledEvent):
        """Lazy cancellation; the event is skipped when popped"""
        if not event.cancelled:
            event.cancelled = True
            self.stats['total_cancelled'] += 1

    def pop_due(self, current_tick: int) -> List[ScheduledEvent]:
        """Remove and return every live event with tick <= current_tick"""
        due = []
        while self._heap and self._heap[0].tick <= current_tick:
            event = heapq.heappop(self._heap)
            if not event.cancelled:
                due.append(event)
        return due

    def run_due(self, current_tick: int) -> int:
        """Fire every due event in order; returns the number fired"""
        fired = 0
        for event in self.pop_due(current_tick):
            event.fire()
            fired += 1
        self.stats['total_fired'] += fired
        return fired

    def peek_tick(self):
        live = [e.tick for e in self._heap if not e.cancelled]
        return min(live) if live else None

    def __len__(self):
        return sum(1 for e in self._heap if not e.cancelled)

    def __bool__(self):
        return len(self) > 0
