#!/usr/bin/env python3
"""
Run statistics
Per-tick series, a windowed service-time mean and the run-wide counters
"""

from collections import Counter, defaultdict, deque
from typing import Dict, List

import numpy as np


class SeriesRecorder:
    """One float series per statistics field, appended once per collected tick"""

    def __init__(self):
        self._series: Dict[str, List[float]] = defaultdict(list)

    def record(self, values: Dict[str, float]):
        for name, value in values.items():
            self._series[name].append(float(value))

    def series(self, name: str) -> np.ndarray:
        return np.asarray(self._series.get(name, []), dtype=float)

    def summary(self) -> Dict[str, Dict[str, float]]:
        """mean/std/min/max/last per series; empty series are left out"""
        out = {}
        for name in self._series:
            values = self.series(name)
            if values.size == 0:
                continue
            out[name] = {
                'mean': float(values.mean()),
                'std': float(values.std()) if values.size > 1 else 0.0,
                'min': float(values.min()),
                'max': float(values.max()),
                'last': float(values[-1]),
                'samples': int(values.size),
            }
        return out

    def clear(self):
        self._series.clear()


class WindowedMean:
    """Mean of the last `window` samples"""

    def __init__(self, window: int = 1000):
        self._samples = deque(maxlen=window)

    def add(self, value: float):
        self._samples.append(value)

    @property
    def value(self) -> float:
        return float(np.mean(self._samples)) if self._samples else 0.0

    def clear(self):
        self._samples.clear()


class StatisticsAggregator:
    """
    Owner of the run-wide counters

    Counters only change through the record_* methods; readers get copies.
    """

    COUNTERS = (
        'tasks_generated',
        'tasks_routed',
        'successful_migrations',
        'failed_migrations',
        'security_incidents',
        'recovered_tasks',
        'energy_aborted_tasks',
        'node_failures',
        'node_recoveries',
    )

    def __init__(self, service_time_window: int = 1000):
        self._counters: Dict[str, int] = dict.fromkeys(self.COUNTERS, 0)
        self._tasks_per_protocol: Counter = Counter()
        self._service_time = WindowedMean(service_time_window)

    def _bump(self, name: str, amount: int = 1):
        self._counters[name] += amount

    def record_task_generated(self, protocol_name: str = None):
        self._bump('tasks_generated')
        if protocol_name:
            self._tasks_per_protocol[protocol_name] += 1

    def record_task_routed(self):
        self._bump('tasks_routed')

    def record_migration(self, success: bool):
        self._bump('successful_migrations' if success else 'failed_migrations')

    def record_security_incident(self):
        self._bump('security_incidents')

    def record_recovered_tasks(self, count: int):
        if count > 0:
            self._bump('recovered_tasks', count)

    def record_energy_abort(self):
        self._bump('energy_aborted_tasks')

    def record_node_failure(self):
        self._bump('node_failures')

    def record_node_recovery(self):
        self._bump('node_recoveries')

    def record_service_time(self, service_time_ms: float):
        self._service_time.add(service_time_ms)

    @property
    def recent_service_time_ms(self) -> float:
        return self._service_time.value

    def get(self, name: str) -> int:
        return self._counters[name]

    @property
    def tasks_per_protocol(self) -> Dict[str, int]:
        return dict(self._tasks_per_protocol)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counters)

    def reset(self):
        self._counters = dict.fromkeys(self.COUNTERS, 0)
        self._tasks_per_protocol.clear()
        self._service_time.clear()
