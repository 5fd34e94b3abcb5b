#!/usr/bin/env python3
"""
Run statistics and logging setup tests
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging

import pytest

from utils.logger import get_logger, setup_logging
from utils.metrics import SeriesRecorder, StatisticsAggregator, WindowedMean
from utils.unified_time_manager import UnifiedTimeManager


def test_series_summary():
    recorder = SeriesRecorder()
    recorder.record({'util': 10.0, 'latency': 5.0})
    recorder.record({'util': 30.0, 'latency': 5.0})
    summary = recorder.summary()
    assert summary['util']['mean'] == pytest.approx(20.0)
    assert summary['util']['std'] == pytest.approx(10.0)
    assert summary['util']['last'] == 30.0
    assert summary['latency']['samples'] == 2
    assert recorder.series('missing').size == 0


def test_windowed_mean_keeps_last_samples():
    mean = WindowedMean(window=2)
    assert mean.value == 0.0
    for value in (100.0, 10.0, 30.0):
        mean.add(value)
    assert mean.value == pytest.approx(20.0)


def test_aggregator_counters():
    stats = StatisticsAggregator()
    stats.record_task_generated("WiFi")
    stats.record_task_generated("WiFi")
    stats.record_migration(True)
    stats.record_migration(False)
    stats.record_recovered_tasks(0)
    stats.record_recovered_tasks(3)
    stats.record_service_time(40.0)

    snapshot = stats.snapshot()
    assert snapshot['tasks_generated'] == 2
    assert snapshot['successful_migrations'] == 1
    assert snapshot['failed_migrations'] == 1
    assert snapshot['recovered_tasks'] == 3
    assert stats.tasks_per_protocol == {"WiFi": 2}
    assert stats.recent_service_time_ms == 40.0

    snapshot['tasks_generated'] = 99
    assert stats.get('tasks_generated') == 2

    stats.reset()
    assert set(stats.snapshot().values()) == {0}
    assert stats.tasks_per_protocol == {}


def test_setup_logging_does_not_stack_handlers(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    setup_logging("DEBUG", str(log_file))
    log = setup_logging("INFO")
    root = logging.getLogger()
    ours = [h for h in root.handlers if getattr(h, '_edgesim_handler', False)]
    assert len(ours) == 1
    assert root.level == logging.INFO
    assert log is get_logger()
    assert log_file.exists()

    with pytest.raises(ValueError):
        setup_logging("LOUD")


def test_clock():
    clock = UnifiedTimeManager(500.0)
    clock.set_step(4)
    assert clock.get_simulation_time() == 2000.0
    assert clock.advance_step() == 5
    assert clock.ticks_for(1200.0) == 3
    assert clock.ticks_for(0.0) == 1
    with pytest.raises(ValueError):
        UnifiedTimeManager(0)
