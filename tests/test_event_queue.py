#!/usr/bin/env python3
"""
Virtual-time event queue tests
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import pytest

from core.event_queue import EventQueue

fired = []


def record(item):
    fired.append(item)


def test_events_fire_in_tick_then_schedule_order():
    queue = EventQueue()
    fired.clear()
    queue.schedule(3, "late", record, item="late")
    queue.schedule(1, "first", record, item="first")
    queue.schedule(1, "second", record, item="second")

    assert queue.run_due(0) == 0
    assert queue.run_due(1) == 2
    assert fired == ["first", "second"]
    assert queue.run_due(5) == 1
    assert fired == ["first", "second", "late"]
    assert not queue


def test_cancelled_event_is_skipped():
    queue = EventQueue()
    fired.clear()
    keep = queue.schedule(2, "keep", record, item=1)
    drop = queue.schedule(2, "drop", record, item=2)
    queue.cancel(drop)
    queue.cancel(drop)

    assert len(queue) == 1
    assert queue.peek_tick() == 2
    queue.run_due(2)
    assert fired == [1]
    assert queue.stats['total_cancelled'] == 1
    assert queue.stats['total_fired'] == 1
    assert not keep.cancelled


def test_negative_tick_rejected():
    queue = EventQueue()
    with pytest.raises(ValueError):
        queue.schedule(-1, "bad", print)
    assert queue.peek_tick() is None


def test_pop_due_returns_without_firing():
    queue = EventQueue()
    fired.clear()
    queue.schedule(0, "a", record, item="a")
    due = queue.pop_due(0)
    assert [e.name for e in due] == ["a"]
    assert fired == []
    due[0].fire()
    assert fired == ["a"]


def test_payload_may_reuse_schedule_argument_names():
    queue = EventQueue()
    seen = []

    def capture(tick, name):
        seen.append((tick, name))

    queue.schedule(2, "recovery", capture, tick=7, name="edge_0")
    assert queue.run_due(2) == 1
    assert seen == [(7, "edge_0")]
