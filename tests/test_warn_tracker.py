from __future__ import annotations

from core.config import WarnMark
from core.warn_tracker import WarnTracker

from fakes import MemoryStore


def test_first_warning_creates_mark() -> None:
    store = MemoryStore()
    tracker = WarnTracker(store, clock=lambda: 500)

    outcome = tracker.register("g", "u", window_seconds=600, max_count=3)

    assert outcome.count == 1
    assert not outcome.escalate
    assert store.get_warn_mark("g", "u") == WarnMark(first_ts=500, count=1)


def test_escalation_deletes_mark() -> None:
    store = MemoryStore()
    store.put_warn_mark("g", "u", WarnMark(first_ts=100, count=3))
    tracker = WarnTracker(store, clock=lambda: 200)

    outcome = tracker.register("g", "u", window_seconds=600, max_count=3)

    assert outcome.escalate
    assert outcome.count == 4
    assert store.get_warn_mark("g", "u") is None


def test_expired_window_behaves_like_no_record() -> None:
    store = MemoryStore()
    store.put_warn_mark("g", "u", WarnMark(first_ts=100, count=3))
    tracker = WarnTracker(store, clock=lambda: 100 + 601)

    outcome = tracker.register("g", "u", window_seconds=600, max_count=3)

    assert outcome.count == 1
    assert not outcome.escalate
    assert store.get_warn_mark("g", "u") == WarnMark(first_ts=701, count=1)


def test_window_boundary_is_inclusive() -> None:
    store = MemoryStore()
    store.put_warn_mark("g", "u", WarnMark(first_ts=100, count=1))
    tracker = WarnTracker(store, clock=lambda: 700)

    outcome = tracker.register("g", "u", window_seconds=600, max_count=3)

    assert outcome.count == 2


def test_marks_are_per_group_and_user() -> None:
    store = MemoryStore()
    tracker = WarnTracker(store, clock=lambda: 0)

    tracker.register("g1", "u", window_seconds=600, max_count=3)
    tracker.register("g2", "u", window_seconds=600, max_count=3)
    tracker.clear("g1", "u")

    assert store.get_warn_mark("g1", "u") is None
    assert store.get_warn_mark("g2", "u").count == 1
