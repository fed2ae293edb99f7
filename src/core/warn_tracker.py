"""Sliding-window warning counter (core domain).

Only the window start and the count are retained per (group, user), so no
history older than the current window can be recovered.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from core.config import WarnMark
from core.ports import StatePort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WarnOutcome:
    count: int
    escalate: bool


class WarnTracker:
    """Decides whether a warning stays a warning or escalates to removal."""

    def __init__(self, state: StatePort, clock: Callable[[], float] = time.time) -> None:
        self._state = state
        self._clock = clock

    def register(self, group_id: str, user_id: str, window_seconds: int, max_count: int) -> WarnOutcome:
        """Record one warning and report whether the threshold was exceeded.

        An expired window behaves exactly like a missing record. On
        escalation the mark is deleted so a rejoining user starts fresh.
        """

        now = int(self._clock())
        mark = self._state.get_warn_mark(group_id, user_id) or WarnMark(first_ts=now, count=0)
        if now - mark.first_ts > window_seconds:
            mark = WarnMark(first_ts=now, count=0)
        mark.count += 1

        if mark.count > max_count:
            self._state.delete_warn_mark(group_id, user_id)
            LOGGER.info("Warn threshold exceeded for %s in %s (%s)", user_id, group_id, mark.count)
            return WarnOutcome(count=mark.count, escalate=True)

        self._state.put_warn_mark(group_id, user_id, mark)
        LOGGER.info("Warned %s in %s (%s/%s)", user_id, group_id, mark.count, max_count)
        return WarnOutcome(count=mark.count, escalate=False)

    def clear(self, group_id: str, user_id: str) -> None:
        self._state.delete_warn_mark(group_id, user_id)
