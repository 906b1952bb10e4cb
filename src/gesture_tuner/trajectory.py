"""Sliding, time-windowed wrist trajectory used for swipe detection.

Usage:
    history = TrajectoryHistory(window_seconds=0.7)
    # In frame loop:
    history.add(wrist.x, wrist.y, timestamp=now)
    if len(history) >= 6:
        dx = history.horizontal_displacement()
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class TrajectoryPoint:
    x: float
    y: float
    timestamp: float


class TrajectoryHistory:
    """Time-ordered buffer of wrist positions.

    Every `add` evicts entries whose age is no longer strictly below the
    window, so the buffer only ever holds live points.
    """

    def __init__(self, window_seconds: float = 0.7):
        self.window_seconds = window_seconds
        self._points: deque[TrajectoryPoint] = deque()

    def add(self, x: float, y: float, timestamp: float):
        """Append a position and evict anything outside the window."""
        self._points.append(TrajectoryPoint(x, y, timestamp))
        self._evict(timestamp)

    def _evict(self, now: float):
        while self._points and (now - self._points[0].timestamp) >= self.window_seconds:
            self._points.popleft()

    def clear(self):
        self._points.clear()

    @property
    def first(self) -> Optional[TrajectoryPoint]:
        return self._points[0] if self._points else None

    @property
    def last(self) -> Optional[TrajectoryPoint]:
        return self._points[-1] if self._points else None

    def recent(self, count: int) -> list[TrajectoryPoint]:
        """The newest `count` points, oldest first."""
        if count <= 0:
            return []
        return list(self._points)[-count:]

    def horizontal_displacement(self) -> float:
        """Signed x travel from the oldest to the newest point."""
        if len(self._points) < 2:
            return 0.0
        return self._points[-1].x - self._points[0].x

    def vertical_displacement(self) -> float:
        """Absolute y travel from the oldest to the newest point."""
        if len(self._points) < 2:
            return 0.0
        return abs(self._points[-1].y - self._points[0].y)

    @property
    def duration(self) -> float:
        if len(self._points) < 2:
            return 0.0
        return self._points[-1].timestamp - self._points[0].timestamp

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TrajectoryPoint]:
        return iter(self._points)
