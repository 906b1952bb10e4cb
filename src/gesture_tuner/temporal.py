"""Debounce, hold and cooldown logic on top of per-frame classification.

A gesture is confirmed only after the same hypothesis repeats for
`required_hold_frames` consecutive frames. Any interruption restarts the
count from zero, trading missed gestures for fewer false triggers. After a
confirmation no frame is classified until the cooldown has elapsed.
"""

from __future__ import annotations

import logging
from typing import Optional

from gesture_tuner.classifier import GestureClassifier
from gesture_tuner.gestures import NUM_GESTURES, GestureEvent, GestureKind
from gesture_tuner.landmarks import LandmarkFrame

logger = logging.getLogger("gesture_tuner.temporal")


class TemporalConfirmation:
    """Turns a stream of per-frame hypotheses into confirmed GestureEvents.

    Not thread-safe: call `process` from a single serialized context.
    """

    def __init__(self, classifier: Optional[GestureClassifier] = None):
        self.classifier = classifier or GestureClassifier()
        self._counters: list[int] = [0] * NUM_GESTURES
        self._cooldown_until: Optional[float] = None

    def process(
        self, frame: Optional[LandmarkFrame], now: float
    ) -> Optional[GestureEvent]:
        """Feed one frame (None = no hand). Returns an event when confirmed."""
        if self.in_cooldown(now):
            return None

        if frame is None:
            self._reset_counters()
            self.classifier.trajectory.clear()
            return None

        gesture = self.classifier.classify(frame, now)
        if gesture is None:
            self._reset_counters()
            return None

        held = self._hold(gesture)
        profile = self.classifier.profile
        logger.debug(
            "Detected %s - hold frames: %d/%d",
            gesture.value, held, profile.required_hold_frames,
        )

        if held < profile.required_hold_frames:
            return None

        self._reset_counters()
        self._cooldown_until = now + profile.gesture_cooldown
        if gesture.is_swipe:
            self.classifier.trajectory.clear()

        logger.info("Gesture confirmed: %s", gesture.display_name)
        return GestureEvent(gesture=gesture, timestamp=now, hold_frames=held)

    def _hold(self, gesture: GestureKind) -> int:
        idx = gesture.ordinal
        for i in range(NUM_GESTURES):
            if i != idx:
                self._counters[i] = 0
        self._counters[idx] += 1
        return self._counters[idx]

    def _reset_counters(self):
        for i in range(NUM_GESTURES):
            self._counters[i] = 0

    def in_cooldown(self, now: float) -> bool:
        return self._cooldown_until is not None and now < self._cooldown_until

    def hold_count(self, gesture: GestureKind) -> int:
        return self._counters[gesture.ordinal]

    @property
    def hold_counts(self) -> dict[GestureKind, int]:
        return {kind: self._counters[kind.ordinal] for kind in GestureKind}

    @property
    def cooldown_until(self) -> Optional[float]:
        return self._cooldown_until

    def reset(self):
        """Clear counters, cooldown and trajectory (session boundary)."""
        self._reset_counters()
        self._cooldown_until = None
        self.classifier.trajectory.clear()
