"""Calibration samples and the per-gesture sessions that collect them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import REQUIRED_JOINTS, JointName, JointPoint, LandmarkFrame


@dataclass(frozen=True)
class CalibrationSample:
    """A single hand pose captured while calibrating one gesture."""
    gesture: GestureKind
    timestamp: float
    frame: LandmarkFrame
    confidence: float

    def point(self, joint: JointName) -> Optional[JointPoint]:
        return self.frame.get(joint)

    @property
    def has_required_joints(self) -> bool:
        """Wrist and all five fingertips are present."""
        return self.frame.has_joints(REQUIRED_JOINTS)

    def to_dict(self) -> dict:
        return {
            "gesture": self.gesture.value,
            "timestamp": self.timestamp,
            "confidence": self.confidence,
            "frame": self.frame.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CalibrationSample:
        return cls(
            gesture=GestureKind(data["gesture"]),
            timestamp=float(data["timestamp"]),
            frame=LandmarkFrame.from_dict(data["frame"]),
            confidence=float(data["confidence"]),
        )


@dataclass(frozen=True)
class SessionSummary:
    """Storage-friendly digest of a session (no landmark data)."""
    gesture: GestureKind
    sample_count: int
    average_confidence: float

    def to_dict(self) -> dict:
        return {
            "gesture": self.gesture.value,
            "sample_count": self.sample_count,
            "average_confidence": self.average_confidence,
        }


class CalibrationSession:
    """Collects accepted samples for one gesture.

    A sample is accepted only if it is for this gesture, meets the minimum
    confidence, carries wrist + fingertips, and the session is not yet full.
    Acceptance order is preserved.
    """

    def __init__(
        self,
        gesture: GestureKind,
        required_samples: int = 10,
        minimum_confidence: float = 0.5,
    ):
        if required_samples < 1:
            raise ValueError("required_samples must be at least 1")
        self.gesture = gesture
        self.required_samples = required_samples
        self.minimum_confidence = minimum_confidence
        self._samples: list[CalibrationSample] = []

    def add_sample(self, sample: CalibrationSample) -> bool:
        """Append the sample if it passes the quality gates. Returns True if added."""
        if sample.gesture != self.gesture:
            return False
        if sample.confidence < self.minimum_confidence:
            return False
        if not sample.has_required_joints:
            return False
        if len(self._samples) >= self.required_samples:
            return False

        self._samples.append(sample)
        return True

    def remove_last_sample(self) -> Optional[CalibrationSample]:
        """Drop the most recent sample (operator correction)."""
        if not self._samples:
            return None
        return self._samples.pop()

    def reset(self):
        self._samples.clear()

    @property
    def samples(self) -> list[CalibrationSample]:
        return list(self._samples)

    @property
    def is_complete(self) -> bool:
        return len(self._samples) >= self.required_samples

    @property
    def progress(self) -> float:
        return min(1.0, len(self._samples) / self.required_samples)

    def summary(self) -> SessionSummary:
        n = len(self._samples)
        avg = sum(s.confidence for s in self._samples) / n if n else 0.0
        return SessionSummary(
            gesture=self.gesture, sample_count=n, average_confidence=avg,
        )

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[CalibrationSample]:
        return iter(list(self._samples))

    def __repr__(self) -> str:
        return (
            f"CalibrationSession({self.gesture.value}, "
            f"{len(self._samples)}/{self.required_samples})"
        )
