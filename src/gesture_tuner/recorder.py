"""Landmark recording and replay: capture frame sequences to disk.

Record real sessions for:
- Reproducible testing without a camera
- Offline calibration from labelled recordings
- Replaying a session against different threshold profiles
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from gesture_tuner.calibration import CalibrationSample
from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import LandmarkFrame

FORMAT_VERSION = 1


@dataclass(frozen=True)
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    frame: Optional[LandmarkFrame]  # None = no hand in view
    label: Optional[GestureKind] = None

    def to_sample(self) -> Optional[CalibrationSample]:
        """A calibration sample for labelled frames with a hand, else None."""
        if self.frame is None or self.label is None:
            return None
        return CalibrationSample(
            gesture=self.label,
            timestamp=self.timestamp,
            frame=self.frame,
            confidence=self.frame.confidence,
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "frame": self.frame.to_dict() if self.frame is not None else None,
            "label": self.label.value if self.label is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RecordedFrame:
        frame = data.get("frame")
        label = data.get("label")
        return cls(
            timestamp=float(data["timestamp"]),
            frame=LandmarkFrame.from_dict(frame) if frame is not None else None,
            label=GestureKind.parse(label) if label else None,
        )


class GestureRecorder:
    """Records landmark frames to a file.

    Usage:
        recorder = GestureRecorder()
        recorder.start(label=GestureKind.PINCH)
        # In your frame loop:
        recorder.add_frame(frame)
        # When done:
        recorder.save("pinch.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False
        self.label: Optional[GestureKind] = None

    def start(self, label: Optional[GestureKind] = None):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True
        self.label = label

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> list[RecordedFrame]:
        return list(self._frames)

    @property
    def duration(self) -> float:
        """Duration of recording in seconds."""
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(
        self,
        frame: Optional[LandmarkFrame],
        timestamp: Optional[float] = None,
        label: Optional[GestureKind] = None,
    ):
        """Add a frame (None = no hand).

        Args:
            frame: The landmark frame, or None when no hand was detected.
            timestamp: Seconds from start; defaults to the elapsed wall time.
            label: Overrides the recorder's current label for this frame.
        """
        if not self._recording:
            return

        if timestamp is None:
            timestamp = time.monotonic() - self._start_time

        self._frames.append(RecordedFrame(
            timestamp=timestamp,
            frame=frame,
            label=label or self.label,
        ))

    def save(self, path: str | Path):
        """Save recording to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [f.to_dict() for f in self._frames],
        }

        with open(path, "w") as f:
            json.dump(data, f)


class GesturePlayer:
    """Replays a recorded session.

    Usage:
        player = GesturePlayer.load("session.json")
        for recorded in player.play():
            pipeline.process(recorded.frame, recorded.timestamp)

        # Or replay at original speed:
        for recorded in player.play_realtime():
            ...
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> GesturePlayer:
        """Load recording from JSON file."""
        with open(Path(path)) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported recording version: {version}")

        return cls([RecordedFrame.from_dict(f) for f in data["frames"]])

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    @property
    def labels(self) -> set[GestureKind]:
        return {f.label for f in self._frames if f.label is not None}

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor).

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        if not self._frames:
            return

        start = time.monotonic()

        for frame in self.play():
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def samples(self) -> Iterator[CalibrationSample]:
        """Calibration samples from every labelled frame with a hand."""
        for recorded in self._frames:
            sample = recorded.to_sample()
            if sample is not None:
                yield sample

    def get_frame(self, index: int) -> Optional[RecordedFrame]:
        """Get a specific frame by index."""
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return None
