"""The fixed gesture vocabulary and the events emitted for it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class GestureKind(Enum):
    """The six recognized gestures."""

    OPEN_PALM = "open_palm"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    SWIPE_LEFT = "swipe_left"
    SWIPE_RIGHT = "swipe_right"
    PINCH = "pinch"

    @property
    def ordinal(self) -> int:
        """Stable index used for fixed-size per-gesture arrays."""
        return _ORDINALS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        """The media action this gesture conventionally drives."""
        return _DESCRIPTIONS[self]

    @property
    def is_swipe(self) -> bool:
        return self in (GestureKind.SWIPE_LEFT, GestureKind.SWIPE_RIGHT)

    @property
    def is_thumbs(self) -> bool:
        return self in (GestureKind.THUMBS_UP, GestureKind.THUMBS_DOWN)

    @classmethod
    def parse(cls, value: str) -> GestureKind:
        """Accept ``open_palm``, ``open-palm``, ``OPEN_PALM`` or ``Open Palm``."""
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        return cls(key)


_ORDINALS = {kind: i for i, kind in enumerate(GestureKind)}

_DISPLAY_NAMES = {
    GestureKind.OPEN_PALM: "Open Palm",
    GestureKind.THUMBS_UP: "Thumbs Up",
    GestureKind.THUMBS_DOWN: "Thumbs Down",
    GestureKind.SWIPE_LEFT: "Swipe Left",
    GestureKind.SWIPE_RIGHT: "Swipe Right",
    GestureKind.PINCH: "Pinch",
}

_DESCRIPTIONS = {
    GestureKind.OPEN_PALM: "Play/Pause",
    GestureKind.THUMBS_UP: "Volume Up",
    GestureKind.THUMBS_DOWN: "Volume Down",
    GestureKind.SWIPE_LEFT: "Previous Track",
    GestureKind.SWIPE_RIGHT: "Next Track",
    GestureKind.PINCH: "Toggle Mute",
}

NUM_GESTURES = len(_ORDINALS)


@dataclass(frozen=True)
class GestureEvent:
    """A confirmed gesture, ready for the action layer."""
    gesture: GestureKind
    timestamp: float
    hold_frames: int = 0

    def to_dict(self) -> dict:
        return {
            "gesture": self.gesture.value,
            "timestamp": self.timestamp,
            "hold_frames": self.hold_frames,
        }
