"""Numeric decision parameters for gesture classification.

A ThresholdProfile is an immutable value. Every field has a fixed valid
range; `validate()` checks them all. Profiles are replaced wholesale, never
mutated, and new ones are derived with `replace()` or `ThresholdBuilder`.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, fields
from typing import Any, Union

from gesture_tuner.errors import InvalidThresholds

Number = Union[int, float]


@dataclass(frozen=True)
class ThresholdProfile:
    """All thresholds used by the classifier and temporal confirmation."""

    # Global
    gesture_cooldown: float = 2.0
    gesture_confidence_threshold: float = 0.5
    required_hold_frames: int = 2

    # Swipe
    swipe_distance_threshold: float = 0.20
    swipe_time_window: float = 0.7
    swipe_vertical_tolerance: float = 0.10
    swipe_min_frames: int = 6

    # Open palm
    palm_finger_extension_offset: float = 0.05
    palm_finger_spread_min_index: float = 0.04
    palm_finger_spread_min_middle: float = 0.04
    palm_horizontal_movement_threshold: float = 0.05

    # Thumbs up/down
    thumb_extension_distance: float = 0.08
    thumb_vertical_delta: float = 0.08

    # Pinch
    pinch_distance: float = 0.05
    pinch_finger_extension_min: float = 0.03
    pinch_other_fingers_offset: float = 0.05

    @classmethod
    def defaults(cls) -> ThresholdProfile:
        return cls()

    def violations(self) -> dict[str, Number]:
        """Fields whose value lies outside the valid range."""
        bad = {}
        for name, (lo, hi) in PARAMETER_RANGES.items():
            value = getattr(self, name)
            if not (lo <= value <= hi):
                bad[name] = value
        return bad

    def is_valid(self) -> bool:
        return not self.violations()

    def validate(self) -> ThresholdProfile:
        """Return self if every field is in range, else raise InvalidThresholds."""
        bad = self.violations()
        if bad:
            raise InvalidThresholds(bad)
        return self

    def replace(self, **changes: Number) -> ThresholdProfile:
        return dataclasses.replace(self, **changes)

    def diff(self, other: ThresholdProfile) -> dict[str, tuple[Number, Number]]:
        """Fields that differ: ``{name: (self_value, other_value)}``."""
        changed = {}
        for f in fields(self):
            a, b = getattr(self, f.name), getattr(other, f.name)
            if a != b:
                changed[f.name] = (a, b)
        return changed

    def to_dict(self) -> dict[str, Number]:
        """Persisted form, keyed by camelCase field names."""
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThresholdProfile:
        """Inverse of `to_dict`. Accepts camelCase or snake_case keys.

        Missing keys fall back to defaults. Values are not validated here;
        call `validate()` before use.
        """
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Number] = {}
        for key, value in data.items():
            name = _snake(key)
            if name not in known:
                continue
            values[name] = int(value) if name in INTEGER_FIELDS else float(value)
        return cls(**values)


# Inclusive (min, max) for each field
PARAMETER_RANGES: dict[str, tuple[Number, Number]] = {
    "gesture_cooldown": (0.1, 10.0),
    "gesture_confidence_threshold": (0.1, 1.0),
    "required_hold_frames": (1, 10),
    "swipe_distance_threshold": (0.05, 0.50),
    "swipe_time_window": (0.2, 2.0),
    "swipe_vertical_tolerance": (0.05, 0.30),
    "swipe_min_frames": (3, 20),
    "palm_finger_extension_offset": (0.01, 0.20),
    "palm_finger_spread_min_index": (0.01, 0.15),
    "palm_finger_spread_min_middle": (0.01, 0.15),
    "palm_horizontal_movement_threshold": (0.01, 0.20),
    "thumb_extension_distance": (0.02, 0.20),
    "thumb_vertical_delta": (0.02, 0.20),
    "pinch_distance": (0.01, 0.15),
    "pinch_finger_extension_min": (0.01, 0.10),
    "pinch_other_fingers_offset": (0.01, 0.15),
}

INTEGER_FIELDS = frozenset({"required_hold_frames", "swipe_min_frames"})

# Fields derived by calibration, grouped by the gesture family that owns them
PALM_FIELDS = (
    "palm_finger_extension_offset",
    "palm_finger_spread_min_index",
    "palm_finger_spread_min_middle",
)
THUMB_FIELDS = ("thumb_vertical_delta", "thumb_extension_distance")
SWIPE_FIELDS = (
    "swipe_distance_threshold",
    "swipe_time_window",
    "swipe_vertical_tolerance",
)
PINCH_FIELDS = ("pinch_distance", "pinch_finger_extension_min")


def clamp(name: str, value: Number) -> Number:
    """Clamp a value into the valid range of the named field."""
    lo, hi = PARAMETER_RANGES[name]
    return max(lo, min(hi, value))


class ThresholdBuilder:
    """Collects overrides and produces a new ThresholdProfile.

    The base profile is never modified. Values passed to `set_clamped` are
    forced into range; `set` stores them as given.

        profile = (ThresholdBuilder(ThresholdProfile.defaults())
                   .set_clamped("pinch_distance", 0.031)
                   .build())
    """

    def __init__(self, base: ThresholdProfile | None = None):
        self._base = base or ThresholdProfile.defaults()
        self._changes: dict[str, Number] = {}

    def set(self, name: str, value: Number) -> ThresholdBuilder:
        if name not in PARAMETER_RANGES:
            raise KeyError(f"Unknown threshold: {name}")
        self._changes[name] = int(value) if name in INTEGER_FIELDS else float(value)
        return self

    def set_clamped(self, name: str, value: Number) -> ThresholdBuilder:
        return self.set(name, clamp(name, value))

    def update(self, values: dict[str, Number]) -> ThresholdBuilder:
        for name, value in values.items():
            self.set(name, value)
        return self

    @property
    def changes(self) -> dict[str, Number]:
        return dict(self._changes)

    def build(self) -> ThresholdProfile:
        return self._base.replace(**self._changes)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()
