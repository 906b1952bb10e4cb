"""Hand landmark frames as consumed by the classifier and calibration.

A frame maps joint names to 2-D points in normalized [0, 1] image space.
The y axis points UP: fingertips of a raised hand have a larger y than the
wrist. Detector adapters flip their native coordinates to match.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Optional


class JointName(Enum):
    """The 21 hand joints, in the order MediaPipe Hands reports them."""

    WRIST = "wrist"
    THUMB_CMC = "thumbCMC"
    THUMB_MP = "thumbMP"
    THUMB_IP = "thumbIP"
    THUMB_TIP = "thumbTip"
    INDEX_MCP = "indexMCP"
    INDEX_PIP = "indexPIP"
    INDEX_DIP = "indexDIP"
    INDEX_TIP = "indexTip"
    MIDDLE_MCP = "middleMCP"
    MIDDLE_PIP = "middlePIP"
    MIDDLE_DIP = "middleDIP"
    MIDDLE_TIP = "middleTip"
    RING_MCP = "ringMCP"
    RING_PIP = "ringPIP"
    RING_DIP = "ringDIP"
    RING_TIP = "ringTip"
    LITTLE_MCP = "littleMCP"
    LITTLE_PIP = "littlePIP"
    LITTLE_DIP = "littleDIP"
    LITTLE_TIP = "littleTip"


FINGERTIPS = (
    JointName.THUMB_TIP,
    JointName.INDEX_TIP,
    JointName.MIDDLE_TIP,
    JointName.RING_TIP,
    JointName.LITTLE_TIP,
)

# Non-thumb (tip, MCP) pairs
FINGER_MCPS = (
    (JointName.INDEX_TIP, JointName.INDEX_MCP),
    (JointName.MIDDLE_TIP, JointName.MIDDLE_MCP),
    (JointName.RING_TIP, JointName.RING_MCP),
    (JointName.LITTLE_TIP, JointName.LITTLE_MCP),
)

# Wrist plus the five fingertips: the least a calibration sample must carry
REQUIRED_JOINTS = (JointName.WRIST,) + FINGERTIPS


@dataclass(frozen=True)
class JointPoint:
    """A single joint observation."""
    x: float
    y: float
    confidence: float = 1.0

    def distance_to(self, other: JointPoint) -> float:
        return distance(self, other)


def distance(a: JointPoint, b: JointPoint) -> float:
    """2-D Euclidean distance in normalized image coordinates."""
    return math.hypot(a.x - b.x, a.y - b.y)


@dataclass(frozen=True)
class LandmarkFrame:
    """One hand observation: named joints plus an overall confidence."""

    joints: Mapping[JointName, JointPoint] = field(default_factory=dict)
    confidence: float = 1.0

    def __post_init__(self):
        # Detach from the caller's dict so the frame stays read-only
        object.__setattr__(self, "joints", dict(self.joints))

    def get(self, joint: JointName) -> Optional[JointPoint]:
        return self.joints.get(joint)

    def __getitem__(self, joint: JointName) -> JointPoint:
        return self.joints[joint]

    def __contains__(self, joint: object) -> bool:
        return joint in self.joints

    def __iter__(self) -> Iterator[JointName]:
        return iter(self.joints)

    def __len__(self) -> int:
        return len(self.joints)

    def confident(self, joint: JointName, threshold: float) -> Optional[JointPoint]:
        """Return the joint if present with confidence strictly above threshold."""
        point = self.joints.get(joint)
        if point is None or point.confidence <= threshold:
            return None
        return point

    def has_joints(self, joints=REQUIRED_JOINTS) -> bool:
        return all(j in self.joints for j in joints)

    def to_dict(self) -> dict:
        return {
            "confidence": self.confidence,
            "joints": {
                name.value: [p.x, p.y, p.confidence]
                for name, p in self.joints.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> LandmarkFrame:
        joints = {}
        for key, values in data.get("joints", {}).items():
            x, y = values[0], values[1]
            conf = values[2] if len(values) > 2 else 1.0
            joints[JointName(key)] = JointPoint(float(x), float(y), float(conf))
        return cls(joints=joints, confidence=float(data.get("confidence", 1.0)))

    @classmethod
    def from_points(
        cls,
        points: Mapping[JointName, tuple],
        confidence: float = 1.0,
    ) -> LandmarkFrame:
        """Build a frame from ``{joint: (x, y)}`` or ``{joint: (x, y, conf)}``."""
        joints = {}
        for name, values in points.items():
            conf = values[2] if len(values) > 2 else confidence
            joints[name] = JointPoint(float(values[0]), float(values[1]), float(conf))
        return cls(joints=joints, confidence=confidence)
