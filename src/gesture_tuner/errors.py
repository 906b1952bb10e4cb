"""Exception types raised by gesture-tuner.

Classification never raises. Calibration and profile problems are raised as
the classes below, each carrying the fields a caller needs to build a
user-facing message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from gesture_tuner.gestures import GestureKind


class GestureTunerError(Exception):
    """Base class for all gesture-tuner errors."""


class ConfigError(GestureTunerError):
    """Configuration file is missing required structure or has bad values."""


# --- Calibration ---

class CalibrationError(GestureTunerError):
    """Base class for calibration workflow errors."""


class InsufficientSamples(CalibrationError):
    """A gesture had too few accepted samples to be calibrated.

    Informational: the gesture keeps its default sub-thresholds and
    calibration carries on.
    """

    def __init__(self, gesture: GestureKind, collected: int, required: int):
        self.gesture = gesture
        self.collected = collected
        self.required = required
        super().__init__(
            f"Insufficient samples for {gesture.display_name}: {collected}/{required}"
        )


class InvalidThresholds(CalibrationError):
    """A threshold profile has one or more fields outside their valid range."""

    def __init__(self, violations: Optional[dict[str, Any]] = None, message: str = ""):
        self.violations = dict(violations or {})
        if not message:
            if self.violations:
                fields = ", ".join(sorted(self.violations))
                message = f"Thresholds out of range: {fields}"
            else:
                message = "Computed thresholds are invalid"
        super().__init__(message)


class SaveFailed(CalibrationError):
    """The profile store rejected the computed profile."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Failed to save profile: {cause}")


class CalibrationStateError(CalibrationError):
    """Operation is not allowed in the coordinator's current phase."""


# --- Profiles ---

class ProfileError(GestureTunerError):
    """Base class for profile store errors."""


class ProfileNotFound(ProfileError):
    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile not found: {profile_id}")


class CannotDeleteDefault(ProfileError):
    def __init__(self):
        super().__init__("Cannot delete the default profile")
