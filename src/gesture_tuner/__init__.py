"""gesture-tuner - Hand gesture recognition with per-user threshold calibration."""

__version__ = "0.1.0"

from gesture_tuner.landmarks import JointName, JointPoint, LandmarkFrame
from gesture_tuner.gestures import GestureKind, GestureEvent
from gesture_tuner.thresholds import ThresholdProfile, ThresholdBuilder
from gesture_tuner.trajectory import TrajectoryHistory
from gesture_tuner.classifier import GestureClassifier
from gesture_tuner.temporal import TemporalConfirmation
from gesture_tuner.calibration import CalibrationSample, CalibrationSession, SessionSummary
from gesture_tuner.engine import CalibrationEngine, CalibrationResult
from gesture_tuner.coordinator import CalibrationCoordinator, CalibrationPhase
from gesture_tuner.profiles import GestureProfile, ProfileStore, InMemoryProfileStore, JsonProfileStore
from gesture_tuner.observers import GestureObserver, ObserverHub
from gesture_tuner.pipeline import GesturePipeline
from gesture_tuner.worker import FrameWorker
from gesture_tuner.recorder import GestureRecorder, GesturePlayer
from gesture_tuner.config import EngineConfig, load_config
from gesture_tuner.errors import (
    GestureTunerError,
    CalibrationError,
    InsufficientSamples,
    InvalidThresholds,
    SaveFailed,
    ProfileError,
    ConfigError,
)
