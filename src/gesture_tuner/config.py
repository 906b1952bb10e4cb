"""YAML configuration with typed access and defaults.

Example file:

    logging:
      level: DEBUG
      file: ~/.local/state/gesture-tuner/tuner.log
    calibration:
      samples_per_gesture: 15
      transition_delay: 2.0
    thresholds:
      pinch_distance: 0.04
    profiles:
      path: ~/.config/gesture-tuner/profiles.json
    capture:
      camera_index: 1

Every section and key is optional; user values are merged over the
defaults. Unknown keys and out-of-range values raise ConfigError.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from gesture_tuner.errors import ConfigError, InvalidThresholds
from gesture_tuner.thresholds import ThresholdBuilder, ThresholdProfile

logger = logging.getLogger("gesture_tuner.config")

CONFIG_ENV_VAR = "GESTURE_TUNER_CONFIG"
DEFAULT_PROFILES_PATH = "~/.config/gesture-tuner/profiles.json"

_DEFAULTS: dict[str, Any] = {
    "logging": {"level": "INFO", "file": None},
    "calibration": {
        "samples_per_gesture": 10,
        "minimum_confidence": 0.5,
        "minimum_samples": 5,
        "transition_delay": 3.0,
        "advance_delay": 2.0,
    },
    "thresholds": {},
    "profiles": {"path": DEFAULT_PROFILES_PATH},
    "capture": {
        "camera_index": 0,
        "min_detection_confidence": 0.7,
        "min_tracking_confidence": 0.5,
    },
}


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class CalibrationConfig:
    samples_per_gesture: int = 10
    minimum_confidence: float = 0.5
    minimum_samples: int = 5
    transition_delay: float = 3.0
    advance_delay: float = 2.0


@dataclass
class CaptureConfig:
    camera_index: int = 0
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.5


@dataclass
class EngineConfig:
    """Top-level configuration."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    thresholds: ThresholdProfile = field(default_factory=ThresholdProfile.defaults)
    profiles_path: str = DEFAULT_PROFILES_PATH
    source: Optional[Path] = None

    @property
    def profiles_file(self) -> Path:
        return Path(self.profiles_path).expanduser()


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _section(data: dict, name: str) -> dict:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' should be a mapping, got {type(section).__name__}"
        )
    unknown = set(section) - set(_DEFAULTS[name]) if _DEFAULTS[name] else set()
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{name}': {', '.join(sorted(unknown))}")
    return section


def _typed(section: str, key: str, value: Any, kind: type) -> Any:
    # Allow int where float is expected, never bool where a number is
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(f"{section}.{key}: expected {kind.__name__}, got bool")
    if kind is float and isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, kind):
        raise ConfigError(
            f"{section}.{key}: expected {kind.__name__}, got "
            f"{type(value).__name__} ({value!r})"
        )
    return value


def config_from_dict(data: Optional[dict], source: Optional[Path] = None) -> EngineConfig:
    """Build an EngineConfig from already-parsed YAML."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("Top level of the config file must be a mapping")

    unknown = set(data) - set(_DEFAULTS)
    if unknown:
        raise ConfigError(f"Unknown section(s): {', '.join(sorted(unknown))}")

    for name in _DEFAULTS:
        _section(data, name)
    merged = _deep_merge(copy.deepcopy(_DEFAULTS), data)

    log = merged["logging"]
    log_file = log["file"]
    logging_config = LoggingConfig(
        level=_typed("logging", "level", log["level"], str).upper(),
        file=str(log_file) if log_file else None,
    )
    if logging_config.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigError(f"logging.level: unknown level {log['level']!r}")

    cal = merged["calibration"]
    calibration = CalibrationConfig(
        samples_per_gesture=_typed("calibration", "samples_per_gesture", cal["samples_per_gesture"], int),
        minimum_confidence=_typed("calibration", "minimum_confidence", cal["minimum_confidence"], float),
        minimum_samples=_typed("calibration", "minimum_samples", cal["minimum_samples"], int),
        transition_delay=_typed("calibration", "transition_delay", cal["transition_delay"], float),
        advance_delay=_typed("calibration", "advance_delay", cal["advance_delay"], float),
    )
    if calibration.samples_per_gesture < 1:
        raise ConfigError("calibration.samples_per_gesture must be at least 1")
    if calibration.minimum_samples < 1:
        raise ConfigError("calibration.minimum_samples must be at least 1")
    if not 0.0 <= calibration.minimum_confidence <= 1.0:
        raise ConfigError("calibration.minimum_confidence must be within [0, 1]")
    if calibration.transition_delay < 0 or calibration.advance_delay < 0:
        raise ConfigError("calibration delays must not be negative")

    cap = merged["capture"]
    capture = CaptureConfig(
        camera_index=_typed("capture", "camera_index", cap["camera_index"], int),
        min_detection_confidence=_typed(
            "capture", "min_detection_confidence", cap["min_detection_confidence"], float
        ),
        min_tracking_confidence=_typed(
            "capture", "min_tracking_confidence", cap["min_tracking_confidence"], float
        ),
    )

    builder = ThresholdBuilder()
    for key, value in merged["thresholds"].items():
        try:
            builder.set(key, _typed("thresholds", key, value, float))
        except KeyError:
            raise ConfigError(f"Unknown threshold: {key}") from None
    try:
        thresholds = builder.build().validate()
    except InvalidThresholds as e:
        raise ConfigError(f"thresholds: {e}") from e

    return EngineConfig(
        logging=logging_config,
        calibration=calibration,
        capture=capture,
        thresholds=thresholds,
        profiles_path=str(_typed("profiles", "path", merged["profiles"]["path"], str)),
        source=source,
    )


def load_config(path: Optional[str | Path] = None) -> EngineConfig:
    """Load configuration from YAML.

    With no path, the file named by $GESTURE_TUNER_CONFIG is used if set;
    otherwise the defaults are returned. A path that was asked for but does
    not exist is an error.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        logger.debug("No config file given, using defaults")
        return EngineConfig()

    path = Path(path).expanduser()
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = config_from_dict(data, source=path)
    logger.info("Loaded config from %s", path)
    return config
