"""Guided calibration: walks the user through each gesture, then derives a profile.

Phases:

    NOT_STARTED -> WELCOME -> TRANSITION(g) -> CALIBRATING(g) -> ...
        -> PROCESSING -> REVIEW -> COMPLETED

`cancel()` returns to NOT_STARTED from any phase. Pauses (the transition
before each gesture, the advance after a session fills up) go through a
scheduler so tests can drive them by hand.

With the default TimerScheduler those pauses fire on timer threads, and
the calibration-mode flips they trigger run there too. Pass a FrameWorker
as `pipeline` so the flips are queued onto the frame thread; a bare
GesturePipeline is only safe with zero delays or a scheduler that fires on
the frame thread.

Usage:
    coordinator = CalibrationCoordinator(store, pipeline=worker, observers=hub)
    pipeline.calibration_sink = coordinator.add_sample
    coordinator.start("Desk")
    coordinator.begin_calibration()
    ...
    coordinator.save_profile()
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from gesture_tuner.calibration import CalibrationSample, CalibrationSession
from gesture_tuner.engine import CalibrationEngine, CalibrationResult
from gesture_tuner.errors import (
    CalibrationStateError,
    GestureTunerError,
    InsufficientSamples,
    InvalidThresholds,
    SaveFailed,
)
from gesture_tuner.gestures import GestureKind
from gesture_tuner.observers import ObserverHub
from gesture_tuner.pipeline import GesturePipeline
from gesture_tuner.profiles import GestureProfile, ProfileStore
from gesture_tuner.thresholds import ThresholdProfile

logger = logging.getLogger("gesture_tuner.coordinator")

CALIBRATION_SEQUENCE = (
    GestureKind.OPEN_PALM,
    GestureKind.THUMBS_UP,
    GestureKind.THUMBS_DOWN,
    GestureKind.SWIPE_LEFT,
    GestureKind.SWIPE_RIGHT,
    GestureKind.PINCH,
)

DEFAULT_PROFILE_NAME = "My Profile"


class CalibrationPhase(Enum):
    NOT_STARTED = "not_started"
    WELCOME = "welcome"
    TRANSITION = "transition"
    CALIBRATING = "calibrating"
    PROCESSING = "processing"
    REVIEW = "review"
    COMPLETED = "completed"


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class TimerScheduler:
    """Runs delayed callbacks on daemon `threading.Timer` threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class CalibrationModeTarget(Protocol):
    """What the coordinator drives: a GesturePipeline or a FrameWorker.

    Timed transitions call into it from timer threads, so with non-zero
    delays this should be a FrameWorker.
    """

    def set_calibration_mode(self, enabled: bool, target: Optional[GestureKind] = None) -> Any: ...

    def apply_profile(self, profile: ThresholdProfile) -> Any: ...


class CalibrationCoordinator:
    """Single-owner calibration state machine.

    Every transition happens under one lock. Delayed transitions and the
    background computation carry the generation they were started in; any
    jump (skip, recalibrate, cancel) bumps the generation so stale callbacks
    are ignored.
    """

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        engine: Optional[CalibrationEngine] = None,
        pipeline: Optional[CalibrationModeTarget] = None,
        observers: Optional[ObserverHub] = None,
        scheduler: Optional[Scheduler] = None,
        executor: Optional[Executor] = None,
        samples_per_gesture: int = 10,
        minimum_confidence: float = 0.5,
        transition_delay: float = 3.0,
        advance_delay: float = 2.0,
        sequence: tuple[GestureKind, ...] = CALIBRATION_SEQUENCE,
    ):
        self.store = store
        self.engine = engine or CalibrationEngine()
        self.pipeline = pipeline
        self.observers = observers or ObserverHub()
        self.scheduler = scheduler or TimerScheduler()
        self.executor = executor
        self.samples_per_gesture = samples_per_gesture
        self.minimum_confidence = minimum_confidence
        self.transition_delay = transition_delay
        self.advance_delay = advance_delay
        self.sequence = tuple(sequence)

        self._lock = threading.RLock()
        self._phase = CalibrationPhase.NOT_STARTED
        self._index = 0
        self._generation = 0
        self._pending: Optional[Cancellable] = None
        self._sessions = self._new_sessions()

        self.profile_name = ""
        self.error: Optional[GestureTunerError] = None
        self.result: Optional[CalibrationResult] = None
        self.saved_profile: Optional[GestureProfile] = None
        self._created_id: Optional[str] = None

        if (
            isinstance(pipeline, GesturePipeline)
            and isinstance(self.scheduler, TimerScheduler)
            and (transition_delay > 0 or advance_delay > 0)
        ):
            logger.warning(
                "Timed calibration with a bare GesturePipeline flips calibration "
                "mode off the frame thread; pass a FrameWorker instead"
            )

    def _new_sessions(self) -> dict[GestureKind, CalibrationSession]:
        return {
            g: CalibrationSession(g, self.samples_per_gesture, self.minimum_confidence)
            for g in self.sequence
        }

    # --- Read-only state ---

    @property
    def phase(self) -> CalibrationPhase:
        return self._phase

    @property
    def current_gesture(self) -> Optional[GestureKind]:
        if self._phase in (CalibrationPhase.TRANSITION, CalibrationPhase.CALIBRATING):
            return self.sequence[self._index]
        return None

    @property
    def current_session(self) -> Optional[CalibrationSession]:
        gesture = self.current_gesture
        return self._sessions[gesture] if gesture else None

    @property
    def sessions(self) -> dict[GestureKind, CalibrationSession]:
        return dict(self._sessions)

    def session(self, gesture: GestureKind) -> Optional[CalibrationSession]:
        return self._sessions.get(gesture)

    @property
    def progress(self) -> float:
        session = self.current_session
        return session.progress if session else 0.0

    @property
    def can_proceed(self) -> bool:
        session = self.current_session
        return session is not None and session.is_complete

    @property
    def computed_profile(self) -> Optional[ThresholdProfile]:
        return self.result.profile if self.result else None

    @property
    def insufficient(self) -> list[InsufficientSamples]:
        return list(self.result.insufficient) if self.result else []

    # --- Flow control ---

    def start(self, name: str = ""):
        """NOT_STARTED or COMPLETED -> WELCOME."""
        with self._lock:
            self._require(CalibrationPhase.NOT_STARTED, CalibrationPhase.COMPLETED)
            self._clear()
            self.profile_name = name.strip()
            self._set_phase(CalibrationPhase.WELCOME)

    def begin_calibration(self):
        with self._lock:
            self._require(CalibrationPhase.WELCOME)
            self._index = 0
            self._enter_gesture()

    def skip_current_gesture(self):
        """Move on without a complete session; the gesture keeps its defaults."""
        with self._lock:
            self._require(CalibrationPhase.TRANSITION, CalibrationPhase.CALIBRATING)
            logger.info(
                "Skipping %s, will use defaults", self.sequence[self._index].display_name
            )
            self._invalidate()
            self._index += 1
            self._enter_gesture()

    def proceed_to_next(self):
        """Advance now instead of waiting for the automatic advance."""
        with self._lock:
            self._require(CalibrationPhase.CALIBRATING)
            self._invalidate()
            self._index += 1
            self._enter_gesture()

    def recalibrate_gesture(self, gesture: GestureKind):
        """Discard a gesture's samples and capture it again."""
        with self._lock:
            self._require(
                CalibrationPhase.TRANSITION,
                CalibrationPhase.CALIBRATING,
                CalibrationPhase.REVIEW,
            )
            if gesture not in self._sessions:
                raise CalibrationStateError(
                    f"{gesture.display_name} is not part of this calibration"
                )
            self._invalidate()
            self._sessions[gesture].reset()
            self.result = None
            self.error = None
            self._created_id = None
            self._index = self.sequence.index(gesture)
            logger.info("Recalibrating %s", gesture.display_name)
            self._enter_gesture()

    def cancel(self):
        """Drop everything and return to NOT_STARTED."""
        with self._lock:
            self._clear()
            self._set_mode(False, None)
            self._set_phase(CalibrationPhase.NOT_STARTED)
            logger.info("Calibration cancelled")

    def finish(self):
        """Leave REVIEW without saving."""
        with self._lock:
            self._require(CalibrationPhase.REVIEW)
            self._sessions = self._new_sessions()
            self._set_phase(CalibrationPhase.COMPLETED)

    # --- Samples ---

    def add_sample(self, sample: CalibrationSample) -> bool:
        """Route a captured sample to the current gesture's session."""
        with self._lock:
            if self._phase is not CalibrationPhase.CALIBRATING:
                return False
            gesture = self.sequence[self._index]
            if sample.gesture != gesture:
                return False

            session = self._sessions[gesture]
            if not session.add_sample(sample):
                return False

            logger.debug(
                "Sample captured for %s: %d/%d",
                gesture.value, len(session), session.required_samples,
            )
            self.observers.dispatch(
                "calibration_progress", gesture, len(session), session.required_samples
            )

            if session.is_complete:
                logger.info("%s calibration complete", gesture.display_name)
                self._set_mode(False, None)
                self._after(self.advance_delay, self._auto_advance)
            return True

    # --- Saving ---

    def save_profile(self) -> GestureProfile:
        """Persist the computed profile and make it active.

        Raises InvalidThresholds or SaveFailed; in both cases the computed
        profile is kept so the save can be retried.
        """
        with self._lock:
            self._require(CalibrationPhase.REVIEW)
            profile = self.computed_profile
            if profile is None:
                raise CalibrationStateError("No computed profile to save")
            if self.store is None:
                raise CalibrationStateError("No profile store configured")

            try:
                profile.validate()
            except InvalidThresholds as e:
                self._record_error(e)
                raise

            name = self.profile_name or DEFAULT_PROFILE_NAME
            try:
                # A retry after a failed activation reuses the profile already created
                saved = None
                if self._created_id is not None:
                    saved = self.store.get_profile(self._created_id)
                if saved is None:
                    saved = self.store.create_profile(name, profile)
                    self._created_id = saved.id
                self.store.set_active_profile(saved.id)
            except Exception as e:
                err = SaveFailed(e)
                logger.error("Failed to save profile: %s", e)
                self._record_error(err)
                raise err from e

            self.saved_profile = saved
            self.error = None
            logger.info("Profile saved and activated: %s", saved.name)
            if self.pipeline is not None:
                self.pipeline.apply_profile(profile)
            self._sessions = self._new_sessions()
            self._set_phase(CalibrationPhase.COMPLETED)
            return saved

    # --- Internals (lock held) ---

    def _require(self, *phases: CalibrationPhase):
        if self._phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise CalibrationStateError(
                f"Not allowed in phase {self._phase.value} (expected {allowed})"
            )

    def _set_phase(self, phase: CalibrationPhase):
        self._phase = phase
        gesture = self.current_gesture
        logger.info(
            "Calibration phase: %s%s",
            phase.value, f" ({gesture.value})" if gesture else "",
        )
        self.observers.dispatch("calibration_phase", phase, gesture)

    def _set_mode(self, enabled: bool, target: Optional[GestureKind]):
        if self.pipeline is not None:
            self.pipeline.set_calibration_mode(enabled, target)

    def _record_error(self, error: GestureTunerError):
        self.error = error
        self.observers.dispatch("calibration_error", error)

    def _invalidate(self):
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _clear(self):
        self._invalidate()
        self._sessions = self._new_sessions()
        self._index = 0
        self.result = None
        self.error = None
        self.saved_profile = None
        self._created_id = None

    def _after(self, delay: float, action: Callable[[], None]):
        """Run `action` after `delay` unless the generation moves on first."""
        if delay <= 0:
            action()
            return

        generation = self._generation

        def fire():
            with self._lock:
                if generation != self._generation:
                    return
                self._pending = None
                action()

        self._pending = self.scheduler.schedule(delay, fire)

    def _enter_gesture(self):
        self._set_mode(False, None)
        # Sessions still full from an earlier pass (after a recalibration) are passed over
        while (
            self._index < len(self.sequence)
            and self._sessions[self.sequence[self._index]].is_complete
        ):
            logger.debug(
                "%s already calibrated", self.sequence[self._index].display_name
            )
            self._index += 1
        if self._index >= len(self.sequence):
            self._process()
            return

        gesture = self.sequence[self._index]
        if self.transition_delay > 0:
            self._set_phase(CalibrationPhase.TRANSITION)
            logger.info("Get ready for: %s", gesture.display_name)
        self._after(self.transition_delay, self._start_calibrating)

    def _start_calibrating(self):
        gesture = self.sequence[self._index]
        self._set_phase(CalibrationPhase.CALIBRATING)
        self._set_mode(True, gesture)

    def _auto_advance(self):
        self._index += 1
        self._enter_gesture()

    def _process(self):
        self._set_phase(CalibrationPhase.PROCESSING)
        self._invalidate()
        generation = self._generation
        sessions = dict(self._sessions)

        if self.executor is None:
            try:
                result = self.engine.calibrate(sessions)
            except Exception as e:
                self._on_computed(generation, None, e)
            else:
                self._on_computed(generation, result, None)
            return

        future = self.executor.submit(self.engine.calibrate, sessions)

        def done(f: Future):
            try:
                result = f.result()
            except Exception as e:
                self._on_computed(generation, None, e)
            else:
                self._on_computed(generation, result, None)

        future.add_done_callback(done)

    def _on_computed(
        self,
        generation: int,
        result: Optional[CalibrationResult],
        exc: Optional[BaseException],
    ):
        with self._lock:
            if generation != self._generation:
                return
            if exc is not None:
                logger.error("Threshold computation failed: %s", exc)
                self._record_error(
                    InvalidThresholds(message=f"Threshold computation failed: {exc}")
                )
            else:
                self.result = result
                for warning in result.insufficient:
                    logger.warning("%s", warning)
                logger.info("Thresholds computed")
                self.observers.dispatch("calibration_result", result.profile)
            self._set_phase(CalibrationPhase.REVIEW)
