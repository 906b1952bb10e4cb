"""Observer interface for gesture and calibration notifications.

Observers receive confirmed gestures, captured calibration samples and
coordinator progress. The hub keeps only weak references: whoever composes
the application owns the observers and keeps them alive.

Interface:
    class Printer(GestureObserver):
        name = "printer"

        def on_gesture(self, event):
            print(f"Got gesture: {event.gesture}")

        def on_calibration_phase(self, phase, gesture):
            pass

Or use the decorator API:
    observer = GestureObserver(name="simple")

    @observer.handler("thumbs_up")
    def on_thumbs_up(event):
        print("Thumbs up!")
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Callable, Optional

from gesture_tuner.gestures import GestureEvent, GestureKind

if TYPE_CHECKING:
    from gesture_tuner.calibration import CalibrationSample
    from gesture_tuner.coordinator import CalibrationPhase
    from gesture_tuner.errors import GestureTunerError
    from gesture_tuner.thresholds import ThresholdProfile

logger = logging.getLogger("gesture_tuner.observers")


class GestureObserver:
    """Base class for observers.

    Subclass this and implement the methods you care about.
    """

    name: str = "unnamed"

    def __init__(self, name: Optional[str] = None):
        if name:
            self.name = name
        self._handlers: dict[str, list[Callable]] = {}

    def on_gesture(self, event: GestureEvent):
        """Called when a gesture is confirmed."""
        # Dispatch to registered handlers
        handlers = (
            self._handlers.get(event.gesture.value, []) + self._handlers.get("*", [])
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error("Observer %s handler error: %s", self.name, e)

    def on_sample(self, sample: CalibrationSample):
        """Called for every frame captured in calibration mode."""
        pass

    def on_calibration_phase(
        self, phase: CalibrationPhase, gesture: Optional[GestureKind]
    ):
        """Called when the calibration coordinator changes phase."""
        pass

    def on_calibration_progress(self, gesture: GestureKind, collected: int, required: int):
        """Called after each accepted calibration sample."""
        pass

    def on_calibration_result(self, profile: ThresholdProfile):
        """Called when a computed profile is ready for review."""
        pass

    def on_calibration_error(self, error: GestureTunerError):
        """Called when the coordinator records an error."""
        pass

    def handler(self, gesture_name: str = "*"):
        """Decorator to register a handler for a specific gesture."""
        key = gesture_name if gesture_name == "*" else GestureKind.parse(gesture_name).value

        def decorator(fn: Callable):
            self._handlers.setdefault(key, []).append(fn)
            return fn
        return decorator


class ObserverHub:
    """Holds non-owning references to observers and dispatches to them.

    An observer that raises is logged and skipped; the remaining observers
    still receive the notification.

    Usage:
        hub = ObserverHub()
        hub.register(printer)

        hub.dispatch("gesture", event)
    """

    def __init__(self):
        self._observers: list[weakref.ReferenceType[GestureObserver]] = []
        self._lock = threading.Lock()

    def register(self, observer: GestureObserver):
        with self._lock:
            if any(ref() is observer for ref in self._observers):
                logger.warning("Observer '%s' already registered", observer.name)
                return
            self._observers.append(weakref.ref(observer))
        logger.debug("Registered observer: %s", observer.name)

    def unregister(self, observer: GestureObserver):
        with self._lock:
            self._observers = [
                ref for ref in self._observers
                if ref() is not None and ref() is not observer
            ]

    @property
    def observers(self) -> list[GestureObserver]:
        """Live observers, dropping references whose target is gone."""
        with self._lock:
            alive = []
            refs = []
            for ref in self._observers:
                obs = ref()
                if obs is not None:
                    alive.append(obs)
                    refs.append(ref)
            self._observers = refs
        return alive

    def __len__(self) -> int:
        return len(self.observers)

    def dispatch(self, event_type: str, *args):
        """Call ``on_<event_type>(*args)`` on every live observer."""
        method_name = f"on_{event_type}"
        for observer in self.observers:
            method = getattr(observer, method_name, None)
            if method is None:
                continue
            try:
                method(*args)
            except Exception as e:
                logger.error(
                    "Observer %s %s error: %s", observer.name, method_name, e
                )
