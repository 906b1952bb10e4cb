"""Serialized frame processing on a single background thread.

Frames and control commands share one queue and run in arrival order on
the worker thread, so the pipeline's per-stream state is never touched
concurrently. Frames are subject to late-frame dropping: while one frame
is queued or being processed, further frames are discarded rather than
buffered. Commands are never dropped.

Usage:
    worker = FrameWorker(pipeline)
    worker.start()
    # From the capture loop:
    worker.submit_frame(frame)
    # From the UI / coordinator:
    worker.set_calibration_mode(True, GestureKind.PINCH)
    worker.stop()
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Optional

from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import LandmarkFrame
from gesture_tuner.pipeline import GesturePipeline
from gesture_tuner.thresholds import ThresholdProfile

logger = logging.getLogger("gesture_tuner.worker")

_STOP = object()


class FrameWorker:
    """Runs a GesturePipeline on one daemon thread."""

    def __init__(self, pipeline: GesturePipeline):
        self.pipeline = pipeline
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._frame_pending = False
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._dropped = 0
        self._processed = 0

    def start(self):
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._loop, name="gesture-tuner-worker", daemon=True
        )
        self._thread.start()
        logger.info("Frame worker started")

    def stop(self, timeout: float = 2.0):
        """Finish queued work, join the thread and clear pipeline state."""
        if not self._running:
            return
        self._running = False
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.pipeline.reset()
        with self._lock:
            self._frame_pending = False
        logger.info(
            "Frame worker stopped (%d processed, %d dropped)",
            self._processed, self._dropped,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def dropped_frames(self) -> int:
        return self._dropped

    @property
    def processed_frames(self) -> int:
        return self._processed

    def submit_frame(
        self, frame: Optional[LandmarkFrame], now: Optional[float] = None
    ) -> bool:
        """Queue a frame (None = no hand). Returns False if it was dropped."""
        if not self._running:
            return False
        with self._lock:
            if self._frame_pending:
                self._dropped += 1
                return False
            self._frame_pending = True
        stamp = time.monotonic() if now is None else now
        self._queue.put(("frame", frame, stamp))
        return True

    def call(self, fn: Callable[..., Any], *args) -> Future:
        """Run `fn(*args)` on the worker thread after everything already queued."""
        future: Future = Future()
        if not self._running:
            future.set_exception(RuntimeError("Frame worker is not running"))
            return future
        self._queue.put(("call", fn, args, future))
        return future

    def set_calibration_mode(
        self, enabled: bool, target: Optional[GestureKind] = None
    ) -> Future:
        return self.call(self.pipeline.set_calibration_mode, enabled, target)

    def apply_profile(self, profile: ThresholdProfile) -> Future:
        return self.call(self.pipeline.apply_profile, profile)

    def reset(self) -> Future:
        return self.call(self.pipeline.reset)

    def flush(self, timeout: Optional[float] = None):
        """Block until everything queued so far has run."""
        self.call(lambda: None).result(timeout=timeout)

    def _loop(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            if item[0] == "frame":
                _, frame, stamp = item
                try:
                    self.pipeline.process(frame, stamp)
                    self._processed += 1
                except Exception:
                    logger.exception("Frame processing failed")
                finally:
                    with self._lock:
                        self._frame_pending = False
            else:
                _, fn, args, future = item
                if not future.set_running_or_notify_cancel():
                    continue
                try:
                    future.set_result(fn(*args))
                except Exception as e:
                    future.set_exception(e)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
