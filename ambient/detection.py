# ambient/detection.py
"""
Live emotion detection loop.

Idle -> Recording on start(), Recording -> Idle on stop(). While recording,
each frame is drawn to the overlay canvas and, if no classification is
outstanding, one is launched for that frame:
- at most one classification in flight per loop instance (frames keep rendering meanwhile)
- a successful result updates the dominant emotion and the overlay annotation
- failures are logged and the loop carries on
- results that resolve after stop() are discarded
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import numpy as np

from ambient.capture import CaptureSession, MediaCapture
from ambient.classifier import ExpressionClassifier, dominant_emotion
from ambient.config import Settings
from ambient.errors import CaptureError, ClassificationFailure, PermissionDenied
from ambient.models import DetectionState
from ambient.notify import Notifier
from ambient.visual import OverlayRenderer

logger = logging.getLogger(__name__)


class DetectionLoop:
    """Drives capture -> overlay -> classifier while recording."""
    def __init__(self, settings: Settings, capture: MediaCapture, classifier: ExpressionClassifier,
                 renderer: OverlayRenderer, notifier: Notifier):
        self.s = settings
        self.capture = capture
        self.classifier = classifier
        self.renderer = renderer
        self.notifier = notifier
        self.state = DetectionState()
        self._generation = 0
        self._starting = False
        self._start_gen = 0
        self._restart = False
        self._frame_task: Optional[asyncio.Task] = None
        self._pending: Optional[asyncio.Task] = None

    # ---- state ----
    @property
    def is_recording(self) -> bool:
        return self.state.is_recording

    @property
    def dominant_emotion(self) -> Optional[str]:
        return self.state.dominant_emotion

    @property
    def classification_pending(self) -> bool:
        return self._pending is not None

    def _active(self, gen: int) -> bool:
        return self.state.is_recording and gen == self._generation

    # ---- lifecycle ----
    async def start(self) -> None:
        if self.state.is_recording:
            return
        if self._starting:
            if self._start_gen != self._generation:
                # the in-flight start was cancelled by stop(); take over once it settles
                self._restart = True
            return
        if self.classifier.load_error is not None:
            self.notifier.error("Emotion detection is unavailable: model failed to load")
            return

        self._starting = True
        try:
            while True:
                gen = self._start_gen = self._generation
                self._restart = False
                try:
                    session = await self.capture.acquire()
                except PermissionDenied as e:
                    logger.warning(f"[detect] camera permission denied: {e}")
                    self.notifier.error("Camera access was denied")
                    return
                except CaptureError as e:
                    logger.warning(f"[detect] camera unavailable: {e}")
                    self.notifier.error("Unable to access camera")
                    return
                if gen == self._generation:
                    break
                # stop() arrived while the camera was opening
                logger.debug("[detect] start cancelled during acquisition; releasing camera")
                self.capture.release()
                if not self._restart:
                    return
                logger.debug("[detect] start requested again after cancel; reacquiring")
        finally:
            self._starting = False

        self.state = DetectionState(is_recording=True)
        self._frame_task = asyncio.create_task(self._frame_loop(gen, session))
        self.notifier.success("Camera started")

    def stop(self) -> None:
        if self._starting:
            self._generation += 1
            self._restart = False
            return
        if not self.state.is_recording:
            return
        self._generation += 1
        self.state = DetectionState()
        self.capture.release()
        self.renderer.clear()
        if self._frame_task is not None:
            self._frame_task.cancel()
            self._frame_task = None
        self.notifier.info("Camera stopped")

    def close(self) -> None:
        """Teardown: stop and abandon any outstanding classification."""
        self.stop()
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    # ---- loops ----
    async def _frame_loop(self, gen: int, session: CaptureSession) -> None:
        interval = 1.0 / self.s.FRAME_RATE
        try:
            while self._active(gen):
                frame = await asyncio.to_thread(session.read)
                if not self._active(gen):
                    break
                if frame is not None:
                    self.renderer.draw_frame(frame)
                    if self._pending is None:
                        self._pending = asyncio.create_task(self._classify(gen, frame))
                else:
                    logger.debug("[detect] empty frame from camera")
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[detect] frame loop crashed; stopping detection")
            if gen == self._generation:
                self._frame_task = None
                self.stop()

    async def _classify(self, gen: int, frame: np.ndarray) -> None:
        try:
            expressions = await self.classifier.classify(frame)
        except ClassificationFailure:
            logger.debug("[detect] classification failed; continuing", exc_info=True)
            return
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

        if not self._active(gen):
            logger.debug("[detect] discarding classification that resolved after stop")
            return
        label = dominant_emotion(expressions)
        if label is None:
            return
        self.state.dominant_emotion = label
        self.renderer.annotate(label)
