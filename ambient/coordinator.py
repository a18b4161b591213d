"""
Single control surface over the detection loop and the ambient player.
"""
from __future__ import annotations
from typing import Optional
import logging

from ambient.audio import AudioOutput
from ambient.capture import MediaCapture
from ambient.classifier import DeepFaceClassifier
from ambient.config import Settings
from ambient.detection import DetectionLoop
from ambient.errors import ModelLoadFailure
from ambient.models import CoordinatorStatus
from ambient.notify import Notifier
from ambient.player import AmbientPlayer
from ambient.visual import OverlayRenderer

logger = logging.getLogger(__name__)


class EmotionCoordinator:
    """
    Delegates to DetectionLoop / AmbientPlayer and forwards their state.
    Either part may be missing; operations on a missing part are no-ops.
    """
    def __init__(self, detection: Optional[DetectionLoop] = None,
                 player: Optional[AmbientPlayer] = None,
                 notifier: Optional[Notifier] = None):
        self.detection = detection
        self.player = player
        self.notifier = notifier

    @classmethod
    def from_settings(cls, settings: Settings, notifier: Optional[Notifier] = None) -> "EmotionCoordinator":
        notifier = notifier or Notifier(settings.NOTIFICATION_LIMIT)
        detection = DetectionLoop(
            settings,
            capture=MediaCapture(settings),
            classifier=DeepFaceClassifier(settings),
            renderer=OverlayRenderer(),
            notifier=notifier,
        )
        player = AmbientPlayer(AudioOutput(settings), notifier)
        return cls(detection, player, notifier)

    # ---- lifecycle ----
    async def startup(self) -> None:
        """Load the classifier model once; failure leaves detection unusable."""
        if self.detection is None:
            return
        try:
            await self.detection.classifier.load()
        except ModelLoadFailure:
            if self.notifier is not None:
                self.notifier.error("Error loading emotion detection models")
            return
        if self.notifier is not None:
            self.notifier.success("Emotion detection models loaded")

    async def shutdown(self) -> None:
        logger.debug("[coordinator] shutdown: releasing camera and audio")
        try:
            if self.detection is not None:
                self.detection.close()
        finally:
            if self.player is not None:
                self.player.close()

    # ---- operations ----
    async def start_detection(self) -> None:
        if self.detection is not None:
            await self.detection.start()

    def stop_detection(self) -> None:
        if self.detection is not None:
            self.detection.stop()

    async def toggle_sound(self) -> None:
        if self.player is not None:
            await self.player.toggle_sound()

    async def next_track(self) -> None:
        if self.player is not None:
            await self.player.next_track()

    # ---- snapshots ----
    @property
    def is_recording(self) -> bool:
        return self.detection.is_recording if self.detection is not None else False

    @property
    def is_playing(self) -> bool:
        return self.player.is_playing if self.player is not None else False

    @property
    def current_track_name(self) -> str:
        return self.player.current_track.name if self.player is not None else ""

    @property
    def dominant_emotion(self) -> Optional[str]:
        return self.detection.dominant_emotion if self.detection is not None else None

    def status(self) -> CoordinatorStatus:
        return CoordinatorStatus(
            is_recording=self.is_recording,
            is_playing=self.is_playing,
            current_track_index=(self.player.state.current_track_index if self.player is not None else None),
            current_track_name=self.current_track_name,
            dominant_emotion=self.dominant_emotion,
        )

    def overlay_jpeg(self) -> Optional[bytes]:
        if self.detection is None or not self.detection.is_recording:
            return None
        return self.detection.renderer.encode_jpeg()
