"""
Failure taxonomy for capture, classification and playback.
"""
from __future__ import annotations


class AmbientError(Exception):
    """Base class for every failure raised by this package."""


class CaptureError(AmbientError):
    """Camera acquisition failed."""


class PermissionDenied(CaptureError):
    """The OS or the user refused access to the camera."""


class DeviceUnavailable(CaptureError):
    """No camera at the configured index, or it could not be opened."""


class ClassificationFailure(AmbientError):
    """A single classification request failed; transient."""


class ModelLoadFailure(AmbientError):
    """The classifier's backing model could not be loaded."""


class PlaybackRejected(AmbientError):
    """Audio could not be loaded or started for a track."""

    def __init__(self, reason: str, track_name: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.track_name = track_name
