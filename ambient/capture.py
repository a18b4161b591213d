"""
Camera acquisition and release (OpenCV).

A CaptureSession owns one opened cv2.VideoCapture. Reads may run on a worker
thread while release() is requested from the event loop. Reads hold a
per-session lock; release() never waits on it, and a read in flight closes the
device itself when it returns.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional
import asyncio
import logging
import os
import threading

import cv2
import numpy as np

from ambient.config import Settings
from ambient.errors import DeviceUnavailable, PermissionDenied

logger = logging.getLogger(__name__)


class CaptureSession:
    """Live handle to camera hardware and its video stream."""
    def __init__(self, cap, camera_index: int):
        self.camera_index = camera_index
        self._cap = cap
        self._lock = threading.Lock()
        self._released = False
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._released

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._released:
                self._close()
                return None
            ok, frame = self._cap.read()
        if self._released:
            # release() was requested mid-read; the reader finishes it
            with self._lock:
                self._close()
            return None
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> bool:
        """
        Stop the underlying stream. Returns False if it was already released.

        Never waits on a read in flight: if one holds the device, the reading
        thread closes it once the read returns.
        """
        if self._released:
            return False
        self._released = True
        if self._lock.acquire(blocking=False):
            try:
                self._close()
            finally:
                self._lock.release()
        return True

    def _close(self) -> None:
        # caller holds _lock
        if self._closed:
            return
        self._closed = True
        self._cap.release()
        logger.debug(f"[capture] released camera index={self.camera_index}")


def _check_device_permission(camera_index: int) -> None:
    # V4L2 exposes cameras as device nodes; an unreadable node means access was refused
    node = Path(f"/dev/video{camera_index}")
    if node.exists() and not os.access(node, os.R_OK | os.W_OK):
        raise PermissionDenied(f"Camera access denied for {node}")


class MediaCapture:
    """Acquires and releases the camera; at most one session at a time."""
    def __init__(self, settings: Settings):
        self.s = settings
        self._session: Optional[CaptureSession] = None

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def _open(self, camera_index: int):
        _check_device_permission(camera_index)
        try:
            cap = cv2.VideoCapture(camera_index)
        except PermissionError as e:
            raise PermissionDenied(f"Camera access denied: {e}") from e
        except cv2.error as e:
            raise DeviceUnavailable(f"Could not open camera index {camera_index}: {e}") from e
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"Could not open camera index {camera_index}")
        return cap

    async def acquire(self) -> CaptureSession:
        """
        Open the configured camera off the event loop.

        Raises:
            PermissionDenied: access refused.
            DeviceUnavailable: no camera, or it failed to open.
        """
        # never hold two camera locks
        self.release()
        idx = self.s.CAMERA_INDEX
        logger.debug(f"[capture] opening camera index={idx}")
        cap = await asyncio.to_thread(self._open, idx)
        self._session = CaptureSession(cap, idx)
        return self._session

    def release(self) -> None:
        """Release the active session, if any. Idempotent."""
        session, self._session = self._session, None
        if session is not None:
            session.release()
