"""Overlay canvas for the detection loop.

- draw_annotation: translucent bottom banner with the emotion label and a suggestion
- OverlayRenderer: keeps the latest annotated frame (the "canvas") for display/streaming
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Optional, Tuple

SUGGESTIONS = {
    "angry": "Try deep breathing exercises",
    "sad": "Listen to uplifting music",
    "fear": "Practice mindfulness",
    "fearful": "Practice mindfulness",
    "stressed": "Take a short break",
}
DEFAULT_SUGGESTION = "Maintain your positive state"

BANNER_HEIGHT = 60


def suggestion_for(emotion: Optional[str]) -> str:
    """Static suggestion for an emotion; unknown labels get the generic one."""
    return SUGGESTIONS.get((emotion or "").strip().lower(), DEFAULT_SUGGESTION)


def _centered_text(out: np.ndarray, text: str, baseline_y: int, scale: float, thickness: int,
                   color: Tuple[int, int, int]) -> None:
    (tw, _th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, thickness)
    x = max(0, (out.shape[1] - tw) // 2)
    cv2.putText(out, text, (x, baseline_y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)


def draw_annotation(frame: np.ndarray,
                    emotion: str,
                    suggestion: str,
                    color: Tuple[int, int, int] = (255, 255, 255)) -> np.ndarray:
    """Draw the emotion label and suggestion on a dark band along the bottom edge.

    Args:
        frame: BGR image
        emotion: label, shown capitalized
        suggestion: one-line hint below the label
        color: BGR text color

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]
    top = max(0, h - BANNER_HEIGHT)

    band = out[top:h, 0:w]
    shade = np.zeros_like(band)
    # 70% black over the band
    out[top:h, 0:w] = cv2.addWeighted(band, 0.3, shade, 0.7, 0)

    label = emotion[:1].upper() + emotion[1:]
    _centered_text(out, label, h - 35, 0.8, 2, color)
    _centered_text(out, suggestion, h - 12, 0.45, 1, color)
    return out


class OverlayRenderer:
    """Draws each video frame plus the current detection annotation."""
    def __init__(self):
        self.latest: Optional[np.ndarray] = None
        self._frame: Optional[np.ndarray] = None  # last raw frame, unannotated
        self.annotation: Optional[Tuple[str, str]] = None
        self.frames_drawn = 0

    def draw_frame(self, frame: np.ndarray) -> np.ndarray:
        if self.annotation is not None:
            canvas = draw_annotation(frame, *self.annotation)
        else:
            canvas = frame.copy()
        self._frame = frame
        self.latest = canvas
        self.frames_drawn += 1
        return canvas

    def annotate(self, emotion: str) -> None:
        self.annotation = (emotion, suggestion_for(emotion))
        if self._frame is not None:
            self.latest = draw_annotation(self._frame, *self.annotation)

    def clear(self) -> None:
        self.latest = None
        self._frame = None
        self.annotation = None

    def encode_jpeg(self) -> Optional[bytes]:
        if self.latest is None:
            return None
        ok, buf = cv2.imencode(".jpg", self.latest)
        return buf.tobytes() if ok else None
