"""
Configuration for the capture, detection and playback stack.
"""
from pydantic import BaseModel
import os

_BACKENDS = ("opencv", "ssd", "mtcnn", "retinaface", "mediapipe", "yolov8", "yunet")

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    FRAME_RATE: float = float(os.getenv("FRAME_RATE", "15"))

    DETECTOR_BACKEND: str = (os.getenv("DETECTOR_BACKEND", "opencv") or "opencv")
    MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.5"))

    ASSETS_DIR: str = os.getenv("ASSETS_DIR", "public")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))
    AUDIO_BLOCKSIZE: int = int(os.getenv("AUDIO_BLOCKSIZE", "1024"))

    NOTIFICATION_LIMIT: int = int(os.getenv("NOTIFICATION_LIMIT", "50"))
    STORE_PATH: str = os.getenv("STORE_PATH", "")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize DETECTOR_BACKEND: strip comments/extra words, lower-case, validate
        backend = (self.DETECTOR_BACKEND or "opencv").strip().split()[0].lower()
        if backend not in _BACKENDS:
            backend = "opencv"
        object.__setattr__(self, "DETECTOR_BACKEND", backend)
        if self.FRAME_RATE <= 0:
            object.__setattr__(self, "FRAME_RATE", 15.0)
