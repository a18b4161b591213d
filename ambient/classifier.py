"""
Facial-expression classification with DeepFace.

The classifier is an opaque collaborator: given a video frame it returns a
mapping of emotion label -> score in [0, 1], or None when no face is found.
"""
# ambient/classifier.py
from __future__ import annotations
from typing import Dict, Mapping, Optional
import asyncio
import logging

import numpy as np

from ambient.config import Settings
from ambient.errors import ClassificationFailure, ModelLoadFailure

logger = logging.getLogger(__name__)

Expressions = Dict[str, float]


def dominant_emotion(expressions: Optional[Mapping[str, float]]) -> Optional[str]:
    """
    Label with the strictly greatest score; on ties the first label in
    iteration order wins. Empty or missing mapping -> None.
    """
    best_label: Optional[str] = None
    best_score = 0.0
    for label, score in (expressions or {}).items():
        score = float(score)
        if best_label is None or score > best_score:
            best_label, best_score = label, score
    return best_label


class ExpressionClassifier:
    """Interface consumed by the detection loop."""
    load_error: Optional[Exception] = None

    async def load(self) -> None:
        """Prepare the backing model. Raises ModelLoadFailure."""

    async def classify(self, frame: np.ndarray) -> Optional[Expressions]:
        raise NotImplementedError


class DeepFaceClassifier(ExpressionClassifier):
    """DeepFace emotion model, run off the event loop."""
    def __init__(self, settings: Settings):
        self.s = settings
        self.load_error = None
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _analyze(self, frame: np.ndarray):
        # Lazy import for easier testing and to avoid loading heavy stacks too early
        from deepface import DeepFace
        result = DeepFace.analyze(
            frame,
            actions=["emotion"],
            enforce_detection=False,
            detector_backend=self.s.DETECTOR_BACKEND,
        )
        # DeepFace returns list[dict] or dict depending on version; normalize to list
        if isinstance(result, dict):
            result = [result]
        return result or []

    def _warm_up(self) -> None:
        self._analyze(np.zeros((48, 48, 3), dtype=np.uint8))

    async def load(self) -> None:
        if self._loaded:
            return
        try:
            await asyncio.to_thread(self._warm_up)
        except Exception as e:
            logger.exception("[classifier] model load failed")
            self.load_error = ModelLoadFailure(f"Emotion model failed to load: {e}")
            raise self.load_error from e
        self.load_error = None
        self._loaded = True
        logger.debug("[classifier] emotion model ready")

    def _to_expressions(self, result) -> Optional[Expressions]:
        if not result:
            return None
        r0 = result[0] or {}
        conf = r0.get("face_confidence")
        if conf is not None and float(conf) < self.s.MIN_FACE_CONFIDENCE:
            return None
        probs = r0.get("emotion")
        if not isinstance(probs, dict) or not probs:
            label = r0.get("dominant_emotion")
            return {label: 1.0} if isinstance(label, str) and label else None
        # DeepFace reports percentages
        scale = 100.0 if sum(float(v) for v in probs.values()) > 1.5 else 1.0
        return {k: max(0.0, min(1.0, float(v) / scale)) for k, v in probs.items()}

    async def classify(self, frame: np.ndarray) -> Optional[Expressions]:
        try:
            result = await asyncio.to_thread(self._analyze, frame)
            return self._to_expressions(result)
        except Exception as e:
            raise ClassificationFailure(str(e)) from e
