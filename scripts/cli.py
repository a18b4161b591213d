"""
CLI to classify a still image -> JSON (expression scores, dominant emotion, suggestion).
"""
from __future__ import annotations
import argparse, asyncio, json
import cv2
from ambient.config import Settings
from ambient.classifier import DeepFaceClassifier, dominant_emotion
from ambient.visual import suggestion_for

def classify_image(path: str, settings: Settings) -> dict:
    frame = cv2.imread(path)
    if frame is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    expressions = asyncio.run(DeepFaceClassifier(settings).classify(frame))
    emotion = dominant_emotion(expressions)
    return {
        "expressions": expressions or {},
        "dominant_emotion": emotion,
        "suggestion": suggestion_for(emotion) if emotion else None,
    }

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--image", required=True, help="Path to input image")
    p.add_argument("--backend", default=None, help="DeepFace detector backend override")
    args = p.parse_args()

    settings = Settings(DETECTOR_BACKEND=args.backend) if args.backend else Settings()
    result = classify_image(args.image, settings)
    print(json.dumps(result, indent=2, ensure_ascii=False))

if __name__ == "__main__":
    main()
