"""Run the emotion detector + ambient player in a desktop window.

Usage:
    uvicorn api.main:app --reload   # (separate, for the HTTP control surface)
    python scripts/live_overlay.py  # (to drive it from a camera window)

Keys: s = start/stop detection, p = play/pause, n = next track, q = quit.
"""
import asyncio
import logging

import cv2
import numpy as np

from ambient.config import Settings
from ambient.coordinator import EmotionCoordinator

WINDOW = "Emotion Ambient (q to quit)"


async def run(settings: Settings) -> None:
    coord = EmotionCoordinator.from_settings(settings)
    await coord.startup()
    idle = np.zeros((240, 320, 3), dtype=np.uint8)
    seen = 0
    try:
        while True:
            frame = coord.detection.renderer.latest if coord.is_recording else None
            cv2.imshow(WINDOW, frame if frame is not None else idle)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("s"):
                if coord.is_recording:
                    coord.stop_detection()
                else:
                    await coord.start_detection()
            elif key == ord("p"):
                await coord.toggle_sound()
            elif key == ord("n"):
                await coord.next_track()

            for note in coord.notifier.since(seen):
                print(f"[{note.level}] {note.message}")
                seen = note.id
            await asyncio.sleep(1.0 / settings.FRAME_RATE)
    finally:
        await coord.shutdown()
        cv2.destroyAllWindows()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run(Settings()))
