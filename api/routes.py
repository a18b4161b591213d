"""
REST endpoints for the emotion detector, the ambient player and the dashboard session.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, HTTPException, Request
from fastapi.responses import Response
import logging

from ambient.coordinator import EmotionCoordinator
from ambient.models import CoordinatorStatus, Notification
from ambient.storage import KeyValueStore

router = APIRouter()
logger = logging.getLogger(__name__)

SESSION_KEY = "currentUser"


def _coordinator(request: Request) -> EmotionCoordinator:
    return request.app.state.coordinator


def _session_store(request: Request) -> KeyValueStore:
    return request.app.state.store.scoped("dashboard")


@router.post("/emotion/start", response_model=CoordinatorStatus)
async def emotion_start(request: Request):
    """
    Acquire the camera and begin per-frame emotion detection.

    Camera failures are reported through /notifications; the response always
    carries the resulting state.
    """
    coord = _coordinator(request)
    logger.debug("[api] /emotion/start")
    await coord.start_detection()
    return coord.status()


@router.post("/emotion/stop", response_model=CoordinatorStatus)
async def emotion_stop(request: Request):
    coord = _coordinator(request)
    logger.debug("[api] /emotion/stop")
    coord.stop_detection()
    return coord.status()


@router.get("/emotion/status", response_model=CoordinatorStatus)
async def emotion_status(request: Request):
    return _coordinator(request).status()


@router.get("/emotion/frame")
async def emotion_frame(request: Request):
    """Latest overlay canvas as JPEG; 404 while detection is idle."""
    jpeg = _coordinator(request).overlay_jpeg()
    if jpeg is None:
        raise HTTPException(status_code=404, detail="No frame available")
    return Response(content=jpeg, media_type="image/jpeg")


@router.post("/sound/toggle", response_model=CoordinatorStatus)
async def sound_toggle(request: Request):
    coord = _coordinator(request)
    logger.debug(f"[api] /sound/toggle playing={coord.is_playing}")
    await coord.toggle_sound()
    return coord.status()


@router.post("/sound/next", response_model=CoordinatorStatus)
async def sound_next(request: Request):
    coord = _coordinator(request)
    logger.debug("[api] /sound/next")
    await coord.next_track()
    return coord.status()


@router.get("/notifications", response_model=List[Notification])
async def notifications(request: Request, after: int = 0):
    notifier = _coordinator(request).notifier
    return notifier.since(after) if notifier is not None else []


@router.get("/session")
async def session_get(request: Request):
    user = _session_store(request).get(SESSION_KEY)
    if user is None:
        raise HTTPException(status_code=404, detail="No active session")
    return user


@router.put("/session")
async def session_put(request: Request, user: Dict[str, Any] = Body(...)):
    _session_store(request).set(SESSION_KEY, user)
    return user


@router.delete("/session")
async def session_delete(request: Request):
    """Log out: forget the current user record."""
    _session_store(request).remove(SESSION_KEY)
    return {"status": "logged_out"}
