"""
Pydantic data models for player/detection state and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal, Tuple

class Track(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str

PLAYLIST: Tuple[Track, ...] = (
    Track(name="Rain Sounds", url="/audio/rain.mp3"),
    Track(name="Ocean Waves", url="/audio/ocean.mp3"),
    Track(name="Forest Birds", url="/audio/birds.mp3"),
)

class PlayerState(BaseModel):
    current_track_index: int = Field(default=0, ge=0)
    is_playing: bool = False

class DetectionState(BaseModel):
    is_recording: bool = False
    dominant_emotion: Optional[str] = None

class Notification(BaseModel):
    id: int
    level: Literal["success", "info", "warning", "error"]
    message: str
    ts: float

class CoordinatorStatus(BaseModel):
    is_recording: bool = False
    is_playing: bool = False
    current_track_index: Optional[int] = None
    current_track_name: str = ""
    dominant_emotion: Optional[str] = None
