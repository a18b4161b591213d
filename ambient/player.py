"""
Ambient playlist player.

Operations are serialized with an asyncio.Lock: a next_track() issued while a
toggle_sound() play attempt is pending runs after it and converges on the new
track playing, or on a reported failure.
"""
from __future__ import annotations
from typing import Optional, Sequence
import asyncio
import logging

from ambient.errors import PlaybackRejected
from ambient.models import PLAYLIST, PlayerState, Track
from ambient.notify import Notifier

logger = logging.getLogger(__name__)


class AmbientPlayer:
    """play/pause/advance over a fixed playlist, owning one audio output."""
    def __init__(self, output, notifier: Notifier, playlist: Sequence[Track] = PLAYLIST,
                 initial_track: int = 0):
        if not playlist:
            raise ValueError("playlist must not be empty")
        self.playlist = tuple(playlist)
        self.output = output
        self.notifier = notifier
        self.state = PlayerState(current_track_index=initial_track % len(self.playlist))
        self._lock = asyncio.Lock()
        self._ended_task: Optional[asyncio.Task] = None
        # bumped on every advance or pause; end events carry the value they saw
        self._transitions = 0
        output.on_ended = self._on_output_ended

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def current_track(self) -> Track:
        return self.playlist[self.state.current_track_index]

    # ---- operations ----
    async def toggle_sound(self) -> None:
        async with self._lock:
            track = self.current_track
            if self.state.is_playing:
                self.output.pause()
                self._transitions += 1
                self.state.is_playing = False
                self.notifier.info(f"Paused: {track.name}")
                return
            # reload only when the resolved source changed
            await self._play(track, reload=self.output.resolve(track.url) != self.output.src)

    async def next_track(self) -> None:
        async with self._lock:
            await self._advance()

    async def track_ended(self, transition: Optional[int] = None) -> None:
        """
        Current track played to the end unattended: advance and keep playing.

        ``transition`` is the player transition count when the end was observed;
        if the player has advanced or paused since, the end is stale and ignored.
        """
        async with self._lock:
            if not self.state.is_playing:
                return
            if transition is not None and transition != self._transitions:
                logger.debug("[player] ignoring stale end-of-track")
                return
            logger.debug(f"[player] '{self.current_track.name}' ended; advancing")
            await self._advance()

    def close(self) -> None:
        if self._ended_task is not None:
            self._ended_task.cancel()
            self._ended_task = None
        self.output.close()
        self.state.is_playing = False

    # ---- internals ----
    def _on_output_ended(self) -> None:
        self._ended_task = asyncio.ensure_future(self.track_ended(self._transitions))

    async def _advance(self) -> None:
        self._transitions += 1
        self.state.current_track_index = (self.state.current_track_index + 1) % len(self.playlist)
        track = self.current_track
        logger.debug(f"[player] advanced to index={self.state.current_track_index} '{track.name}'")
        if self.state.is_playing:
            self.output.pause()
            await self._play(track, reload=True)

    async def _play(self, track: Track, reload: bool) -> None:
        try:
            if reload:
                await self.output.load(track.url)
            await self.output.play()
        except PlaybackRejected as e:
            # leave the output cleanly paused so a later toggle can retry
            self.output.pause()
            self.state.is_playing = False
            logger.warning(f"[player] playback of '{track.name}' rejected: {e.reason}")
            self.notifier.error(f"Failed to play {track.name}: {e.reason}")
            return
        self.state.is_playing = True
        self.notifier.success(f"Playing: {track.name}")
