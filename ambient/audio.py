"""
Audio output device: source loading (local asset or remote URL), play/pause
and end-of-track notification.

Samples are decoded with soundfile and streamed through a sounddevice
OutputStream whose callback runs on the PortAudio thread. End of track is
marshalled back to the event loop; pausing, reloading or replacing the stream
never reports an end.
"""
from __future__ import annotations
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse
import asyncio
import io
import logging

import numpy as np
import requests
import sounddevice as sd
import soundfile as sf

from ambient.config import Settings
from ambient.errors import PlaybackRejected

logger = logging.getLogger(__name__)


def is_remote(url: str) -> bool:
    return urlparse(url).scheme in ("http", "https")


class AudioOutput:
    """Single audio output resource, driven like a media element."""
    def __init__(self, settings: Settings, on_ended: Optional[Callable[[], None]] = None):
        self.s = settings
        self.on_ended = on_ended
        self.src: Optional[str] = None
        self._data: Optional[np.ndarray] = None
        self._samplerate = 0
        self._pos = 0
        self._stream: Optional[sd.OutputStream] = None
        self._token = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def playing(self) -> bool:
        return self._stream is not None

    @property
    def position_seconds(self) -> float:
        return self._pos / float(self._samplerate) if self._samplerate else 0.0

    # ---- source ----
    def resolve(self, url: str) -> str:
        """Absolute source for a track URL; a leading '/' is the assets root."""
        if is_remote(url):
            return url
        parsed = urlparse(url)
        if parsed.scheme == "file":
            return str(Path(parsed.path).resolve())
        return str((Path(self.s.ASSETS_DIR) / url.lstrip("/")).resolve())

    def _fetch_and_decode(self, source: str):
        if is_remote(source):
            logger.debug(f"[audio] GET {source}")
            resp = requests.get(source, timeout=self.s.HTTP_TIMEOUT)
            resp.raise_for_status()
            blob = io.BytesIO(resp.content)
            return sf.read(blob, dtype="float32", always_2d=True)
        if not Path(source).exists():
            raise FileNotFoundError(f"Audio file not found: {source}")
        return sf.read(source, dtype="float32", always_2d=True)

    async def load(self, url: str) -> None:
        """Replace the current source and rewind. Raises PlaybackRejected."""
        source = self.resolve(url)
        self.pause()
        try:
            data, sr = await asyncio.to_thread(self._fetch_and_decode, source)
        except (requests.exceptions.RequestException, RuntimeError, OSError, ValueError) as e:
            logger.exception(f"[audio] failed to load {source}")
            self.src = None
            self._data = None
            raise PlaybackRejected(f"could not load audio ({e})") from e
        self._data = data
        self._samplerate = int(sr)
        self._pos = 0
        self.src = source
        logger.debug(f"[audio] loaded {source} frames={len(data)} sr={sr} ch={data.shape[1]}")

    # ---- transport ----
    async def play(self) -> None:
        """Start streaming from the current position. Raises PlaybackRejected."""
        if self._data is None:
            raise PlaybackRejected("no audio source loaded")
        if self._stream is not None:
            return
        if self._pos >= len(self._data):
            self._pos = 0
        self._loop = asyncio.get_running_loop()
        self._token += 1
        token = self._token
        data = self._data
        state = {"ended": False}

        def callback(outdata, frames, time_info, status):
            chunk = data[self._pos:self._pos + frames]
            n = len(chunk)
            outdata[:n] = chunk
            self._pos += n
            if n < frames:
                outdata[n:] = 0
                state["ended"] = True
                raise sd.CallbackStop

        def finished():
            if state["ended"] and self._loop is not None:
                self._loop.call_soon_threadsafe(self._handle_finished, token)

        try:
            stream = sd.OutputStream(
                samplerate=self._samplerate,
                channels=data.shape[1],
                dtype="float32",
                blocksize=self.s.AUDIO_BLOCKSIZE,
                callback=callback,
                finished_callback=finished,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            logger.exception("[audio] output device rejected playback")
            raise PlaybackRejected(f"audio device error ({e})") from e
        self._stream = stream

    def _handle_finished(self, token: int) -> None:
        if token != self._token:
            return
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close(ignore_errors=True)
        logger.debug(f"[audio] reached end of {self.src}")
        if self.on_ended is not None:
            self.on_ended()

    def pause(self) -> None:
        """Stop output, keep the position. Idempotent."""
        self._token += 1
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.abort(ignore_errors=True)
        finally:
            stream.close(ignore_errors=True)

    def close(self) -> None:
        self.pause()
        self._data = None
        self.src = None
