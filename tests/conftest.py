import asyncio
import pytest
import numpy as np

from ambient.config import Settings
from ambient.detection import DetectionLoop
from ambient.errors import PlaybackRejected
from ambient.notify import Notifier
from ambient.player import AmbientPlayer
from ambient.visual import OverlayRenderer


class DummyOutput:
    """Stands in for the audio device; records loads/plays/pauses."""
    def __init__(self):
        self.on_ended = None
        self.src = None
        self.loads = []
        self.plays = []
        self.pauses = 0
        self.closed = False
        self.fail_urls = set()
        self.fail_play = False
        self.play_delay = 0.0

    def resolve(self, url):
        return url

    async def load(self, url):
        self.loads.append(url)
        if url in self.fail_urls:
            self.src = None
            raise PlaybackRejected("network error")
        self.src = url

    async def play(self):
        if self.play_delay:
            await asyncio.sleep(self.play_delay)
        if self.fail_play:
            raise PlaybackRejected("autoplay not allowed")
        self.plays.append(self.src)

    def pause(self):
        self.pauses += 1

    def close(self):
        self.closed = True


class DummySession:
    def __init__(self):
        self.frame = np.full((48, 64, 3), 90, dtype=np.uint8)
        self.released = False

    def read(self):
        return None if self.released else self.frame.copy()


class DummyCapture:
    """MediaCapture stand-in: counts acquisitions and releases."""
    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.acquired = 0
        self.release_calls = 0
        self.session = None

    async def acquire(self):
        self.acquired += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.session = DummySession()
        return self.session

    def release(self):
        self.release_calls += 1
        if self.session is not None:
            self.session.released = True
            self.session = None


class DummyClassifier:
    """Returns queued results (or raises them); optionally blocks on a gate."""
    def __init__(self, results=None, gate=None):
        self.results = list(results or [{"happy": 0.9, "neutral": 0.1}])
        self.gate = gate
        self.load_error = None
        self.loaded = False
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def load(self):
        self.loaded = True

    async def classify(self, frame):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            res = self.results.pop(0) if len(self.results) > 1 else self.results[0]
            if isinstance(res, Exception):
                raise res
            return res
        finally:
            self.in_flight -= 1


@pytest.fixture
def settings(tmp_path):
    return Settings(FRAME_RATE=200, ASSETS_DIR=str(tmp_path))

@pytest.fixture
def notifier():
    return Notifier(limit=100)

@pytest.fixture
def output():
    return DummyOutput()

@pytest.fixture
def player(output, notifier):
    return AmbientPlayer(output, notifier)

@pytest.fixture
def make_detection(settings, notifier):
    def _make(capture=None, classifier=None):
        return DetectionLoop(
            settings,
            capture=capture or DummyCapture(),
            classifier=classifier or DummyClassifier(),
            renderer=OverlayRenderer(),
            notifier=notifier,
        )
    return _make
