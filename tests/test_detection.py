import asyncio

from ambient.errors import ClassificationFailure, DeviceUnavailable, ModelLoadFailure, PermissionDenied
from conftest import DummyCapture, DummyClassifier


async def _wait_for(predicate, steps=200):
    for _ in range(steps):
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


def test_dominant_emotion_from_classification(make_detection):
    clf = DummyClassifier(results=[{"happy": 0.2, "neutral": 0.7, "sad": 0.1}])
    det = make_detection(classifier=clf)

    async def scenario():
        await det.start()
        assert det.is_recording
        assert await _wait_for(lambda: det.dominant_emotion is not None)
        assert det.dominant_emotion == "neutral"
        assert det.renderer.annotation == ("neutral", "Maintain your positive state")
        det.stop()

    asyncio.run(scenario())


def test_permission_denied_stays_idle_without_drawing(make_detection, notifier):
    det = make_detection(capture=DummyCapture(error=PermissionDenied("denied")))

    async def scenario():
        await det.start()
        await asyncio.sleep(0.02)

    asyncio.run(scenario())
    assert det.is_recording is False
    assert det.renderer.frames_drawn == 0
    assert det.renderer.latest is None
    note = notifier.latest()
    assert note.level == "error" and "denied" in note.message


def test_device_unavailable_can_retry(make_detection, notifier):
    cap = DummyCapture(error=DeviceUnavailable("no camera"))
    det = make_detection(capture=cap)

    async def scenario():
        await det.start()
        assert not det.is_recording
        assert notifier.latest().message == "Unable to access camera"
        cap.error = None
        await det.start()
        assert det.is_recording
        det.stop()

    asyncio.run(scenario())
    assert cap.acquired == 2


def test_stop_when_idle_is_noop(make_detection, notifier):
    cap = DummyCapture()
    det = make_detection(capture=cap)
    det.stop()
    assert cap.release_calls == 0
    assert det.is_recording is False
    assert notifier.since(0) == []


def test_double_start_acquires_one_session(make_detection):
    cap = DummyCapture(delay=0.01)
    det = make_detection(capture=cap)

    async def scenario():
        await asyncio.gather(det.start(), det.start())
        assert det.is_recording
        det.stop()

    asyncio.run(scenario())
    assert cap.acquired == 1


def test_stop_during_start_releases_camera(make_detection):
    cap = DummyCapture(delay=0.02)
    det = make_detection(capture=cap)

    async def scenario():
        async def stop_soon():
            await asyncio.sleep(0.005)
            det.stop()
        await asyncio.gather(det.start(), stop_soon())

    asyncio.run(scenario())
    assert det.is_recording is False
    assert cap.release_calls == 1


def test_start_after_cancelled_start_reacquires(make_detection):
    cap = DummyCapture(delay=0.02)
    det = make_detection(capture=cap)

    async def scenario():
        first = asyncio.ensure_future(det.start())
        await asyncio.sleep(0.005)
        det.stop()
        await det.start()
        await first
        assert det.is_recording
        # the cancelled session was released before the camera was opened again
        assert cap.acquired == 2
        assert cap.release_calls == 1
        assert cap.session is not None and not cap.session.released
        det.stop()

    asyncio.run(scenario())
    assert cap.release_calls == 2


def test_at_most_one_classification_in_flight(make_detection):
    gate = asyncio.Event()
    clf = DummyClassifier(gate=gate)
    det = make_detection(classifier=clf)

    async def scenario():
        await det.start()
        await asyncio.sleep(0.05)
        assert clf.calls == 1
        assert det.renderer.frames_drawn > 1
        gate.set()
        assert await _wait_for(lambda: clf.calls >= 3)
        det.stop()

    asyncio.run(scenario())
    assert clf.max_in_flight == 1


def test_result_after_stop_is_discarded(make_detection):
    gate = asyncio.Event()
    clf = DummyClassifier(results=[{"angry": 0.9}], gate=gate)
    det = make_detection(classifier=clf)

    async def scenario():
        await det.start()
        assert await _wait_for(lambda: clf.calls == 1)
        det.stop()
        gate.set()
        await asyncio.sleep(0.02)
        assert det.dominant_emotion is None
        assert det.renderer.annotation is None
        assert clf.calls == 1

    asyncio.run(scenario())


def test_classification_failure_keeps_loop_running(make_detection, notifier):
    clf = DummyClassifier(results=[ClassificationFailure("boom"), {"sad": 0.8, "happy": 0.2}])
    det = make_detection(classifier=clf)

    async def scenario():
        await det.start()
        assert await _wait_for(lambda: det.dominant_emotion == "sad")
        assert det.is_recording
        det.stop()

    asyncio.run(scenario())
    assert [n.level for n in notifier.since(0)] == ["success", "info"]


def test_no_face_leaves_emotion_unchanged(make_detection):
    clf = DummyClassifier(results=[None])
    det = make_detection(classifier=clf)

    async def scenario():
        await det.start()
        assert await _wait_for(lambda: clf.calls >= 2)
        assert det.dominant_emotion is None
        det.stop()

    asyncio.run(scenario())


def test_stop_clears_state_and_releases_once(make_detection):
    cap = DummyCapture()
    det = make_detection(capture=cap)

    async def scenario():
        await det.start()
        assert await _wait_for(lambda: det.dominant_emotion is not None)
        det.stop()
        det.stop()
        await asyncio.sleep(0.02)

    asyncio.run(scenario())
    assert cap.release_calls == 1
    assert det.dominant_emotion is None
    assert det.renderer.latest is None


def test_model_load_failure_blocks_start(make_detection, notifier):
    clf = DummyClassifier()
    clf.load_error = ModelLoadFailure("missing weights")
    cap = DummyCapture()
    det = make_detection(capture=cap, classifier=clf)

    asyncio.run(det.start())
    assert cap.acquired == 0
    assert not det.is_recording
    assert notifier.latest().level == "error"
