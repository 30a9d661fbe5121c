import threading

from stockscan.core.errors import CameraUnavailable
from stockscan.core.stream import BarcodeStream


class FakeCamera:
    def __init__(self, frames=(), fail_start=False):
        self.frames = list(frames)
        self.fail_start = fail_start
        self.started = False
        self.stopped = threading.Event()

    def start(self):
        if self.fail_start:
            raise CameraUnavailable("no device")
        self.started = True

    def capture_frame(self):
        return self.frames.pop(0) if self.frames else None

    def stop(self):
        self.stopped.set()


def echo_decoder(frame):
    return frame


class TestBarcodeStream:
    def test_decoded_frames_become_events(self):
        camera = FakeCamera(frames=["111", None, "", "222"])
        seen = []
        done = threading.Event()

        def on_decode(event):
            seen.append(event)
            if len(seen) == 2:
                done.set()

        stream = BarcodeStream(camera, echo_decoder, scan_interval=0.001, clock=lambda: 42.0)
        handle = stream.start(on_decode)
        assert done.wait(5)
        handle.cancel()

        assert [e.code for e in seen] == ["111", "222"]
        assert all(e.timestamp == 42.0 for e in seen)

    def test_cancel_releases_camera(self):
        camera = FakeCamera()
        ready = threading.Event()
        stream = BarcodeStream(camera, echo_decoder, scan_interval=0.001)

        handle = stream.start(lambda event: None, on_ready=ready.set)
        assert ready.wait(5)
        assert handle.active

        handle.cancel()
        assert camera.stopped.wait(5)
        assert not handle.active
        handle.cancel()

    def test_camera_failure_is_reported_and_released(self):
        camera = FakeCamera(fail_start=True)
        errors = []
        stream = BarcodeStream(camera, echo_decoder)

        handle = stream.start(lambda event: None, on_error=errors.append)
        assert camera.stopped.wait(5)
        handle.cancel()

        assert len(errors) == 1
        assert isinstance(errors[0], CameraUnavailable)

    def test_unexpected_start_failure_is_reported_and_released(self):
        class CrashingCamera(FakeCamera):
            def start(self):
                raise RuntimeError("driver crashed while configuring")

        camera = CrashingCamera()
        errors = []
        stream = BarcodeStream(camera, echo_decoder)

        handle = stream.start(lambda event: None, on_error=errors.append)
        assert camera.stopped.wait(5)
        handle.cancel()

        assert len(errors) == 1
        assert isinstance(errors[0], CameraUnavailable)
        assert "driver crashed" in str(errors[0])

    def test_callback_errors_do_not_stop_the_stream(self):
        camera = FakeCamera(frames=["111", "222"])
        seen = []
        done = threading.Event()

        def on_decode(event):
            seen.append(event.code)
            if event.code == "111":
                raise RuntimeError("boom")
            done.set()

        handle = BarcodeStream(camera, echo_decoder, scan_interval=0.001).start(on_decode)
        assert done.wait(5)
        handle.cancel()
        assert seen == ["111", "222"]

    def test_handle_works_as_context_manager(self):
        camera = FakeCamera()
        ready = threading.Event()
        stream = BarcodeStream(camera, echo_decoder, scan_interval=0.001)

        with stream.start(lambda event: None, on_ready=ready.set):
            assert ready.wait(5)
        assert camera.stopped.is_set()
