# stockscan/core/stream.py
"""Continuous decode stream over a capture device."""
import logging
import threading
import time

from stockscan.config.settings import CameraConfig
from stockscan.core.errors import CameraUnavailable
from stockscan.core.models import DecodeEvent


class StreamHandle:
    """Cancel token for a running stream. Cancelling twice is harmless."""

    def __init__(self, stop_event, thread):
        self._stop_event = stop_event
        self._thread = thread

    @property
    def active(self):
        return self._thread.is_alive() and not self._stop_event.is_set()

    def cancel(self, timeout=5.0):
        self._stop_event.set()
        if self._thread is not threading.current_thread() and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()
        return False


class BarcodeStream:
    """Feeds camera frames through a decoder and emits DecodeEvents.

    Frames that do not decode are skipped silently. The camera is acquired
    when the stream starts and released when the capture thread exits,
    whatever the reason.
    """

    def __init__(self, camera, decoder, scan_interval=CameraConfig.SCAN_INTERVAL,
                 clock=time.time):
        self.logger = logging.getLogger(__name__)
        self.camera = camera
        self.decoder = decoder
        self.scan_interval = scan_interval
        self.clock = clock

    def start(self, on_decode, on_error=None, on_ready=None):
        """Start capturing on a background thread and return its StreamHandle.

        ``on_ready`` is called once the camera has been acquired.
        """
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._scanning_loop,
            args=(stop_event, on_decode, on_error, on_ready),
            name="barcode-stream",
        )
        thread.daemon = True
        handle = StreamHandle(stop_event, thread)
        thread.start()
        return handle

    def _report(self, on_error, error):
        if on_error is None:
            return
        try:
            on_error(error)
        except Exception as e:
            self.logger.error(f"Error in stream error callback: {e}")

    def _scanning_loop(self, stop_event, on_decode, on_error, on_ready):
        try:
            try:
                self.camera.start()
            except CameraUnavailable as e:
                self.logger.error(f"Failed to start camera: {e}")
                self._report(on_error, e)
                return
            except Exception as e:
                self.logger.error(f"Failed to start camera: {e}")
                self._report(on_error, CameraUnavailable(f"Camera failed to start: {e}"))
                return

            if on_ready is not None:
                on_ready()
            while not stop_event.is_set():
                frame = self.camera.capture_frame()
                code = self.decoder(frame) if frame is not None else None
                if code:
                    try:
                        on_decode(DecodeEvent(code=code, timestamp=self.clock()))
                    except Exception as e:
                        self.logger.error(f"Error handling decoded barcode {code}: {e}")
                stop_event.wait(self.scan_interval)
        except Exception as e:
            self.logger.error(f"Error in barcode scanning loop: {e}")
            self._report(on_error, e)
        finally:
            self.camera.stop()
            self.logger.info("Barcode stream stopped")
