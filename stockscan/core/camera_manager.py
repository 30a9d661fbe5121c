# stockscan/core/camera_manager.py
import cv2
import logging
from stockscan.config.settings import CameraConfig
from stockscan.core.errors import CameraUnavailable

class CameraManager:
    def __init__(self, device_index=CameraConfig.DEVICE_INDEX,
                 resolution=CameraConfig.RESOLUTION):
        """Initialize the capture device wrapper. The device is not opened yet."""
        self.logger = logging.getLogger(__name__)
        self.device_index = device_index
        self.resolution = resolution
        self.capture = None

    def _configure_camera(self):
        """Configure capture settings."""
        width, height = self.resolution
        self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

    @property
    def is_open(self):
        return self.capture is not None and self.capture.isOpened()

    def start(self):
        """Open the camera. Raises CameraUnavailable if it cannot be acquired."""
        if self.is_open:
            return
        try:
            self.capture = cv2.VideoCapture(self.device_index)
        except cv2.error as e:
            self.capture = None
            raise CameraUnavailable(f"Cannot open camera {self.device_index}: {e}") from e

        if not self.capture.isOpened():
            self.capture.release()
            self.capture = None
            raise CameraUnavailable(
                f"Camera {self.device_index} unavailable (missing or access denied)"
            )
        self._configure_camera()
        self.logger.info(f"Camera {self.device_index} started")

    def capture_frame(self):
        """Grab one frame, or None if the device returned nothing."""
        if not self.is_open:
            return None
        ok, frame = self.capture.read()
        return frame if ok else None

    def stop(self):
        """Release the camera."""
        if self.capture is not None:
            self.capture.release()
            self.capture = None
            self.logger.info(f"Camera {self.device_index} released")
