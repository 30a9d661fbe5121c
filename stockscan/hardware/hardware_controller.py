# stockscan/hardware/hardware_controller.py
from gpiozero import RGBLED, DigitalOutputDevice
import threading
import logging
from enum import Enum
from stockscan.config.settings import HardwareConfig
from stockscan.core.notices import CAMERA_SLOT, ERROR_SLOT, NoticeLevel
from stockscan.core.session import CameraPermission, SessionPresenter, SessionState

class LEDStatus(Enum):
    """LED status indicators."""
    IDLE = "idle"                  # Green - ready to scan
    BUSY = "busy"                  # Blue - lookup or action in progress
    PRODUCT_OPEN = "product_open"  # Purple - product on screen
    ERROR = "error"                # Red - failed action, unknown code, no camera
    WARNING = "warning"            # Yellow - clamped or unlogged action
    OFF = "off"                    # All off

COLORS = {
    LEDStatus.IDLE: (0, 1, 0),
    LEDStatus.BUSY: (0, 0, 1),
    LEDStatus.PRODUCT_OPEN: (1, 0, 1),
    LEDStatus.ERROR: (1, 0, 0),
    LEDStatus.WARNING: (1, 1, 0),
}

class HardwareController:
    """Controls the RGB status LED and the buzzer of a scan station."""

    def __init__(self, red_pin=HardwareConfig.RED_PIN, green_pin=HardwareConfig.GREEN_PIN,
                 blue_pin=HardwareConfig.BLUE_PIN, buzzer_pin=HardwareConfig.BUZZER_PIN):
        """Initialize hardware controller."""
        self.logger = logging.getLogger(__name__)

        try:
            self.led = RGBLED(red=red_pin, green=green_pin, blue=blue_pin)
            self.logger.info("RGB LED initialized successfully")
        except Exception as e:
            self.logger.error(f"Failed to initialize RGB LED: {e}")
            raise

        try:
            self.buzzer = DigitalOutputDevice(buzzer_pin, active_high=True, initial_value=False)
            self.logger.info("Active buzzer initialized successfully")
        except Exception as e:
            self.logger.error(f"Failed to initialize buzzer: {e}")
            self.led.close()
            raise

        self._current_status = LEDStatus.OFF
        self._led_lock = threading.Lock()
        self._buzzer_lock = threading.Lock()
        self._buzzer_timer = None

    def set_status(self, status: LEDStatus):
        """Set LED status indicator with solid colors."""
        try:
            with self._led_lock:
                if status == LEDStatus.OFF:
                    self.led.off()
                else:
                    self.led.color = COLORS[status]
                self._current_status = status
            self.logger.debug(f"LED status set to: {status.value}")
        except Exception as e:
            self.logger.error(f"Error setting LED status: {e}")

    def get_status(self) -> LEDStatus:
        """Get current LED status."""
        return self._current_status

    def _stop_buzzer_timer(self):
        """Cancel any existing buzzer timer."""
        if self._buzzer_timer is not None:
            self._buzzer_timer.cancel()
            self._buzzer_timer = None

    def _delayed_buzzer_stop(self):
        """Stop the buzzer and clear the timer."""
        try:
            self.buzzer.off()
            self._buzzer_timer = None
        except Exception as e:
            self.logger.error(f"Error stopping buzzer: {e}")

    def beep(self, duration=HardwareConfig.BEEP_DURATION):
        """
        Play a short beep.

        Args:
            duration (float): Duration of the beep in seconds. Default is 50ms.
        """
        try:
            with self._buzzer_lock:
                self._stop_buzzer_timer()
                self.buzzer.on()
                self._buzzer_timer = threading.Timer(duration, self._delayed_buzzer_stop)
                self._buzzer_timer.daemon = True
                self._buzzer_timer.start()
            self.logger.debug("Played beep")
        except Exception as e:
            self.logger.error(f"Error playing beep: {e}")
            self.buzzer.off()

    def cleanup(self):
        """Clean up hardware resources."""
        try:
            self.set_status(LEDStatus.OFF)
            with self._buzzer_lock:
                self._stop_buzzer_timer()
            self.buzzer.off()
            self.buzzer.close()
            self.led.close()
            self.logger.info("Hardware resources cleaned up")
        except Exception as e:
            self.logger.error(f"Error cleaning up hardware resources: {e}")


class HardwarePresenter(SessionPresenter):
    """Mirrors the session on the station LED and buzzer.

    Error and warning colours revert to the session colour once their
    notice is dismissed.
    """

    def __init__(self, hardware):
        self.logger = logging.getLogger(__name__)
        self.hardware = hardware
        self._state = SessionState.IDLE
        self._alert = False
        self._camera_denied = False

    def _session_status(self):
        if self._camera_denied:
            return LEDStatus.ERROR
        if self._state in (SessionState.RESOLVING, SessionState.ACTION_IN_FLIGHT):
            return LEDStatus.BUSY
        if self._state is SessionState.PRODUCT_OPEN:
            return LEDStatus.PRODUCT_OPEN
        return LEDStatus.IDLE

    def _revert_status(self):
        """Revert LED status to the colour of the current session state."""
        if not self._alert:
            self.hardware.set_status(self._session_status())

    def on_state_changed(self, state):
        self._state = state
        self._revert_status()

    def on_scan_accepted(self, code):
        self.hardware.beep()

    def on_notice(self, notice):
        if notice.slot == CAMERA_SLOT:
            # camera colour follows on_camera_permission, not the error slot
            self.hardware.set_status(LEDStatus.ERROR)
        elif notice.level is NoticeLevel.ERROR:
            self._alert = True
            self.hardware.set_status(LEDStatus.ERROR)
        elif notice.level is NoticeLevel.WARNING:
            self._alert = True
            self.hardware.set_status(LEDStatus.WARNING)
        elif notice.level is NoticeLevel.SUCCESS:
            self.hardware.beep()

    def on_notice_cleared(self, slot):
        if slot == ERROR_SLOT:
            self._alert = False
            self._revert_status()
        elif slot == CAMERA_SLOT:
            self._revert_status()

    def on_camera_permission(self, permission):
        self._camera_denied = permission is CameraPermission.DENIED
        self._revert_status()
