# stockscan/core/barcode_processor.py
"""Duplicate and rapid-fire scan suppression for the scan station."""
import threading
import time
import logging

from stockscan.config.settings import ScannerConfig


class BarcodeProcessor:
    def __init__(self, rescan_delay=ScannerConfig.RESCAN_DELAY, clock=time.time):
        """Initialize the barcode debouncer."""
        self.logger = logging.getLogger(__name__)
        self.RESCAN_DELAY = rescan_delay
        self.clock = clock
        self.last_code = None
        self.cooldown_until = None
        self.held = False
        self._lock = threading.Lock()

    def process_barcode(self, barcode_data, current_time=None):
        """
        Decide whether a decoded barcode should go downstream.

        Args:
            barcode_data: Decoded barcode string
            current_time: Event timestamp (defaults to the processor clock)

        Returns:
            bool: True if the event is accepted
        """
        if current_time is None:
            current_time = self.clock()

        with self._lock:
            if self.held:
                self.logger.debug(f"Dropped {barcode_data}: a product session is active")
                return False

            if (barcode_data == self.last_code and
                    self.cooldown_until is not None and
                    current_time < self.cooldown_until):
                self.logger.debug(f"Dropped {barcode_data}: within rescan cooldown")
                return False

            self.last_code = barcode_data
            self.cooldown_until = current_time + self.RESCAN_DELAY

        self.logger.info(f"Accepted barcode: {barcode_data}")
        return True

    def hold(self):
        """Drop every event until release(); one resolution at a time."""
        with self._lock:
            self.held = True

    def release(self):
        with self._lock:
            self.held = False

    @property
    def is_held(self):
        return self.held

    def forget(self, barcode_data):
        """Clear the cooldown for one code so it can be retried right away."""
        with self._lock:
            if self.last_code == barcode_data:
                self.last_code = None
                self.cooldown_until = None

    def reset(self):
        """Re-arm for a fresh first scan."""
        with self._lock:
            self.last_code = None
            self.cooldown_until = None
            self.held = False
        self.logger.debug("Barcode processor reset")
