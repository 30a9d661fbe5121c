# stockscan/core/errors.py
"""Error taxonomy for the scan-to-inventory pipeline.

Every component catches the faults of the calls it issues and re-raises
them as one of these, so the session controller only ever sees a value
or a known kind.
"""


class StockScanError(Exception):
    """Base class for all scan station errors."""


class DecodeNotFound(StockScanError):
    """No barcode could be read from a still image."""

    def __init__(self, message="No barcode detected in image"):
        super().__init__(message)


class LookupNotFound(StockScanError):
    """A code decoded fine but no product matches it."""

    def __init__(self, code):
        self.code = code
        super().__init__(f"Product not found: {code}")


class TransientStoreError(StockScanError):
    """Network or store failure. Retryable, distinct from 'not found'."""


class CameraUnavailable(StockScanError):
    """The capture device could not be opened (missing or permission denied)."""


class InvalidQuantity(StockScanError, ValueError):
    """A receive/remove quantity that is not a positive integer."""


class LabelRenderError(StockScanError):
    """No symbology could encode the requested code."""
