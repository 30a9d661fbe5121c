# stockscan/core/decoder.py
"""Barcode decoding for live frames and still images."""
import logging
import os

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from stockscan.config.settings import ScannerConfig
from stockscan.core.errors import DecodeNotFound

logger = logging.getLogger(__name__)

SYMBOLS = [getattr(ZBarSymbol, name) for name in ScannerConfig.SYMBOLOGIES]


def _to_gray(image):
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def _first_code(image):
    for barcode in decode(image, symbols=SYMBOLS):
        data = barcode.data.decode("utf-8", errors="ignore").strip()
        if data:
            logger.debug(f"Decoded {barcode.type}: {data}")
            return data
    return None


def decode_frame(frame):
    """Decode one video frame. Returns the code, or None for the (usual) empty frame."""
    if frame is None:
        return None
    try:
        return _first_code(_to_gray(frame))
    except Exception as e:
        logger.debug(f"Frame decode failed: {e}")
        return None


def _load_image(source):
    if isinstance(source, np.ndarray):
        return source
    if isinstance(source, (bytes, bytearray)):
        buffer = np.frombuffer(bytes(source), dtype=np.uint8)
        return cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if isinstance(source, (str, os.PathLike)):
        return cv2.imread(os.fspath(source), cv2.IMREAD_COLOR)
    raise TypeError(f"Unsupported image source: {type(source).__name__}")


def decode_still_image(source):
    """
    Decode a single still image, trying harder than the live path.

    Args:
        source: image path, encoded image bytes, or a numpy array

    Returns:
        str: the decoded code

    Raises:
        DecodeNotFound: no barcode could be read (or the image could not be loaded)
    """
    image = _load_image(source)
    if image is None or image.size == 0:
        logger.warning("Still image could not be read")
        raise DecodeNotFound()

    gray = _to_gray(image)
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    for candidate in (gray, binary):
        code = _first_code(candidate)
        if code:
            logger.info(f"Decoded still image: {code}")
            return code

    logger.info("No barcode detected in still image")
    raise DecodeNotFound()
