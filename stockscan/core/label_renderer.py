# stockscan/core/label_renderer.py
"""Printable barcode labels.

Symbologies are tried in order until one accepts the code: EAN-13 first,
Code 128 as the generic linear fallback. The result says which one was used.
"""
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import barcode
from barcode.errors import BarcodeError
from barcode.writer import ImageWriter

from stockscan.config.settings import LabelConfig
from stockscan.core.errors import LabelRenderError

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = {
    "module_width": LabelConfig.MODULE_WIDTH,
    "module_height": LabelConfig.MODULE_HEIGHT,
    "quiet_zone": LabelConfig.QUIET_ZONE,
    "font_size": LabelConfig.FONT_SIZE,
    "text_distance": LabelConfig.TEXT_DISTANCE,
    "dpi": LabelConfig.DPI,
    "write_text": True,
}


def gtin_check_digit(payload: str) -> int:
    """GS1 mod-10 check digit for the digits preceding it."""
    total = sum(int(d) * (3 if i % 2 == 0 else 1) for i, d in enumerate(reversed(payload)))
    return (10 - total % 10) % 10


def is_valid_ean13(code: str) -> bool:
    return (len(code) == 13 and code.isdigit()
            and gtin_check_digit(code[:12]) == int(code[12]))


@dataclass(frozen=True)
class RenderedLabel:
    code: str
    symbology: str
    image: Any                  # PIL.Image.Image
    attempted: Tuple[str, ...]  # strategies tried, in order, ending with the one used

    @property
    def fell_back(self) -> bool:
        return len(self.attempted) > 1

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def save(self, path) -> None:
        self.image.save(path, format="PNG")


class SymbologyStrategy:
    name = None
    barcode_class = None

    def accepts(self, code: str) -> bool:
        return True

    def payload(self, code: str) -> str:
        return code

    def render(self, code: str, options: Dict[str, Any]):
        if not self.accepts(code):
            raise LabelRenderError(f"{self.name} cannot encode {code!r}")
        symbol = barcode.get_barcode_class(self.barcode_class)(self.payload(code),
                                                               writer=ImageWriter())
        return symbol.render(writer_options=options)


class Ean13Strategy(SymbologyStrategy):
    name = "ean13"
    barcode_class = "ean13"

    def accepts(self, code):
        return is_valid_ean13(code)

    def payload(self, code):
        # the library appends the check digit itself
        return code[:12]


class Code128Strategy(SymbologyStrategy):
    name = "code128"
    barcode_class = "code128"

    def accepts(self, code):
        return code.isascii() and code.isprintable()


STRATEGIES = {
    strategy.name: strategy for strategy in (Ean13Strategy(), Code128Strategy())
}
DEFAULT_ORDER = (LabelConfig.PRIMARY_SYMBOLOGY, LabelConfig.FALLBACK_SYMBOLOGY)


def render_barcode_image(code: str, symbology: Optional[str] = None,
                         dimensions: Optional[Dict[str, Any]] = None) -> RenderedLabel:
    """
    Render ``code`` as a barcode image.

    Args:
        code: the payload to encode
        symbology: strategy to try first ("ean13" or "code128"); the rest follow
            in default order
        dimensions: writer options overriding the label defaults
            (module_width, module_height, quiet_zone, font_size, ...)

    Returns:
        RenderedLabel tagged with the symbology that succeeded

    Raises:
        LabelRenderError: no strategy could encode the code
    """
    code = (code or "").strip()
    if not code:
        raise LabelRenderError("Cannot render an empty code")

    order = list(DEFAULT_ORDER)
    if symbology is not None:
        if symbology not in STRATEGIES:
            raise LabelRenderError(f"Unknown symbology: {symbology}")
        order.remove(symbology)
        order.insert(0, symbology)

    options = dict(DEFAULT_OPTIONS, **(dimensions or {}))
    attempted = []
    for name in order:
        attempted.append(name)
        try:
            image = STRATEGIES[name].render(code, options)
        except (LabelRenderError, BarcodeError, ValueError, KeyError) as e:
            logger.warning(f"{name} generation failed for {code}, falling back: {e}")
            continue
        logger.info(f"Rendered {code} as {name}")
        return RenderedLabel(code=code, symbology=name, image=image, attempted=tuple(attempted))

    raise LabelRenderError(f"No symbology could encode {code!r} (tried {', '.join(attempted)})")
