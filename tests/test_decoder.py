import pytest

pytest.importorskip("cv2")
pytest.importorskip("pyzbar.pyzbar")
pytest.importorskip("barcode")

import numpy as np

from stockscan.core.decoder import decode_frame, decode_still_image
from stockscan.core.errors import DecodeNotFound
from stockscan.core.label_renderer import render_barcode_image

from conftest import COLA


@pytest.fixture(scope="module")
def cola_label():
    return render_barcode_image(COLA)


def blank(height=200, width=400):
    return np.full((height, width, 3), 255, dtype=np.uint8)


class TestDecodeFrame:
    def test_reads_rendered_ean13(self, cola_label):
        frame = np.array(cola_label.image.convert("RGB"))[:, :, ::-1]
        assert decode_frame(frame) == COLA

    def test_empty_frame_is_none(self):
        assert decode_frame(blank()) is None
        assert decode_frame(None) is None


class TestDecodeStillImage:
    def test_reads_png_bytes(self, cola_label):
        assert decode_still_image(cola_label.to_png()) == COLA

    def test_reads_file_path(self, cola_label, tmp_path):
        path = tmp_path / "cola.png"
        cola_label.save(path)
        assert decode_still_image(str(path)) == COLA
        assert decode_still_image(path) == COLA

    def test_reads_grayscale_array(self, cola_label):
        assert decode_still_image(np.array(cola_label.image.convert("L"))) == COLA

    def test_image_without_barcode(self):
        with pytest.raises(DecodeNotFound) as excinfo:
            decode_still_image(blank())
        assert str(excinfo.value) == "No barcode detected in image"

    def test_unreadable_bytes(self):
        with pytest.raises(DecodeNotFound):
            decode_still_image(b"definitely not a png")

    def test_missing_file(self, tmp_path):
        with pytest.raises(DecodeNotFound):
            decode_still_image(tmp_path / "missing.png")

    def test_unsupported_source_type(self):
        with pytest.raises(TypeError):
            decode_still_image(12345)
