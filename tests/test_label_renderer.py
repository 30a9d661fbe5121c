import pytest

pytest.importorskip("barcode")

from stockscan.core.errors import LabelRenderError
from stockscan.core.label_renderer import gtin_check_digit, is_valid_ean13, render_barcode_image

from conftest import COLA, NIVEA, NUTELLA


class TestCheckDigit:
    def test_known_codes(self):
        assert gtin_check_digit(COLA[:12]) == 9
        assert gtin_check_digit(NUTELLA[:12]) == 8

    def test_validation(self):
        assert is_valid_ean13(COLA)
        assert is_valid_ean13(NUTELLA)
        # the demo Nivea code carries a wrong check digit
        assert not is_valid_ean13(NIVEA)
        assert not is_valid_ean13("12345")
        assert not is_valid_ean13("500011257600X")


class TestRenderBarcodeImage:
    def test_valid_ean13_uses_primary_symbology(self):
        label = render_barcode_image(COLA)
        assert label.symbology == "ean13"
        assert label.attempted == ("ean13",)
        assert not label.fell_back
        assert label.image.size[0] > 0

    def test_bad_check_digit_falls_back_to_code128(self):
        label = render_barcode_image(NIVEA)
        assert label.symbology == "code128"
        assert label.attempted == ("ean13", "code128")
        assert label.fell_back

    def test_alphanumeric_code_falls_back_to_code128(self):
        label = render_barcode_image("SKU-00042")
        assert label.symbology == "code128"

    def test_requested_symbology_is_tried_first(self):
        label = render_barcode_image(COLA, symbology="code128")
        assert label.symbology == "code128"
        assert label.attempted == ("code128",)

    def test_dimensions_override_defaults(self):
        narrow = render_barcode_image(COLA, dimensions={"module_width": 0.2})
        wide = render_barcode_image(COLA, dimensions={"module_width": 0.5})
        assert wide.image.size[0] > narrow.image.size[0]

    def test_png_output(self, tmp_path):
        label = render_barcode_image(COLA)
        assert label.to_png().startswith(b"\x89PNG")
        target = tmp_path / "cola.png"
        label.save(target)
        assert target.read_bytes().startswith(b"\x89PNG")

    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_empty_code_is_rejected(self, code):
        with pytest.raises(LabelRenderError):
            render_barcode_image(code)

    def test_unknown_symbology_is_rejected(self):
        with pytest.raises(LabelRenderError):
            render_barcode_image(COLA, symbology="qr")

    def test_unencodable_code_fails_every_strategy(self):
        with pytest.raises(LabelRenderError) as excinfo:
            render_barcode_image("café")
        assert "ean13, code128" in str(excinfo.value)
