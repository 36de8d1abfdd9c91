"""
Tests for the Pillow bridge, converter and terminal viewer.
"""

from __future__ import annotations

import io

import pytest
from PIL import Image

from huh._format import HUHImage, HUHReader, HUHWriter, decode
from huh.imaging import (
    ConversionError,
    convert,
    encode_raster,
    from_pillow,
    load_image,
    to_pillow,
)
from huh.viewer import RESET, UPPER_HALF_BLOCK, fit_size, render_ansi, view


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def gradient():
    """A 16x8 RGB gradient."""
    img = Image.new("RGB", (16, 8))
    img.putdata([(x * 16, y * 32, 128) for y in range(8) for x in range(16)])
    return img


@pytest.fixture
def png_file(tmp_path, gradient):
    path = tmp_path / "gradient.png"
    gradient.save(path)
    return path


# ---------------------------------------------------------------------------
# TestPillowBridge
# ---------------------------------------------------------------------------

class TestPillowBridge:

    def test_from_pillow(self, gradient):
        image = from_pillow(gradient, {"a": "b"})
        assert (image.width, image.height) == (16, 8)
        assert image.getpixel((3, 2)) == (48, 64, 128, 255)
        assert image.metadata == {"a": "b"}

    def test_alpha_dropped(self):
        img = Image.new("RGBA", (2, 1), (1, 2, 3, 0))
        assert from_pillow(img).pixels == b"\x01\x02\x03" * 2

    def test_greyscale_expanded(self):
        img = Image.new("L", (1, 1), 77)
        assert from_pillow(img).pixels == b"MMM"

    def test_to_pillow(self, gradient):
        assert to_pillow(from_pillow(gradient)).tobytes() == gradient.tobytes()

    def test_writer_accepts_pillow_image(self):
        """A Pillow image goes through the getpixel path with alpha dropped."""
        img = Image.new("RGBA", (3, 2), (200, 100, 50, 7))
        out = HUHReader.parse(HUHWriter.serialize(img))
        assert out.pixels == bytes([200, 100, 50]) * 6

    def test_writer_resolves_palette(self):
        img = Image.new("P", (1, 1), 0)
        img.putpalette([255, 0, 0] + [0, 0, 0] * 255)
        out = HUHReader.parse(HUHWriter.serialize(img))
        assert out.getpixel((0, 0)) == (255, 0, 0, 255)

    @pytest.mark.parametrize("mode,color,expected", [
        ("L", 77, (77, 77, 77)),
        ("LA", (77, 10), (77, 77, 77)),
        ("RGB", (1, 2, 3), (1, 2, 3)),
    ])
    def test_writer_accepts_other_modes(self, mode, color, expected):
        img = Image.new(mode, (2, 2), color)
        out = HUHReader.parse(HUHWriter.serialize(img))
        assert out.pixels == bytes(expected) * 4

    def test_encode_raster_png(self, gradient):
        data = encode_raster(from_pillow(gradient), "PNG")
        assert Image.open(io.BytesIO(data)).convert("RGB").tobytes() == gradient.tobytes()


# ---------------------------------------------------------------------------
# TestConvert
# ---------------------------------------------------------------------------

class TestConvert:

    def test_png_to_huh(self, png_file, gradient, tmp_path):
        out = tmp_path / "gradient.huh"
        convert(png_file, out)
        image, metadata = decode(out)
        assert metadata == {"source_file": "gradient.png"}
        assert image.pixels == gradient.tobytes()

    def test_huh_to_png_lossless(self, png_file, gradient, tmp_path):
        huh = tmp_path / "g.huh"
        back = tmp_path / "back.png"
        convert(png_file, huh)
        convert(huh, back)
        assert Image.open(back).convert("RGB").tobytes() == gradient.tobytes()

    def test_huh_to_jpeg(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        jpg = tmp_path / "g.jpg"
        convert(png_file, huh)
        convert(huh, jpg)
        with Image.open(jpg) as img:
            assert img.format == "JPEG"
            assert img.size == (16, 8)

    def test_huh_to_gif(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        gif = tmp_path / "g.gif"
        convert(png_file, huh)
        convert(huh, gif)
        with Image.open(gif) as img:
            assert img.format == "GIF"

    def test_huh_to_huh_rejected(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        convert(png_file, huh)
        with pytest.raises(ConversionError, match="HUH to HUH"):
            convert(huh, tmp_path / "copy.huh")

    def test_unsupported_output(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        convert(png_file, huh)
        with pytest.raises(ConversionError):
            convert(huh, tmp_path / "g.bmp")

    def test_raster_to_raster(self, png_file, tmp_path):
        jpg = tmp_path / "g.jpeg"
        convert(png_file, jpg)
        assert Image.open(jpg).format == "JPEG"

    def test_rgba_source(self, tmp_path):
        src = tmp_path / "alpha.png"
        Image.new("RGBA", (4, 4), (9, 9, 9, 10)).save(src)
        out = tmp_path / "alpha.huh"
        convert(src, out)
        assert decode(out)[0].pixels == b"\x09" * 48

    def test_load_image_dispatch(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        convert(png_file, huh)
        assert load_image(huh).metadata == {"source_file": "gradient.png"}
        assert load_image(png_file).metadata == {}


# ---------------------------------------------------------------------------
# TestViewer
# ---------------------------------------------------------------------------

class TestViewer:

    def test_fit_never_upscales(self):
        assert fit_size(10, 10, 200, 200) == (10, 10)

    def test_fit_width_bound(self):
        assert fit_size(200, 100, 100, 100) == (100, 50)

    def test_fit_height_bound(self):
        # 10 rows hold 20 pixel rows
        assert fit_size(100, 100, 80, 10) == (20, 20)

    def test_fit_degenerate(self):
        assert fit_size(0, 10, 80, 24) == (0, 0)
        assert fit_size(10, 10, 0, 24) == (0, 0)

    def test_render_pairs_rows(self):
        image = HUHImage.from_pixels(
            2, 2, [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 255)]
        )
        text = render_ansi(image, 80, 24)
        lines = text.split("\n")
        assert len(lines) == 1
        assert lines[0] == (
            f"\x1b[38;2;255;0;0m\x1b[48;2;0;0;255m{UPPER_HALF_BLOCK}"
            f"\x1b[38;2;0;255;0m\x1b[48;2;255;255;255m{UPPER_HALF_BLOCK}"
            f"{RESET}"
        )

    def test_render_odd_height(self):
        image = HUHImage(1, 3, bytes(9))
        lines = render_ansi(image, 80, 24).split("\n")
        assert len(lines) == 2
        assert "48;2" not in lines[1]

    def test_render_empty(self):
        assert render_ansi(HUHImage(0, 0, b""), 80, 24) == ""

    def test_view_prints_metadata(self, png_file, tmp_path):
        huh = tmp_path / "g.huh"
        convert(png_file, huh)
        out = io.StringIO()
        view(huh, out=out, interactive=False)
        text = out.getvalue()
        assert text.startswith("HUH v2 image, 16x8. Metadata:")
        assert "  - source_file: gradient.png" in text
        assert UPPER_HALF_BLOCK in text

    def test_view_raster_has_no_header(self, png_file):
        out = io.StringIO()
        view(png_file, out=out, interactive=False)
        assert "Metadata" not in out.getvalue()
