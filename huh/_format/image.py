"""
HUHImage — the in-memory container: RGB pixels plus string metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from huh._format.fields import pixel_byte_length
from huh._format.spec import BYTES_PER_PIXEL, FORMAT_VERSION, LEGACY_VERSION


@dataclass
class HUHImage:
    """An opaque RGB raster, row-major from (0, 0), 3 bytes per pixel.

    ``pixels`` is bytes-like (decoded images hold a bytearray);
    ``len(pixels)`` always equals ``width * height * 3``. Metadata is only
    carried by the current layout.
    """

    width: int
    height: int
    pixels: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    format_version: int = FORMAT_VERSION

    def __post_init__(self) -> None:
        expected = pixel_byte_length(self.width, self.height)
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer is {len(self.pixels)} bytes, "
                f"{self.width}x{self.height} needs {expected}"
            )
        if self.format_version == LEGACY_VERSION and self.metadata:
            raise ValueError("Legacy images cannot carry metadata")

    @classmethod
    def from_pixels(
        cls,
        width: int,
        height: int,
        pixels: list[tuple[int, ...]],
        metadata: dict[str, str] | None = None,
    ) -> HUHImage:
        """Build from a flat row-major list of (r, g, b[, a]) tuples; alpha is dropped."""
        buf = bytearray()
        for px in pixels:
            buf += bytes(px[:3])
        return cls(width, height, bytes(buf), dict(metadata or {}))

    @property
    def is_legacy(self) -> bool:
        return self.format_version == LEGACY_VERSION

    @property
    def row_size(self) -> int:
        return self.width * BYTES_PER_PIXEL

    def getpixel(self, xy: tuple[int, int]) -> tuple[int, int, int, int]:
        """RGBA sample at (x, y). Alpha is always 255."""
        x, y = xy
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        i = (y * self.width + x) * BYTES_PER_PIXEL
        r, g, b = self.pixels[i:i + BYTES_PER_PIXEL]
        return r, g, b, 255

    def iter_rows(self) -> Iterator[bytes]:
        row = self.row_size
        for y in range(self.height):
            yield self.pixels[y * row:(y + 1) * row]

    def iter_pixels(self) -> Iterator[tuple[int, int, int]]:
        p = self.pixels
        for i in range(0, len(p), BYTES_PER_PIXEL):
            yield p[i], p[i + 1], p[i + 2]
