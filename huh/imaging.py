"""
Pillow bridge — conversion between HUH containers and standard rasters.

Supported raster outputs: .png, .jpg/.jpeg (quality 90), .gif. Any format
Pillow can open is accepted as input. Alpha is dropped on the way in.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO

from PIL import Image

from huh import EXTENSION
from huh._format.image import HUHImage
from huh._format.reader import HUHReader
from huh._format.writer import HUHWriter
from huh.progress import ProgressObserver

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90

# Output suffix -> Pillow format name
RASTER_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".gif": "GIF",
}


class ConversionError(ValueError):
    """Unsupported or impossible conversion."""


def is_huh_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() == EXTENSION


def from_pillow(img: Image.Image, metadata: dict[str, str] | None = None) -> HUHImage:
    """Flatten a Pillow image to opaque RGB."""
    if img.mode != "RGB":
        img = img.convert("RGB")
    return HUHImage(img.width, img.height, img.tobytes(), dict(metadata or {}))


def to_pillow(image: HUHImage) -> Image.Image:
    # frombytes wants an immutable buffer
    return Image.frombytes("RGB", (image.width, image.height), bytes(image.pixels))


def open_raster(fp: str | Path | BinaryIO) -> Image.Image:
    """Open and fully load a raster with Pillow."""
    img = Image.open(fp)
    img.load()
    return img


def load_image(path: str | Path, progress: ProgressObserver | None = None) -> HUHImage:
    """Load any supported file (HUH or raster) as an HUHImage."""
    if is_huh_path(path):
        return HUHReader.read(path, progress)
    return from_pillow(open_raster(path))


def encode_raster(image: HUHImage, fmt: str) -> bytes:
    """Encode to an in-memory raster (e.g. ``"PNG"``)."""
    buf = io.BytesIO()
    _save(to_pillow(image), buf, fmt)
    return buf.getvalue()


def _save(img: Image.Image, fp: str | Path | BinaryIO, fmt: str) -> None:
    if fmt == "JPEG":
        img.save(fp, format=fmt, quality=JPEG_QUALITY)
    elif fmt == "GIF":
        img.convert("P", palette=Image.Palette.ADAPTIVE, colors=256).save(fp, format=fmt)
    else:
        img.save(fp, format=fmt)


def save_raster(image: HUHImage, path: str | Path) -> None:
    """Save as the raster format implied by the path suffix."""
    suffix = Path(path).suffix.lower()
    fmt = RASTER_FORMATS.get(suffix)
    if fmt is None:
        raise ConversionError(f"Unsupported output format: {suffix or '(none)'}")
    _save(to_pillow(image), path, fmt)


def convert(
    input_path: str | Path,
    output_path: str | Path,
    progress: ProgressObserver | None = None,
) -> None:
    """Convert between HUH and raster formats, or raster to raster.

    Raster -> HUH records ``source_file`` (the input's basename) as metadata.
    HUH -> HUH is rejected.
    """
    input_path, output_path = Path(input_path), Path(output_path)
    src_huh, dst_huh = is_huh_path(input_path), is_huh_path(output_path)

    if src_huh and dst_huh:
        raise ConversionError("Cannot convert from HUH to HUH")

    if src_huh:
        image = HUHReader.read(input_path, progress)
        save_raster(image, output_path)
    elif dst_huh:
        image = from_pillow(open_raster(input_path), {"source_file": input_path.name})
        HUHWriter.write(image, output_path, progress=progress)
    else:
        suffix = output_path.suffix.lower()
        if suffix not in RASTER_FORMATS:
            raise ConversionError(f"Unsupported output format: {suffix or '(none)'}")
        _save(open_raster(input_path).convert("RGB"), output_path, RASTER_FORMATS[suffix])

    logger.info("Converted %s -> %s", input_path, output_path)
