"""
Writer — encodes images to the HUH container format.

Encode stages, strictly in order:
    header -> metadata -> dimensions -> pixel stream -> finish

File writes go to a temp file in the destination directory and are renamed
into place only after the pixel stream is finished and fsynced, so a failed
encode never leaves a valid-looking container behind.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from huh._format.errors import IOFailure
from huh._format.fields import (
    pixel_byte_length, write_dimensions, write_header, write_metadata,
)
from huh._format.pixels import open_compressing_sink
from huh._format.spec import BYTES_PER_PIXEL
from huh.progress import ProgressObserver, ProgressTracker

logger = logging.getLogger(__name__)


def _pixel_rows(source: Any) -> Iterator[bytes]:
    """Yield RGB row bytes from a pixel-addressable source.

    Uses ``iter_rows()`` when the source has it. Pillow images (anything
    with ``mode``, ``convert`` and ``tobytes``) are converted to RGB first,
    so palette, greyscale and integer modes keep their colours. Otherwise
    ``getpixel((x, y))`` must return an (r, g, b) or (r, g, b, a) tuple;
    alpha is dropped.
    """
    if hasattr(source, "iter_rows"):
        yield from source.iter_rows()
        return
    if hasattr(source, "mode") and hasattr(source, "convert") and hasattr(source, "tobytes"):
        rgb = source if source.mode == "RGB" else source.convert("RGB")
        data = rgb.tobytes()
        row_size = source.width * BYTES_PER_PIXEL
        for y in range(source.height):
            yield data[y * row_size:(y + 1) * row_size]
        return
    for y in range(source.height):
        row = bytearray()
        for x in range(source.width):
            px = source.getpixel((x, y))
            if not isinstance(px, tuple) or len(px) not in (3, 4):
                raise ValueError(
                    f"Pixel ({x}, {y}) is {px!r}, expected an RGB or RGBA tuple"
                )
            row += bytes(px[:3])
        yield bytes(row)


class HUHWriter:

    @staticmethod
    def dump(
        source: Any,
        stream: BinaryIO,
        metadata: dict[str, str] | None = None,
        progress: ProgressObserver | None = None,
    ) -> None:
        """Encode ``source`` into an open binary stream.

        ``metadata`` defaults to ``source.metadata`` when the source has one.
        """
        if metadata is None:
            metadata = getattr(source, "metadata", None) or {}
        width, height = source.width, source.height
        expected = pixel_byte_length(width, height)

        write_header(stream)
        write_metadata(stream, metadata)
        write_dimensions(stream, width, height)
        logger.debug("Wrote header, %d metadata keys, %dx%d", len(metadata), width, height)

        tracker = ProgressTracker(width * height, progress)
        row_size = width * BYTES_PER_PIXEL
        with open_compressing_sink(stream) as sink:
            for row in _pixel_rows(source):
                if len(row) != row_size:
                    raise ValueError(
                        f"Row of {len(row)} bytes, expected {row_size} for width {width}"
                    )
                sink.write_row(row)
                tracker.advance(width)
            if sink.bytes_written != expected:
                raise ValueError(
                    f"Source produced {sink.bytes_written} pixel bytes, "
                    f"{width}x{height} declares {expected}"
                )
        tracker.finish()
        logger.debug("Finished pixel stream: %d pixels", sink.pixels_written)

    @staticmethod
    def serialize(
        source: Any,
        metadata: dict[str, str] | None = None,
        progress: ProgressObserver | None = None,
    ) -> bytes:
        """Encode to bytes."""
        buf = io.BytesIO()
        HUHWriter.dump(source, buf, metadata, progress)
        return buf.getvalue()

    @staticmethod
    def write(
        source: Any,
        path: str | Path,
        metadata: dict[str, str] | None = None,
        progress: ProgressObserver | None = None,
        mode: int = 0o644,
    ) -> int:
        """Write a container file atomically. Returns bytes written."""
        path = Path(path)
        dir_name = str(path.parent.resolve())
        try:
            fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".huh.tmp", prefix=".")
        except OSError as e:
            raise IOFailure(f"Cannot create {path}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                HUHWriter.dump(source, f, metadata, progress)
                f.flush()
                os.fsync(f.fileno())
                size = f.tell()
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except Exception as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise IOFailure(f"Failed to write {path}: {e}") from e
            raise
        logger.debug("Wrote %s (%d bytes)", path, size)
        return size


def encode(
    source: Any,
    metadata: dict[str, str] | None,
    destination: str | Path,
    progress: ProgressObserver | None = None,
) -> int:
    """Encode ``source`` with ``metadata`` to ``destination``. Returns bytes written."""
    return HUHWriter.write(source, destination, metadata, progress)
