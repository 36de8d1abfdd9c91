"""
Reader — decodes HUH container files.

Decode stages, strictly sequential, no backtracking:
    header -> metadata -> dimensions -> pixel stream open -> pixels read

Any failure is terminal: callers get a complete HUHImage or an exception,
never a partially filled image.

Layout dispatch:
  - Files starting with the magic take the current-layout path.
  - Anything else is probed as a legacy raw dump, accepted only when the
    file size is exactly 8 + width*height*3. Otherwise: bad magic.

Security features:
  - Dimension overflow is checked before any pixel buffer is allocated
  - Metadata length is capped (MAX_METADATA_BYTES)
  - Decompression is bounded by the declared pixel byte count
  - verify() checks a container in constant memory (used for uploads)
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from huh._format.errors import (
    IOFailure, MalformedContainer, TruncatedPayload,
)
from huh._format.fields import (
    is_huh_bytes, parse_dimensions, parse_header, pixel_byte_length,
    read_dimensions, read_exact, read_metadata,
)
from huh._format.image import HUHImage
from huh._format.pixels import open_decompressing_source
from huh._format.spec import (
    BYTES_PER_PIXEL, DIMENSION_SIZE, HEADER_SIZE, LEGACY_VERSION, MAGIC,
    STREAM_CHUNK_SIZE,
)
from huh.progress import ProgressObserver, ProgressTracker

logger = logging.getLogger(__name__)


@dataclass
class HUHInfo:
    """Everything in front of the pixel stream."""

    format_version: int
    width: int
    height: int
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def pixel_bytes(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL


def _remaining(stream: BinaryIO) -> int | None:
    """Bytes left after the current position if seekable, else None."""
    try:
        pos = stream.tell()
        end = stream.seek(0, os.SEEK_END)
        stream.seek(pos)
    except (OSError, ValueError, AttributeError):
        return None
    return end - pos


class HUHReader:
    """
    Container file reader.

    Usage:
        image = HUHReader.read("photo.huh")
        image.width, image.height, image.metadata

        info = HUHReader.read_info("photo.huh")   # no pixel decompression
    """

    @staticmethod
    def is_huh(path: str | Path) -> bool:
        """Fast check if a file starts with the HUH magic."""
        with open(path, "rb") as f:
            head = f.read(len(MAGIC))
        return is_huh_bytes(head)

    @classmethod
    def read(cls, path: str | Path, progress: ProgressObserver | None = None) -> HUHImage:
        """Fully decode a container file (current or legacy layout)."""
        try:
            f = open(path, "rb")
        except OSError as e:
            raise IOFailure(f"Cannot open {path}: {e}") from e
        with f:
            image = cls.load(f, progress)
        logger.debug(
            "Decoded %s: v%d %dx%d", path, image.format_version, image.width, image.height
        )
        return image

    @classmethod
    def parse(cls, data: bytes, progress: ProgressObserver | None = None) -> HUHImage:
        """Decode a container held in memory."""
        return cls.load(io.BytesIO(data), progress)

    @classmethod
    def load(cls, stream: BinaryIO, progress: ProgressObserver | None = None) -> HUHImage:
        """Decode from an open binary stream positioned at the container start."""
        head = read_exact(stream, len(MAGIC), "header")
        if is_huh_bytes(head):
            return cls._load_current(head, stream, progress)
        return cls._load_legacy(head, stream, progress)

    @classmethod
    def read_info(cls, path: str | Path) -> HUHInfo:
        """Read header, metadata and dimensions without touching the pixel stream."""
        try:
            f = open(path, "rb")
        except OSError as e:
            raise IOFailure(f"Cannot open {path}: {e}") from e
        with f:
            head = read_exact(f, len(MAGIC), "header")
            if is_huh_bytes(head):
                return cls._read_current_info(head, f)
            width, height = cls._probe_legacy(head, f)
            return HUHInfo(LEGACY_VERSION, width, height)

    # -- current layout ----------------------------------------------------

    @staticmethod
    def _read_current_info(head: bytes, stream: BinaryIO) -> HUHInfo:
        version = parse_header(head + read_exact(stream, HEADER_SIZE - len(head), "header"))
        metadata = read_metadata(stream)
        width, height = read_dimensions(stream)
        return HUHInfo(version, width, height, metadata)

    @classmethod
    def _load_current(
        cls, head: bytes, stream: BinaryIO, progress: ProgressObserver | None,
    ) -> HUHImage:
        info = cls._read_current_info(head, stream)
        size = pixel_byte_length(info.width, info.height)
        logger.debug(
            "Header v%d, %d metadata keys, %dx%d",
            info.format_version, len(info.metadata), info.width, info.height,
        )

        source = open_decompressing_source(stream)
        tracker = ProgressTracker(info.width * info.height, progress)
        row_size = info.width * BYTES_PER_PIXEL
        # Whole rows per read so progress lands on row boundaries
        step = max(1, STREAM_CHUNK_SIZE // row_size) * row_size if row_size else STREAM_CHUNK_SIZE
        buf = bytearray()
        try:
            for chunk in source.iter_chunks(size, step):
                buf += chunk
                tracker.advance(len(chunk) // BYTES_PER_PIXEL)
        except TruncatedPayload as e:
            raise TruncatedPayload(size, len(buf) + e.got) from None
        tracker.finish()

        # No copy: the image owns the decode buffer
        return HUHImage(
            info.width, info.height, buf, info.metadata, info.format_version,
        )

    @classmethod
    def verify(cls, stream: BinaryIO) -> HUHInfo:
        """Check a whole container without keeping its pixels.

        The pixel stream is decompressed chunk by chunk and discarded, so
        memory stays bounded whatever dimensions the file declares. Raises
        the same errors as load().
        """
        head = read_exact(stream, len(MAGIC), "header")
        if not is_huh_bytes(head):
            width, height = cls._probe_legacy(head, stream)
            pixel_byte_length(width, height)
            return HUHInfo(LEGACY_VERSION, width, height)

        info = cls._read_current_info(head, stream)
        size = pixel_byte_length(info.width, info.height)
        source = open_decompressing_source(stream)
        done = 0
        try:
            for chunk in source.iter_chunks(size, STREAM_CHUNK_SIZE):
                done += len(chunk)
        except TruncatedPayload as e:
            raise TruncatedPayload(size, done + e.got) from None
        return info

    # -- legacy layout -----------------------------------------------------

    @staticmethod
    def _probe_legacy(head: bytes, stream: BinaryIO) -> tuple[int, int]:
        """Validate a legacy raw dump and return its dimensions.

        The first 8 bytes must be a width/height pair whose pixel byte count
        matches the rest of the stream exactly.
        """
        rest = stream.read(DIMENSION_SIZE - len(head))
        if len(head) + len(rest) < DIMENSION_SIZE:
            raise MalformedContainer(f"Bad magic: expected {MAGIC!r}, got {head!r}")
        width, height = parse_dimensions(head + rest)
        expected = width * height * BYTES_PER_PIXEL
        remaining = _remaining(stream)
        if remaining is not None and remaining != expected:
            raise MalformedContainer(
                f"Bad magic: expected {MAGIC!r}, got {head!r} "
                f"(not a legacy dump: {width}x{height} needs {expected} bytes, "
                f"found {remaining})"
            )
        return width, height

    @classmethod
    def _load_legacy(
        cls, head: bytes, stream: BinaryIO, progress: ProgressObserver | None,
    ) -> HUHImage:
        width, height = cls._probe_legacy(head, stream)
        size = pixel_byte_length(width, height)
        logger.debug("Legacy layout %dx%d", width, height)

        tracker = ProgressTracker(width * height, progress)
        try:
            pixels = read_exact(stream, size, "legacy pixels")
        except MalformedContainer:
            raise MalformedContainer(
                f"Bad magic: expected {MAGIC!r}, got {head!r}"
            ) from None
        tracker.advance(width * height)
        tracker.finish()
        return HUHImage(width, height, pixels, {}, LEGACY_VERSION)


def decode(
    source_path: str | Path,
    progress: ProgressObserver | None = None,
) -> tuple[HUHImage, dict[str, str]]:
    """Decode ``source_path``. Returns (image, metadata)."""
    image = HUHReader.read(source_path, progress)
    return image, image.metadata

