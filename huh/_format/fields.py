"""
Fixed and length-prefixed fields that precede the pixel stream.

    header      — magic + version byte (5 bytes)
    metadata    — uint32 LE length + UTF-8 JSON object of string -> string
    dimensions  — uint32 LE width + uint32 LE height (8 bytes)

Readers take any binary stream with ``read(n)``; writers take any stream with
``write(b)``. Short reads are MalformedContainer, storage errors are IOFailure.
"""

from __future__ import annotations

import json
from typing import BinaryIO

from huh._format.errors import (
    DimensionOverflow, IOFailure, MalformedContainer, UnsupportedVersion,
)
from huh._format.spec import (
    BYTES_PER_PIXEL, DIMENSION_STRUCT, FORMAT_VERSION, HEADER_SIZE,
    HEADER_STRUCT, LENGTH_STRUCT, MAGIC, MAX_METADATA_BYTES, MAX_PIXEL_BYTES,
    SUPPORTED_VERSIONS, UINT32_MAX,
)


def read_exact(stream: BinaryIO, size: int, field: str) -> bytes:
    """Read exactly ``size`` bytes or raise MalformedContainer."""
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(remaining)
        except OSError as e:
            raise IOFailure(f"Failed to read {field}: {e}") from e
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    data = b"".join(chunks)
    if len(data) < size:
        raise MalformedContainer(
            f"Truncated {field}: expected {size} bytes, got {len(data)}"
        )
    return data


def _write(stream: BinaryIO, data: bytes, field: str) -> None:
    try:
        stream.write(data)
    except OSError as e:
        raise IOFailure(f"Failed to write {field}: {e}") from e


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

def is_huh_bytes(data: bytes) -> bool:
    """Fast check if bytes start with the HUH magic."""
    return data[:len(MAGIC)] == MAGIC


def write_header(stream: BinaryIO, version: int = FORMAT_VERSION) -> None:
    _write(stream, HEADER_STRUCT.pack(MAGIC, version), "header")


def parse_header(data: bytes) -> int:
    """Decode a 5-byte header. Returns the version.

    Raises MalformedContainer on short input or bad magic, and
    UnsupportedVersion when the version byte is not implemented.
    """
    if len(data) < HEADER_SIZE:
        raise MalformedContainer(f"Header too short: {len(data)} bytes")
    magic, version = HEADER_STRUCT.unpack(data[:HEADER_SIZE])
    if magic != MAGIC:
        raise MalformedContainer(f"Bad magic: expected {MAGIC!r}, got {magic!r}")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(version)
    return version


def read_header(stream: BinaryIO) -> int:
    return parse_header(read_exact(stream, HEADER_SIZE, "header"))


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

def encode_metadata(metadata: dict[str, str] | None) -> bytes:
    """Serialize metadata to compact, key-sorted UTF-8 JSON.

    An empty map encodes as ``{}``, never as zero bytes.
    """
    metadata = metadata or {}
    for key, val in metadata.items():
        if not isinstance(key, str) or not isinstance(val, str):
            raise ValueError(
                f"Metadata must map str to str, got {key!r}: {type(val).__name__}"
            )
    data = json.dumps(
        metadata, ensure_ascii=False, separators=(",", ":"), sort_keys=True,
    ).encode("utf-8")
    if len(data) > MAX_METADATA_BYTES:
        raise ValueError(
            f"Metadata too large: {len(data)} bytes (max {MAX_METADATA_BYTES})"
        )
    return data


def decode_metadata(data: bytes) -> dict[str, str]:
    """Parse metadata bytes. Raises MalformedContainer unless str -> str."""
    try:
        metadata = json.loads(data.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedContainer(f"Invalid metadata JSON: {e}") from e
    if not isinstance(metadata, dict):
        raise MalformedContainer("Metadata must be a JSON object")
    for key, val in metadata.items():
        if not isinstance(val, str):
            raise MalformedContainer(
                f"Metadata value for {key!r} must be a string, got {type(val).__name__}"
            )
    return metadata


def write_metadata(stream: BinaryIO, metadata: dict[str, str] | None) -> None:
    data = encode_metadata(metadata)
    _write(stream, LENGTH_STRUCT.pack(len(data)) + data, "metadata")


def read_metadata(stream: BinaryIO) -> dict[str, str]:
    (length,) = LENGTH_STRUCT.unpack(
        read_exact(stream, LENGTH_STRUCT.size, "metadata length")
    )
    if length > MAX_METADATA_BYTES:
        raise MalformedContainer(
            f"Metadata length {length} exceeds max {MAX_METADATA_BYTES}"
        )
    return decode_metadata(read_exact(stream, length, "metadata"))


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

def pixel_byte_length(width: int, height: int) -> int:
    """Byte length of a width x height RGB payload.

    Raises DimensionOverflow if it does not fit in MAX_PIXEL_BYTES.
    """
    if width < 0 or height < 0:
        raise DimensionOverflow(f"Negative dimensions: {width}x{height}")
    size = width * height * BYTES_PER_PIXEL
    if size > MAX_PIXEL_BYTES:
        raise DimensionOverflow(
            f"Dimensions {width}x{height} need {size} pixel bytes "
            f"(max {MAX_PIXEL_BYTES})"
        )
    return size


def write_dimensions(stream: BinaryIO, width: int, height: int) -> None:
    if not (0 <= width <= UINT32_MAX and 0 <= height <= UINT32_MAX):
        raise DimensionOverflow(f"Dimensions {width}x{height} do not fit in uint32")
    _write(stream, DIMENSION_STRUCT.pack(width, height), "dimensions")


def parse_dimensions(data: bytes) -> tuple[int, int]:
    if len(data) < DIMENSION_STRUCT.size:
        raise MalformedContainer(f"Dimensions too short: {len(data)} bytes")
    return DIMENSION_STRUCT.unpack(data[:DIMENSION_STRUCT.size])


def read_dimensions(stream: BinaryIO) -> tuple[int, int]:
    return parse_dimensions(read_exact(stream, DIMENSION_STRUCT.size, "dimensions"))
