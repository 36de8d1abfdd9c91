"""
Container Format Specification v2.

Layout (current, version 2):
    HUH!                         <- Magic (4 bytes, ASCII)
    <version>                    <- 1 byte, currently 2
    <meta length>                <- uint32 LE, byte length N of the next field
    <meta json>                  <- N bytes, UTF-8 JSON object of string -> string
    <width> <height>             <- 2 x uint32 LE
    <pixel stream>               <- raw DEFLATE of width*height*3 RGB bytes, row-major

Layout (legacy, version 1):
    <width> <height>             <- 2 x uint32 LE, no magic, no version
    <pixels>                     <- width*height*3 raw RGB bytes, uncompressed

Detection:
    Files starting with the magic are current-layout. Anything else is probed
    as legacy and accepted only when the file size is exactly
    8 + width*height*3.

Compression:
    Pixel data only. Header and metadata are already compact. Raw DEFLATE
    (no zlib header), best-compression level.
"""

from __future__ import annotations

import struct
import zlib

from huh import (
    HUH_MAGIC, HUH_VERSION, LEGACY_VERSION, SUPPORTED_VERSIONS,
    MAX_PIXEL_BYTES, MAX_METADATA_BYTES,
)

MAGIC = HUH_MAGIC
FORMAT_VERSION = HUH_VERSION

# Fixed-size fields
HEADER_STRUCT = struct.Struct("<4sB")   # magic, version
LENGTH_STRUCT = struct.Struct("<I")     # metadata length
DIMENSION_STRUCT = struct.Struct("<II")  # width, height

HEADER_SIZE = HEADER_STRUCT.size        # 5
DIMENSION_SIZE = DIMENSION_STRUCT.size  # 8
BYTES_PER_PIXEL = 3
UINT32_MAX = 0xFFFFFFFF

# Pixel stream compression
COMPRESSION_LEVEL = zlib.Z_BEST_COMPRESSION
DEFLATE_WBITS = -15  # raw DEFLATE
STREAM_CHUNK_SIZE = 64 * 1024
