"""
Pixel stream — RGB triples through raw DEFLATE.

The sink compresses as bytes arrive, so the encoder never holds more than a
row plus the compressor's window. The source decompresses with a bounded
``max_length`` so a crafted stream cannot expand past the declared size.

    with open_compressing_sink(f) as sink:
        sink.write_pixel(255, 0, 0)

    data = open_decompressing_source(f).read_exact(width * height * 3)
"""

from __future__ import annotations

import zlib
from typing import BinaryIO

from huh._format.errors import IOFailure, MalformedContainer, TruncatedPayload
from huh._format.spec import (
    BYTES_PER_PIXEL, COMPRESSION_LEVEL, DEFLATE_WBITS, STREAM_CHUNK_SIZE,
)


class PixelSink:
    """Streaming compressor over an output stream.

    Must be finished (``finish()`` or a clean ``with`` exit) before the
    output is complete; unfinished sinks lose buffered data.
    """

    def __init__(self, output: BinaryIO, level: int = COMPRESSION_LEVEL) -> None:
        self._output = output
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, DEFLATE_WBITS)
        self._finished = False
        self.bytes_written = 0

    @property
    def pixels_written(self) -> int:
        return self.bytes_written // BYTES_PER_PIXEL

    def _emit(self, data: bytes) -> None:
        if not data:
            return
        try:
            self._output.write(data)
        except OSError as e:
            raise IOFailure(f"Failed to write pixel stream: {e}") from e

    def write_pixel(self, r: int, g: int, b: int) -> None:
        self.write_row(bytes((r, g, b)))

    def write_row(self, row: bytes) -> None:
        """Append whole pixels (len(row) must be a multiple of 3)."""
        if self._finished:
            raise ValueError("Pixel sink already finished")
        if len(row) % BYTES_PER_PIXEL:
            raise ValueError(
                f"Row length {len(row)} is not a multiple of {BYTES_PER_PIXEL}"
            )
        self._emit(self._compressor.compress(row))
        self.bytes_written += len(row)

    def finish(self) -> None:
        """Flush the compressor and close the DEFLATE stream."""
        if self._finished:
            return
        self._finished = True
        self._emit(self._compressor.flush(zlib.Z_FINISH))

    def __enter__(self) -> PixelSink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Don't terminate the stream on error: a partial output stays invalid.
        if exc_type is None:
            self.finish()


class PixelSource:
    """Streaming decompressor over an input stream."""

    def __init__(self, source: BinaryIO, chunk_size: int = STREAM_CHUNK_SIZE) -> None:
        self._source = source
        self._chunk_size = chunk_size
        self._decompressor = zlib.decompressobj(DEFLATE_WBITS)

    def _next_input(self) -> bytes:
        tail = self._decompressor.unconsumed_tail
        if tail:
            return tail
        try:
            return self._source.read(self._chunk_size)
        except OSError as e:
            raise IOFailure(f"Failed to read pixel stream: {e}") from e

    def read_exact(self, count: int) -> bytes:
        """Read exactly ``count`` decompressed bytes.

        Raises TruncatedPayload if the stream ends first. Never zero-fills.
        """
        buf = bytearray()
        while len(buf) < count:
            if self._decompressor.eof:
                break
            data = self._next_input()
            try:
                out = self._decompressor.decompress(data, count - len(buf))
            except zlib.error as e:
                raise MalformedContainer(f"Corrupt pixel stream: {e}") from e
            # Input exhausted and nothing pending in the decompressor
            if not data and not out:
                break
            buf += out
        if len(buf) < count:
            raise TruncatedPayload(count, len(buf))
        return bytes(buf)

    def iter_chunks(self, count: int, chunk_size: int):
        """Yield ``count`` bytes in pieces of at most ``chunk_size``."""
        remaining = count
        while remaining > 0:
            size = min(chunk_size, remaining)
            yield self.read_exact(size)
            remaining -= size


def open_compressing_sink(output: BinaryIO) -> PixelSink:
    return PixelSink(output)


def open_decompressing_source(source: BinaryIO) -> PixelSource:
    return PixelSource(source)
