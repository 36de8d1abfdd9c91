"""
Error types raised by the container codec.

Every failure surfaces as a subclass of HUHError; nothing is retried and
nothing is downgraded to a partially filled image.
"""

from __future__ import annotations


class HUHError(Exception):
    """Base class for container codec errors."""


class MalformedContainer(HUHError):
    """Bad magic, or a truncated header, metadata or dimension field."""


class UnsupportedVersion(HUHError):
    """Version byte is not one this codec implements."""

    def __init__(self, version: int) -> None:
        super().__init__(f"Unsupported HUH version: {version}")
        self.version = version


class TruncatedPayload(HUHError):
    """Decompressed pixel stream is shorter than the dimensions require."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(
            f"Truncated pixel payload: expected {expected} bytes, got {got}"
        )
        self.expected = expected
        self.got = got


class DimensionOverflow(HUHError):
    """width * height * 3 exceeds the safe computation range."""


class IOFailure(HUHError):
    """Underlying storage read/write error."""
