"""
Container format engine.

Layout: HUH! + version + JSON metadata + width/height + raw DEFLATE RGB
stream (version 2), with read support for the magic-less raw dump
(version 1).
"""

from huh._format.spec import MAGIC, FORMAT_VERSION, LEGACY_VERSION
from huh._format.errors import (
    HUHError,
    MalformedContainer,
    UnsupportedVersion,
    TruncatedPayload,
    DimensionOverflow,
    IOFailure,
)
from huh._format.image import HUHImage
from huh._format.writer import HUHWriter, encode
from huh._format.reader import HUHReader, HUHInfo, decode
