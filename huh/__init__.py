"""
HUH — compact image container with free-form metadata.

Architecture:
    Core:     huh._format — header, metadata, dimensions, DEFLATE pixel stream
    Bridge:   huh.imaging — Pillow conversion to/from PNG, JPEG, GIF
    Surfaces: huh.viewer (terminal), huh.api (HTTP gallery), huh.cli
"""

__version__ = "2.0.0"

# Container format constants
HUH_MAGIC = b"HUH!"
HUH_VERSION = 2
LEGACY_VERSION = 1  # magic-less raw dump
SUPPORTED_VERSIONS = frozenset({HUH_VERSION})
EXTENSION = ".huh"

# Safety limits
MAX_PIXEL_BYTES = 0xFFFFFFFF  # width * height * 3 must fit in uint32
MAX_METADATA_BYTES = 16 * 1024 * 1024

# Gallery / API constants
API_DEFAULT_PORT = 8080
API_DEFAULT_HOST = "127.0.0.1"
API_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB
UPLOADS_DIR = "uploads"
UPLOADS_DIR_ENV = "HUH_UPLOADS_DIR"
