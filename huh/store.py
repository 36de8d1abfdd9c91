"""
Gallery store — a flat directory of .huh files.

Storage layout:
    <root>/capture-<time_ns>.huh   — images captured through the API
    <root>/<name>.huh              — uploaded container files

All writes are atomic (temp file + os.replace) for crash safety. Names are
validated against a strict pattern so a request can never address a path
outside the root.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any

from huh import EXTENSION, UPLOADS_DIR, UPLOADS_DIR_ENV
from huh._format.image import HUHImage
from huh._format.reader import HUHInfo, HUHReader
from huh._format.writer import HUHWriter

logger = logging.getLogger(__name__)

# Safe file names: no separators, no leading dot
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.huh$", re.IGNORECASE)


class GalleryStoreError(Exception):
    """Error in gallery store operations."""


def default_root() -> Path:
    """$HUH_UPLOADS_DIR, else ./uploads."""
    return Path(os.environ.get(UPLOADS_DIR_ENV, "").strip() or UPLOADS_DIR)


class GalleryStore:
    """Directory-backed collection of HUH images.

    Usage:
        store = GalleryStore("uploads")
        name = store.save_image(image, {"author": "me"})
        image = store.load(name)
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root else default_root()

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def validate_name(name: str) -> str:
        """Validate a gallery file name. Prevents path traversal."""
        if not isinstance(name, str) or not _NAME_RE.match(name) or ".." in name:
            raise ValueError(f"Invalid image name: {name!r}")
        return name

    def path_for(self, name: str) -> Path:
        return self.root / self.validate_name(name)

    def list(self) -> list[str]:
        """Names of stored .huh files, newest capture first (reverse-sorted)."""
        if not self.root.is_dir():
            return []
        names = [
            p.name for p in self.root.iterdir()
            if p.is_file() and p.suffix.lower() == EXTENSION and _NAME_RE.match(p.name)
        ]
        return sorted(names, reverse=True)

    def new_capture_name(self) -> str:
        return f"capture-{time.time_ns()}{EXTENSION}"

    def save_image(self, image: Any, metadata: dict[str, str] | None = None) -> str:
        """Encode ``image`` into a new capture file. Returns its name."""
        self.ensure_root()
        name = self.new_capture_name()
        HUHWriter.write(image, self.root / name, metadata)
        logger.info("Saved %s", name)
        return name

    def save_upload(self, name: str, data: bytes) -> str:
        """Store raw container bytes under ``name`` (atomically). Returns the name."""
        dest = self.path_for(name)
        self.ensure_root()
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.root), suffix=".tmp", prefix=".upload_"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, dest)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.info("Stored upload %s (%d bytes)", name, len(data))
        return name

    def load(self, name: str) -> HUHImage:
        """Decode a stored image. Raises GalleryStoreError if not found."""
        path = self.path_for(name)
        if not path.is_file():
            raise GalleryStoreError(f"Image not found: {name}")
        return HUHReader.read(path)

    def info(self, name: str) -> HUHInfo:
        """Header, metadata and dimensions of a stored image."""
        path = self.path_for(name)
        if not path.is_file():
            raise GalleryStoreError(f"Image not found: {name}")
        return HUHReader.read_info(path)
