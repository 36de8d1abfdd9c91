"""
Request handlers for the gallery API.

Each handler is a pure function: (request_data, dependencies) → (status_code, response).
Responses are dicts/lists for JSON, or bytes for binary bodies.
No HTTP plumbing — that lives in server.py.
"""

from __future__ import annotations

import base64
import io
import json
import logging
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from PIL import Image, UnidentifiedImageError

from huh import API_MAX_UPLOAD_BYTES, EXTENSION
from huh._format.errors import HUHError
from huh._format.reader import HUHReader
from huh.imaging import encode_raster, from_pillow, open_raster
from huh.store import GalleryStoreError

logger = logging.getLogger(__name__)

CAPTURE_SOURCE = "WebApp Camera API"
UPLOAD_FIELD = "huhfile"

# binascii.Error is a ValueError
_IMAGE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError)


def _fail(status: int, error: str) -> tuple[int, dict]:
    return status, {"success": False, "error": error}


def _check_size(body: bytes) -> tuple[int, dict] | None:
    if not body:
        return _fail(400, "Empty request body")
    if len(body) > API_MAX_UPLOAD_BYTES:
        return _fail(413, f"Payload too large (max {API_MAX_UPLOAD_BYTES} bytes)")
    return None


def handle_upload(body: bytes, store: Any) -> tuple[int, dict]:
    """POST /api/upload — JSON {"image": <data URL>, "author": str}.

    Decodes the image, stores it as a new capture, returns its file name.
    """
    err = _check_size(body)
    if err:
        return err

    try:
        req = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _fail(400, "Invalid JSON")
    if not isinstance(req, dict) or not isinstance(req.get("image"), str):
        return _fail(400, "Missing 'image' data URL")
    author = req.get("author", "")
    if not isinstance(author, str):
        return _fail(400, "'author' must be a string")

    # Accept both "data:image/png;base64,...." and bare base64
    b64data = req["image"].split(",", 1)[-1]
    try:
        raw = base64.b64decode(b64data, validate=True)
        img = open_raster(io.BytesIO(raw))
    except _IMAGE_ERRORS:
        return _fail(400, "Invalid image data")

    metadata = {
        "author": author,
        "creation_date": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "source": CAPTURE_SOURCE,
    }
    try:
        filename = store.save_image(from_pillow(img), metadata)
    except (HUHError, OSError) as e:
        logger.error("Error saving HUH file: %s", e)
        return _fail(500, "Failed to save HUH file")

    return 200, {"success": True, "filename": filename}


def _parse_multipart(body: bytes, content_type: str) -> dict[str, tuple[str | None, bytes]]:
    """Split a multipart/form-data body into {field: (filename, data)}."""
    from email import policy
    from email.parser import BytesParser

    if not content_type.lower().startswith("multipart/form-data"):
        raise ValueError("Expected multipart/form-data")
    head = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n".encode("latin-1")
    msg = BytesParser(policy=policy.HTTP).parsebytes(head + body)
    if not msg.is_multipart():
        raise ValueError("Malformed multipart body")

    fields: dict[str, tuple[str | None, bytes]] = {}
    for part in msg.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if name and name not in fields:
            fields[name] = (part.get_filename(), part.get_payload(decode=True) or b"")
    return fields


def handle_upload_file(body: bytes, content_type: str, store: Any) -> tuple[int, dict]:
    """POST /api/upload-file — multipart form with a ``huhfile`` field.

    The client file name is reduced to its basename and must end in .huh;
    the content must decode as a valid container before it is stored.
    """
    err = _check_size(body)
    if err:
        return err

    try:
        fields = _parse_multipart(body, content_type)
    except ValueError:
        return _fail(400, "Invalid file upload request")
    if UPLOAD_FIELD not in fields:
        return _fail(400, "Invalid file upload request")

    filename, data = fields[UPLOAD_FIELD]
    # Browsers on Windows may send full paths
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    if not name.lower().endswith(EXTENSION):
        return _fail(400, "Only .huh files are allowed")
    try:
        store.validate_name(name)
    except ValueError:
        return _fail(400, "Invalid file name")

    try:
        HUHReader.verify(io.BytesIO(data))
    except HUHError as e:
        return _fail(400, f"Not a valid HUH file: {e}")

    try:
        store.save_upload(name, data)
    except OSError as e:
        logger.error("Error storing upload %s: %s", name, e)
        return _fail(500, "Could not save file on server")

    return 200, {"success": True, "filename": name}


def handle_list_images(store: Any) -> tuple[int, list | dict]:
    """GET /api/images — stored .huh names, reverse-sorted."""
    try:
        return 200, store.list()
    except OSError:
        return _fail(500, "Could not read image directory")


def handle_view_image(name: str, store: Any) -> tuple[int, dict | bytes]:
    """GET /view/<name> — decode a stored image and return PNG bytes."""
    if not name:
        return _fail(400, "Filename not provided")
    try:
        image = store.load(name)
    except ValueError:
        return _fail(400, "Invalid image name")
    except GalleryStoreError:
        return _fail(404, "Image not found")
    except HUHError as e:
        logger.warning("Failed to decode HUH file %s: %s", name, e)
        return _fail(500, "Could not process image file")

    try:
        return 200, encode_raster(image, "PNG")
    except _IMAGE_ERRORS as e:
        logger.warning("Failed to encode %s to PNG: %s", name, e)
        return _fail(500, "Could not serve image")


def handle_image_metadata(name: str, store: Any) -> tuple[int, dict]:
    """GET /api/metadata/<name> — dimensions, version and metadata."""
    try:
        info = store.info(name)
    except ValueError:
        return _fail(400, "Invalid image name")
    except GalleryStoreError:
        return _fail(404, "Image not found")
    except HUHError as e:
        logger.warning("Failed to read HUH header %s: %s", name, e)
        return _fail(500, "Could not process image file")

    return 200, {
        "filename": name,
        "format_version": info.format_version,
        "width": info.width,
        "height": info.height,
        "metadata": info.metadata,
    }


def handle_status(store: Any) -> tuple[int, dict]:
    """GET /status — service health check."""
    result: dict[str, Any] = {"service": "huh-gallery", "healthy": True}
    try:
        result["images"] = len(store.list())
    except OSError:
        result["images"] = "unavailable"
        result["healthy"] = False
    return 200, result
