"""
HUH gallery API — capture upload, file upload, list and view over HTTP.

Serves a directory of .huh files. Stdlib http.server; images are decoded
and re-encoded as PNG with Pillow.
"""

from huh.api.server import run_api

__all__ = ["run_api"]
