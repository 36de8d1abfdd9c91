"""
Terminal viewer — draws an image with ANSI true-colour half blocks.

Each character cell shows two pixels: the upper one as the foreground of
U+2580 (upper half block) and the lower one as the background.
"""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import TextIO

from PIL import Image

from huh._format.image import HUHImage
from huh.imaging import is_huh_path, load_image, to_pillow

UPPER_HALF_BLOCK = "▀"
RESET = "\x1b[0m"
QUIT_KEYS = frozenset({"q", "Q", "\x03"})


def fit_size(width: int, height: int, columns: int, rows: int) -> tuple[int, int]:
    """Largest (w, h) in pixels that fits ``columns`` x ``rows`` cells, aspect kept.

    A cell holds one pixel across and two down.
    """
    if width <= 0 or height <= 0 or columns <= 0 or rows <= 0:
        return 0, 0
    scale = min(columns / width, (rows * 2) / height, 1.0)
    return max(1, int(width * scale)), max(1, int(height * scale))


def render_ansi(image: HUHImage, columns: int, rows: int) -> str:
    """Render ``image`` scaled to fit ``columns`` x ``rows`` terminal cells."""
    w, h = fit_size(image.width, image.height, columns, rows)
    if not w or not h:
        return ""
    img = to_pillow(image)
    if (w, h) != img.size:
        img = img.resize((w, h), Image.Resampling.LANCZOS)
    data = img.tobytes()

    lines = []
    for y in range(0, h, 2):
        cells = []
        for x in range(w):
            i = (y * w + x) * 3
            r1, g1, b1 = data[i:i + 3]
            if y + 1 < h:
                j = ((y + 1) * w + x) * 3
                r2, g2, b2 = data[j:j + 3]
                cells.append(
                    f"\x1b[38;2;{r1};{g1};{b1}m\x1b[48;2;{r2};{g2};{b2}m{UPPER_HALF_BLOCK}"
                )
            else:
                cells.append(f"\x1b[38;2;{r1};{g1};{b1}m{UPPER_HALF_BLOCK}")
        lines.append("".join(cells) + RESET)
    return "\n".join(lines)


def wait_for_quit(stream: TextIO | None = None) -> None:
    """Block until q, Q or Ctrl-C is read in raw mode."""
    import termios
    import tty

    stream = stream if stream is not None else sys.stdin
    fd = stream.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        while True:
            ch = os.read(fd, 1).decode("utf-8", errors="ignore")
            if not ch or ch in QUIT_KEYS:
                break
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def view(path: str | Path, out: TextIO | None = None, interactive: bool = True) -> None:
    """Print metadata (HUH files), draw the image, then wait for q."""
    out = out if out is not None else sys.stdout
    image = load_image(path)

    if is_huh_path(path):
        print(f"HUH v{image.format_version} image, {image.width}x{image.height}. Metadata:", file=out)
        for key, val in sorted(image.metadata.items()):
            print(f"  - {key}: {val}", file=out)

    size = shutil.get_terminal_size()
    # Leave room for the metadata and the prompt
    print(render_ansi(image, size.columns, max(1, size.lines - 2)), file=out)

    if interactive and sys.stdin.isatty():
        print("\nPress 'q' to exit viewer...", file=out)
        out.flush()
        wait_for_quit()
