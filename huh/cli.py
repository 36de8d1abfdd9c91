"""
HUH CLI — convert, view and serve HUH images.

Commands:
  huh convert <input> <output> - Convert between image formats and HUH
  huh view <file>              - View an image or HUH file in the terminal
  huh info <file>              - Show HUH header, dimensions and metadata
  huh serve                    - Start the camera capture & gallery web server
  huh help                     - Show usage
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

LOGO = r"""
  _   _ _   _ _   _
 | | | | | | | | | |
 | |_| | | | | |_| |
 |  _  | | | |  _  |
 | | | | |_| | | | |
 \_| |_/\___/\_| |_/
"""


def _print_usage() -> None:
    print(LOGO)
    print("   Universal Image Converter & Viewer v2\n")
    print("Usage:")
    print("  huh convert <input_file> <output_file>  - Convert between image formats and HUH")
    print("  huh view <file>                        - View an image or HUH file in the terminal")
    print("  huh info <file>                        - Show HUH header, dimensions and metadata")
    print("  huh serve [--host H] [--port N]        - Start the camera capture & gallery server")
    print("  huh help                               - Show this help message")
    print()
    print("Examples:")
    print("  huh convert image.png image.huh")
    print("  huh convert image.huh image.jpg")
    print("  huh view image.huh")
    print("  huh serve --uploads-dir ./uploads")


def _require_file(path: str) -> Path:
    p = Path(path)
    if not p.is_file():
        print(f"Error: File does not exist: {path}", file=sys.stderr)
        sys.exit(1)
    return p


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert between HUH and raster formats."""
    from huh._format.errors import HUHError
    from huh.imaging import convert
    from huh.progress import terminal_observer

    input_path = _require_file(args.input)
    print(f"Converting {input_path} to {args.output}")
    try:
        convert(input_path, args.output, progress=terminal_observer())
    except (HUHError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Successfully converted {input_path} to {args.output}")


def cmd_view(args: argparse.Namespace) -> None:
    """Render an image in the terminal."""
    from huh._format.errors import HUHError
    from huh.viewer import view

    path = _require_file(args.path)
    try:
        view(path)
    except (HUHError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_info(args: argparse.Namespace) -> None:
    """Print header fields without decoding pixels."""
    from huh._format.errors import HUHError
    from huh._format.reader import HUHReader
    from huh._format.spec import LEGACY_VERSION

    path = _require_file(args.path)
    try:
        info = HUHReader.read_info(path)
    except HUHError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    layout = "legacy" if info.format_version == LEGACY_VERSION else "current"
    print(f"{path}")
    print(f"  version:  {info.format_version} ({layout})")
    print(f"  size:     {info.width}x{info.height}")
    print(f"  payload:  {info.pixel_bytes} bytes")
    if info.metadata:
        print("  metadata:")
        for key, val in sorted(info.metadata.items()):
            print(f"    {key}: {val}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the gallery server in the foreground."""
    from huh.api.server import run_api
    from huh.store import GalleryStore

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    store = GalleryStore(args.uploads_dir)
    run_api(host=args.host, port=args.port, store=store)


def main(argv: list[str] | None = None) -> None:
    from huh import API_DEFAULT_HOST, API_DEFAULT_PORT

    parser = argparse.ArgumentParser(
        prog="huh",
        description="HUH image container — convert, view, serve",
    )
    sub = parser.add_subparsers(dest="command")

    p_convert = sub.add_parser("convert", help="Convert between image formats and HUH")
    p_convert.add_argument("input", help="Input file (.huh, .png, .jpg, .gif, ...)")
    p_convert.add_argument("output", help="Output file (.huh, .png, .jpg, .jpeg, .gif)")

    p_view = sub.add_parser("view", help="View an image or HUH file in the terminal")
    p_view.add_argument("path", help="File to view")

    p_info = sub.add_parser("info", help="Show HUH header, dimensions and metadata")
    p_info.add_argument("path", help="HUH file")

    p_serve = sub.add_parser("serve", help="Start the camera capture & gallery server")
    p_serve.add_argument("--host", default=API_DEFAULT_HOST, help=f"Bind address (default {API_DEFAULT_HOST})")
    p_serve.add_argument("--port", type=int, default=API_DEFAULT_PORT, help=f"Port (default {API_DEFAULT_PORT})")
    p_serve.add_argument("--uploads-dir", help="Image directory (default $HUH_UPLOADS_DIR or ./uploads)")
    p_serve.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub.add_parser("help", help="Show usage")

    args = parser.parse_args(argv)

    if not args.command or args.command == "help":
        _print_usage()
        sys.exit(0)

    commands = {
        "convert": cmd_convert,
        "view": cmd_view,
        "info": cmd_info,
        "serve": cmd_serve,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
