"""EP-X CLI: convert images to e-paper bitmaps and inspect the results."""

import argparse
import sys
from pathlib import Path

from epx.converter import DEFAULT_HEIGHT, DEFAULT_WIDTH
from epx.errors import CodecError
from epx.logging import audit, get_logger, setup_logging

log = get_logger("cli")


def cmd_convert(args) -> int:
    """Convert an image to a 1-bpp bitmap."""
    from epx.converter import convert_file

    source = Path(args.image)
    output = Path(args.output) if args.output else source.with_suffix(".bmp")
    output.parent.mkdir(parents=True, exist_ok=True)

    artifact = convert_file(source, width=args.width, height=args.height)
    output.write_bytes(artifact.bitmap)
    print(f"Converted: {output} ({artifact.width}x{artifact.height}, {artifact.size} bytes)")
    print(f"  Fingerprint: {artifact.fingerprint}")

    if args.base64:
        b64_path = Path(args.base64)
        b64_path.parent.mkdir(parents=True, exist_ok=True)
        b64_path.write_text(artifact.base64)
        print(f"  Base64:      {b64_path} ({len(artifact.base64)} chars)")
    return 0


def cmd_info(args) -> int:
    """Print the header fields of a bitmap."""
    from epx.bmp import bitmap_size, read_header

    data = Path(args.bitmap).read_bytes()
    h = read_header(data)
    expected = bitmap_size(h.width, h.height)
    print(f"Bitmap: {args.bitmap}")
    print(f"  Size:        {h.width}x{h.height} ({'top-down' if h.top_down else 'bottom-up'})")
    print(f"  Depth:       {h.bits_per_pixel} bpp, compression={h.compression}")
    print(f"  Row stride:  {h.stride} bytes")
    print(f"  File size:   {len(data)} bytes (header says {h.file_size}, expected {expected})")
    print(f"  Pixel data:  offset {h.pixel_offset}, {h.image_size} bytes")
    print(f"  Resolution:  {h.x_ppm}x{h.y_ppm} px/m")
    print(f"  Palette:     {', '.join('#%02x%02x%02x' % c for c in h.palette)}")
    return 0 if len(data) == expected == h.file_size else 1


def cmd_preview(args) -> int:
    """Render a bitmap to PNG as the panel would show it."""
    from epx.preview import render_preview_png

    source = Path(args.bitmap)
    output = Path(args.output) if args.output else source.with_suffix(".png")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(render_preview_png(source.read_bytes(), scale=args.scale))
    print(f"Preview: {output}")
    return 0


def cmd_fingerprint(args) -> int:
    """Print the fingerprint and base64 length of a file."""
    from epx.fingerprint import fingerprint, to_base64

    data = Path(args.file).read_bytes()
    print(f"{fingerprint(data)}  {args.file} ({len(data)} bytes, base64 {len(to_base64(data))} chars)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="epx", description="EP-X: e-paper 1-bit bitmap codec")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- convert ---
    p_conv = subparsers.add_parser("convert", help="Convert an image to a 1-bpp bitmap")
    p_conv.add_argument("image", help="Path to source image (PNG, JPEG, GIF, ...)")
    p_conv.add_argument("-o", "--output", default=None, help="Output .bmp path (default: next to image)")
    p_conv.add_argument("-W", "--width", type=int, default=DEFAULT_WIDTH, help="Panel width in pixels (default: %(default)s)")
    p_conv.add_argument("-H", "--height", type=int, default=DEFAULT_HEIGHT, help="Panel height in pixels (default: %(default)s)")
    p_conv.add_argument("--base64", default=None, help="Also write the base64 text to this path")

    # --- info ---
    p_info = subparsers.add_parser("info", help="Show bitmap header fields")
    p_info.add_argument("bitmap", help="Path to .bmp file")

    # --- preview ---
    p_prev = subparsers.add_parser("preview", help="Render a bitmap to PNG")
    p_prev.add_argument("bitmap", help="Path to .bmp file")
    p_prev.add_argument("-o", "--output", default=None, help="Output .png path")
    p_prev.add_argument("--scale", type=int, default=1, help="Integer upscale factor")

    # --- fingerprint ---
    p_fp = subparsers.add_parser("fingerprint", help="Print the MD5 fingerprint of a file")
    p_fp.add_argument("file", help="Path to any file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else "WARNING"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "convert": cmd_convert,
        "info": cmd_info,
        "preview": cmd_preview,
        "fingerprint": cmd_fingerprint,
    }
    try:
        code = commands[args.command](args)
    except (CodecError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        audit("cli.failed", logger=log, command=args.command, error=str(e))
        return 1
    audit("cli.done", logger=log, command=args.command, exit_code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())
