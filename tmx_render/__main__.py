#!/usr/bin/env python3

"""
TMX Render - rasterize Tiled maps to PNG, JPEG or GIF

Usage:
    python -m tmx_render <map.tmx> [-o out.png] [options]

Examples:
    python -m tmx_render level1.tmx
    python -m tmx_render level1.tmx -o ground.png --layer 0
    python -m tmx_render level1.tmx -o part.jpg --offset 10 5 --limit 20 15 --quality 90
    python -m tmx_render level1.tmx --group 0 2 -o trees.gif --colors 64
    python -m tmx_render level1.tmx --preview
"""

import argparse
import logging
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from tmx_manager import TiledMap

from .errors import RenderError
from .logging_config import setup_logging
from .options import GifOptions, JpegOptions
from .renderer import Renderer

logger = logging.getLogger("tmx_render")

FORMATS = {
    '.png': 'png',
    '.jpg': 'jpeg',
    '.jpeg': 'jpeg',
    '.gif': 'gif',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m tmx_render",
        description="Render a Tiled TMX map (orthogonal or hexagonal) to an image.",
    )
    parser.add_argument("tmx", type=Path, help="Input .tmx file")
    parser.add_argument("-o", "--output", type=Path,
                        help="Output image (default: map name with the format's extension)")
    parser.add_argument("-f", "--format", choices=sorted(set(FORMATS.values())),
                        help="Output format (default: from the output extension, else png)")

    which = parser.add_mutually_exclusive_group()
    which.add_argument("--layer", type=int, metavar="N",
                       help="Render only top-level layer N")
    which.add_argument("--group", type=int, nargs=2, metavar=("G", "L"),
                       help="Render only layer L of group G")
    which.add_argument("--all-visible", action="store_true",
                       help="Render every visible top-level layer (default)")

    parser.add_argument("--offset", type=int, nargs=2, metavar=("X", "Y"), default=(0, 0),
                        help="Viewport offset in tiles")
    parser.add_argument("--limit", type=int, nargs=2, metavar=("W", "H"),
                        help="Viewport size in tiles (default: whole map)")
    parser.add_argument("--quality", type=int, default=JpegOptions().quality,
                        help="JPEG quality, 1-100")
    parser.add_argument("--colors", type=int, default=GifOptions().num_colors,
                        help="GIF palette size, 1-256")
    parser.add_argument("--preview", action="store_true",
                        help="Open an interactive preview window instead of writing a file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-level", help="Log level (default: $TMX_RENDER_LOG_LEVEL or WARNING)")
    return parser


def resolve_output(args: argparse.Namespace):
    """Pick the output path and format from the arguments."""
    fmt = args.format
    if fmt is None and args.output is not None:
        fmt = FORMATS.get(args.output.suffix.lower())
    fmt = fmt or 'png'

    output = args.output
    if output is None:
        extension = 'jpg' if fmt == 'jpeg' else fmt
        output = args.tmx.with_suffix('.' + extension)
    return output, fmt


def render(args: argparse.Namespace) -> Path:
    jpeg_options = JpegOptions(quality=args.quality)
    gif_options = GifOptions(num_colors=args.colors)

    tmx_map = TiledMap.load(args.tmx)
    renderer = Renderer(tmx_map)

    renderer.bounds.add_offset(*args.offset)
    if args.limit:
        renderer.bounds.set_limit(*args.limit)
    renderer.clear()

    if args.layer is not None:
        renderer.render_layer(args.layer)
    elif args.group is not None:
        renderer.render_group_layer(*args.group)
    else:
        renderer.render_visible_layers()

    output, fmt = resolve_output(args)
    with open(output, 'wb') as sink:
        if fmt == 'jpeg':
            renderer.save_as_jpeg(sink, jpeg_options)
        elif fmt == 'gif':
            renderer.save_as_gif(sink, gif_options)
        else:
            renderer.save_as_png(sink)

    logger.info("Wrote %s", output)
    return output


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else args.log_level
    try:
        setup_logging(level)
    except ValueError as e:
        parser.error(str(e))

    if not args.tmx.exists():
        logger.error("File '%s' not found", args.tmx)
        return 1

    try:
        if args.preview:
            from .preview import RenderPreview
            RenderPreview(args.tmx).run()
        else:
            output = render(args)
            print(output)
    except (RenderError, OSError, ValueError, ET.ParseError) as e:
        logger.error("Rendering %s failed: %s", args.tmx, e)
        logger.debug("Traceback:", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
