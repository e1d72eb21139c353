"""
TMX Render - rasterize Tiled maps (orthogonal and hexagonal) with Pillow

Requirements:
    pip install pillow numpy pygame
"""

from .bounds import Bounds
from .engine import HexagonalRendererEngine, OrthogonalRendererEngine, RendererEngine
from .errors import (
    OutOfBoundsError,
    RenderError,
    TileNotFoundError,
    UnsupportedOrientationError,
    UnsupportedRenderOrderError,
)
from .filesystem import DirectoryFileSystem, LocalFileSystem
from .logging_config import setup_logging
from .options import GifOptions, JpegOptions
from .renderer import Renderer, new_renderer, new_renderer_with_file_system
from .tile_cache import TileImageCache

__version__ = "1.0.0"
__all__ = [
    "Bounds",
    "RendererEngine",
    "OrthogonalRendererEngine",
    "HexagonalRendererEngine",
    "RenderError",
    "UnsupportedOrientationError",
    "UnsupportedRenderOrderError",
    "OutOfBoundsError",
    "TileNotFoundError",
    "LocalFileSystem",
    "DirectoryFileSystem",
    "setup_logging",
    "JpegOptions",
    "GifOptions",
    "Renderer",
    "new_renderer",
    "new_renderer_with_file_system",
    "TileImageCache",
]
