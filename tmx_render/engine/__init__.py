"""Orientation-specific rendering engines"""

from .base import EMPTY_RECT, Rect, RendererEngine, flip_tile_image, rect_size
from .hexagonal import HexagonalRendererEngine
from .orthogonal import OrthogonalRendererEngine

__all__ = [
    "EMPTY_RECT",
    "Rect",
    "RendererEngine",
    "flip_tile_image",
    "rect_size",
    "OrthogonalRendererEngine",
    "HexagonalRendererEngine",
]
