"""Orthogonal (square grid) rendering engine."""

from ..bounds import Bounds
from .base import Rect, RendererEngine


class OrthogonalRendererEngine(RendererEngine):
    """
    Plain grid: every cell is tilewidth x tileheight pixels.

        +---+---+---+
        | 0 | 1 | 2 |     cell (x, y) -> (x*tw, y*th) .. ((x+1)*tw, (y+1)*th)
        +---+---+---+
        | 3 | 4 | 5 |
        +---+---+---+
    """

    def get_final_image_size(self, bounds: Bounds) -> Rect:
        return (0, 0,
                bounds.limit_x * self.m.tilewidth,
                bounds.limit_y * self.m.tileheight)

    def get_tile_position(self, x: int, y: int, start_odd: bool) -> Rect:
        # No staggering, start_odd does not matter
        tw = self.m.tilewidth
        th = self.m.tileheight
        return (x * tw, y * th, (x + 1) * tw, (y + 1) * th)
