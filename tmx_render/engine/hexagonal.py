"""
Hexagonal rendering engine

=============================================================================
STAGGERED HEXAGONS
=============================================================================

Tiled stores hexagonal maps as a rectangular grid where every other column
(stagger axis X) or row (stagger axis Y) is shifted by half a tile.

STAGGER AXIS Y (pointy top), odd rows shifted right by tilewidth / 2:

     / \\ / \\ / \\
    |   |   |   |        row 0
     \\ / \\ / \\ / \\
      |   |   |   |      row 1 (+ tilewidth / 2)
     / \\ / \\ / \\ /
    |   |   |   |        row 2

Rows overlap vertically: the distance between two rows is not the tile
height but

    row_step = (tileheight - hexsidelength) / 2 + hexsidelength

STAGGER AXIS X (flat top) is the same construction with the axes swapped:
odd columns move down by tileheight / 2 and columns advance by

    column_step = (tilewidth - hexsidelength) / 2 + hexsidelength

=============================================================================
IMAGE SIZE
=============================================================================

With addon = (tile size - hexsidelength) / 2 along the stagger direction,
n tiles cover n * (tile size - addon) + addon pixels. The other axis gets
half a tile extra for the shifted columns/rows.

=============================================================================
PARITY AND PANNING
=============================================================================

Which columns/rows are "odd" must follow the MAP, not the viewport. When
the viewport starts on an odd map row, viewport row 0 is an odd map row,
so start_odd flips the parity test:

    start_odd = False  -> shifted when index % 2 == 1
    start_odd = True   -> shifted when index % 2 == 0

=============================================================================
"""

from tmx_manager import AXIS_X, AXIS_Y

from ..bounds import Bounds
from .base import EMPTY_RECT, Rect, RendererEngine


class HexagonalRendererEngine(RendererEngine):
    """Geometry for hexagonal maps staggered along X or Y."""

    def get_final_image_size(self, bounds: Bounds) -> Rect:
        m = self.m
        if m.staggeraxis == AXIS_X:
            addon = (m.tilewidth - m.hexsidelength) // 2
            return (0, 0,
                    bounds.limit_x * (m.tilewidth - addon) + addon,
                    bounds.limit_y * m.tileheight + m.tileheight // 2)
        if m.staggeraxis == AXIS_Y:
            addon = (m.tileheight - m.hexsidelength) // 2
            return (0, 0,
                    bounds.limit_x * m.tilewidth + m.tilewidth // 2,
                    bounds.limit_y * (m.tileheight - addon) + addon)
        return EMPTY_RECT

    def get_tile_position(self, x: int, y: int, start_odd: bool) -> Rect:
        m = self.m
        odd_check_value = 0 if start_odd else 1

        if m.staggeraxis == AXIS_X:
            odd_column = (x % 2) == odd_check_value
            offset_width = (m.tilewidth - m.hexsidelength) // 2 + m.hexsidelength
            y_bump = m.tileheight // 2 if odd_column else 0
            # Two tile heights tall: the hexagon may reach into the next row
            return (x * offset_width,
                    y * m.tileheight + y_bump,
                    x * offset_width + m.tilewidth,
                    (y + 2) * m.tileheight + y_bump)

        if m.staggeraxis == AXIS_Y:
            odd_row = (y % 2) == odd_check_value
            offset_height = (m.tileheight - m.hexsidelength) // 2 + m.hexsidelength
            x_bump = m.tilewidth // 2 if odd_row else 0
            return (x * m.tilewidth + x_bump,
                    y * offset_height,
                    (x + 2) * m.tilewidth + x_bump,
                    (y + 1) * offset_height + m.tileheight)

        return EMPTY_RECT
