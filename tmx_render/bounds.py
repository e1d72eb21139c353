"""
Viewport bounds for rendering a part of a map

=============================================================================
TILE-SPACE VIEWPORT
=============================================================================

Bounds select the block of map cells that ends up in the output image.
Everything is measured in TILES, not pixels:

    map (10 x 8 tiles)
    +----------------------------------+
    |                                  |
    |   offset --> +----------+        |
    |              | limit_x  |        |
    |              | x        |        |
    |              | limit_y  |        |
    |              +----------+        |
    +----------------------------------+

- offset_x, offset_y: first column/row to render
- limit_x, limit_y: how many columns/rows to render

The rendering engine turns limit_x/limit_y into the output image pixel size.
Cells past the map edge are simply not drawn.

=============================================================================
"""

from dataclasses import dataclass


@dataclass
class Bounds:
    """
    Offset and size (in tiles) of the rendered map region.

    Mutators keep the bounds valid:
    - set_limit() ignores values below 1, keeping the previous limit
    - add_offset() pans relative to the current offset, never below 0
    """
    offset_x: int = 0
    offset_y: int = 0
    limit_x: int = 0
    limit_y: int = 0

    def set_limit(self, x: int, y: int):
        """Set the number of columns/rows to render."""
        if x >= 1:
            self.limit_x = x
        if y >= 1:
            self.limit_y = y

    def add_offset(self, x: int, y: int):
        """Pan the viewport by (x, y) tiles, clamping at the map origin."""
        self.offset_x = max(0, self.offset_x + x)
        self.offset_y = max(0, self.offset_y + y)
