"""
Rendering engine interface

=============================================================================
WHAT DOES AN ENGINE DO?
=============================================================================

The engine holds all knowledge about one map orientation. The Renderer
never looks at the orientation again after picking an engine; it asks:

1. get_final_image_size(bounds)
   How many pixels does the output image need for this viewport?

2. get_tile_position(x, y, start_odd)
   Where (in output pixels) is the tile at viewport cell (x, y) drawn?

3. rotate_tile_image(tile, image)
   The cached tile image with the cell's flip flags applied.

Rectangles are (left, top, right, bottom) tuples in pixels, right/bottom
exclusive, the same layout PIL uses for crop boxes. EMPTY_RECT signals a
map configuration the engine cannot lay out.

=============================================================================
FLIP FLAGS
=============================================================================

TMX cells carry three flip flags. They are applied in a fixed order:

    1. horizontal flip   (mirror left <-> right)
    2. vertical flip     (mirror top <-> bottom)
    3. diagonal flip     (rotate 90 degrees counter-clockwise, then
                          mirror left <-> right)

The diagonal flip has to come last to match how Tiled encodes rotated
tiles: a 90 degree clockwise rotation is stored as diagonal + horizontal.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from PIL import Image

from tmx_manager import LayerTile, TiledMap

from ..bounds import Bounds

Rect = Tuple[int, int, int, int]
EMPTY_RECT: Rect = (0, 0, 0, 0)


def rect_size(rect: Rect) -> Tuple[int, int]:
    """(width, height) of a rectangle."""
    return rect[2] - rect[0], rect[3] - rect[1]


def flip_tile_image(tile: LayerTile, img: Image.Image) -> Image.Image:
    """Apply a cell's flip flags to its tile image, returning a new image."""
    timg = img
    if tile.horizontal_flip:
        timg = timg.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    if tile.vertical_flip:
        timg = timg.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    if tile.diagonal_flip:
        timg = timg.transpose(Image.Transpose.ROTATE_90).transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    return timg


class RendererEngine(ABC):
    """Orientation-specific geometry used by the Renderer."""

    def __init__(self):
        self.m: Optional[TiledMap] = None

    def init(self, m: TiledMap):
        """Bind the engine to the map it lays out."""
        self.m = m

    @abstractmethod
    def get_final_image_size(self, bounds: Bounds) -> Rect:
        """Pixel rectangle of the output image for a viewport."""

    @abstractmethod
    def get_tile_position(self, x: int, y: int, start_odd: bool) -> Rect:
        """Destination rectangle of viewport cell (x, y)."""

    def rotate_tile_image(self, tile: LayerTile, img: Image.Image) -> Image.Image:
        return flip_tile_image(tile, img)
