"""
Map renderer: layer compositing into a single RGBA image

=============================================================================
ARCHITECTURE
=============================================================================

    TiledMap ──> Renderer ──> RendererEngine   (pixel geometry)
                    │
                    ├──> TileImageCache        (GID -> tile image)
                    │
                    └──> result                (RGBA PIL image)

The Renderer picks an engine from the map orientation once, at
construction. Each render call walks the cells of a layer inside the
viewport, asks the cache for the tile image and the engine for the
destination rectangle, and composites the tile into result.

=============================================================================
ACCUMULATING RESULTS
=============================================================================

Render calls draw on top of whatever is already in result. To get one image
per layer, render a layer, copy the result, clear, and repeat:

    renderer = Renderer(tmx_map)
    for i in range(len(tmx_map.layers)):
        renderer.render_layer(i)
        images.append(renderer.copy_result())
        renderer.clear()

A render call that fails (missing tileset image, ...) leaves result
partially drawn; clear() before trying again.

=============================================================================
THREADING
=============================================================================

A Renderer is not thread safe: render calls mutate result and the tile
cache in place. Use one Renderer per thread.

=============================================================================
"""

import logging
from typing import BinaryIO, Optional, Union
from pathlib import Path

import numpy as np
from PIL import Image

from tmx_manager import TileLayer, TiledMap

from .bounds import Bounds
from .engine import (
    HexagonalRendererEngine,
    OrthogonalRendererEngine,
    Rect,
    RendererEngine,
    rect_size,
)
from .errors import OutOfBoundsError, UnsupportedOrientationError, UnsupportedRenderOrderError
from .options import (
    DEFAULT_RENDER_ORDER,
    ORIENTATION_HEXAGONAL,
    ORIENTATION_ORTHOGONAL,
    GifOptions,
    JpegOptions,
)
from .tile_cache import TileImageCache

logger = logging.getLogger(__name__)

Sink = Union[str, Path, BinaryIO]


def apply_opacity(img: Image.Image, mask: int) -> Image.Image:
    """Scale the alpha channel of an RGBA image by mask / 255."""
    pixels = np.array(img)
    alpha = pixels[..., 3].astype(np.uint16)
    pixels[..., 3] = ((alpha * mask + 127) // 255).astype(np.uint8)
    return Image.fromarray(pixels)


class Renderer:
    """
    Renders the tile layers of a TiledMap into an RGBA image.

    Parameters:
    -----------
    tmx_map : TiledMap
        The map to render. Treated as read-only.
    filesystem : object with open(path) -> binary stream, optional
        Used to read tileset images. Local disk when omitted.

    Raises:
    -------
    UnsupportedOrientationError : If the map is neither orthogonal nor
        hexagonal.
    """

    def __init__(self, tmx_map: TiledMap, filesystem=None):
        self.m = tmx_map
        self.filesystem = filesystem

        if self.m.orientation == ORIENTATION_ORTHOGONAL:
            self.engine: RendererEngine = OrthogonalRendererEngine()
        elif self.m.orientation == ORIENTATION_HEXAGONAL:
            self.engine = HexagonalRendererEngine()
        else:
            raise UnsupportedOrientationError(self.m.orientation)

        self.engine.init(self.m)
        self.bounds = Bounds(limit_x=self.m.width, limit_y=self.m.height)
        self.tile_cache = TileImageCache(self.engine, filesystem)

        self.result: Optional[Image.Image] = None
        self.clear()

    # =========================================================================
    # VIEWPORT
    # =========================================================================

    def set_limit(self, x: int, y: int):
        """Set the viewport size in tiles and reallocate the result."""
        self.bounds.set_limit(x, y)
        self.clear()

    def add_offset(self, x: int, y: int):
        """Pan the viewport by (x, y) tiles and reallocate the result."""
        self.bounds.add_offset(x, y)
        self.clear()

    # =========================================================================
    # COMPOSITING
    # =========================================================================

    def _draw_tile(self, pos: Rect, img: Image.Image, opacity: float):
        """
        Composite a tile image into result at pos.

        The image is anchored at the top-left corner of pos and clipped to
        pos; anything past the result edges is clipped as well.
        """
        pos_width, pos_height = rect_size(pos)
        width = min(img.width, pos_width)
        height = min(img.height, pos_height)
        if width <= 0 or height <= 0:
            return

        if (width, height) != img.size:
            img = img.crop((0, 0, width, height))

        if opacity < 1:
            img = apply_opacity(img, int(max(opacity, 0) * 255))

        self.result.alpha_composite(img, dest=(pos[0], pos[1]))

    def _render_tile(self, layer: TileLayer, i: int, x: int, y: int, start_odd: bool) -> bool:
        tile = layer.tiles[i]
        if tile.is_nil():
            return False

        img = self.tile_cache.resolve_tile_image(tile)
        pos = self.engine.get_tile_position(x, y, start_odd)
        self._draw_tile(pos, img, layer.opacity)
        return True

    def _render_layer(self, layer: TileLayer):
        if self.m.renderorder != DEFAULT_RENDER_ORDER:
            raise UnsupportedRenderOrderError(self.m.renderorder)

        xs = self.bounds.offset_x
        xe = min(self.bounds.offset_x + self.bounds.limit_x, self.m.width)
        ys = self.bounds.offset_y
        ye = min(self.bounds.offset_y + self.bounds.limit_y, self.m.height)

        # Hex parity follows the map row, not the viewport row
        start_odd = self.bounds.offset_y % 2 == 1

        drawn = 0
        for y in range(ys, ye):
            for x in range(xs, xe):
                i = y * self.m.width + x
                if self._render_tile(layer, i, x - xs, y - ys, start_odd):
                    drawn += 1

        logger.debug("Rendered layer '%s': %d tiles in [%d:%d, %d:%d]",
                     layer.name, drawn, xs, xe, ys, ye)

    def render_layer(self, index: int):
        """
        Render top-level tile layer number index.

        Raises:
        -------
        OutOfBoundsError : If index is not a valid layer index
        UnsupportedRenderOrderError : If the map render order is not right-down
        OSError, PIL.UnidentifiedImageError : If a tileset image fails to load
        """
        if not 0 <= index < len(self.m.layers):
            raise OutOfBoundsError("layer", index, len(self.m.layers))
        self._render_layer(self.m.layers[index])

    def render_group_layer(self, group_index: int, layer_index: int):
        """Render tile layer layer_index of top-level group group_index."""
        if not 0 <= group_index < len(self.m.groups):
            raise OutOfBoundsError("group", group_index, len(self.m.groups))
        group = self.m.groups[group_index]

        if not 0 <= layer_index < len(group.layers):
            raise OutOfBoundsError("group layer", layer_index, len(group.layers))
        self._render_layer(group.layers[layer_index])

    def render_visible_layers(self):
        """Render every visible top-level tile layer, in map order."""
        for i, layer in enumerate(self.m.layers):
            if not layer.visible:
                continue
            self.render_layer(i)

    def clear(self):
        """Replace result with a transparent image sized for the current bounds."""
        width, height = rect_size(self.engine.get_final_image_size(self.bounds))
        self.result = Image.new('RGBA', (width, height), (0, 0, 0, 0))

    def copy_result(self) -> Image.Image:
        """Copy of the current result, unaffected by later renders."""
        return self.result.copy()

    # =========================================================================
    # EXPORT
    # =========================================================================

    def _flatten(self) -> Image.Image:
        """result composited onto opaque black, as RGB."""
        background = Image.new('RGBA', self.result.size, (0, 0, 0, 255))
        return Image.alpha_composite(background, self.result).convert('RGB')

    def save_as_png(self, sink: Sink):
        """Write result as a PNG to a path or binary file object."""
        self.result.save(sink, format='PNG')
        logger.info("Saved %dx%d PNG", self.result.width, self.result.height)

    def save_as_jpeg(self, sink: Sink, options: Optional[JpegOptions] = None):
        """
        Write result as a JPEG.

        JPEG has no alpha channel: transparent areas come out black.
        """
        options = options or JpegOptions()
        self._flatten().save(sink, format='JPEG', quality=options.quality)
        logger.info("Saved %dx%d JPEG (quality %d)",
                    self.result.width, self.result.height, options.quality)

    def save_as_gif(self, sink: Sink, options: Optional[GifOptions] = None):
        """
        Write result as a GIF with at most options.num_colors colors.

        Like JPEG, the image is flattened onto black first: the GIF writer
        expects an RGB palette.
        """
        options = options or GifOptions()
        paletted = self._flatten().quantize(colors=options.num_colors,
                                            method=Image.Quantize.FASTOCTREE)
        paletted.save(sink, format='GIF')
        logger.info("Saved %dx%d GIF (%d colors)",
                    self.result.width, self.result.height, options.num_colors)


def new_renderer(tmx_map: TiledMap) -> Renderer:
    """Renderer reading tileset images from local disk."""
    return Renderer(tmx_map)


def new_renderer_with_file_system(tmx_map: TiledMap, filesystem) -> Renderer:
    """Renderer reading tileset images through filesystem."""
    return Renderer(tmx_map, filesystem)
