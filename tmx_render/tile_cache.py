"""
Tile image cache

=============================================================================
GID -> IMAGE
=============================================================================

Every tile drawn by the Renderer goes through this cache. Keys are global
tile ids (tileset.firstgid + local id), values are RGBA PIL images of a
single tile, exactly as they appear in the tileset: flip flags are applied
per draw by the engine, never stored.

Tilesets have non-overlapping GID ranges, so a flat dict is enough:

    Tileset A (firstgid=1, 64 tiles)  -> keys 1..64
    Tileset B (firstgid=65, 16 tiles) -> keys 65..80

=============================================================================
LAZY, WHOLE-TILESET LOADING
=============================================================================

Nothing is loaded up front. The first time a tile of some tileset is
requested, the WHOLE tileset is loaded in one pass:

1. SPRITESHEET TILESET: the atlas is opened and decoded once, then cut
   into tilecount crops with Tileset.get_tile_rect().

2. IMAGE COLLECTION TILESET: every tile image file is opened and decoded.

Opening and decoding is the expensive step, cropping is cheap, so later
requests for any tile of that tileset are pure dict lookups. Entries are
never evicted; the cache lives as long as its Renderer.

=============================================================================
ERRORS
=============================================================================

Open and decode errors (OSError, PIL.UnidentifiedImageError) propagate to
the caller. There is no placeholder image: a render that hits a broken
tileset fails. Streams are closed on every path.

=============================================================================
"""

import logging
from typing import Dict, Set

from PIL import Image

from tmx_manager import LayerTile, Tileset

from .engine import RendererEngine
from .errors import TileNotFoundError
from .filesystem import LocalFileSystem

logger = logging.getLogger(__name__)


class TileImageCache:
    """
    Lazily populated GID -> tile image mapping.

    Parameters:
    -----------
    engine : RendererEngine
        Applies flip flags to cached images on the way out.
    filesystem : object with open(path) -> binary stream, optional
        Where tileset images are read from. Local disk when omitted.
    """

    def __init__(self, engine: RendererEngine, filesystem=None):
        self.engine = engine
        self.filesystem = filesystem if filesystem is not None else LocalFileSystem()

        self.tile_image_cache: Dict[int, Image.Image] = {}
        # firstgid of every tileset already loaded
        self.loaded_tilesets: Set[int] = set()

    def __len__(self) -> int:
        return len(self.tile_image_cache)

    def __contains__(self, gid: int) -> bool:
        return gid in self.tile_image_cache

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def resolve_tile_image(self, tile: LayerTile) -> Image.Image:
        """
        Image of a (non-nil) layer tile, with its flip flags applied.

        Loads the tile's tileset on first use.
        """
        gid = tile.gid
        timg = self.tile_image_cache.get(gid)
        if timg is None:
            if tile.tileset.firstgid not in self.loaded_tilesets:
                self._load_tileset(tile.tileset)
            timg = self.tile_image_cache.get(gid)
            if timg is None:
                raise TileNotFoundError(gid, tile.tileset.name)

        return self.engine.rotate_tile_image(tile, timg)

    # =========================================================================
    # TILESET LOADING
    # =========================================================================

    def _decode(self, path: str) -> Image.Image:
        """Open and fully decode an image file, closing it before returning."""
        with self.filesystem.open(path) as stream:
            # convert() forces the decode while the stream is still open
            return Image.open(stream).convert('RGBA')

    def _load_tileset(self, tileset: Tileset):
        if tileset.image is None:
            self._load_collection_tileset(tileset)
        else:
            self._load_image_tileset(tileset)
        self.loaded_tilesets.add(tileset.firstgid)

    def _load_image_tileset(self, tileset: Tileset):
        """Cut a spritesheet tileset into tilecount cached tiles."""
        image_path = tileset.get_file_full_path(tileset.image.source)
        atlas = self._decode(image_path)

        for tile_id in range(tileset.tilecount):
            rect = tileset.get_tile_rect(tile_id, atlas.width)
            self.tile_image_cache[tileset.firstgid + tile_id] = atlas.crop(rect)

        logger.debug("Cached tileset %s: %d tiles from %s (%dx%d)",
                     tileset.name, tileset.tilecount, image_path, atlas.width, atlas.height)

    def _load_collection_tileset(self, tileset: Tileset):
        """Decode every tile image of an image collection tileset."""
        loaded = 0
        for tile_id, tile in tileset.tiles.items():
            if tile.image is None:
                continue
            image_path = tileset.get_file_full_path(tile.image.source)
            self.tile_image_cache[tileset.firstgid + tile_id] = self._decode(image_path)
            loaded += 1

        logger.debug("Cached image collection %s: %d tiles", tileset.name, loaded)
