#!/usr/bin/env python3

"""
Module for reading Tiled Map Format (TMX) files into an in-memory model
that the tmx_render package can rasterize.

=============================================================================
WHAT IS LOADED?
=============================================================================

A TMX file is XML with this basic structure:

    <map version="1.10" orientation="hexagonal" renderorder="right-down"
         width="10" height="8" tilewidth="32" tileheight="28"
         hexsidelength="16" staggeraxis="y" staggerindex="odd">

        <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="28">
            <image source="terrain.png" width="256" height="224"/>
        </tileset>

        <layer name="Ground" width="10" height="8">
            <data encoding="csv">
                1,2,3,4,5,...
            </data>
        </layer>

        <group name="Decoration">
            <layer name="Trees" .../>
        </group>
    </map>

The loader keeps what rendering needs:

- Map dimensions, tile sizes, orientation and render order
- Hexagonal parameters (stagger axis, stagger index, hex side length)
- Tilesets, embedded or external (.tsx), spritesheet or image collection
- Tile layers at the top level and inside (nested) groups

Object groups and image layers are skipped.

=============================================================================
GLOBAL TILE IDs (GIDs) AND FLIP FLAGS
=============================================================================

Every cell of a tile layer stores a 32 bit value:

    bit 31  horizontal flip
    bit 30  vertical flip
    bit 29  diagonal (anti-diagonal) flip
    bit 28  hexagonal 120 degree rotation (ignored when rendering)
    0-27    GID

    Tileset A (firstgid=1):   tiles 1-100
    Tileset B (firstgid=101): tiles 101-200

    GID 0   = empty cell (nil tile)
    GID 150 = tile 49 of tileset B

Each cell is turned into a LayerTile that points at its Tileset and carries
the local tile id plus the three flip flags.

=============================================================================
"""

import array
import base64
import logging
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Flip flags stored in the high bits of a GID
FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000
ROTATED_HEXAGONAL_120_FLAG = 0x10000000
GID_MASK = ~(FLIPPED_HORIZONTALLY_FLAG | FLIPPED_VERTICALLY_FLAG
             | FLIPPED_DIAGONALLY_FLAG | ROTATED_HEXAGONAL_120_FLAG) & 0xFFFFFFFF

AXIS_X = "x"
AXIS_Y = "y"


def _open_binary(path: str, filesystem=None) -> BinaryIO:
    """Open a file through the given file system, or from local disk."""
    if filesystem is not None:
        return filesystem.open(path)
    return open(path, 'rb')


# =============================================================================
# PROPERTY CLASS
# =============================================================================

@dataclass
class Property:
    """
    Custom property attached to a map, tileset, tile, layer or group.

    Values are converted to Python types on load:

        <property name="solid" type="bool" value="true"/>   -> True
        <property name="level" type="int" value="2"/>       -> 2
        <property name="speed" type="float" value="0.5"/>   -> 0.5

    Anything else (string, color, file, object) is kept as text.
    """
    name: str
    type: str = "string"
    value: Any = None

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Property':
        prop_type = elem.get('type', 'string')
        # Multi-line strings are stored as element text
        value = elem.get('value', elem.text or '')

        if prop_type == 'int':
            value = int(value)
        elif prop_type == 'float':
            value = float(value)
        elif prop_type == 'bool':
            value = value.lower() == 'true'

        return cls(name=elem.get('name', ''), type=prop_type, value=value)


def _parse_properties(elem: ET.Element) -> Dict[str, Property]:
    """Collect the <properties> child of an element into a name -> Property dict."""
    properties: Dict[str, Property] = {}
    props_elem = elem.find('properties')
    if props_elem is not None:
        for prop_elem in props_elem.findall('property'):
            prop = Property.from_xml(prop_elem)
            properties[prop.name] = prop
    return properties


# =============================================================================
# IMAGE CLASS
# =============================================================================

@dataclass
class Image:
    """
    Image reference used by tilesets.

    source: Path to the image file, relative to the TMX/TSX file
    width, height: Declared pixel size (optional)
    trans: Transparent color as hex, e.g. "ff00ff" (informational)
    """
    source: str
    width: Optional[int] = None
    height: Optional[int] = None
    trans: Optional[str] = None

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Image':
        return cls(
            source=elem.get('source', ''),
            width=int(elem.get('width')) if elem.get('width') else None,
            height=int(elem.get('height')) if elem.get('height') else None,
            trans=elem.get('trans')
        )


# =============================================================================
# TILE CLASS
# =============================================================================

@dataclass
class Tile:
    """
    Per-tile metadata inside a tileset.

    The id is LOCAL to the tileset. For image collection tilesets every
    Tile carries its own Image; for spritesheet tilesets only tiles with
    properties are listed.
    """
    id: int
    type: str = ""
    properties: Dict[str, Property] = field(default_factory=dict)
    image: Optional[Image] = None

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Tile':
        tile = cls(id=int(elem.get('id', 0)))
        # 'class' replaced 'type' in TMX 1.9
        tile.type = elem.get('class', elem.get('type', ''))
        tile.properties = _parse_properties(elem)

        img_elem = elem.find('image')
        if img_elem is not None:
            tile.image = Image.from_xml(img_elem)

        return tile


# =============================================================================
# TILESET CLASS
# =============================================================================

@dataclass
class Tileset:
    """
    Tileset - a set of tile graphics addressed by a GID range.

    ==========================================================================
    TILESET TYPES
    ==========================================================================

    1. SPRITESHEET TILESET: one atlas image sliced into a uniform grid.

       +---+---+---+---+
       | 0 | 1 | 2 | 3 |
       +---+---+---+---+
       | 4 | 5 | 6 | 7 |
       +---+---+---+---+

    2. IMAGE COLLECTION TILESET: every tile has its own image file,
       image is None and each Tile in tiles carries an Image.

    ==========================================================================
    SPACING AND MARGIN
    ==========================================================================

    margin = pixels around the edge of the atlas
    spacing = pixels between neighbouring tiles

        left = col * tilewidth + col * spacing + margin
        top  = row * tileheight + row * spacing + margin

    ==========================================================================
    PATHS
    ==========================================================================

    base_dir is the directory image sources are relative to: the TMX
    directory for embedded tilesets, the TSX directory for external ones.
    Use get_file_full_path() to resolve an image source.

    ==========================================================================
    """
    firstgid: int
    name: str
    tilewidth: int
    tileheight: int
    tilecount: int = 0
    columns: int = 0
    spacing: int = 0
    margin: int = 0
    image: Optional[Image] = None
    tiles: Dict[int, Tile] = field(default_factory=dict)
    properties: Dict[str, Property] = field(default_factory=dict)
    source: Optional[str] = None
    base_dir: str = ""

    @classmethod
    def from_xml(cls, elem: ET.Element, firstgid: int, base_dir: str = "") -> 'Tileset':
        """
        Parse a tileset from a <tileset> element (embedded or TSX root).

        firstgid always comes from the referencing TMX, never from the TSX.
        """
        tileset = cls(
            firstgid=firstgid,
            name=elem.get('name', ''),
            tilewidth=int(elem.get('tilewidth', 0)),
            tileheight=int(elem.get('tileheight', 0)),
            tilecount=int(elem.get('tilecount', 0)),
            columns=int(elem.get('columns', 0)),
            spacing=int(elem.get('spacing', 0)),
            margin=int(elem.get('margin', 0)),
            base_dir=base_dir
        )
        tileset.properties = _parse_properties(elem)

        img_elem = elem.find('image')
        if img_elem is not None:
            tileset.image = Image.from_xml(img_elem)

        for tile_elem in elem.findall('tile'):
            tile = Tile.from_xml(tile_elem)
            tileset.tiles[tile.id] = tile

        return tileset

    def get_file_full_path(self, source: str) -> str:
        """Resolve an image source relative to this tileset's directory."""
        return str(Path(self.base_dir) / source)

    def get_tile_rect(self, tile_id: int,
                      image_width: Optional[int] = None) -> Tuple[int, int, int, int]:
        """
        Rectangle (left, top, right, bottom) of a local tile id in the atlas.

        When the tileset does not declare columns they are derived from the
        atlas width: image_width (the decoded atlas) if given, else the width
        declared on <image>, which is optional in TMX.

        Raises ValueError when neither columns nor an atlas width is known.
        """
        columns = self.columns
        if columns == 0:
            width = image_width if image_width is not None else self.image.width
            if width is None:
                raise ValueError(f"Tileset '{self.name}': no columns and no image width")
            columns = width // (self.tilewidth + self.spacing)

        x = tile_id % columns
        y = tile_id // columns
        x_offset = x * self.spacing + self.margin
        y_offset = y * self.spacing + self.margin

        return (x * self.tilewidth + x_offset,
                y * self.tileheight + y_offset,
                (x + 1) * self.tilewidth + x_offset,
                (y + 1) * self.tileheight + y_offset)


# =============================================================================
# LAYER TILE CLASS
# =============================================================================

@dataclass
class LayerTile:
    """
    One cell of a tile layer.

    id is the local tile id within tileset. A nil tile (tileset None)
    marks an empty cell and is never drawn.
    """
    id: int = 0
    tileset: Optional[Tileset] = None
    horizontal_flip: bool = False
    vertical_flip: bool = False
    diagonal_flip: bool = False

    def is_nil(self) -> bool:
        return self.tileset is None

    @property
    def gid(self) -> int:
        """Global id without flip flags (0 for nil tiles)."""
        if self.tileset is None:
            return 0
        return self.tileset.firstgid + self.id


NIL_TILE = LayerTile()


def tileset_for_gid(tilesets: List[Tileset], gid: int) -> Optional[Tileset]:
    """
    Find the tileset owning a GID: the one with the largest firstgid <= gid.

    tilesets must be ordered by firstgid, which is how TMX stores them.
    """
    for i in range(len(tilesets) - 1, -1, -1):
        if gid >= tilesets[i].firstgid:
            return tilesets[i]
    return None


def decode_gid(raw: int, tilesets: List[Tileset]) -> LayerTile:
    """
    Turn a raw 32 bit cell value into a LayerTile.

    Raises ValueError when no tileset owns the GID.
    """
    gid = raw & GID_MASK
    if gid == 0:
        return NIL_TILE

    tileset = tileset_for_gid(tilesets, gid)
    if tileset is None:
        raise ValueError(f"No tileset found for GID {gid}")

    return LayerTile(
        id=gid - tileset.firstgid,
        tileset=tileset,
        horizontal_flip=bool(raw & FLIPPED_HORIZONTALLY_FLAG),
        vertical_flip=bool(raw & FLIPPED_VERTICALLY_FLAG),
        diagonal_flip=bool(raw & FLIPPED_DIAGONALLY_FLAG),
    )


# =============================================================================
# LAYER DATA DECODING
# =============================================================================

def decode_layer_data(data_elem: ET.Element) -> array.array:
    """
    Decode the raw cell values of a <data> element.

    ==========================================================================
    DATA ENCODINGS
    ==========================================================================

    XML (deprecated):   <tile gid="1"/><tile gid="2"/>...
    CSV:                1,2,3,\\n4,5,6
    Base64:             little-endian uint32 per cell, optionally
                        compressed with zlib, gzip or zstd

    Flip flags are kept, so values are unsigned 32 bit.
    ==========================================================================
    """
    encoding = data_elem.get('encoding')
    compression = data_elem.get('compression')

    if encoding == 'csv':
        csv_data = (data_elem.text or '').strip()
        gids = [int(x) for x in csv_data.replace('\n', '').split(',')
                if x.strip()]
        return array.array('I', gids)

    if encoding == 'base64':
        raw_data = base64.b64decode((data_elem.text or '').strip())

        if compression == 'zlib':
            raw_data = zlib.decompress(raw_data)
        elif compression == 'gzip':
            import gzip
            raw_data = gzip.decompress(raw_data)
        elif compression == 'zstd':
            try:
                import zstandard as zstd
            except ImportError:
                raise ImportError(
                    "zstandard library required for zstd compression. "
                    "Install with: pip install zstandard"
                )
            raw_data = zstd.ZstdDecompressor().decompress(raw_data)
        elif compression:
            raise ValueError(f"Unsupported layer compression: {compression}")

        tiles = array.array('I')
        tiles.frombytes(raw_data)
        return tiles

    if encoding:
        raise ValueError(f"Unsupported layer encoding: {encoding}")

    return array.array('I', [int(t.get('gid', 0)) for t in data_elem.findall('tile')])


# =============================================================================
# TILE LAYER CLASS
# =============================================================================

@dataclass
class TileLayer:
    """
    Tile layer - a full grid of LayerTiles in row-major order.

        tiles[y * width + x]

    visible: whether render_visible_layers() draws the layer
    opacity: 0.0 (invisible) .. 1.0 (opaque)
    """
    name: str
    width: int
    height: int
    id: int = 0
    visible: bool = True
    opacity: float = 1.0
    properties: Dict[str, Property] = field(default_factory=dict)
    tiles: List[LayerTile] = field(default_factory=list)

    @classmethod
    def from_xml(cls, elem: ET.Element, tilesets: List[Tileset]) -> 'TileLayer':
        layer = cls(
            name=elem.get('name', ''),
            width=int(elem.get('width', 0)),
            height=int(elem.get('height', 0)),
            id=int(elem.get('id', 0)),
            # Absent means visible
            visible=elem.get('visible', '1') == '1',
            opacity=float(elem.get('opacity', 1.0)),
        )
        layer.properties = _parse_properties(elem)

        data_elem = elem.find('data')
        if data_elem is not None:
            if data_elem.find('chunk') is not None:
                raise ValueError(f"Layer '{layer.name}': infinite map chunks are not supported")
            raw = decode_layer_data(data_elem)
            layer.tiles = [decode_gid(value, tilesets) for value in raw]

        expected = layer.width * layer.height
        if len(layer.tiles) < expected:
            # Missing trailing cells are empty
            layer.tiles.extend([NIL_TILE] * (expected - len(layer.tiles)))

        return layer

    def get_tile(self, x: int, y: int) -> LayerTile:
        """LayerTile at column x, row y (nil outside the layer)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.tiles[y * self.width + x]
        return NIL_TILE


# =============================================================================
# LAYER GROUP CLASS
# =============================================================================

@dataclass
class LayerGroup:
    """
    Group of layers. Groups can be nested:

    Layers:
    ├── Background (group)
    │   ├── Sky
    │   └── Mountains
    └── Foreground

    layers holds the group's tile layers in file order, groups its
    sub-groups.
    """
    name: str
    id: int = 0
    visible: bool = True
    opacity: float = 1.0
    properties: Dict[str, Property] = field(default_factory=dict)
    layers: List[TileLayer] = field(default_factory=list)
    groups: List['LayerGroup'] = field(default_factory=list)

    @classmethod
    def from_xml(cls, elem: ET.Element, tilesets: List[Tileset]) -> 'LayerGroup':
        group = cls(
            name=elem.get('name', ''),
            id=int(elem.get('id', 0)),
            visible=elem.get('visible', '1') == '1',
            opacity=float(elem.get('opacity', 1.0)),
        )
        group.properties = _parse_properties(elem)

        for child in elem:
            if child.tag == 'layer':
                group.layers.append(TileLayer.from_xml(child, tilesets))
            elif child.tag == 'group':
                group.groups.append(LayerGroup.from_xml(child, tilesets))

        return group


# =============================================================================
# TILED MAP CLASS (Main Entry Point)
# =============================================================================

@dataclass
class TiledMap:
    """
    Complete Tiled map - the root object handed to tmx_render.Renderer.

    ==========================================================================
    ORIENTATIONS
    ==========================================================================

    ORTHOGONAL:
        +---+---+---+
        | 0 | 1 | 2 |
        +---+---+---+

    HEXAGONAL (staggeraxis="y"), every other row shifted half a tile:
         / \\ / \\ / \\
        | 0 | 1 | 2 |
         \\ / \\ / \\ / \\
          | 3 | 4 | 5 |
           \\ / \\ / \\ /

    hexsidelength is the length of the flat hexagon side, in pixels.

    ==========================================================================
    USAGE
    ==========================================================================

        tmx_map = TiledMap.load("level1.tmx")
        ground = tmx_map.get_layer_by_name("Ground")
        cell = ground.get_tile(5, 10)

    ==========================================================================
    """
    version: str = "1.10"
    tiledversion: str = ""
    orientation: str = "orthogonal"
    renderorder: str = "right-down"
    width: int = 0
    height: int = 0
    tilewidth: int = 0
    tileheight: int = 0
    hexsidelength: int = 0
    staggeraxis: Optional[str] = None
    staggerindex: Optional[str] = None
    infinite: bool = False
    properties: Dict[str, Property] = field(default_factory=dict)
    tilesets: List[Tileset] = field(default_factory=list)
    layers: List[TileLayer] = field(default_factory=list)
    groups: List[LayerGroup] = field(default_factory=list)

    @classmethod
    def load(cls, filepath: Union[str, Path], filesystem=None) -> 'TiledMap':
        """
        Load a TMX file.

        Parameters:
        -----------
        filepath : str or Path
            Path to the .tmx file
        filesystem : object with open(path) -> binary stream, optional
            Used for the TMX and any TSX files. Local disk when omitted.

        Raises:
        -------
        OSError : If the TMX (or a referenced TSX) cannot be opened
        xml.etree.ElementTree.ParseError : If XML is malformed
        ValueError : If a layer references a GID no tileset owns
        """
        filepath = Path(filepath)
        base_dir = str(filepath.parent)

        with _open_binary(str(filepath), filesystem) as stream:
            root = ET.parse(stream).getroot()

        map_obj = cls(
            version=root.get('version', '1.0'),
            tiledversion=root.get('tiledversion', ''),
            orientation=root.get('orientation', 'orthogonal'),
            renderorder=root.get('renderorder', 'right-down'),
            width=int(root.get('width', 0)),
            height=int(root.get('height', 0)),
            tilewidth=int(root.get('tilewidth', 0)),
            tileheight=int(root.get('tileheight', 0)),
            hexsidelength=int(root.get('hexsidelength', 0)),
            staggeraxis=root.get('staggeraxis'),
            staggerindex=root.get('staggerindex'),
            infinite=root.get('infinite', '0') == '1'
        )
        map_obj.properties = _parse_properties(root)

        # -----------------------------------------------------------------
        # TILESETS (must be parsed before layers to decode GIDs)
        # -----------------------------------------------------------------
        for tileset_elem in root.findall('tileset'):
            firstgid = int(tileset_elem.get('firstgid', 1))
            source = tileset_elem.get('source')

            if source:
                tsx_path = Path(base_dir) / source
                with _open_binary(str(tsx_path), filesystem) as stream:
                    tsx_root = ET.parse(stream).getroot()
                tileset = Tileset.from_xml(tsx_root, firstgid, str(tsx_path.parent))
                tileset.source = source
            else:
                tileset = Tileset.from_xml(tileset_elem, firstgid, base_dir)

            map_obj.tilesets.append(tileset)

        map_obj.tilesets.sort(key=lambda ts: ts.firstgid)

        # -----------------------------------------------------------------
        # LAYERS AND GROUPS
        # -----------------------------------------------------------------
        for elem in root:
            if elem.tag == 'layer':
                map_obj.layers.append(TileLayer.from_xml(elem, map_obj.tilesets))
            elif elem.tag == 'group':
                map_obj.groups.append(LayerGroup.from_xml(elem, map_obj.tilesets))

        logger.info("Loaded map %s: %dx%d %s, %d tilesets, %d layers, %d groups",
                    filepath.name, map_obj.width, map_obj.height, map_obj.orientation,
                    len(map_obj.tilesets), len(map_obj.layers), len(map_obj.groups))
        return map_obj

    def get_tileset_for_gid(self, gid: int) -> Optional[Tileset]:
        return tileset_for_gid(self.tilesets, gid)

    def get_layer_by_name(self, name: str) -> Optional[TileLayer]:
        """Find a tile layer by name, searching groups recursively."""
        def search(layers: List[TileLayer], groups: List[LayerGroup]):
            for layer in layers:
                if layer.name == name:
                    return layer
            for group in groups:
                result = search(group.layers, group.groups)
                if result:
                    return result
            return None

        return search(self.layers, self.groups)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def create_empty_map(width: int, height: int, tilewidth: int, tileheight: int,
                     orientation: str = "orthogonal") -> TiledMap:
    """Create a map without tilesets or layers, for building maps in code."""
    return TiledMap(
        width=width,
        height=height,
        tilewidth=tilewidth,
        tileheight=tileheight,
        orientation=orientation
    )


def create_layer(name: str, width: int, height: int) -> TileLayer:
    """Create a tile layer filled with nil tiles."""
    return TileLayer(name=name, width=width, height=height,
                     tiles=[NIL_TILE] * (width * height))


def set_layer_tile(layer: TileLayer, x: int, y: int, tileset: Tileset, tile_id: int,
                   horizontal_flip: bool = False, vertical_flip: bool = False,
                   diagonal_flip: bool = False):
    """Place tile tile_id of tileset at (x, y) in a layer built in code."""
    if 0 <= x < layer.width and 0 <= y < layer.height:
        layer.tiles[y * layer.width + x] = LayerTile(
            id=tile_id, tileset=tileset,
            horizontal_flip=horizontal_flip,
            vertical_flip=vertical_flip,
            diagonal_flip=diagonal_flip,
        )
