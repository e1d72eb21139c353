"""Shared fixtures: small tilesets drawn with Pillow and maps built in code."""

from pathlib import Path
from typing import List

import pytest
from PIL import Image

from tmx_manager import (
    Image as TmxImage,
    Tile,
    TiledMap,
    Tileset,
    create_empty_map,
    create_layer,
)
from tmx_render.filesystem import LocalFileSystem

TILE = 8

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
YELLOW = (255, 255, 0, 255)
ATLAS_COLORS = [RED, GREEN, BLUE, YELLOW]


class CountingFileSystem(LocalFileSystem):
    """Local file system that records every path it opens."""

    def __init__(self):
        self.opened: List[str] = []

    def open(self, path):
        self.opened.append(str(path))
        return super().open(path)


def write_atlas(path: Path, colors=ATLAS_COLORS, columns: int = 2,
                margin: int = 0, spacing: int = 0) -> Path:
    """Spritesheet with one solid-color TILE x TILE tile per color."""
    rows = (len(colors) + columns - 1) // columns
    width = 2 * margin + columns * TILE + (columns - 1) * spacing
    height = 2 * margin + rows * TILE + (rows - 1) * spacing
    atlas = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    for i, color in enumerate(colors):
        col, row = i % columns, i // columns
        left = margin + col * (TILE + spacing)
        top = margin + row * (TILE + spacing)
        atlas.paste(Image.new('RGBA', (TILE, TILE), color), (left, top))
    atlas.save(path)
    return path


def atlas_tileset(tmp_path: Path, firstgid: int = 1, name: str = "colors") -> Tileset:
    write_atlas(tmp_path / f"{name}.png")
    return Tileset(
        firstgid=firstgid,
        name=name,
        tilewidth=TILE,
        tileheight=TILE,
        tilecount=len(ATLAS_COLORS),
        columns=2,
        image=TmxImage(source=f"{name}.png", width=2 * TILE, height=2 * TILE),
        base_dir=str(tmp_path),
    )


@pytest.fixture
def tileset(tmp_path: Path) -> Tileset:
    """Spritesheet tileset: local ids 0..3 are red, green, blue, yellow."""
    return atlas_tileset(tmp_path)


@pytest.fixture
def collection_tileset(tmp_path: Path) -> Tileset:
    """Image collection tileset with tiles 0 (red) and 3 (blue)."""
    tiles_dir = tmp_path / "tiles"
    tiles_dir.mkdir()
    Image.new('RGBA', (TILE, TILE), RED).save(tiles_dir / "red.png")
    Image.new('RGBA', (TILE, 2 * TILE), BLUE).save(tiles_dir / "blue.png")
    return Tileset(
        firstgid=10,
        name="collection",
        tilewidth=TILE,
        tileheight=2 * TILE,
        tilecount=2,
        tiles={
            0: Tile(id=0, image=TmxImage(source="tiles/red.png")),
            3: Tile(id=3, image=TmxImage(source="tiles/blue.png")),
        },
        base_dir=str(tmp_path),
    )


@pytest.fixture
def ortho_map(tileset: Tileset) -> TiledMap:
    """2x2 orthogonal map with one empty layer using the atlas tileset."""
    tmx_map = create_empty_map(2, 2, TILE, TILE)
    tmx_map.tilesets.append(tileset)
    tmx_map.layers.append(create_layer("Ground", 2, 2))
    return tmx_map


@pytest.fixture
def counting_fs() -> CountingFileSystem:
    return CountingFileSystem()
