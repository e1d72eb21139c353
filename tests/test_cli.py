"""Tests for the command line front end."""

import pytest
from PIL import Image

from tmx_render.__main__ import build_parser, main, resolve_output

from conftest import GREEN, RED, TILE, YELLOW, write_atlas

MAP_TMX = """<?xml version="1.0" encoding="UTF-8"?>
<map version="1.10" orientation="orthogonal" renderorder="right-down"
     width="2" height="2" tilewidth="8" tileheight="8">
    <tileset firstgid="1" name="colors" tilewidth="8" tileheight="8" tilecount="4" columns="2">
        <image source="colors.png" width="16" height="16"/>
    </tileset>
    <layer id="1" name="Ground" width="2" height="2">
        <data encoding="csv">1,2,3,4</data>
    </layer>
    <group id="2" name="Decor">
        <layer id="3" name="Top" width="2" height="2">
            <data encoding="csv">0,0,0,4</data>
        </layer>
    </group>
</map>
"""


@pytest.fixture
def tmx_file(tmp_path):
    write_atlas(tmp_path / "colors.png")
    path = tmp_path / "level.tmx"
    path.write_text(MAP_TMX)
    return path


class TestResolveOutput:
    def test_default_png_next_to_map(self, tmp_path) -> None:
        args = build_parser().parse_args([str(tmp_path / "level.tmx")])
        assert resolve_output(args) == (tmp_path / "level.png", "png")

    def test_format_from_extension(self, tmp_path) -> None:
        args = build_parser().parse_args([str(tmp_path / "a.tmx"), "-o", str(tmp_path / "a.JPG")])
        assert resolve_output(args)[1] == "jpeg"

    def test_explicit_format_without_output(self, tmp_path) -> None:
        args = build_parser().parse_args([str(tmp_path / "a.tmx"), "-f", "jpeg"])
        assert resolve_output(args) == (tmp_path / "a.jpg", "jpeg")


class TestMain:
    def test_renders_visible_layers(self, tmx_file, capsys) -> None:
        assert main([str(tmx_file)]) == 0

        out = tmx_file.with_suffix(".png")
        assert capsys.readouterr().out.strip() == str(out)
        with Image.open(out) as img:
            rgba = img.convert("RGBA")
        assert rgba.size == (2 * TILE, 2 * TILE)
        assert rgba.getpixel((0, 0)) == RED
        assert rgba.getpixel((TILE, 0)) == GREEN

    def test_group_layer_with_viewport(self, tmx_file, tmp_path) -> None:
        out = tmp_path / "top.png"
        code = main([str(tmx_file), "-o", str(out), "--group", "0", "0",
                     "--offset", "1", "1", "--limit", "1", "1"])
        assert code == 0
        with Image.open(out) as img:
            rgba = img.convert("RGBA")
        assert rgba.size == (TILE, TILE)
        assert rgba.getpixel((0, 0)) == YELLOW

    @pytest.mark.parametrize("name, fmt", [("out.jpg", "JPEG"), ("out.gif", "GIF")])
    def test_other_formats(self, tmx_file, tmp_path, name, fmt) -> None:
        out = tmp_path / name
        assert main([str(tmx_file), "-o", str(out)]) == 0
        with Image.open(out) as img:
            assert img.format == fmt

    def test_bad_layer_index(self, tmx_file, tmp_path) -> None:
        assert main([str(tmx_file), "--layer", "3", "-o", str(tmp_path / "x.png")]) == 1

    def test_missing_map(self, tmp_path) -> None:
        assert main([str(tmp_path / "missing.tmx")]) == 1

    def test_missing_tileset_image(self, tmx_file) -> None:
        (tmx_file.parent / "colors.png").unlink()
        assert main([str(tmx_file)]) == 1

    def test_invalid_quality_writes_nothing(self, tmx_file, tmp_path) -> None:
        out = tmp_path / "bad.jpg"
        assert main([str(tmx_file), "-o", str(out), "--quality", "0"]) == 1
        assert not out.exists()

    def test_unknown_log_level(self, tmx_file) -> None:
        with pytest.raises(SystemExit):
            main([str(tmx_file), "--log-level", "chatty"])

    def test_layer_selectors_are_exclusive(self, tmx_file) -> None:
        with pytest.raises(SystemExit):
            main([str(tmx_file), "--layer", "0", "--all-visible"])
