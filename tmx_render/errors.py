"""
Error types raised by the renderer.

Image I/O problems are not wrapped: a tileset image that cannot be opened
raises OSError (FileNotFoundError, PermissionError, ...) and one that
cannot be decoded raises PIL.UnidentifiedImageError, straight from the
file system and Pillow.
"""

from .options import SUPPORTED_ORIENTATIONS


class RenderError(Exception):
    """Base class for renderer errors."""


class UnsupportedOrientationError(RenderError):
    """The map orientation has no rendering engine."""

    def __init__(self, orientation: str):
        super().__init__(f"tmx_render: unsupported orientation '{orientation}' "
                         f"(supported: {', '.join(SUPPORTED_ORIENTATIONS)})")
        self.orientation = orientation


class UnsupportedRenderOrderError(RenderError):
    """The map render order is not 'right-down'."""

    def __init__(self, render_order: str):
        super().__init__(f"tmx_render: unsupported render order '{render_order}'")
        self.render_order = render_order


class OutOfBoundsError(RenderError, IndexError):
    """A layer or group index is out of range."""

    def __init__(self, what: str, index: int, size: int):
        if size == 0:
            message = f"tmx_render: {what} index {index} out of bounds (no {what}s)"
        else:
            message = f"tmx_render: {what} index {index} out of bounds (0..{size - 1})"
        super().__init__(message)
        self.what = what
        self.index = index
        self.size = size


class TileNotFoundError(RenderError, KeyError):
    """A tile id has no image in its tileset."""

    def __init__(self, gid: int, tileset_name: str):
        super().__init__(f"tmx_render: no image for GID {gid} in tileset '{tileset_name}'")
        self.gid = gid
        self.tileset_name = tileset_name

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]
