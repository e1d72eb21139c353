"""
File access used to read tileset images.

Any object with an open(path) method returning a readable binary stream
can be handed to the Renderer (and to TiledMap.load). The stream is used
as a context manager and closed right after decoding.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Union

logger = logging.getLogger(__name__)


class LocalFileSystem:
    """Open paths as given, from local disk."""

    def open(self, path: Union[str, Path]) -> BinaryIO:
        return open(path, 'rb')


class DirectoryFileSystem:
    """
    Open paths relative to a root directory.

    Absolute paths and paths escaping the root with '..' are rejected,
    so a map can only reach files inside its asset directory.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def open(self, path: Union[str, Path]) -> BinaryIO:
        relative = Path(path)
        if relative.is_absolute():
            raise PermissionError(f"Absolute path not allowed: {path}")

        full_path = (self.root / relative).resolve()
        if self.root != full_path and self.root not in full_path.parents:
            raise PermissionError(f"Path escapes {self.root}: {path}")

        logger.debug("Opening %s", full_path)
        return open(full_path, 'rb')

    def __repr__(self) -> str:
        return f"DirectoryFileSystem({str(self.root)!r})"
