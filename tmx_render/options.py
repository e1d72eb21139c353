"""Encoder options and rendering constants."""

from dataclasses import dataclass

# Only render order the engines know how to walk
DEFAULT_RENDER_ORDER = "right-down"

ORIENTATION_ORTHOGONAL = "orthogonal"
ORIENTATION_HEXAGONAL = "hexagonal"
SUPPORTED_ORIENTATIONS = (ORIENTATION_ORTHOGONAL, ORIENTATION_HEXAGONAL)

DEFAULT_JPEG_QUALITY = 75
MAX_GIF_COLORS = 256


@dataclass
class JpegOptions:
    """JPEG encoder options. quality: 1 (smallest) .. 100 (best)."""
    quality: int = DEFAULT_JPEG_QUALITY

    def __post_init__(self):
        if not 1 <= self.quality <= 100:
            raise ValueError(f"JPEG quality must be in 1..100, got {self.quality}")


@dataclass
class GifOptions:
    """GIF encoder options. num_colors: palette size, 1..256."""
    num_colors: int = MAX_GIF_COLORS

    def __post_init__(self):
        if not 1 <= self.num_colors <= MAX_GIF_COLORS:
            raise ValueError(f"GIF colors must be in 1..{MAX_GIF_COLORS}, got {self.num_colors}")
