"""
Interactive preview of a rendered map (pygame)

Shows the Renderer result in a window and re-renders whenever the viewport
changes, so what you see is exactly what an export would write.

Controls:
- Arrow keys or WASD: Pan the viewport one tile
- +/-: Grow/shrink the viewport by one tile in both directions
- L: Cycle between all visible layers and single layers
- F2 or Ctrl+S: Save the current result as PNG next to the map
- ESC or Q: Quit
"""

import logging
from pathlib import Path
from typing import Optional

import pygame
from PIL import Image

from tmx_manager import TiledMap

from .renderer import Renderer

logger = logging.getLogger(__name__)

BACKGROUND = (40, 40, 40)
WHITE = (255, 255, 255)
INFO_BG = (0, 0, 0)

PAN_KEYS = {
    pygame.K_LEFT: (-1, 0),
    pygame.K_a: (-1, 0),
    pygame.K_RIGHT: (1, 0),
    pygame.K_d: (1, 0),
    pygame.K_UP: (0, -1),
    pygame.K_w: (0, -1),
    pygame.K_DOWN: (0, 1),
    pygame.K_s: (0, 1),
}


def image_to_surface(image: Image.Image) -> pygame.Surface:
    """Convert an RGBA PIL image into a pygame Surface."""
    if image.mode != 'RGBA':
        image = image.convert('RGBA')
    return pygame.image.frombuffer(image.tobytes(), image.size, 'RGBA')


class RenderPreview:
    """Window that displays and pans a Renderer result."""

    def __init__(self, tmx_path, filesystem=None, renderer: Optional[Renderer] = None):
        self.tmx_path = Path(tmx_path)
        if renderer is None:
            tmx_map = TiledMap.load(self.tmx_path, filesystem)
            renderer = Renderer(tmx_map, filesystem)
        self.renderer = renderer

        # None = all visible layers, otherwise a top-level layer index
        self.layer_index: Optional[int] = None

        self.screen_width = 1280
        self.screen_height = 720
        self.screen = None
        self.surface = None
        self.font = None
        self.clock = None
        self.running = False

    # =========================================================================
    # RENDERING
    # =========================================================================

    def rerender(self):
        """Clear the renderer and draw the selected layers again."""
        self.renderer.clear()
        if self.layer_index is None:
            self.renderer.render_visible_layers()
        else:
            self.renderer.render_layer(self.layer_index)
        self.surface = image_to_surface(self.renderer.result)

    def cycle_layers(self):
        """All visible -> layer 0 -> layer 1 -> ... -> all visible."""
        count = len(self.renderer.m.layers)
        if self.layer_index is None:
            self.layer_index = 0 if count else None
        elif self.layer_index + 1 < count:
            self.layer_index += 1
        else:
            self.layer_index = None

    def pan(self, dx: int, dy: int):
        self.renderer.add_offset(dx, dy)

    def resize(self, delta: int):
        bounds = self.renderer.bounds
        self.renderer.set_limit(bounds.limit_x + delta, bounds.limit_y + delta)

    def save(self) -> Path:
        out_path = self.tmx_path.with_suffix('.png')
        self.renderer.save_as_png(out_path)
        logger.info("Saved preview to %s", out_path)
        return out_path

    # =========================================================================
    # WINDOW
    # =========================================================================

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.screen_width = event.w
                self.screen_height = event.h
                self.screen = pygame.display.set_mode((self.screen_width, self.screen_height),
                                                      pygame.RESIZABLE)

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_ESCAPE, pygame.K_q):
                    self.running = False
                elif event.key == pygame.K_F2 or (event.key == pygame.K_s
                                                  and pygame.key.get_mods() & pygame.KMOD_CTRL):
                    self.save()
                elif event.key in PAN_KEYS:
                    self.pan(*PAN_KEYS[event.key])
                    self.rerender()
                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    self.resize(1)
                    self.rerender()
                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    self.resize(-1)
                    self.rerender()
                elif event.key == pygame.K_l:
                    self.cycle_layers()
                    self.rerender()

    def draw_info(self):
        bounds = self.renderer.bounds
        mode = "all visible" if self.layer_index is None else f"layer {self.layer_index}"
        lines = [
            f"Offset: ({bounds.offset_x}, {bounds.offset_y})",
            f"Limit: {bounds.limit_x}x{bounds.limit_y}",
            f"Image: {self.renderer.result.width}x{self.renderer.result.height}px",
            f"Layers: {mode}",
            f"Cached tiles: {len(self.renderer.tile_cache)}",
        ]
        y = 10
        for line in lines:
            text = self.font.render(line, True, WHITE)
            text_rect = text.get_rect(topleft=(10, y))
            pygame.draw.rect(self.screen, INFO_BG, text_rect.inflate(8, 4))
            self.screen.blit(text, text_rect)
            y += 22

    def draw(self):
        self.screen.fill(BACKGROUND)
        if self.surface is not None:
            x = max(0, (self.screen_width - self.surface.get_width()) // 2)
            y = max(0, (self.screen_height - self.surface.get_height()) // 2)
            self.screen.blit(self.surface, (x, y))
        self.draw_info()
        pygame.display.flip()

    def run(self):
        pygame.init()
        self.screen = pygame.display.set_mode((self.screen_width, self.screen_height),
                                              pygame.RESIZABLE)
        pygame.display.set_caption(f"TMX Render - {self.tmx_path.name}")
        self.font = pygame.font.Font(None, 22)
        self.clock = pygame.time.Clock()

        self.rerender()
        self.running = True
        try:
            while self.running:
                self.handle_events()
                self.draw()
                self.clock.tick(30)
        finally:
            pygame.quit()
