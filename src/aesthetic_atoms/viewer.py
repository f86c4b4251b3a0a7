"""
Live pygame window for the atom.

Drives the sketch from the pygame event loop: keys go through the control
bindings, window resizes are forwarded to the sketch, and each frame is
blitted from the raster surface.
"""

import logging
from typing import Optional

import numpy as np
import pygame

from aesthetic_atoms.controls import handle_key, key_help
from aesthetic_atoms.sketch import Sketch, SketchConfig

logger = logging.getLogger(__name__)


def array_to_surface(frame: np.ndarray) -> pygame.Surface:
    """Convert an (H, W, 3) frame to a pygame surface."""
    # pygame uses (width, height) but numpy frames are (height, width)
    return pygame.surfarray.make_surface(np.transpose(frame, (1, 0, 2)))


def run_viewer(
    config: Optional[SketchConfig] = None,
    seed: Optional[int] = None,
    max_frames: Optional[int] = None,
) -> int:
    """
    Open a resizable window and animate until it is closed.

    Args:
        config: Sketch settings.
        seed: Random seed for the atom.
        max_frames: Stop after this many frames (for smoke runs).

    Returns:
        Number of frames shown.
    """
    sketch = Sketch(config, seed=seed)
    sketch.setup()

    pygame.init()
    try:
        screen = pygame.display.set_mode(
            (sketch.cfg.width, sketch.cfg.height), pygame.RESIZABLE
        )
        pygame.display.set_caption(sketch.title)
        clock = pygame.time.Clock()
        print("Controls:\n" + key_help() + "\n  escape  quit")

        frames = 0
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    key = pygame.key.name(event.key)
                    if key == "escape":
                        running = False
                    elif handle_key(sketch.atom, key):
                        pygame.display.set_caption(sketch.title)
                elif event.type == pygame.VIDEORESIZE:
                    sketch.window_resized(event.w, event.h)
                    screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)

            frame = sketch.draw()
            screen.blit(array_to_surface(frame), (0, 0))
            pygame.display.flip()
            clock.tick(sketch.cfg.fps)

            frames += 1
            if max_frames is not None and frames >= max_frames:
                running = False
    finally:
        pygame.quit()

    logger.info("Viewer closed after %d frames", frames)
    return frames
