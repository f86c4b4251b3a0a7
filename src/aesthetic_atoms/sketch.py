"""
Sketch driver: owns one atom and one raster surface.

Mirrors the browser sketch lifecycle (setup once, draw every frame,
forward window resizes) and yields finished frames as a generator for
memory-efficient piping to the encoder.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Tuple

import numpy as np

from aesthetic_atoms.atom import Atom, AtomConfig
from aesthetic_atoms.colorgrade import add_glow, vignette
from aesthetic_atoms.renderer import RasterRenderer

logger = logging.getLogger(__name__)


@dataclass
class SketchConfig:
    """Canvas and post-processing settings for the sketch."""

    width: int = 800
    height: int = 400
    fps: int = 60
    background: Tuple[int, int, int] = (250, 250, 250)

    # Post-processing
    glow_enabled: bool = False
    glow_intensity: float = 0.3
    glow_radius: int = 8
    vignette_strength: float = 0.0

    atom: AtomConfig = field(default_factory=lambda: AtomConfig(nucleus_radius=20, rots_per_sec=0.75))


class Sketch:
    """
    Host for a single atom.

    The sketch passes its own atom and renderer into each tick; nothing is
    shared through module globals.
    """

    def __init__(
        self,
        config: Optional[SketchConfig] = None,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.cfg = config or SketchConfig()
        self.seed = seed
        self._clock = clock
        self.atom: Optional[Atom] = None
        self.renderer: Optional[RasterRenderer] = None
        self.frame_count = 0

    def setup(self):
        """Create the canvas and the atom. Calling it again is a no-op."""
        if self.atom is not None:
            return
        self.renderer = RasterRenderer(self.cfg.width, self.cfg.height, self.cfg.background)
        self.atom = Atom(self.cfg.atom, seed=self.seed, clock=self._clock)
        logger.info(
            "Sketch ready: %dx%d, %s with %d electrons",
            self.cfg.width, self.cfg.height, self.atom.display_name, self.atom.electron_count,
        )

    @property
    def title(self) -> str:
        self.setup()
        return f"Aesthetic Atoms: {self.atom.display_name}"

    def window_resized(self, width: int, height: int):
        self.setup()
        self.cfg.width = width
        self.cfg.height = height
        self.renderer.resize(width, height)

    def post_process(self, frame: np.ndarray) -> np.ndarray:
        cfg = self.cfg
        if cfg.glow_enabled:
            frame = add_glow(frame, intensity=cfg.glow_intensity, radius=cfg.glow_radius)
        if cfg.vignette_strength > 0:
            frame = vignette(frame, strength=cfg.vignette_strength)
        return frame

    def draw(self, now: Optional[float] = None) -> np.ndarray:
        """
        Advance the atom to ``now`` (ms) and render a frame.

        Returns:
            (H, W, 3) uint8 RGB numpy array.
        """
        self.setup()
        self.renderer.reset_matrix()
        self.atom.draw(self.renderer, now)
        self.frame_count += 1
        return self.post_process(self.renderer.frame())

    def render_frames(
        self,
        n_frames: int,
        fps: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[np.ndarray]:
        """
        Render ``n_frames`` frames on a synthetic clock.

        Frame ``i`` is drawn at ``i * 1000 / fps`` ms after the first frame,
        so offline renders play back at the intended speed regardless of
        how long each frame takes to paint.

        Yields:
            (H, W, 3) uint8 RGB arrays, one per frame.
        """
        fps = fps or self.cfg.fps
        self.setup()
        # First frame lands on the re-based clock with a zero delta.
        self.atom.reset_clock()
        start = self.atom.last_tick
        t0 = time.time()

        for i in range(n_frames):
            yield self.draw(start + i * 1000.0 / fps)
            if progress_callback:
                progress_callback(i + 1, n_frames)

        logger.info("Rendered %d frames in %.1fs", n_frames, time.time() - t0)
