"""
Immediate-mode 3D drawing surfaces.

The atom model talks to a ``Renderer``: a transform stack plus a handful
of primitives (sphere, ellipsoid, torus, line). Two implementations:

- RecordingRenderer: keeps the command stream, used for tests and debugging.
- RasterRenderer: projects primitives with a WebGL-style perspective camera
  and paints them back-to-front onto a Pillow image.
"""

import abc
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw
from scipy.spatial import ConvexHull
from scipy.spatial.transform import Rotation

logger = logging.getLogger(__name__)

Point3 = Tuple[float, float, float]


class Renderer(abc.ABC):
    """Abstract drawing surface the atom model emits commands into."""

    @abc.abstractmethod
    def push(self):
        """Save the current transform."""

    @abc.abstractmethod
    def pop(self):
        """Restore the most recently pushed transform."""

    @abc.abstractmethod
    def translate(self, x: float, y: float, z: float = 0.0):
        pass

    @abc.abstractmethod
    def rotate_x(self, angle: float):
        pass

    @abc.abstractmethod
    def rotate_y(self, angle: float):
        pass

    @abc.abstractmethod
    def rotate_z(self, angle: float):
        pass

    @abc.abstractmethod
    def fill(self, color: Sequence[int]):
        pass

    @abc.abstractmethod
    def stroke(self, color: Sequence[int], alpha: int = 255):
        pass

    @abc.abstractmethod
    def no_stroke(self):
        pass

    @abc.abstractmethod
    def sphere(self, radius: float):
        pass

    @abc.abstractmethod
    def ellipsoid(self, radius_x: float, radius_y: float, radius_z: Optional[float] = None):
        pass

    @abc.abstractmethod
    def torus(self, radius: float, tube_radius: float, detail: int = 24):
        pass

    @abc.abstractmethod
    def line(self, start: Point3, end: Point3):
        pass

    @abc.abstractmethod
    def clear(self):
        pass

    @abc.abstractmethod
    def smooth(self, enabled: bool = True):
        """Toggle antialiasing."""


@dataclass(frozen=True)
class DrawCommand:
    """A single recorded renderer call."""
    op: str
    args: Tuple[Any, ...] = ()


class RecordingRenderer(Renderer):
    """Renderer that records every call as a ``DrawCommand``."""

    def __init__(self):
        self.commands: List[DrawCommand] = []
        self._depth = 0

    def _record(self, op: str, *args):
        self.commands.append(DrawCommand(op, args))

    def reset(self):
        self.commands = []
        self._depth = 0

    def count(self, op: str) -> int:
        return sum(1 for c in self.commands if c.op == op)

    def ops(self) -> List[str]:
        return [c.op for c in self.commands]

    def push(self):
        self._depth += 1
        self._record("push")

    def pop(self):
        if self._depth == 0:
            raise RuntimeError("pop() called without a matching push()")
        self._depth -= 1
        self._record("pop")

    def translate(self, x, y, z=0.0):
        self._record("translate", x, y, z)

    def rotate_x(self, angle):
        self._record("rotate_x", angle)

    def rotate_y(self, angle):
        self._record("rotate_y", angle)

    def rotate_z(self, angle):
        self._record("rotate_z", angle)

    def fill(self, color):
        self._record("fill", tuple(color))

    def stroke(self, color, alpha=255):
        self._record("stroke", tuple(color), alpha)

    def no_stroke(self):
        self._record("no_stroke")

    def sphere(self, radius):
        self._record("sphere", radius)

    def ellipsoid(self, radius_x, radius_y, radius_z=None):
        self._record("ellipsoid", radius_x, radius_y, radius_z)

    def torus(self, radius, tube_radius, detail=24):
        self._record("torus", radius, tube_radius, detail)

    def line(self, start, end):
        self._record("line", tuple(start), tuple(end))

    def clear(self):
        self._record("clear")

    def smooth(self, enabled=True):
        self._record("smooth", bool(enabled))


def _fibonacci_sphere(n: int) -> np.ndarray:
    """Roughly even sample of n directions on the unit sphere."""
    i = np.arange(n, dtype=np.float64) + 0.5
    phi = np.arccos(1.0 - 2.0 * i / n)
    theta = math.pi * (1.0 + 5 ** 0.5) * i
    return np.stack(
        [np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi)],
        axis=1,
    )


_UNIT_SPHERE = _fibonacci_sphere(48)


class RasterRenderer(Renderer):
    """
    Software renderer for the atom's primitives.

    Coordinates follow the WebGL canvas convention: origin at the canvas
    centre, +y down, camera on the +z axis looking at the origin with a
    vertical field of view of pi/3. Primitives are queued with their
    view depth and painted far-to-near when ``frame()`` is called.
    """

    FOV = math.pi / 3
    SUPERSAMPLE = 2

    def __init__(
        self,
        width: int = 800,
        height: int = 400,
        background: Tuple[int, int, int] = (250, 250, 250),
    ):
        self.width = width
        self.height = height
        self.background = tuple(background)

        self._matrix = np.eye(4)
        self._stack: List[np.ndarray] = []
        self._fill: Tuple[int, int, int, int] = (255, 255, 255, 255)
        self._stroke: Optional[Tuple[int, int, int, int]] = None
        self._smooth = False

        # (depth, kind, payload)
        self._items: List[Tuple[float, str, Any]] = []

    @property
    def camera_distance(self) -> float:
        return (self.height / 2) / math.tan(self.FOV / 2)

    @property
    def stack_depth(self) -> int:
        return len(self._stack)

    def resize(self, width: int, height: int):
        self.width = width
        self.height = height
        logger.debug("Raster surface resized to %dx%d", width, height)

    def reset_matrix(self):
        self._matrix = np.eye(4)
        self._stack = []

    # ------------------------------------------------------------------
    # Transform stack
    # ------------------------------------------------------------------

    def push(self):
        self._stack.append(self._matrix.copy())

    def pop(self):
        if not self._stack:
            raise RuntimeError("pop() called without a matching push()")
        self._matrix = self._stack.pop()

    def translate(self, x, y, z=0.0):
        m = np.eye(4)
        m[:3, 3] = (x, y, z)
        self._matrix = self._matrix @ m

    def _rotate(self, axis: str, angle: float):
        m = np.eye(4)
        m[:3, :3] = Rotation.from_euler(axis, angle).as_matrix()
        self._matrix = self._matrix @ m

    def rotate_x(self, angle):
        self._rotate("x", angle)

    def rotate_y(self, angle):
        self._rotate("y", angle)

    def rotate_z(self, angle):
        self._rotate("z", angle)

    # ------------------------------------------------------------------
    # Style
    # ------------------------------------------------------------------

    def fill(self, color):
        r, g, b = color[:3]
        self._fill = (int(r), int(g), int(b), 255)

    def stroke(self, color, alpha=255):
        r, g, b = color[:3]
        self._stroke = (int(r), int(g), int(b), int(alpha))

    def no_stroke(self):
        self._stroke = None

    def smooth(self, enabled=True):
        self._smooth = bool(enabled)

    def clear(self):
        self._items = []

    # ------------------------------------------------------------------
    # Projection helpers
    # ------------------------------------------------------------------

    def _to_world(self, local: np.ndarray) -> np.ndarray:
        """Transform (N, 3) local points by the current matrix."""
        homog = np.hstack([local, np.ones((local.shape[0], 1))])
        return (homog @ self._matrix.T)[:, :3]

    def _project(self, world: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Perspective-project world points to screen space.

        Returns:
            (screen_xy, scale) where scale is the per-point perspective factor.
            Points at or behind the camera get a scale of 0.
        """
        d = self.camera_distance
        denom = d - world[:, 2]
        scale = np.where(denom > 1e-6, d / np.maximum(denom, 1e-6), 0.0)
        sx = self.width / 2 + world[:, 0] * scale
        sy = self.height / 2 + world[:, 1] * scale
        return np.stack([sx, sy], axis=1), scale

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def sphere(self, radius):
        if radius <= 0:
            return
        center = self._to_world(np.zeros((1, 3)))
        xy, scale = self._project(center)
        if scale[0] <= 0:
            return
        r = radius * scale[0]
        cx, cy = xy[0]
        self._items.append(
            (float(center[0, 2]), "ellipse", ((cx - r, cy - r, cx + r, cy + r), self._fill, self._stroke))
        )

    def ellipsoid(self, radius_x, radius_y, radius_z=None):
        if radius_z is None:
            radius_z = radius_x
        if max(radius_x, radius_y, radius_z) <= 0:
            return
        local = _UNIT_SPHERE * np.array([radius_x, radius_y, radius_z])
        world = self._to_world(local)
        xy, scale = self._project(world)
        if np.any(scale <= 0):
            return
        hull = ConvexHull(xy, qhull_options="QJ")
        polygon = [tuple(p) for p in xy[hull.vertices]]
        depth = float(self._to_world(np.zeros((1, 3)))[0, 2])
        self._items.append((depth, "polygon", (polygon, self._fill, self._stroke)))

    def torus(self, radius, tube_radius, detail=24):
        detail = max(3, int(detail))
        t = np.linspace(0.0, 2 * math.pi, detail + 1)
        local = np.stack([radius * np.cos(t), radius * np.sin(t), np.zeros_like(t)], axis=1)
        world = self._to_world(local)
        xy, scale = self._project(world)

        # Segments are queued individually so electrons can pass in front of
        # and behind the same ring.
        for i in range(detail):
            if scale[i] <= 0 or scale[i + 1] <= 0:
                continue
            width = max(1.0, 2 * tube_radius * (scale[i] + scale[i + 1]) / 2)
            depth = float((world[i, 2] + world[i + 1, 2]) / 2)
            self._items.append(
                (depth, "line", ((tuple(xy[i]), tuple(xy[i + 1])), self._fill, width))
            )

    def line(self, start, end):
        if self._stroke is None:
            return
        world = self._to_world(np.array([start, end], dtype=np.float64))
        xy, scale = self._project(world)
        if np.any(scale <= 0):
            return
        depth = float(world[:, 2].mean())
        self._items.append(
            (depth, "line", ((tuple(xy[0]), tuple(xy[1])), self._stroke, 1.0))
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def frame(self) -> np.ndarray:
        """
        Paint queued primitives far-to-near.

        Returns:
            (H, W, 3) uint8 RGB array.
        """
        s = self.SUPERSAMPLE if self._smooth else 1
        img = Image.new("RGB", (self.width * s, self.height * s), self.background)
        draw = ImageDraw.Draw(img, "RGBA")

        for _, kind, payload in sorted(self._items, key=lambda item: item[0]):
            if kind == "ellipse":
                box, fill, outline = payload
                draw.ellipse([v * s for v in box], fill=fill, outline=outline)
            elif kind == "polygon":
                points, fill, outline = payload
                draw.polygon([(x * s, y * s) for x, y in points], fill=fill, outline=outline)
            elif kind == "line":
                (p0, p1), color, width = payload
                draw.line(
                    [(p0[0] * s, p0[1] * s), (p1[0] * s, p1[1] * s)],
                    fill=color,
                    width=max(1, int(round(width * s))),
                )

        if s > 1:
            img = img.resize((self.width, self.height), Image.LANCZOS)

        return np.array(img, dtype=np.uint8)
