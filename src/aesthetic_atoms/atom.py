"""
Interactive model of an atom: a nucleus, electrons and their orbits.

The aim of the model is to be aesthetically pleasing, not scientifically
accurate. Each call to ``Atom.draw`` advances the animation by the wall-clock
time since the previous call and emits the scene into a ``Renderer``.

Feature surface:
  - antialiasing   → the ``smoothing`` toggle is forwarded to the renderer
  - noise          → translucent radial lines inside the nucleus
  - color_cycling  → continuous hue rotation of nucleus / electron colours
"""

import json
import logging
import math
import time
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from aesthetic_atoms.colorgrade import RGB, ColorLike, hsl_to_rgb, parse_color
from aesthetic_atoms.renderer import Renderer

logger = logging.getLogger(__name__)

# Names of the first ten elements, indexed by electron count - 1.
ELEMENT_NAMES = (
    "Hydrogen", "Helium", "Lithium", "Beryllium", "Boron",
    "Carbon", "Nitrogen", "Oxygen", "Fluorine", "Neon",
)

# Orbit radius as a multiple of the nucleus radius
ORBIT_SCALE = 8

# Hue counters reset once they reach this value
HUE_WRAP = 359


class AtomConfigError(ValueError):
    """Raised when an atom parameter is outside its valid range."""


@dataclass(frozen=True)
class AtomFeatures:
    """Which optional knobs the model honours."""
    antialiasing: bool = True
    noise: bool = True
    color_cycling: bool = True


@dataclass
class AtomConfig:
    """Configuration for an atom and its animation."""

    pos_x: float = 0.0
    pos_y: float = 0.0
    nucleus_radius: float = 15.0
    rots_per_sec: float = 1.0
    electron_count: int = 3
    tail_spheres: int = 15
    smoothing: bool = False
    max_electrons: int = 10

    # Colours
    nucleus_color: Tuple[int, int, int] = (3, 28, 193)
    electron_color: Tuple[int, int, int] = (193, 3, 3)
    nucleus_color_cycle: bool = False
    electron_color_cycle: bool = False
    nucleus_color_cycle_rate: float = 10.0
    electron_color_cycle_rate: float = 10.0
    nucleus_saturation: float = 100.0
    nucleus_lightness: float = 50.0

    # Toggles
    nucleus_vibrate: bool = False
    electron_vibrate: bool = False
    nucleus_noise: bool = False
    enable_orbits: bool = True
    spin_x: bool = False
    spin_y: bool = False
    spin_z: bool = False

    # Tuning
    spin_increment: float = 0.3
    orbit_thickness: float = 0.75
    orbit_detail: int = 50
    noise_lines: int = 50
    nucleus_jitter: float = 2.0
    electron_jitter: float = 0.5
    tail_twist: float = math.pi / 256

    features: AtomFeatures = field(default_factory=AtomFeatures)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtomConfig":
        """Build a config from a plain mapping (e.g. parsed JSON)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise AtomConfigError(f"Unknown atom settings: {', '.join(unknown)}")

        values = dict(data)
        if "features" in values and isinstance(values["features"], dict):
            feature_names = {f.name for f in fields(AtomFeatures)}
            unknown = sorted(set(values["features"]) - feature_names)
            if unknown:
                raise AtomConfigError(f"Unknown atom features: {', '.join(unknown)}")
            values["features"] = AtomFeatures(**values["features"])
        elif "features" in values and isinstance(values["features"], str):
            values["features"] = preset(values["features"]).features
        for key in ("nucleus_color", "electron_color"):
            if key in values:
                try:
                    values[key] = parse_color(values[key])
                except ValueError as e:
                    raise AtomConfigError(f"{key}: {e}") from None
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# The three historical variants of the sketch, as feature presets.
VERSIONS: Dict[str, AtomConfig] = {
    "v1": AtomConfig(
        spin_increment=0.1,
        features=AtomFeatures(antialiasing=False, noise=False, color_cycling=False),
    ),
    "v2": AtomConfig(
        spin_increment=0.3,
        features=AtomFeatures(antialiasing=True, noise=True, color_cycling=False),
    ),
    "v3": AtomConfig(
        spin_increment=0.3,
        features=AtomFeatures(antialiasing=True, noise=True, color_cycling=True),
    ),
}


def preset(name: str, **overrides) -> AtomConfig:
    """Return a copy of a version preset with overrides applied."""
    try:
        base = VERSIONS[name]
    except KeyError:
        raise AtomConfigError(
            f"Unknown version preset {name!r} (choose from {', '.join(sorted(VERSIONS))})"
        ) from None
    return replace(base, **overrides)


def load_config(path: Path, base: Optional[AtomConfig] = None) -> AtomConfig:
    """
    Load atom settings from a JSON file.

    Keys in the file override ``base`` (or the defaults).
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        content = json.load(handle)
    if not isinstance(content, dict):
        raise AtomConfigError(f"Config file {path} must contain a JSON object.")

    merged = (base or AtomConfig()).to_dict()
    merged.update(content)
    logger.info("Loaded atom config from %s", path)
    return AtomConfig.from_dict(merged)


def _wall_clock_ms() -> float:
    return time.monotonic() * 1000.0


def _require_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise AtomConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(value):
        raise AtomConfigError(f"{name} must be finite, got {value}")
    return value


def _require_int(name: str, value: Any, minimum: int, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise AtomConfigError(f"{name} must be an integer, got {value!r}")
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise AtomConfigError(f"{name} must be an integer, got {value!r}") from None
    if not as_float.is_integer():
        raise AtomConfigError(f"{name} must be an integer, got {value!r}")
    n = int(as_float)
    if n < minimum or (maximum is not None and n > maximum):
        upper = "" if maximum is None else f", {maximum}"
        raise AtomConfigError(f"{name} must be in [{minimum}{upper}], got {n}")
    return n


def _require_color(name: str, value: ColorLike) -> RGB:
    try:
        return parse_color(value)
    except ValueError as e:
        raise AtomConfigError(f"{name}: {e}") from None


class Atom:
    """
    A nucleus with orbiting electron trails.

    Args:
        config: Initial parameters. Uses defaults if None.
        seed: Seed for the default random source.
        clock: Zero-argument callable returning the current time in ms.
        rng: Explicit ``numpy.random.Generator``; overrides ``seed``.
    """

    def __init__(
        self,
        config: Optional[AtomConfig] = None,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        cfg = config or AtomConfig()
        self.features = cfg.features
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._clock = clock or _wall_clock_ms

        self._max_electrons = _require_int("max_electrons", cfg.max_electrons, 1)

        self.pos_x = _require_finite("pos_x", cfg.pos_x)
        self.pos_y = _require_finite("pos_y", cfg.pos_y)
        self.nucleus_radius = cfg.nucleus_radius
        self.electron_count = cfg.electron_count
        self.electron_speed = cfg.rots_per_sec
        self._tail_spheres = _require_int("tail_spheres", cfg.tail_spheres, 1)
        self._rotation = 0.0

        # One extra slot guards against an off-by-one electron index.
        self._randoms = tuple(
            float(v) for v in self.rng.uniform(0.0, 2 * math.pi, self._max_electrons + 1)
        )

        self.nucleus_color = cfg.nucleus_color
        self.electron_color = cfg.electron_color

        self.nucleus_vibrate = cfg.nucleus_vibrate
        self.electron_vibrate = cfg.electron_vibrate
        self.nucleus_noise = cfg.nucleus_noise
        self.enable_orbits = cfg.enable_orbits
        self.smoothing = cfg.smoothing

        self.spin_x = cfg.spin_x
        self.spin_y = cfg.spin_y
        self.spin_z = cfg.spin_z
        self._counter_x = float(self.rng.random())
        self._counter_y = float(self.rng.random())
        self._counter_z = float(self.rng.random())

        self.nucleus_color_cycle = cfg.nucleus_color_cycle
        self.electron_color_cycle = cfg.electron_color_cycle
        self.nucleus_color_cycle_rate = cfg.nucleus_color_cycle_rate
        self.electron_color_cycle_rate = cfg.electron_color_cycle_rate
        self._nucleus_color_counter = 0.0
        self._electron_color_counter = 0.0
        self.nucleus_saturation = cfg.nucleus_saturation
        self.nucleus_lightness = cfg.nucleus_lightness

        self.spin_increment = _require_finite("spin_increment", cfg.spin_increment)
        self.orbit_thickness = _require_finite("orbit_thickness", cfg.orbit_thickness)
        self.orbit_detail = _require_int("orbit_detail", cfg.orbit_detail, 3)
        self.noise_lines = _require_int("noise_lines", cfg.noise_lines, 0)
        self.nucleus_jitter = _require_finite("nucleus_jitter", cfg.nucleus_jitter)
        self.electron_jitter = _require_finite("electron_jitter", cfg.electron_jitter)
        self.tail_twist = _require_finite("tail_twist", cfg.tail_twist)

        # Sampled now so the first tick sees a small, well defined delta.
        self._old = self._clock()

    @classmethod
    def from_params(
        cls,
        pos_x: float = 0,
        pos_y: float = 0,
        nucleus_radius: float = 15,
        rots_per_sec: float = 1,
        electron_count: int = 3,
        tail_spheres: int = 15,
        smoothing: bool = False,
        **kwargs,
    ) -> "Atom":
        """Positional constructor matching the sketch's ``new Atom(...)``."""
        config = AtomConfig(
            pos_x=pos_x,
            pos_y=pos_y,
            nucleus_radius=nucleus_radius,
            rots_per_sec=rots_per_sec,
            electron_count=electron_count,
            tail_spheres=tail_spheres,
            smoothing=smoothing,
        )
        return cls(config, **kwargs)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        """Name of the element with as many protons as we have electrons."""
        if not 1 <= self._electron_count <= len(ELEMENT_NAMES):
            raise AtomConfigError(f"No element name for {self._electron_count} electrons")
        return ELEMENT_NAMES[self._electron_count - 1]

    @property
    def display_name(self) -> str:
        """Element name, or the bare electron count past the naming table."""
        if self._electron_count <= len(ELEMENT_NAMES):
            return self.name
        return f"{self._electron_count} electrons"

    @property
    def maximum_number_of_electrons(self) -> int:
        return self._max_electrons

    @property
    def nucleus_radius(self) -> float:
        return self._nucleus_radius

    @nucleus_radius.setter
    def nucleus_radius(self, new_radius: float):
        new_radius = _require_finite("nucleus_radius", new_radius)
        if new_radius <= 0:
            raise AtomConfigError(f"nucleus_radius must be > 0, got {new_radius}")
        self._nucleus_radius = new_radius
        # Keep the whole atom in proportion with its nucleus.
        self._radius = new_radius * ORBIT_SCALE

    @property
    def radius(self) -> float:
        """Orbit radius of the electrons."""
        return self._radius

    @property
    def electron_count(self) -> int:
        return self._electron_count

    @electron_count.setter
    def electron_count(self, new_count: int):
        self._electron_count = _require_int("electron_count", new_count, 1, self._max_electrons)
        self._delta_angle = math.pi / self._electron_count

    @property
    def delta_angle(self) -> float:
        """Rotation between successive electrons and orbit rings."""
        return self._delta_angle

    @property
    def electron_speed(self) -> float:
        """Orbital speed in rotations per second."""
        return self._rots_per_sec

    @electron_speed.setter
    def electron_speed(self, new_speed: float):
        self._rots_per_sec = _require_finite("electron_speed", new_speed)

    @property
    def tail_spheres(self) -> int:
        return self._tail_spheres

    @property
    def rotation(self) -> float:
        """Accumulated orbital phase in radians."""
        return self._rotation

    @property
    def phase_seeds(self) -> Tuple[float, ...]:
        return self._randoms

    # ------------------------------------------------------------------
    # Colours
    # ------------------------------------------------------------------

    @property
    def nucleus_color(self) -> RGB:
        return self._nucleus_color

    @nucleus_color.setter
    def nucleus_color(self, new_color: ColorLike):
        self._nucleus_color = _require_color("nucleus_color", new_color)

    @property
    def electron_color(self) -> RGB:
        return self._electron_color

    @electron_color.setter
    def electron_color(self, new_color: ColorLike):
        self._electron_color = _require_color("electron_color", new_color)

    @property
    def nucleus_color_cycle_rate(self) -> float:
        return self._nucleus_color_cycle_rate

    @nucleus_color_cycle_rate.setter
    def nucleus_color_cycle_rate(self, rate: float):
        self._nucleus_color_cycle_rate = self._check_rate("nucleus_color_cycle_rate", rate)

    @property
    def electron_color_cycle_rate(self) -> float:
        return self._electron_color_cycle_rate

    @electron_color_cycle_rate.setter
    def electron_color_cycle_rate(self, rate: float):
        self._electron_color_cycle_rate = self._check_rate("electron_color_cycle_rate", rate)

    @staticmethod
    def _check_rate(name: str, rate: float) -> float:
        rate = _require_finite(name, rate)
        if rate < 0:
            raise AtomConfigError(f"{name} must be >= 0, got {rate}")
        return rate

    @property
    def nucleus_color_counter(self) -> float:
        return self._nucleus_color_counter

    @nucleus_color_counter.setter
    def nucleus_color_counter(self, hue: float):
        self._nucleus_color_counter = _require_finite("nucleus_color_counter", hue) % 360

    @property
    def electron_color_counter(self) -> float:
        return self._electron_color_counter

    @electron_color_counter.setter
    def electron_color_counter(self, hue: float):
        self._electron_color_counter = _require_finite("electron_color_counter", hue) % 360

    # ------------------------------------------------------------------
    # Spin
    # ------------------------------------------------------------------

    @property
    def counter_x(self) -> float:
        return self._counter_x

    @property
    def counter_y(self) -> float:
        return self._counter_y

    @property
    def counter_z(self) -> float:
        return self._counter_z

    def increment_counters(self, amount: float):
        """Advance each spin counter whose axis is enabled."""
        if self.spin_x:
            self._counter_x += amount
        if self.spin_y:
            self._counter_y += amount
        if self.spin_z:
            self._counter_z += amount

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------

    def calc_delta_time(self, now: Optional[float] = None) -> float:
        """Milliseconds since the previous tick."""
        if now is None:
            now = self._clock()
        self._now = now
        return now - self._old

    @property
    def last_tick(self) -> float:
        """Timestamp (ms) of the previous tick."""
        return self._old

    def reset_clock(self, now: Optional[float] = None):
        """Treat ``now`` as the previous tick, e.g. after a pause."""
        self._old = self._clock() if now is None else now

    def _advance_hue(self, counter: float, rate: float) -> float:
        counter += rate
        if counter >= HUE_WRAP:
            logger.debug("Hue counter wrapped at %.1f", counter)
            counter = 0.0
        return counter

    def cycle_colors(self, saturation: float, lightness: float):
        """
        Step the hue of each colour-cycling channel.

        The nucleus uses the given saturation / lightness; electrons are
        always fully saturated at 50% lightness.
        """
        if not self.features.color_cycling:
            return

        if self.nucleus_color_cycle:
            self._nucleus_color_counter = self._advance_hue(
                self._nucleus_color_counter, self._nucleus_color_cycle_rate
            )
            self._nucleus_color = hsl_to_rgb(
                math.floor(self._nucleus_color_counter), saturation, lightness
            )

        if self.electron_color_cycle:
            self._electron_color_counter = self._advance_hue(
                self._electron_color_counter, self._electron_color_cycle_rate
            )
            self._electron_color = hsl_to_rgb(math.floor(self._electron_color_counter), 100, 50)

    def update(self, now: Optional[float] = None) -> float:
        """
        Advance colours, spin counters and orbital phase to ``now``.

        Returns:
            Elapsed milliseconds since the previous tick.
        """
        delta_time = self.calc_delta_time(now)

        self.cycle_colors(self.nucleus_saturation, self.nucleus_lightness)
        self.increment_counters(self.spin_increment)

        # Scale by elapsed time so the orbit speed does not depend on frame rate.
        self._rotation += delta_time * 2 * math.pi * self._rots_per_sec / 1000

        self._old = self._now
        return delta_time

    def draw(self, renderer: Renderer, now: Optional[float] = None) -> float:
        """Advance the animation and draw the nucleus, orbits and electrons."""
        delta_time = self.update(now)
        self.render(renderer)
        return delta_time

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def render(self, renderer: Renderer):
        """Emit the current state into ``renderer`` without advancing it."""
        renderer.clear()
        if self.features.antialiasing:
            renderer.smooth(self.smoothing)

        renderer.push()
        renderer.rotate_x(self._counter_x * math.pi / 16)
        renderer.rotate_y(self._counter_y * math.pi / 16)
        renderer.rotate_z(self._counter_z * math.pi / 16)
        renderer.no_stroke()

        self.draw_nucleus(renderer)
        if self.enable_orbits:
            self.draw_orbits(renderer, self.orbit_thickness)
        self.draw_electrons(renderer)

        renderer.pop()

    def draw_nucleus(self, renderer: Renderer):
        renderer.push()
        if self.nucleus_vibrate:
            j = self.nucleus_jitter
            renderer.translate(
                self.pos_x + float(self.rng.uniform(-j, j)),
                self.pos_y + float(self.rng.uniform(-j, j)),
            )
        else:
            renderer.translate(self.pos_x, self.pos_y)
        renderer.fill(self._nucleus_color)
        renderer.sphere(self._nucleus_radius)
        renderer.pop()

        if self.nucleus_noise and self.features.noise:
            self.draw_noise(renderer)

    def draw_noise(self, renderer: Renderer):
        """Short translucent white lines from the centre to the nucleus surface."""
        directions = self.rng.normal(size=(self.noise_lines, 3))
        norms = np.linalg.norm(directions, axis=1, keepdims=True)
        directions = directions / np.where(norms == 0, 1.0, norms)

        center = (self.pos_x, self.pos_y, 0.0)
        renderer.stroke((255, 255, 255), 30)
        for d in directions * self._nucleus_radius:
            renderer.line(
                center,
                (self.pos_x + float(d[0]), self.pos_y + float(d[1]), float(d[2])),
            )
        renderer.no_stroke()

    def draw_orbits(self, renderer: Renderer, thickness: float):
        renderer.push()
        renderer.rotate_x(math.pi / 2)
        renderer.fill((0, 0, 0))
        for _ in range(self._electron_count):
            renderer.rotate_y(self._delta_angle)
            renderer.torus(self._radius, thickness, self.orbit_detail)
        renderer.pop()

    def draw_electrons(self, renderer: Renderer):
        for i in range(self._electron_count):
            renderer.rotate_z(self._delta_angle)
            self.draw_electron(renderer, i)

    def draw_electron(self, renderer: Renderer, index: int):
        """Draw one electron's tail; later spheres are larger and lead the orbit."""
        base_rot = self._rotation + self._randoms[index]
        jiggle = 0.0

        for i in range(self._tail_spheres):
            rate = i / self._tail_spheres
            renderer.push()
            renderer.rotate_y(base_rot + self.tail_twist * i * rate)
            if self.electron_vibrate:
                jiggle = float(self.rng.uniform(-self.electron_jitter, self.electron_jitter))
            renderer.translate(self._radius + jiggle, jiggle)
            size = rate * self._nucleus_radius / 5

            renderer.fill(self._electron_color)
            renderer.ellipsoid(size * 1.5, size)
            renderer.pop()
