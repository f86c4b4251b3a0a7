"""
Aesthetic Atoms.
A decorative animated atom: nucleus, orbiting electron trails and orbit rings.
"""

from aesthetic_atoms.atom import (
    ELEMENT_NAMES,
    VERSIONS,
    Atom,
    AtomConfig,
    AtomConfigError,
    AtomFeatures,
    load_config,
    preset,
)
from aesthetic_atoms.renderer import DrawCommand, RasterRenderer, RecordingRenderer, Renderer
from aesthetic_atoms.sketch import Sketch, SketchConfig
