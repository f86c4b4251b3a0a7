"""
Colour handling and post-processing.

Parses the colour values the controls hand us, converts HSL hues for
colour cycling, and adds glow bloom and vignette to finished frames.
"""

import colorsys
from typing import Sequence, Tuple, Union

import numpy as np
from PIL import Image, ImageChops, ImageFilter

RGB = Tuple[int, int, int]
ColorLike = Union[str, Sequence[int]]


def parse_color(value: ColorLike) -> RGB:
    """
    Normalise a colour value to an ``(r, g, b)`` tuple of ints.

    Accepts ``"#rrggbb"`` / ``"#rgb"`` strings (what an HTML colour input
    produces) or any sequence of three numbers in [0, 255].

    Raises:
        ValueError: If the value cannot be read as a colour.
    """
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        if len(text) != 6:
            raise ValueError(f"Invalid colour string: {value!r}")
        try:
            return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        except ValueError:
            raise ValueError(f"Invalid colour string: {value!r}") from None

    try:
        channels = [float(c) for c in value]
    except TypeError:
        raise ValueError(f"Invalid colour value: {value!r}") from None
    if len(channels) != 3:
        raise ValueError(f"Colour needs exactly 3 channels, got {len(channels)}")
    for c in channels:
        if not 0 <= c <= 255:
            raise ValueError(f"Colour channel out of range [0, 255]: {c}")
    return (int(channels[0]), int(channels[1]), int(channels[2]))


def hsl_to_rgb(hue: float, saturation: float = 100.0, lightness: float = 50.0) -> RGB:
    """
    Convert CSS-style HSL to an RGB tuple.

    Args:
        hue: Hue in degrees (wrapped into [0, 360)).
        saturation: Saturation percentage (0-100).
        lightness: Lightness percentage (0-100).

    Returns:
        (r, g, b) ints in [0, 255].
    """
    h = (hue % 360) / 360.0
    s = min(max(saturation, 0.0), 100.0) / 100.0
    l = min(max(lightness, 0.0), 100.0) / 100.0
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))


def add_glow(
    frame: np.ndarray,
    intensity: float = 0.3,
    radius: int = 8,
) -> np.ndarray:
    """
    Haze the atom with a blurred copy of itself, screen-blended on top.

    Args:
        frame: (H, W, 3) uint8 RGB array.
        intensity: Opacity of the blurred layer (0-1).
        radius: Gaussian blur radius in pixels.
    """
    if intensity <= 0:
        return frame

    img = Image.fromarray(frame)
    halo = img.filter(ImageFilter.GaussianBlur(radius=radius))
    halo = halo.point(lambda v: int(v * min(intensity, 1.0)))
    return np.array(ImageChops.screen(img, halo))


def vignette(
    frame: np.ndarray,
    strength: float = 0.3,
) -> np.ndarray:
    """
    Darken towards the edges of the canvas.

    The falloff is an ellipse stretched to the frame, so wide canvases
    darken their left and right edges as much as top and bottom.

    Args:
        frame: (H, W, 3) uint8.
        strength: 0 leaves the frame alone, 1 takes the corners to black.
    """
    if strength <= 0:
        return frame

    h, w = frame.shape[:2]
    strength = min(strength, 1.0)
    # radial_gradient is 0 at the centre and 255 at the inscribed circle.
    mask = Image.radial_gradient("L").point(
        lambda v: int(round(255 - strength * v * v / 255))
    )
    mask = mask.resize((w, h), Image.BILINEAR)
    shade = Image.merge("RGB", (mask, mask, mask))
    return np.array(ImageChops.multiply(Image.fromarray(frame), shade))
