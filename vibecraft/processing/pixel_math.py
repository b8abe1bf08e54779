"""
Per-pixel color math.

Stateless functions over a single RGBA pixel (or its HSV encoding) plus
the vectorized numpy helpers the enhancement engine uses on whole
buffers. Every function is total: out-of-range inputs are clamped,
never rejected.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


@dataclass(frozen=True)
class Pixel:
    """RGBA pixel with integer channels in [0, 255]."""
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self):
        # Construction from floats or out-of-range ints still yields a legal pixel
        for name in ('r', 'g', 'b', 'a'):
            object.__setattr__(self, name, clamp(getattr(self, name)))

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


@dataclass(frozen=True)
class HSVPixel:
    """Hue in degrees [0, 360), saturation and value in [0, 1]."""
    h: float
    s: float
    v: float
    a: int = 255


def clamp(x: float) -> int:
    """Round half up and clamp to the 8-bit range."""
    return max(0, min(255, int(math.floor(x + 0.5))))


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def brightness(p: Pixel, b: float) -> Pixel:
    """Shift every color channel by b percent of full scale."""
    offset = b / 100.0 * 255.0
    return Pixel(clamp(p.r + offset), clamp(p.g + offset), clamp(p.b + offset), p.a)


def contrast(p: Pixel, c: float) -> Pixel:
    """Scale channels around mid-gray 128, which is a fixed point."""
    factor = 1.0 + c / 100.0
    return Pixel(
        clamp((p.r - 128) * factor + 128),
        clamp((p.g - 128) * factor + 128),
        clamp((p.b - 128) * factor + 128),
        p.a,
    )


def _gamma_channel(value: int, g: float) -> int:
    return clamp(255.0 * (value / 255.0) ** (1.0 / g))


def gamma(p: Pixel, g: float) -> Pixel:
    """
    Apply a power curve to each color channel.

    Nonlinear, so it can never be folded into a ColorMatrix. 0 and 255
    map to themselves for any g.
    """
    return Pixel(_gamma_channel(p.r, g), _gamma_channel(p.g, g), _gamma_channel(p.b, g), p.a)


def to_hsv(p: Pixel) -> HSVPixel:
    r, g, b = p.r / 255.0, p.g / 255.0, p.b / 255.0
    mx = max(r, g, b)
    mn = min(r, g, b)
    delta = mx - mn

    if delta == 0:
        h = 0.0
    elif mx == r:
        h = 60.0 * (((g - b) / delta) % 6)
    elif mx == g:
        h = 60.0 * ((b - r) / delta + 2)
    else:
        h = 60.0 * ((r - g) / delta + 4)

    s = 0.0 if mx == 0 else delta / mx
    return HSVPixel(h % 360.0, s, mx, p.a)


def from_hsv(hsv: HSVPixel) -> Pixel:
    h = hsv.h % 360.0
    s = clamp01(hsv.s)
    v = clamp01(hsv.v)

    c = v * s
    hp = h / 60.0
    x = c * (1 - abs(hp % 2 - 1))
    m = v - c

    if hp < 1:
        r, g, b = c, x, 0.0
    elif hp < 2:
        r, g, b = x, c, 0.0
    elif hp < 3:
        r, g, b = 0.0, c, x
    elif hp < 4:
        r, g, b = 0.0, x, c
    elif hp < 5:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return Pixel(clamp((r + m) * 255), clamp((g + m) * 255), clamp((b + m) * 255), hsv.a)


def saturation(p: Pixel, delta: float) -> Pixel:
    hsv = to_hsv(p)
    s = clamp01(hsv.s * (1.0 + delta / 100.0))
    return from_hsv(HSVPixel(hsv.h, s, hsv.v, hsv.a))


def hue(p: Pixel, degrees: float) -> Pixel:
    hsv = to_hsv(p)
    return from_hsv(HSVPixel((hsv.h + degrees) % 360.0, hsv.s, hsv.v, hsv.a))


def channel_scale(p: Pixel, red: float = 0.0, green: float = 0.0, blue: float = 0.0) -> Pixel:
    """Multiply each channel by 1 + delta/100."""
    return Pixel(
        clamp(p.r * (1.0 + red / 100.0)),
        clamp(p.g * (1.0 + green / 100.0)),
        clamp(p.b * (1.0 + blue / 100.0)),
        p.a,
    )


def luminance(p: Pixel) -> float:
    return LUMA_WEIGHTS[0] * p.r + LUMA_WEIGHTS[1] * p.g + LUMA_WEIGHTS[2] * p.b


def grayscale(p: Pixel) -> Pixel:
    y = clamp(luminance(p))
    return Pixel(y, y, y, p.a)


def apply_options(p: Pixel, options) -> Pixel:
    """
    Apply TransformOptions to one pixel with the scalar functions.

    Each stage clamps, so this is the reference per-pixel path rather
    than the flattened-matrix path used on buffers; the two agree
    exactly whenever no intermediate stage saturates.

    Args:
        p: Input pixel
        options: TransformOptions; absent fields are skipped

    Returns:
        Transformed pixel
    """
    if options.brightness is not None:
        p = brightness(p, options.brightness)
    if options.contrast is not None:
        p = contrast(p, options.contrast)
    if options.saturation is not None:
        p = saturation(p, options.saturation)
    if options.hue is not None:
        p = hue(p, options.hue)
    if any(v is not None for v in (options.red_channel, options.green_channel, options.blue_channel)):
        p = channel_scale(p, options.red_channel or 0.0,
                          options.green_channel or 0.0, options.blue_channel or 0.0)
    if options.gamma is not None:
        p = gamma(p, options.gamma)
    return p


# Buffer helpers

def clamp_array(values: np.ndarray) -> np.ndarray:
    """Vectorized clamp() producing a new uint8 array."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def gamma_lut(g: float) -> np.ndarray:
    """256-entry lookup table built from the scalar gamma function."""
    return np.array([_gamma_channel(i, g) for i in range(256)], dtype=np.uint8)


def apply_gamma(buffer: np.ndarray, g: float) -> np.ndarray:
    """
    Apply the gamma pass to the color channels of an RGBA buffer.

    Args:
        buffer: uint8 array of shape (H, W, 4)
        g: Gamma value in (0, 3]

    Returns:
        New uint8 array; alpha is copied unchanged
    """
    lut = gamma_lut(g)
    result = buffer.copy()
    result[..., :3] = lut[buffer[..., :3]]
    return result
