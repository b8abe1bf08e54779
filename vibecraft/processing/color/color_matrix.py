"""
Affine 4x5 color matrices.

Each row produces one output channel (R, G, B, A) as a linear
combination of the input R, G, B, A plus a constant offset expressed in
0-255 pixel units. Matrices compose by multiplication in homogeneous
5x5 form, so any chain of linear adjustments collapses into one matrix
applied in a single pass over the pixel buffer.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..pixel_math import LUMA_WEIGHTS, Pixel, clamp, clamp_array

logger = logging.getLogger(__name__)


class ColorMatrix:
    """Immutable 4x5 affine color transform."""

    __slots__ = ('_m',)

    def __init__(self, values: Optional[Sequence] = None):
        """
        Args:
            values: 20 numbers in row-major order, or a 4x5 array-like.
                None builds the identity.
        """
        if values is None:
            m = np.zeros((4, 5), dtype=np.float64)
            m[:, :4] = np.eye(4)
        else:
            m = np.array(values, dtype=np.float64).reshape(4, 5)
        m.setflags(write=False)
        self._m = m

    @classmethod
    def identity(cls) -> 'ColorMatrix':
        return cls()

    @property
    def values(self) -> np.ndarray:
        """Read-only 4x5 array."""
        return self._m

    @property
    def linear(self) -> np.ndarray:
        return self._m[:, :4]

    @property
    def offset(self) -> np.ndarray:
        return self._m[:, 4]

    def _homogeneous(self) -> np.ndarray:
        h = np.eye(5, dtype=np.float64)
        h[:4, :] = self._m
        return h

    def concat(self, inner: 'ColorMatrix') -> 'ColorMatrix':
        """Return self applied after inner."""
        return concat(self, inner)

    def is_identity(self, tolerance: float = 1e-12) -> bool:
        return self.allclose(ColorMatrix.identity(), tolerance)

    def allclose(self, other: 'ColorMatrix', tolerance: float = 1e-6) -> bool:
        return bool(np.allclose(self._m, other._m, rtol=0.0, atol=tolerance))

    def apply_to_pixel(self, p: Pixel) -> Pixel:
        v = np.array([p.r, p.g, p.b, p.a], dtype=np.float64)
        out = self.linear @ v + self.offset
        return Pixel(clamp(out[0]), clamp(out[1]), clamp(out[2]), clamp(out[3]))

    def apply_to_buffer(self, buffer: np.ndarray) -> np.ndarray:
        """
        Transform an RGBA uint8 buffer.

        Args:
            buffer: Array of shape (H, W, 4)

        Returns:
            New clamped uint8 array of the same shape
        """
        flat = buffer.reshape(-1, 4).astype(np.float64)
        out = flat @ self.linear.T + self.offset
        return clamp_array(out).reshape(buffer.shape)

    def to_list(self) -> List[float]:
        return [float(x) for x in self._m.ravel()]

    def __eq__(self, other):
        if not isinstance(other, ColorMatrix):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self):
        return hash(self._m.tobytes())

    def __repr__(self):
        rows = ", ".join("[" + ", ".join(f"{x:.4g}" for x in row) + "]" for row in self._m)
        return f"ColorMatrix({rows})"


def concat(outer: ColorMatrix, inner: ColorMatrix) -> ColorMatrix:
    """
    Compose two matrices: the result applies inner first, then outer.

    Args:
        outer: Matrix consuming inner's output
        inner: Matrix applied to the input pixel

    Returns:
        Composed matrix
    """
    product = outer._homogeneous() @ inner._homogeneous()
    return ColorMatrix(product[:4, :])


def compose(matrices: Iterable[ColorMatrix]) -> ColorMatrix:
    """Fold matrices listed in application order into one."""
    result = ColorMatrix.identity()
    for matrix in matrices:
        result = concat(matrix, result)
    return result


def brightness_matrix(b: float) -> ColorMatrix:
    offset = b / 100.0 * 255.0
    return ColorMatrix([
        1, 0, 0, 0, offset,
        0, 1, 0, 0, offset,
        0, 0, 1, 0, offset,
        0, 0, 0, 1, 0,
    ])


def contrast_matrix(c: float) -> ColorMatrix:
    factor = 1.0 + c / 100.0
    offset = 128.0 * (1.0 - factor)
    return ColorMatrix([
        factor, 0, 0, 0, offset,
        0, factor, 0, 0, offset,
        0, 0, factor, 0, offset,
        0, 0, 0, 1, 0,
    ])


def saturation_matrix(s: float) -> ColorMatrix:
    """Blend each row toward the luminance vector; s=-100 yields grayscale."""
    sf = 1.0 + s / 100.0
    lr, lg, lb = LUMA_WEIGHTS
    return ColorMatrix([
        lr * (1 - sf) + sf, lg * (1 - sf), lb * (1 - sf), 0, 0,
        lr * (1 - sf), lg * (1 - sf) + sf, lb * (1 - sf), 0, 0,
        lr * (1 - sf), lg * (1 - sf), lb * (1 - sf) + sf, 0, 0,
        0, 0, 0, 1, 0,
    ])


def hue_rotate_matrix(degrees: float) -> ColorMatrix:
    """Standard hue rotation about the luminance axis (feColorMatrix hueRotate)."""
    rad = math.radians(degrees)
    cos = math.cos(rad)
    sin = math.sin(rad)
    return ColorMatrix([
        0.213 + cos * 0.787 - sin * 0.213,
        0.715 - cos * 0.715 - sin * 0.715,
        0.072 - cos * 0.072 + sin * 0.928,
        0, 0,
        0.213 - cos * 0.213 + sin * 0.143,
        0.715 + cos * 0.285 + sin * 0.140,
        0.072 - cos * 0.072 - sin * 0.283,
        0, 0,
        0.213 - cos * 0.213 - sin * 0.787,
        0.715 - cos * 0.715 + sin * 0.715,
        0.072 + cos * 0.928 + sin * 0.072,
        0, 0,
        0, 0, 0, 1, 0,
    ])


def channel_scale_matrix(red: float = 0.0, green: float = 0.0, blue: float = 0.0) -> ColorMatrix:
    return ColorMatrix([
        1 + red / 100.0, 0, 0, 0, 0,
        0, 1 + green / 100.0, 0, 0, 0,
        0, 0, 1 + blue / 100.0, 0, 0,
        0, 0, 0, 1, 0,
    ])


def pipeline_matrices(options) -> List[ColorMatrix]:
    """
    Matrices for the linear part of TransformOptions in canonical order.

    brightness -> contrast -> saturation -> hue -> channel scale. Gamma is
    not representable here and is left to the caller.
    """
    stages = []
    if options.brightness is not None:
        stages.append(brightness_matrix(options.brightness))
    if options.contrast is not None:
        stages.append(contrast_matrix(options.contrast))
    if options.saturation is not None:
        stages.append(saturation_matrix(options.saturation))
    if options.hue is not None:
        stages.append(hue_rotate_matrix(options.hue))
    channels = (options.red_channel, options.green_channel, options.blue_channel)
    if any(c is not None for c in channels):
        stages.append(channel_scale_matrix(*(c or 0.0 for c in channels)))
    return stages


def from_options(options) -> ColorMatrix:
    """Flatten the linear stages of TransformOptions into one matrix."""
    matrix = compose(pipeline_matrices(options))
    logger.debug(f"Composed color matrix: {matrix!r}")
    return matrix
