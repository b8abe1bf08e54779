"""
Fixed effect matrices (grayscale, sepia, invert, vintage).
"""

from types import MappingProxyType

from ..pixel_math import LUMA_WEIGHTS
from .color_matrix import ColorMatrix, concat, contrast_matrix


def grayscale_matrix() -> ColorMatrix:
    lr, lg, lb = LUMA_WEIGHTS
    return ColorMatrix([
        lr, lg, lb, 0, 0,
        lr, lg, lb, 0, 0,
        lr, lg, lb, 0, 0,
        0, 0, 0, 1, 0,
    ])


def sepia_matrix() -> ColorMatrix:
    return ColorMatrix([
        0.393, 0.769, 0.189, 0, 0,
        0.349, 0.686, 0.168, 0, 0,
        0.272, 0.534, 0.131, 0, 0,
        0, 0, 0, 1, 0,
    ])


def invert_matrix() -> ColorMatrix:
    return ColorMatrix([
        -1, 0, 0, 0, 255,
        0, -1, 0, 0, 255,
        0, 0, -1, 0, 255,
        0, 0, 0, 1, 0,
    ])


def vintage_matrix(amount: float = 0.6) -> ColorMatrix:
    """
    Partial sepia with a warm lift and slightly flattened contrast.

    Args:
        amount: Sepia blend in [0, 1]
    """
    amount = max(0.0, min(1.0, amount))
    blended = (1 - amount) * ColorMatrix.identity().values + amount * sepia_matrix().values
    warm = ColorMatrix([
        1, 0, 0, 0, 12,
        0, 1, 0, 0, 4,
        0, 0, 1, 0, -10,
        0, 0, 0, 1, 0,
    ])
    return concat(warm, concat(contrast_matrix(-10), ColorMatrix(blended)))


EFFECT_MATRICES = MappingProxyType({
    'grayscale': grayscale_matrix,
    'sepia': sepia_matrix,
    'invert': invert_matrix,
    'vintage': vintage_matrix,
})
