"""
Color processing: pixel math, color matrices, editing configs and the
enhancement engine.
"""

from .models import (
    TransformOptions,
    AlgorithmConfig,
    EditingConfig,
    Intensity,
    Priority,
    Style,
)
from .pixel_math import Pixel, HSVPixel

__all__ = [
    'TransformOptions',
    'AlgorithmConfig',
    'EditingConfig',
    'Intensity',
    'Priority',
    'Style',
    'Pixel',
    'HSVPixel',
]
