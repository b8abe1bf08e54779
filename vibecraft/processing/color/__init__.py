"""
Color matrix construction and composition.
"""

from .color_matrix import (
    ColorMatrix,
    concat,
    compose,
    brightness_matrix,
    contrast_matrix,
    saturation_matrix,
    hue_rotate_matrix,
    channel_scale_matrix,
    pipeline_matrices,
    from_options,
)
from .effects import EFFECT_MATRICES, grayscale_matrix, sepia_matrix, invert_matrix, vintage_matrix

__all__ = [
    'ColorMatrix',
    'concat',
    'compose',
    'brightness_matrix',
    'contrast_matrix',
    'saturation_matrix',
    'hue_rotate_matrix',
    'channel_scale_matrix',
    'pipeline_matrices',
    'from_options',
    'EFFECT_MATRICES',
    'grayscale_matrix',
    'sepia_matrix',
    'invert_matrix',
    'vintage_matrix',
]
