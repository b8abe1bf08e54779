"""
Shared fixtures for the VibeCraft test suite.
"""

import io

import numpy as np
import pytest
from PIL import Image

from vibecraft.analysis.models import AnalysisResult, TechnicalQuality


def make_analysis(image_type='other', mood='neutral', overall=0.7, objects=(),
                  exposure=None, sharpness=None, **kwargs) -> AnalysisResult:
    """AnalysisResult with a uniform technical quality unless overridden."""
    quality = TechnicalQuality(
        exposure=overall if exposure is None else exposure,
        sharpness=overall if sharpness is None else sharpness,
        composition=overall,
        overall=overall,
    )
    return AnalysisResult(image_type=image_type, mood=mood, technical_quality=quality,
                          detected_objects=tuple(objects), **kwargs)


def encode_png(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def analysis_factory():
    return make_analysis


@pytest.fixture
def rgba_image():
    """Deterministic 32x48 RGBA test image with a gradient and noise."""
    rng = np.random.default_rng(42)
    h, w = 32, 48
    y, x = np.mgrid[0:h, 0:w]
    image = np.zeros((h, w, 4), dtype=np.uint8)
    image[..., 0] = (x * 255 // (w - 1)).astype(np.uint8)
    image[..., 1] = (y * 255 // (h - 1)).astype(np.uint8)
    image[..., 2] = rng.integers(40, 200, size=(h, w), dtype=np.uint8)
    image[..., 3] = 255
    return image


@pytest.fixture
def png_bytes(rgba_image):
    return encode_png(rgba_image)


@pytest.fixture
def dark_image():
    """Underexposed, low-contrast RGBA image."""
    rng = np.random.default_rng(3)
    image = np.empty((40, 40, 4), dtype=np.uint8)
    image[..., :3] = rng.integers(15, 45, size=(40, 40, 3), dtype=np.uint8)
    image[..., 3] = 255
    return image
