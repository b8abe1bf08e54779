"""
Tests for color matrix composition and application.
"""

import pytest
import numpy as np

from vibecraft.processing.color import (
    ColorMatrix, concat, compose, brightness_matrix, contrast_matrix,
    saturation_matrix, hue_rotate_matrix, channel_scale_matrix,
    pipeline_matrices, from_options, grayscale_matrix, sepia_matrix,
    invert_matrix, vintage_matrix, EFFECT_MATRICES
)
from vibecraft.processing.models import TransformOptions
from vibecraft.processing.pixel_math import Pixel, brightness, contrast, channel_scale


@pytest.fixture
def gradient_image():
    """Small RGBA image covering a spread of colors."""
    rng = np.random.default_rng(7)
    image = rng.integers(0, 256, size=(16, 24, 4), dtype=np.uint8)
    image[..., 3] = 200
    return image


class TestColorMatrixBasics:
    """Test construction and immutability."""

    def test_identity(self):
        m = ColorMatrix.identity()
        assert m.is_identity()
        assert m.values.shape == (4, 5)
        assert m.apply_to_pixel(Pixel(1, 2, 3, 4)) == Pixel(1, 2, 3, 4)

    def test_from_flat_list(self):
        values = list(range(20))
        m = ColorMatrix(values)
        assert m.to_list() == [float(v) for v in values]
        assert m.offset.tolist() == [4.0, 9.0, 14.0, 19.0]

    def test_read_only(self):
        m = ColorMatrix.identity()
        with pytest.raises(ValueError):
            m.values[0, 0] = 2.0

    def test_equality_and_hash(self):
        a = brightness_matrix(10)
        b = brightness_matrix(10)
        assert a == b
        assert hash(a) == hash(b)
        assert a != brightness_matrix(11)


class TestComposition:
    """Test concat and compose."""

    def test_identity_is_neutral(self):
        m = hue_rotate_matrix(33)
        identity = ColorMatrix.identity()
        assert concat(m, identity).allclose(m)
        assert concat(identity, m).allclose(m)

    def test_associativity(self):
        a = brightness_matrix(12)
        b = saturation_matrix(-30)
        c = hue_rotate_matrix(75)
        left = concat(concat(a, b), c)
        right = concat(a, concat(b, c))
        assert left.allclose(right, 1e-6)

    def test_concat_applies_inner_first(self):
        """Brightness then contrast differs from contrast then brightness."""
        b = brightness_matrix(20)
        c = contrast_matrix(50)

        # inputs chosen so no intermediate value needs rounding
        p = Pixel(101, 101, 101)
        assert concat(c, b).apply_to_pixel(p) == contrast(brightness(p, 20), 50)
        assert concat(c, b).apply_to_pixel(p).r == 164

        q = Pixel(100, 100, 100)
        assert concat(b, c).apply_to_pixel(q) == brightness(contrast(q, 50), 20)
        assert concat(b, c).apply_to_pixel(q).r == 137

    def test_compose_uses_application_order(self):
        stages = [brightness_matrix(10), contrast_matrix(20), channel_scale_matrix(red=10)]
        expected = concat(stages[2], concat(stages[1], stages[0]))
        assert compose(stages).allclose(expected)

    def test_compose_empty(self):
        assert compose([]).is_identity()


class TestStageMatrices:
    """Test that each matrix reproduces the scalar function."""

    def test_brightness_matches_scalar(self):
        p = Pixel(20, 120, 240, 90)
        assert brightness_matrix(-15).apply_to_pixel(p) == brightness(p, -15)

    def test_contrast_matches_scalar(self):
        p = Pixel(20, 120, 240, 90)
        assert contrast_matrix(35).apply_to_pixel(p) == contrast(p, 35)

    def test_channel_scale_matches_scalar(self):
        p = Pixel(20, 120, 240, 90)
        m = channel_scale_matrix(red=20, green=-10, blue=5)
        assert m.apply_to_pixel(p) == channel_scale(p, 20, -10, 5)

    def test_contrast_fixed_point(self):
        assert contrast_matrix(80).apply_to_pixel(Pixel(128, 128, 128)) == Pixel(128, 128, 128)

    def test_saturation_minus_100_is_grayscale(self):
        assert saturation_matrix(-100).allclose(grayscale_matrix())

    def test_saturation_zero_is_identity(self):
        assert saturation_matrix(0).is_identity()

    @pytest.mark.parametrize("degrees", [0, 45, 120, -90, 180])
    def test_hue_rotation_preserves_gray(self, degrees):
        gray = Pixel(90, 90, 90)
        assert hue_rotate_matrix(degrees).apply_to_pixel(gray) == gray

    def test_hue_rotation_zero_is_identity(self):
        assert hue_rotate_matrix(0).allclose(ColorMatrix.identity(), 1e-9)

    def test_alpha_row_untouched(self):
        for m in (brightness_matrix(40), contrast_matrix(-40), saturation_matrix(50),
                  hue_rotate_matrix(90), channel_scale_matrix(10, 10, 10)):
            assert m.values[3].tolist() == [0.0, 0.0, 0.0, 1.0, 0.0]


class TestPipeline:
    """Test flattening TransformOptions into one matrix."""

    def test_absent_fields_add_no_stage(self):
        assert pipeline_matrices(TransformOptions()) == []
        assert len(pipeline_matrices(TransformOptions(brightness=5, hue=10))) == 2

    def test_gamma_not_in_matrix(self):
        assert from_options(TransformOptions(gamma=2.0)).is_identity()

    def test_flattened_matches_sequential(self, gradient_image):
        options = TransformOptions(brightness=5, contrast=10, saturation=-20, hue=15, red_channel=5)
        sequential = gradient_image.astype(np.float64)
        for stage in pipeline_matrices(options):
            flat = sequential.reshape(-1, 4) @ stage.linear.T + stage.offset
            sequential = flat.reshape(gradient_image.shape)

        flattened = from_options(options).apply_to_buffer(gradient_image)
        expected = np.clip(np.floor(sequential + 0.5), 0, 255).astype(np.uint8)
        assert np.array_equal(flattened, expected)

    def test_buffer_matches_pixel(self, gradient_image):
        m = from_options(TransformOptions(brightness=-8, saturation=30, blue_channel=-12))
        out = m.apply_to_buffer(gradient_image)
        for y, x in [(0, 0), (5, 7), (15, 23)]:
            p = Pixel(*gradient_image[y, x].tolist())
            assert tuple(out[y, x].tolist()) == m.apply_to_pixel(p).as_tuple()

    def test_apply_to_buffer_does_not_mutate(self, gradient_image):
        original = gradient_image.copy()
        brightness_matrix(30).apply_to_buffer(gradient_image)
        assert np.array_equal(gradient_image, original)


class TestEffects:
    """Test the fixed effect matrices."""

    def test_invert(self):
        assert invert_matrix().apply_to_pixel(Pixel(0, 100, 255, 9)) == Pixel(255, 155, 0, 9)

    def test_invert_twice_is_identity(self):
        assert concat(invert_matrix(), invert_matrix()).is_identity()

    def test_sepia_white_saturates(self):
        assert sepia_matrix().apply_to_pixel(Pixel(255, 255, 255)).r == 255

    def test_vintage_zero_amount_has_no_sepia(self):
        m = vintage_matrix(0.0)
        p = Pixel(128, 128, 128)
        # warm shift only
        assert m.apply_to_pixel(p).as_tuple()[:3] == (140, 132, 118)

    def test_registry(self):
        assert set(EFFECT_MATRICES) == {'grayscale', 'sepia', 'invert', 'vintage'}
        for factory in EFFECT_MATRICES.values():
            assert isinstance(factory(), ColorMatrix)
