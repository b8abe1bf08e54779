"""
Tests for image quality metrics and before/after comparison.
"""

import pytest
import numpy as np

from vibecraft.analysis.quality_assessor import (
    QualityAssessor, QualityMetrics, QUALITY_WEIGHTS
)
from vibecraft.processing.enhancement_engine import EnhancementEngine
from vibecraft.processing.models import AlgorithmConfig, EditingConfig, TransformOptions

from conftest import encode_png, make_analysis


@pytest.fixture
def assessor():
    return QualityAssessor()


def uniform_image(rgb, size=16):
    image = np.empty((size, size, 4), dtype=np.uint8)
    image[..., :3] = rgb
    image[..., 3] = 255
    return image


def metrics(**overrides):
    values = {name: 0.5 for name in QUALITY_WEIGHTS}
    values.update(overrides)
    return QualityMetrics(**values)


class TestQualityMetrics:
    """Test the metrics record."""

    def test_weights_sum_to_one(self):
        assert sum(QUALITY_WEIGHTS.values()) == pytest.approx(1.0)

    def test_overall_is_weighted_sum(self):
        m = QualityMetrics(exposure=1.0, contrast=0.5, sharpness=0.2, color_balance=0.8, noise=0.4)
        expected = 0.25 * 1.0 + 0.20 * 0.5 + 0.25 * 0.2 + 0.15 * 0.8 + 0.15 * 0.4
        assert m.overall == pytest.approx(expected)

    def test_dict_round_trip(self):
        m = metrics(sharpness=0.9)
        data = m.to_dict()
        assert data['overall'] == pytest.approx(m.overall)
        assert QualityMetrics.from_dict(data) == m


class TestImageMetrics:
    """Test the per-image estimators."""

    def test_flat_gray(self, assessor):
        m = assessor.analyze(uniform_image((128, 128, 128)))
        assert m.exposure == pytest.approx(1.0)
        assert m.contrast == pytest.approx(0.0)
        assert m.sharpness == pytest.approx(0.0)
        assert m.color_balance == pytest.approx(1.0)
        assert m.noise == pytest.approx(1.0)
        assert m.overall == pytest.approx(0.55)

    def test_black_image_exposure(self, assessor):
        assert assessor.analyze(uniform_image((0, 0, 0))).exposure == pytest.approx(0.0)

    def test_color_cast(self, assessor):
        assert assessor.analyze(uniform_image((255, 0, 0))).color_balance == pytest.approx(0.0)
        assert assessor.analyze(uniform_image((120, 100, 80))).color_balance == pytest.approx(1 - 40 / 128)

    def test_scores_in_unit_range(self, assessor, rgba_image, dark_image):
        for image in (rgba_image, dark_image):
            for value in assessor.analyze(image).to_dict().values():
                assert 0.0 <= value <= 1.0

    def test_accepts_bytes(self, assessor, rgba_image):
        from_bytes = assessor.analyze(encode_png(rgba_image))
        from_array = assessor.analyze(rgba_image)
        assert from_bytes == from_array

    def test_brightening_dark_image_improves_exposure(self, assessor, dark_image):
        brighter, _ = EnhancementEngine().apply(dark_image, TransformOptions(brightness=40))
        assert assessor.analyze(brighter).exposure > assessor.analyze(dark_image).exposure

    def test_contrast_increases_contrast_score(self, assessor, rgba_image):
        punchier, _ = EnhancementEngine().apply(rgba_image, TransformOptions(contrast=50))
        assert assessor.analyze(punchier).contrast > assessor.analyze(rgba_image).contrast

    def test_noise_detected(self, assessor):
        rng = np.random.default_rng(0)
        noisy = uniform_image((128, 128, 128), size=32)
        noisy[..., :3] = np.clip(128 + rng.normal(0, 30, size=(32, 32, 1)), 0, 255).astype(np.uint8)
        assert assessor.analyze(noisy).noise < assessor.analyze(uniform_image((128, 128, 128))).noise


class TestComparison:
    """Test comparing before and after metrics."""

    def test_improvements_and_degradations(self, assessor):
        before = metrics()
        after = metrics(exposure=0.75, contrast=0.65, noise=0.4)
        comparison = assessor.compare(before, after)

        assert comparison.improvement['exposure'] == pytest.approx(0.25)
        assert comparison.significant_improvements == ['exposure', 'contrast']
        assert comparison.degradations == ['noise']
        assert comparison.overall_improvement == pytest.approx(after.overall - before.overall)

    def test_recommendations(self, assessor):
        comparison = assessor.compare(metrics(), metrics(noise=0.3))
        recs = comparison.recommendations

        assert 'Consider adding bilateral filter or denoising algorithm' in recs
        assert 'Reduce processing strength to avoid: noise' in recs
        assert 'Consider increasing overall enhancement strength' in recs

    def test_over_processing_warning(self, assessor):
        before = QualityMetrics(0.1, 0.1, 0.1, 0.1, 0.5)
        after = QualityMetrics(0.9, 0.9, 0.9, 0.9, 0.5)
        recs = assessor.compare(before, after).recommendations
        assert recs == ['Consider reducing enhancement strength to avoid over-processing']

    def test_algorithm_contributions(self, assessor):
        config = EditingConfig(algorithms=[
            AlgorithmConfig('clahe', order=1),
            AlgorithmConfig('aesthetic', params={'preset': 'soft-girl'}, order=2),
        ])
        comparison = assessor.compare(metrics(), metrics(exposure=0.7, contrast=0.6), config)
        contributions = comparison.algorithm_contributions

        assert contributions['clahe'] == pytest.approx(0.6 * 0.2 + 0.4 * 0.1)
        assert contributions['aesthetic'] == pytest.approx(comparison.overall_improvement / 2)

    def test_thresholds_from_config(self):
        assessor = QualityAssessor({'significant_improvement': 0.3, 'degradation_threshold': -0.2})
        comparison = assessor.compare(metrics(), metrics(exposure=0.75, noise=0.4))
        assert comparison.significant_improvements == []
        assert comparison.degradations == []

    def test_to_dict(self, assessor):
        data = assessor.compare(metrics(), metrics(exposure=0.8)).to_dict()
        assert set(data) >= {'before', 'after', 'improvement', 'overall_improvement',
                             'significant_improvements', 'degradations', 'recommendations'}

    def test_validate_quality_improvement(self, assessor):
        good = assessor.compare(metrics(), metrics(exposure=0.7, contrast=0.6))
        bad = assessor.compare(metrics(), metrics(exposure=0.7, noise=0.1, contrast=0.3))
        assert assessor.validate_quality_improvement(good)
        assert not assessor.validate_quality_improvement(bad)

    def test_quality_summary(self, assessor):
        excellent = assessor.compare(metrics(), metrics(exposure=0.9, contrast=0.9))
        nothing = assessor.compare(metrics(), metrics())
        assert assessor.generate_quality_summary(excellent).startswith("Excellent enhancement! 18%")
        assert assessor.generate_quality_summary(nothing).startswith("No measurable")


class TestSuggestOptimalConfig:
    """Test the feedback adjustment of configs."""

    @pytest.fixture
    def config(self):
        return EditingConfig(algorithms=[
            AlgorithmConfig('clahe', params={'clipLimit': 2.0}, order=1),
            AlgorithmConfig('unsharp_mask', params={'amount': 0.5}, order=2),
        ], strength=0.8)

    def test_degradation_lowers_strength(self, assessor, config):
        comparison = assessor.compare(metrics(), metrics(noise=0.3, exposure=0.9))
        suggested = assessor.suggest_optimal_config(make_analysis(overall=0.8), config, comparison)
        assert suggested.strength == pytest.approx(config.strength * 0.8)

    def test_small_gain_raises_strength(self, assessor, config):
        comparison = assessor.compare(metrics(), metrics(exposure=0.52))
        suggested = assessor.suggest_optimal_config(make_analysis(overall=0.8), config, comparison)
        assert suggested.strength == pytest.approx(min(config.strength * 1.2, 1.0))

    def test_weak_analysis_strengthens_steps(self, assessor, config):
        comparison = assessor.compare(metrics(), metrics(exposure=0.8))
        analysis = make_analysis('portrait', overall=0.5)
        suggested = assessor.suggest_optimal_config(analysis, config, comparison)

        assert suggested.get_algorithm('clahe').params['clipLimit'] == pytest.approx(2.6)
        assert suggested.get_algorithm('unsharp_mask').params['amount'] == pytest.approx(0.6)
        # the input config is untouched
        assert config.get_algorithm('clahe').params['clipLimit'] == 2.0
        assert suggested.strength == config.strength
