"""
Quality assessment for before/after comparison.

Metrics are deterministic statistics of pixel content, each scaled to
[0, 1]. Exposure, contrast and sharpness are non-decreasing under
brightening and contrast stretching respectively, so an edit that
visibly pushes those properties never scores lower on them.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Union

import cv2
import numpy as np

from ..io.codec import BitmapCodec, PillowCodec, as_rgba
from ..processing.models import EditingConfig

logger = logging.getLogger(__name__)

QUALITY_WEIGHTS = {
    'exposure': 0.25,
    'contrast': 0.20,
    'sharpness': 0.25,
    'color_balance': 0.15,
    'noise': 0.15,
}

SIGNIFICANT_IMPROVEMENT = 0.10
DEGRADATION_THRESHOLD = -0.05

# Estimator scales
TARGET_MEAN_LUMA = 118.0
SHADOW_LEVEL = 32.0
CONTRAST_STD_SCALE = 64.0
SHARPNESS_SCALE = 100.0
COLOR_SPREAD_SCALE = 128.0
NOISE_SIGMA_SCALE = 25.0

# Contribution weights of each algorithm over the metric improvements
ALGORITHM_CONTRIBUTIONS = {
    'clahe': {'exposure': 0.6, 'contrast': 0.4},
    'bilateral': {'noise': 0.8},
    'unsharp_mask': {'sharpness': 0.9},
    'color_balance': {'color_balance': 0.8},
    'tone_mapping': {'exposure': 0.4, 'contrast': 0.6},
    'denoising': {'noise': 0.9},
}


@dataclass(frozen=True)
class QualityMetrics:
    """Per-image quality scores, each in [0, 1]."""
    exposure: float
    contrast: float
    sharpness: float
    color_balance: float
    noise: float  # higher means cleaner

    @property
    def overall(self) -> float:
        return sum(getattr(self, name) * weight for name, weight in QUALITY_WEIGHTS.items())

    def to_dict(self) -> Dict[str, float]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['overall'] = self.overall
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'QualityMetrics':
        return cls(**{name: float(data[name]) for name in QUALITY_WEIGHTS})


@dataclass
class QualityComparison:
    """Before/after metrics and their differences."""
    before: QualityMetrics
    after: QualityMetrics
    improvement: Dict[str, float]
    overall_improvement: float
    significant_improvements: List[str] = field(default_factory=list)
    degradations: List[str] = field(default_factory=list)
    algorithm_contributions: Dict[str, float] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'before': self.before.to_dict(),
            'after': self.after.to_dict(),
            'improvement': dict(self.improvement),
            'overall_improvement': self.overall_improvement,
            'significant_improvements': list(self.significant_improvements),
            'degradations': list(self.degradations),
            'algorithm_contributions': dict(self.algorithm_contributions),
            'recommendations': list(self.recommendations),
        }


class QualityAssessor:
    """Scores images and compares enhancement results."""

    def __init__(self, config: Optional[Dict] = None, codec: Optional[BitmapCodec] = None):
        """
        Args:
            config: Optional 'quality' settings (significant_improvement,
                degradation_threshold)
            codec: Codec used when images are given as bytes
        """
        self.config = config or {}
        self.codec = codec or PillowCodec()
        self.significant_threshold = self.config.get('significant_improvement', SIGNIFICANT_IMPROVEMENT)
        self.degradation_threshold = self.config.get('degradation_threshold', DEGRADATION_THRESHOLD)

    def _pixels(self, image) -> np.ndarray:
        if isinstance(image, (bytes, bytearray)):
            return self.codec.decode(bytes(image))
        return as_rgba(image)

    def analyze(self, image: Union[bytes, np.ndarray]) -> QualityMetrics:
        """
        Compute quality metrics for an image.

        Args:
            image: Encoded bytes or a pixel array

        Returns:
            QualityMetrics
        """
        rgb = self._pixels(image)[..., :3].astype(np.float64)
        luma = rgb @ np.array([0.299, 0.587, 0.114])

        metrics = QualityMetrics(
            exposure=self._exposure_score(luma),
            contrast=self._contrast_score(luma),
            sharpness=self._sharpness_score(luma),
            color_balance=self._color_balance_score(rgb),
            noise=self._noise_score(luma),
        )
        logger.debug(f"Quality metrics: {metrics.to_dict()}")
        return metrics

    def _exposure_score(self, luma: np.ndarray) -> float:
        """Mean brightness relative to a mid target, blended with shadow coverage."""
        mean_score = min(1.0, float(luma.mean()) / TARGET_MEAN_LUMA)
        shadow_fraction = float((luma < SHADOW_LEVEL).mean())
        return 0.6 * mean_score + 0.4 * (1.0 - shadow_fraction)

    def _contrast_score(self, luma: np.ndarray) -> float:
        return min(1.0, float(luma.std()) / CONTRAST_STD_SCALE)

    def _sharpness_score(self, luma: np.ndarray) -> float:
        """Laplacian variance mapped smoothly onto [0, 1)."""
        variance = float(cv2.Laplacian(luma, cv2.CV_64F).var())
        return variance / (variance + SHARPNESS_SCALE)

    def _color_balance_score(self, rgb: np.ndarray) -> float:
        """Gray-world check: how close the channel means are to each other."""
        means = rgb.reshape(-1, 3).mean(axis=0)
        spread = float(means.max() - means.min())
        return 1.0 - min(1.0, spread / COLOR_SPREAD_SCALE)

    def _noise_score(self, luma: np.ndarray) -> float:
        """Residual against a 3x3 median filter; smooth regions leave almost none."""
        gray = luma.astype(np.float32)
        residual = gray - cv2.medianBlur(gray, 3)
        sigma = float(residual.std())
        return 1.0 - min(1.0, sigma / NOISE_SIGMA_SCALE)

    def compare(self, before, after, config: Optional[EditingConfig] = None) -> QualityComparison:
        """
        Compare two images (or precomputed metrics).

        Args:
            before: Original image or its QualityMetrics
            after: Enhanced image or its QualityMetrics
            config: Config that produced the result, for contribution estimates

        Returns:
            QualityComparison
        """
        before_metrics = before if isinstance(before, QualityMetrics) else self.analyze(before)
        after_metrics = after if isinstance(after, QualityMetrics) else self.analyze(after)

        improvement = {
            name: getattr(after_metrics, name) - getattr(before_metrics, name)
            for name in QUALITY_WEIGHTS
        }
        overall_improvement = sum(improvement[name] * weight for name, weight in QUALITY_WEIGHTS.items())

        comparison = QualityComparison(
            before=before_metrics,
            after=after_metrics,
            improvement=improvement,
            overall_improvement=overall_improvement,
            significant_improvements=[n for n, d in improvement.items() if d > self.significant_threshold],
            degradations=[n for n, d in improvement.items() if d < self.degradation_threshold],
        )
        if config is not None:
            comparison.algorithm_contributions = self.estimate_algorithm_contributions(config, comparison)
        comparison.recommendations = self.generate_recommendations(comparison)

        logger.info(f"Quality change {overall_improvement:+.3f} "
                    f"(improved: {comparison.significant_improvements}, "
                    f"degraded: {comparison.degradations})")
        return comparison

    @staticmethod
    def estimate_algorithm_contributions(config: EditingConfig,
                                         comparison: QualityComparison) -> Dict[str, float]:
        """Rough share of the improvement attributable to each enabled algorithm."""
        enabled = [a for a in config.algorithms if a.enabled]
        contributions = {}
        for algorithm in enabled:
            weights = ALGORITHM_CONTRIBUTIONS.get(algorithm.name)
            if weights:
                value = sum(comparison.improvement[m] * w for m, w in weights.items())
            else:
                value = comparison.overall_improvement / len(enabled)
            contributions[algorithm.name] = max(0.0, min(1.0, value))
        return contributions

    @staticmethod
    def generate_recommendations(comparison: QualityComparison) -> List[str]:
        threshold = 0.05
        improvement = comparison.improvement
        recommendations = []

        if improvement['exposure'] < threshold:
            recommendations.append('Consider increasing CLAHE strength for better exposure')
        if improvement['contrast'] < threshold:
            recommendations.append('Try tone mapping or adjust CLAHE parameters for better contrast')
        if improvement['sharpness'] < threshold:
            recommendations.append('Increase unsharp mask amount or add detail enhancement')
        if improvement['color_balance'] < threshold:
            recommendations.append('Adjust color balance parameters or try a different style')
        if improvement['noise'] < 0:
            recommendations.append('Consider adding bilateral filter or denoising algorithm')
        if comparison.degradations:
            recommendations.append(
                f"Reduce processing strength to avoid: {', '.join(comparison.degradations)}")

        if comparison.overall_improvement < 0.05:
            recommendations.append('Consider increasing overall enhancement strength')
        elif comparison.overall_improvement > 0.3:
            recommendations.append('Consider reducing enhancement strength to avoid over-processing')
        return recommendations

    @staticmethod
    def suggest_optimal_config(analysis, config: EditingConfig,
                               comparison: QualityComparison) -> EditingConfig:
        """
        Feedback adjustment of a config after seeing its result.

        Strength drops 20% (floor 0.1) when anything degraded, otherwise
        rises 20% (cap 1.0) when the overall gain was under 0.05. Weak
        exposure or sharpness in the analysis also strengthens clahe and
        unsharp_mask.

        Args:
            analysis: AnalysisResult of the source image
            config: Config that was applied
            comparison: Result of compare()

        Returns:
            New EditingConfig; the input is not modified
        """
        suggested = config.with_strength(config.strength)
        quality = analysis.technical_quality

        if quality.exposure < 0.6:
            clahe = suggested.get_algorithm('clahe')
            if clahe is not None:
                clip = float(clahe.params.get('clipLimit', 2.0))
                clahe.params['clipLimit'] = min(clip * 1.3, 4.0)

        if quality.sharpness < 0.6:
            unsharp = suggested.get_algorithm('unsharp_mask')
            if unsharp is not None:
                amount = float(unsharp.params.get('amount', 0.5))
                unsharp.params['amount'] = min(amount * 1.2, 1.0)

        if comparison.degradations:
            suggested.strength = max(config.strength * 0.8, 0.1)
        elif comparison.overall_improvement < 0.05:
            suggested.strength = min(config.strength * 1.2, 1.0)

        logger.debug(f"Suggested strength {config.strength:.2f} -> {suggested.strength:.2f}")
        return suggested

    def validate_quality_improvement(self, comparison: QualityComparison,
                                     min_improvement: float = 0.02) -> bool:
        """True when the edit helped overall and improved more than it degraded."""
        improved = sum(1 for d in comparison.improvement.values() if d > 0)
        return (comparison.overall_improvement >= min_improvement
                and improved > len(comparison.degradations))

    @staticmethod
    def generate_quality_summary(comparison: QualityComparison) -> str:
        percent = round(comparison.overall_improvement * 100)
        top = comparison.significant_improvements[0] if comparison.significant_improvements else 'overall balance'
        if comparison.overall_improvement > 0.1:
            return f"Excellent enhancement! {percent}% quality improvement, especially in {top}."
        if comparison.overall_improvement > 0.05:
            return f"Good enhancement with {percent}% improvement. Best results in {top}."
        if comparison.overall_improvement > 0:
            return f"Subtle improvements detected ({percent}%). Consider adjusting settings for better results."
        return "No measurable quality improvement. Try a different preset or a stronger edit."
