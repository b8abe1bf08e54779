"""
Editing configuration generation from content analysis.

generate() never raises: any internal failure falls back to
default_config() so the processing pipeline cannot stall on
configuration.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from ..aesthetics.catalog import intensity_for_analysis, select_aesthetic_for_content
from ..analysis.models import AnalysisResult
from ..errors import InvalidParameterError
from .algorithms import build_transform_options
from .models import AlgorithmConfig, EditingConfig, Intensity, Priority, Style

logger = logging.getLogger(__name__)

# Base algorithm sets per image type, in application order
IMAGE_TYPE_ALGORITHMS = {
    'portrait': [
        ('clahe', {'clipLimit': 2.0, 'tileGridSize': [8, 8]}),
        ('bilateral', {'d': 9, 'sigmaColor': 75, 'sigmaSpace': 75}),
        ('unsharp_mask', {'radius': 1.0, 'amount': 0.5, 'threshold': 0}),
    ],
    'landscape': [
        ('dramatic_enhancement', {'intensity': 0.6, 'style': 'vibrant'}),
        ('clahe', {'clipLimit': 3.0, 'tileGridSize': [16, 16]}),
        ('tone_mapping', {'gamma': 0.8, 'exposure': 0.2}),
        ('color_balance', {'temperature': 0, 'tint': 0, 'vibrancy': 1.3}),
    ],
    'food': [
        ('dramatic_enhancement', {'intensity': 0.7, 'style': 'warm'}),
        ('color_balance', {'temperature': 100, 'vibrancy': 1.4, 'saturation': 1.2}),
        ('unsharp_mask', {'radius': 0.8, 'amount': 0.6, 'threshold': 2}),
    ],
    'nature': [
        ('dramatic_enhancement', {'intensity': 0.8, 'style': 'vibrant'}),
        ('clahe', {'clipLimit': 2.5, 'tileGridSize': [12, 12]}),
        ('color_balance', {'vibrancy': 1.3}),
    ],
}

# Added when a technical score falls below QUALITY_THRESHOLD
POOR_EXPOSURE_ALGORITHMS = ('clahe', 'tone_mapping')
POOR_SHARPNESS_ALGORITHMS = ('unsharp_mask',)
QUALITY_THRESHOLD = 0.6

DEFAULT_ALGORITHM_PARAMS = {
    'clahe': {'clipLimit': 2.0, 'tileGridSize': [8, 8]},
    'bilateral': {'d': 9, 'sigmaColor': 75, 'sigmaSpace': 75},
    'unsharp_mask': {'radius': 1.0, 'amount': 0.5, 'threshold': 0},
    'tone_mapping': {'gamma': 0.8, 'exposure': 0.2},
    'color_balance': {'temperature': 0, 'tint': 0, 'vibrancy': 1.0},
    'denoising': {'strength': 0.5, 'preserveDetail': True},
    'dramatic_enhancement': {'intensity': 0.7, 'style': 'vibrant'},
}


def default_params(algorithm: str) -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_ALGORITHM_PARAMS.get(algorithm, {}))


def calculate_strength(analysis: AnalysisResult) -> float:
    """Lower technical quality gets a stronger edit."""
    overall = analysis.technical_quality.overall
    if overall < 0.4:
        return 0.9
    if overall < 0.6:
        return 0.8
    if overall < 0.75:
        return 0.6
    return 0.4


def determine_priority(analysis: AnalysisResult) -> Priority:
    if analysis.image_type == 'portrait':
        return Priority.QUALITY
    if analysis.mood in ('artistic', 'creative'):
        return Priority.ARTISTIC
    return Priority.QUALITY


def determine_style(analysis: AnalysisResult, preferences: Optional[Dict] = None) -> Style:
    preferred = (preferences or {}).get('color_preference') or (preferences or {}).get('colorPreference')
    if preferred:
        try:
            return Style(preferred)
        except ValueError:
            logger.warning(f"Ignoring unknown color preference '{preferred}'")
    if analysis.mood in ('warm', 'cozy'):
        return Style.WARM
    if analysis.mood in ('cool', 'serene'):
        return Style.COOL
    if analysis.image_type == 'landscape':
        return Style.VIBRANT
    return Style.NATURAL


def default_config() -> EditingConfig:
    """Hard-coded configuration used whenever generation fails."""
    return EditingConfig(
        algorithms=[AlgorithmConfig('dramatic_enhancement', True,
                                    {'intensity': 0.8, 'style': 'vibrant'}, 1)],
        strength=0.8,
        priority=Priority.QUALITY,
        style=Style.VIBRANT,
    )


def fast_config(analysis: AnalysisResult) -> EditingConfig:
    """Single-step configuration for quick previews."""
    strength = 0.9 if analysis.technical_quality.overall < 0.6 else 0.7
    return EditingConfig(
        algorithms=[AlgorithmConfig('dramatic_enhancement', True,
                                    {'intensity': strength, 'style': 'vibrant'}, 1)],
        strength=strength,
        priority=Priority.SPEED,
        style=Style.VIBRANT,
    )


class ConfigurationGenerator:
    """Builds an EditingConfig for an analyzed image."""

    def __init__(self, config: Optional[Dict] = None):
        self.config = config or {}

    def generate(self, analysis: AnalysisResult,
                 preferences: Optional[Dict] = None) -> EditingConfig:
        """
        Derive an editing configuration; never raises.

        Args:
            analysis: Content analysis of the image
            preferences: Optional overrides (preset, intensity, color_preference)

        Returns:
            EditingConfig, or default_config() if generation failed
        """
        try:
            return self._generate(analysis, preferences or {})
        except Exception as e:
            logger.warning(f"Config generation failed, using default config: {e}")
            return default_config()

    def _generate(self, analysis: AnalysisResult, preferences: Dict) -> EditingConfig:
        preset_id = preferences.get('preset') or select_aesthetic_for_content(
            analysis.image_type, analysis.mood, analysis.detected_objects)
        intensity = Intensity.parse(preferences['intensity']) if preferences.get('intensity') \
            else intensity_for_analysis(analysis)

        steps: List[tuple] = [('aesthetic', {'preset': preset_id, 'intensity': intensity.value})]
        base = IMAGE_TYPE_ALGORITHMS.get(analysis.image_type, IMAGE_TYPE_ALGORITHMS['landscape'])
        steps.extend((name, copy.deepcopy(params)) for name, params in base)

        names = {name for name, _ in steps}
        quality = analysis.technical_quality
        if quality.exposure < QUALITY_THRESHOLD:
            for name in POOR_EXPOSURE_ALGORITHMS:
                if name not in names:
                    steps.append((name, default_params(name)))
                    names.add(name)
        if quality.sharpness < QUALITY_THRESHOLD:
            for name in POOR_SHARPNESS_ALGORITHMS:
                if name not in names:
                    steps.append((name, default_params(name)))
                    names.add(name)

        config = EditingConfig(
            algorithms=[AlgorithmConfig(name, True, params, order)
                        for order, (name, params) in enumerate(steps, start=1)],
            strength=calculate_strength(analysis),
            priority=determine_priority(analysis),
            style=determine_style(analysis, preferences),
        )
        config = self._fit_to_ranges(config)

        logger.info(f"Generated config for {analysis.image_type}: preset={preset_id} "
                    f"intensity={intensity.value} steps={[a.name for a in config.algorithms]} "
                    f"strength={config.strength}")
        return config

    @staticmethod
    def _fit_to_ranges(config: EditingConfig) -> EditingConfig:
        """Drop trailing steps until the merged deltas are within legal ranges."""
        while True:
            try:
                build_transform_options(config).validate()
                return config
            except InvalidParameterError as e:
                if len(config.algorithms) <= 1:
                    raise
                dropped = config.algorithms.pop()
                logger.debug(f"Dropping '{dropped.name}' to keep deltas in range: {e}")
