"""
Translation of editing-config algorithms into color transforms.

Each enabled AlgorithmConfig becomes a TransformOptions fragment at full
strength. Fragments are merged in config order; the engine scales the
merged result by the config's strength.
"""

import logging
from typing import Any, Callable, Dict

from ..aesthetics.catalog import resolve_preset_options
from ..errors import InvalidParameterError
from .models import EditingConfig, Style, TransformOptions

logger = logging.getLogger(__name__)

# Full-intensity deltas for dramatic_enhancement per style
DRAMATIC_STYLE_DELTAS = {
    Style.VIBRANT: TransformOptions(brightness=8, contrast=35, saturation=40),
    Style.WARM: TransformOptions(brightness=6, contrast=25, saturation=20,
                                 red_channel=15, blue_channel=-10),
    Style.COOL: TransformOptions(brightness=4, contrast=25, saturation=15,
                                 red_channel=-8, blue_channel=15),
    Style.NATURAL: TransformOptions(brightness=5, contrast=20, saturation=12),
    Style.MUTED: TransformOptions(contrast=10, saturation=-25),
}


def _number(params: Dict[str, Any], key: str, default: float) -> float:
    value = params.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(key, value)


def clahe(params: Dict[str, Any]) -> TransformOptions:
    """Local contrast equalization approximated as a global contrast lift."""
    clip = _number(params, 'clipLimit', 2.0)
    return TransformOptions(
        contrast=min(40.0, max(0.0, (clip - 1.0) * 10.0)),
        brightness=min(15.0, max(0.0, (clip - 1.0) * 4.0)),
    )


def bilateral(params: Dict[str, Any]) -> TransformOptions:
    smoothing = min(_number(params, 'd', 9) / 15.0, 1.0)
    return TransformOptions(saturation=-smoothing * 15.0, contrast=-smoothing * 10.0)


def unsharp_mask(params: Dict[str, Any]) -> TransformOptions:
    sharpen = min(_number(params, 'amount', 0.5) * 2.0, 1.0)
    return TransformOptions(contrast=sharpen * 25.0, saturation=sharpen * 10.0)


def tone_mapping(params: Dict[str, Any]) -> TransformOptions:
    # Config gamma is an output exponent (p ** gamma); the pixel pass uses p ** (1 / g)
    tone_gamma = _number(params, 'gamma', 0.8)
    if tone_gamma <= 0:
        raise InvalidParameterError('gamma', tone_gamma, message="tone_mapping gamma must be positive")
    return TransformOptions(
        brightness=_number(params, 'exposure', 0.2) * 50.0,
        gamma=1.0 / tone_gamma,
    )


def color_balance(params: Dict[str, Any]) -> TransformOptions:
    temperature = _number(params, 'temperature', 0.0)
    tint = _number(params, 'tint', 0.0)
    vibrancy = _number(params, 'vibrancy', 1.0)
    saturation = _number(params, 'saturation', 1.0)
    return TransformOptions(
        saturation=(vibrancy * saturation - 1.0) * 100.0,
        red_channel=temperature * 0.2,
        green_channel=-tint * 0.2,
        blue_channel=-temperature * 0.2,
    )


def denoising(params: Dict[str, Any]) -> TransformOptions:
    strength = min(max(_number(params, 'strength', 0.5), 0.0), 1.0)
    return TransformOptions(saturation=-strength * 10.0, contrast=-strength * 6.0)


def dramatic_enhancement(params: Dict[str, Any]) -> TransformOptions:
    intensity = _number(params, 'intensity', 0.7)
    style_name = params.get('style', Style.VIBRANT.value)
    try:
        style = Style(style_name)
    except ValueError:
        raise InvalidParameterError('style', style_name, message=f"Unknown style: {style_name}")
    return DRAMATIC_STYLE_DELTAS[style].scaled(intensity)


def aesthetic(params: Dict[str, Any]) -> TransformOptions:
    preset = params.get('preset') or params.get('presetId')
    if not preset:
        raise InvalidParameterError('preset', preset, message="aesthetic step requires a preset id")
    return resolve_preset_options(preset, params.get('intensity', 'medium'))


def rgb_adjust(params: Dict[str, Any]) -> TransformOptions:
    return TransformOptions.from_dict(params)


ALGORITHM_TRANSLATORS: Dict[str, Callable[[Dict[str, Any]], TransformOptions]] = {
    'clahe': clahe,
    'bilateral': bilateral,
    'unsharp_mask': unsharp_mask,
    'tone_mapping': tone_mapping,
    'color_balance': color_balance,
    'denoising': denoising,
    'dramatic_enhancement': dramatic_enhancement,
    'aesthetic': aesthetic,
    'rgb_adjust': rgb_adjust,
}


def translate_algorithm(name: str, params: Dict[str, Any]) -> TransformOptions:
    """Fragment for one algorithm; unknown names yield an empty fragment."""
    translator = ALGORITHM_TRANSLATORS.get(name)
    if translator is None:
        logger.debug(f"Ignoring unknown algorithm '{name}'")
        return TransformOptions()
    return translator(params or {})


def build_transform_options(config: EditingConfig) -> TransformOptions:
    """
    Merge the fragments of every enabled step in order.

    The result is unscaled and unvalidated.
    """
    merged = TransformOptions()
    for step in config.ordered_algorithms():
        merged = merged.merge(translate_algorithm(step.name, step.params))
    return merged
