"""
Enhancement engine.

Resolves an explicit editing config, a preset id, or the analysis itself
into validated TransformOptions, flattens the linear stages into one
ColorMatrix, applies it to the pixel buffer and finishes with the gamma
pass. The input buffer is never modified and the same inputs always
produce bit-identical output.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..aesthetics.catalog import (
    DEFAULT_PRESET_ID,
    intensity_for_analysis,
    resolve_preset_options,
    select_aesthetic_for_content,
)
from ..analysis.models import AnalysisResult
from ..errors import InvalidParameterError
from ..io.codec import BitmapCodec, PillowCodec, as_rgba
from .algorithms import build_transform_options
from .color.color_matrix import ColorMatrix, from_options
from .color.effects import EFFECT_MATRICES
from .models import EditingConfig, Intensity, TransformOptions
from .pixel_math import apply_gamma

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, bytearray, np.ndarray]

_SUMMARY_LABELS = {
    'brightness': 'Brightness',
    'contrast': 'Contrast',
    'saturation': 'Saturation',
    'hue': 'Hue',
    'red_channel': 'Red channel',
    'green_channel': 'Green channel',
    'blue_channel': 'Blue channel',
}


@dataclass
class EnhancedImage:
    """Result of one enhancement."""
    pixels: np.ndarray
    options: TransformOptions
    matrix: ColorMatrix
    preset_id: Optional[str] = None
    intensity: Optional[str] = None
    processing_time: float = 0.0

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def encode(self, codec: Optional[BitmapCodec] = None, fmt: str = 'PNG', quality: int = 92) -> bytes:
        return (codec or PillowCodec()).encode(self.pixels, fmt, quality)


@dataclass
class BatchItem:
    """One unit of work for batch_enhance()."""
    image: Any
    analysis: Optional[AnalysisResult] = None
    config: Optional[EditingConfig] = None
    preset_id: Optional[str] = None
    intensity: Optional[str] = None


@dataclass
class BatchItemResult:
    index: int
    image: Optional[EnhancedImage] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


def get_editing_summary(options: TransformOptions) -> List[str]:
    """Human-readable list of the adjustments an options set applies."""
    summary = []
    for name, value in options.items():
        if name == 'gamma':
            if value != 1.0:
                summary.append(f"Gamma {value:.2f}")
        elif value:
            unit = '°' if name == 'hue' else ''
            summary.append(f"{_SUMMARY_LABELS[name]} {value:+g}{unit}")
    return summary or ['No adjustments']


class EnhancementEngine:
    """Applies color transforms to pixel buffers."""

    def __init__(self, codec: Optional[BitmapCodec] = None, config: Optional[Dict] = None):
        """
        Args:
            codec: Codec used for byte inputs (defaults to PillowCodec)
            config: Optional 'enhancement' settings (max_workers, default_intensity)
        """
        self.codec = codec or PillowCodec()
        self.config = config or {}
        self.max_workers = self.config.get('max_workers', 4)
        self.default_intensity = self.config.get('default_intensity', Intensity.MEDIUM.value)

    def load_pixels(self, image: ImageInput) -> np.ndarray:
        """Decode bytes or copy an array into a fresh RGBA buffer."""
        if isinstance(image, (bytes, bytearray)):
            return self.codec.decode(bytes(image))
        return as_rgba(image)

    def resolve_options(self, analysis: Optional[AnalysisResult] = None,
                        config: Optional[EditingConfig] = None,
                        preset_id: Optional[str] = None,
                        intensity: Optional[str] = None) -> tuple:
        """
        Work out the TransformOptions for one enhancement.

        Args:
            analysis: Content analysis, used for auto-selection
            config: Explicit editing config
            preset_id: Catalog preset id
            intensity: Preset intensity (light, medium, strong)

        Returns:
            (validated TransformOptions, preset id or None, intensity value or None)

        Raises:
            InvalidParameterError: On unknown presets, bad intensities or
                deltas outside their legal ranges
        """
        if config is not None and preset_id is not None:
            raise InvalidParameterError('preset_id', preset_id,
                                        message="Pass either an editing config or a preset id, not both")

        if config is not None:
            if not 0.0 <= config.strength <= 1.0:
                raise InvalidParameterError('strength', config.strength, (0.0, 1.0))
            merged = build_transform_options(config).validate()
            options = merged.scaled(config.strength)
            return options.validate(), None, None

        if preset_id is None:
            if analysis is not None:
                preset_id = select_aesthetic_for_content(
                    analysis.image_type, analysis.mood, analysis.detected_objects)
                if intensity is None:
                    intensity = intensity_for_analysis(analysis).value
            else:
                preset_id = DEFAULT_PRESET_ID

        level = Intensity.parse(intensity or self.default_intensity)
        options = resolve_preset_options(preset_id, level)
        return options.validate(), preset_id, level.value

    def apply(self, pixels: np.ndarray, options: TransformOptions) -> tuple:
        """
        Apply validated options to an RGBA buffer.

        Returns:
            (new uint8 buffer, composed matrix)
        """
        options.validate()
        matrix = from_options(options)
        if matrix.is_identity():
            result = pixels.copy()
        else:
            result = matrix.apply_to_buffer(pixels)
        if options.gamma is not None and options.gamma != 1.0:
            result = apply_gamma(result, options.gamma)
        return result, matrix

    def enhance(self, image: ImageInput, analysis: Optional[AnalysisResult] = None,
                config: Optional[EditingConfig] = None, preset_id: Optional[str] = None,
                intensity: Optional[str] = None) -> EnhancedImage:
        """
        Enhance one image.

        With an explicit config its algorithms are translated and merged;
        with a preset id the preset is scaled by intensity; with neither,
        the preset is chosen from the analysis.

        Args:
            image: Encoded bytes or a pixel array (never modified)
            analysis: Content analysis of the image
            config: Explicit editing config
            preset_id: Catalog preset id
            intensity: Preset intensity

        Returns:
            EnhancedImage with the same dimensions as the input

        Raises:
            DecodeError: If byte input cannot be decoded
            InvalidParameterError: If parameters are out of range
        """
        start = time.time()
        options, used_preset, used_intensity = self.resolve_options(analysis, config, preset_id, intensity)
        pixels = self.load_pixels(image)
        result, matrix = self.apply(pixels, options)
        elapsed = time.time() - start

        logger.info(f"Enhanced {pixels.shape[1]}x{pixels.shape[0]} image "
                    f"(preset={used_preset or 'config'}) in {elapsed:.3f}s: "
                    f"{', '.join(get_editing_summary(options))}")
        return EnhancedImage(
            pixels=result,
            options=options,
            matrix=matrix,
            preset_id=used_preset,
            intensity=used_intensity,
            processing_time=elapsed,
        )

    def apply_effect(self, image: ImageInput, effect: str) -> EnhancedImage:
        """Apply a fixed effect matrix (grayscale, sepia, invert, vintage)."""
        try:
            matrix = EFFECT_MATRICES[effect]()
        except KeyError:
            raise InvalidParameterError('effect', effect, message=f"Unknown effect: {effect}")
        pixels = self.load_pixels(image)
        return EnhancedImage(pixels=matrix.apply_to_buffer(pixels), options=TransformOptions(),
                             matrix=matrix, preset_id=effect)

    def batch_enhance(self, items: Sequence[BatchItem],
                      max_workers: Optional[int] = None) -> List[BatchItemResult]:
        """
        Enhance independent images concurrently.

        A failing item is reported in its own result and does not affect
        the others. Results are returned in input order.
        """
        def run(index: int, item: BatchItem) -> BatchItemResult:
            try:
                enhanced = self.enhance(item.image, item.analysis, item.config,
                                        item.preset_id, item.intensity)
                return BatchItemResult(index=index, image=enhanced)
            except Exception as e:
                logger.error(f"Batch item {index} failed: {e}")
                return BatchItemResult(index=index, error=e)

        workers = max_workers or self.max_workers
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run, i, item) for i, item in enumerate(items)]
            results = [f.result() for f in futures]

        failed = sum(1 for r in results if not r.success)
        logger.info(f"Batch enhanced {len(results) - failed}/{len(results)} images")
        return results
