"""
Content-analysis result models.

AnalysisResult is what the content-analysis collaborator returns for an
image. Raw provider output is untrusted; from_dict() sanitizes it into a
well-formed, immutable result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

IMAGE_TYPES = ('portrait', 'landscape', 'food', 'nature', 'architecture', 'abstract', 'other')
EDITING_INTENSITIES = ('light', 'medium', 'heavy')

DEFAULT_QUALITY = 0.7
DEFAULT_CONFIDENCE = 0.8


def _unit(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:
        return default
    return max(0.0, min(1.0, number))


def _strings(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value if item is not None and str(item).strip())


@dataclass(frozen=True)
class TechnicalQuality:
    """Technical scores reported by the analyzer, each in [0, 1]."""
    exposure: float = DEFAULT_QUALITY
    sharpness: float = DEFAULT_QUALITY
    composition: float = DEFAULT_QUALITY
    overall: float = DEFAULT_QUALITY

    @classmethod
    def from_dict(cls, data: Any) -> 'TechnicalQuality':
        if not isinstance(data, dict):
            return cls()
        return cls(
            exposure=_unit(data.get('exposure'), DEFAULT_QUALITY),
            sharpness=_unit(data.get('sharpness'), DEFAULT_QUALITY),
            composition=_unit(data.get('composition'), DEFAULT_QUALITY),
            overall=_unit(data.get('overall'), DEFAULT_QUALITY),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            'exposure': self.exposure,
            'sharpness': self.sharpness,
            'composition': self.composition,
            'overall': self.overall,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Structured classification of one image."""
    image_type: str = 'other'
    confidence: float = DEFAULT_CONFIDENCE
    technical_quality: TechnicalQuality = field(default_factory=TechnicalQuality)
    detected_objects: Tuple[str, ...] = ()
    mood: str = 'neutral'
    suggested_improvements: Tuple[str, ...] = ()
    editing_intensity: str = 'medium'

    def __post_init__(self):
        # Lists passed by callers are frozen into tuples
        object.__setattr__(self, 'detected_objects', tuple(self.detected_objects))
        object.__setattr__(self, 'suggested_improvements', tuple(self.suggested_improvements))

    @property
    def subjects(self) -> Tuple[str, ...]:
        return self.detected_objects

    @property
    def overall_quality(self) -> float:
        return self.technical_quality.overall

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisResult':
        """
        Sanitize raw analyzer output.

        Accepts both camelCase (provider JSON) and snake_case (persisted)
        keys. Missing or malformed values fall back to neutral defaults.

        Args:
            data: Decoded JSON object

        Returns:
            AnalysisResult
        """
        if not isinstance(data, dict):
            logger.warning("Analysis payload is not an object, using defaults")
            data = {}

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        image_type = str(pick('imageType', 'image_type', default='other')).strip().lower()
        if image_type not in IMAGE_TYPES:
            logger.debug(f"Unknown image type '{image_type}', using 'other'")
            image_type = 'other'

        intensity = str(pick('editingIntensity', 'editing_intensity', default='medium')).strip().lower()
        if intensity not in EDITING_INTENSITIES:
            intensity = 'medium'

        mood = str(pick('mood', default='neutral')).strip().lower() or 'neutral'

        return cls(
            image_type=image_type,
            confidence=_unit(pick('confidence'), DEFAULT_CONFIDENCE),
            technical_quality=TechnicalQuality.from_dict(
                pick('technicalQuality', 'technical_quality', default={})),
            detected_objects=_strings(pick('detectedObjects', 'detected_objects', default=[])),
            mood=mood,
            suggested_improvements=_strings(
                pick('suggestedImprovements', 'suggested_improvements', default=[])),
            editing_intensity=intensity,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'image_type': self.image_type,
            'confidence': self.confidence,
            'technical_quality': self.technical_quality.to_dict(),
            'detected_objects': list(self.detected_objects),
            'mood': self.mood,
            'suggested_improvements': list(self.suggested_improvements),
            'editing_intensity': self.editing_intensity,
        }
