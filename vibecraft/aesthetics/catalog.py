"""
Aesthetic preset and filter catalog.

The catalog is fixed at import time and exposed through read-only
mappings. Iteration order of FILTERS is part of the contract: the
recommender breaks score ties by it.
"""

import logging
from types import MappingProxyType
from typing import Iterable, List, Optional

from ..errors import InvalidParameterError
from ..processing.models import Intensity, TransformOptions
from .models import AestheticPreset, FilterCategory, FilterDefinition

logger = logging.getLogger(__name__)

DEFAULT_PRESET_ID = 'indie-kid'

_PRESETS = [
    AestheticPreset(
        id='soft-girl',
        display_name='Soft Girl',
        vibe_tag='dreamy, ethereal, pastel',
        options=TransformOptions(brightness=25, contrast=-15, saturation=-20, gamma=0.8,
                                 red_channel=15, blue_channel=-10),
        formula_description='Soft = Bright(RGB+64) x LowContrast(0.85) x Desaturate(0.8) x Warm(R+15,B-10)',
    ),
    AestheticPreset(
        id='dark-academia',
        display_name='Dark Academia',
        vibe_tag='moody, intellectual, vintage',
        options=TransformOptions(brightness=-20, contrast=35, saturation=-30, gamma=1.2,
                                 red_channel=10, green_channel=-5),
        formula_description='Academia = Dark(RGB-51) x HighContrast(1.35) x Desaturate(0.7) x Sepia(R+10,G-5)',
    ),
    AestheticPreset(
        id='y2k-cyber',
        display_name='Y2K Cyber',
        vibe_tag='futuristic, neon, digital',
        options=TransformOptions(brightness=15, contrast=45, saturation=60, gamma=0.9,
                                 red_channel=-5, green_channel=15, blue_channel=25),
        formula_description='Cyber = Bright(RGB+38) x MaxContrast(1.45) x HyperSat(1.6) x Neon(B+25,G+15,R-5)',
    ),
    AestheticPreset(
        id='cottagecore',
        display_name='Cottagecore',
        vibe_tag='natural, warm, earthy',
        options=TransformOptions(brightness=10, contrast=15, saturation=25, gamma=0.85,
                                 red_channel=20, green_channel=30, blue_channel=-15),
        formula_description='Cottage = Natural(RGB+26) x Gentle(1.15) x Rich(1.25) x Earthy(R+20,G+30,B-15)',
    ),
    AestheticPreset(
        id='baddie-vibes',
        display_name='Baddie Vibes',
        vibe_tag='bold, confident, sharp',
        options=TransformOptions(brightness=5, contrast=50, saturation=40, gamma=1.1,
                                 red_channel=30, green_channel=-10, blue_channel=5),
        formula_description='Baddie = Drama(RGB+13) x MaxContrast(1.5) x Bold(1.4) x Red(R+30,G-10)',
    ),
    AestheticPreset(
        id='film-aesthetic',
        display_name='Film Aesthetic',
        vibe_tag='vintage, cinematic, nostalgic',
        options=TransformOptions(brightness=-5, contrast=25, saturation=-10, gamma=0.95,
                                 red_channel=15, green_channel=5, blue_channel=-20),
        formula_description='Film = Vintage(RGB-13) x FilmContrast(1.25) x Faded(0.9) x Warm(R+15,B-20)',
    ),
    AestheticPreset(
        id='grunge-edge',
        display_name='Grunge Edge',
        vibe_tag='dark, edgy, alternative',
        options=TransformOptions(brightness=-30, contrast=40, saturation=-40, gamma=1.3,
                                 red_channel=-5, green_channel=-10, blue_channel=10),
        formula_description='Grunge = Dark(RGB-77) x Sharp(1.4) x Desaturate(0.6) x Cold(R-5,G-10,B+10)',
    ),
    AestheticPreset(
        id='indie-kid',
        display_name='Indie Kid',
        vibe_tag='artistic, unique, colorful',
        options=TransformOptions(brightness=20, contrast=30, saturation=35, gamma=0.88,
                                 red_channel=10, green_channel=20, blue_channel=15),
        formula_description='Indie = Creative(RGB+51) x Artistic(1.3) x Colorful(1.35) x Rainbow(R+10,G+20,B+15)',
    ),
]

_FILTERS = [
    FilterDefinition(
        id='portrait-warm-glow', name='Portrait Warm Glow', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=12, contrast=8, saturation=5, gamma=0.92,
                                 red_channel=12, blue_channel=-8),
        description='Warm, flattering light for portraits', icon='🌅',
        preview='Warm skin tones, soft highlights'),
    FilterDefinition(
        id='soft-girl-aesthetic', name='Soft Girl', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=20, contrast=-10, saturation=-15, gamma=0.85,
                                 red_channel=10, blue_channel=-8),
        description='Dreamy, ethereal, pastel vibes', icon='🌸',
        preview='Soft, dreamy, pastel tones'),
    FilterDefinition(
        id='baddie-vibes', name='Baddie Vibes', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=5, contrast=35, saturation=25, gamma=1.1,
                                 red_channel=20, green_channel=-8),
        description='Bold, confident, dramatic look', icon='💋',
        preview='High contrast, bold colors'),
    FilterDefinition(
        id='landscape-vibrant', name='Vibrant Landscape', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=8, contrast=20, saturation=30, gamma=0.95,
                                 green_channel=12, blue_channel=15),
        description='Rich, colorful nature enhancement', icon='🏞️',
        preview='Enhanced blues and greens'),
    FilterDefinition(
        id='cottagecore-natural', name='Cottagecore', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=10, contrast=12, saturation=20, gamma=0.88,
                                 red_channel=15, green_channel=20, blue_channel=-10),
        description='Natural, earthy, cozy vibes', icon='🌿',
        preview='Warm, earthy tones'),
    FilterDefinition(
        id='film-aesthetic', name='Film Aesthetic', category=FilterCategory.MOOD,
        options=TransformOptions(brightness=-3, contrast=18, saturation=-8, gamma=0.98,
                                 red_channel=12, blue_channel=-15),
        description='Vintage cinematic look', icon='📸',
        preview='Vintage film grain feel'),
    FilterDefinition(
        id='dark-academia', name='Dark Academia', category=FilterCategory.MOOD,
        options=TransformOptions(brightness=-15, contrast=28, saturation=-20, gamma=1.15,
                                 red_channel=8, green_channel=-5),
        description='Moody, intellectual atmosphere', icon='📚',
        preview='Dark, scholarly mood'),
    FilterDefinition(
        id='y2k-cyber', name='Y2K Cyber', category=FilterCategory.CREATIVE,
        options=TransformOptions(brightness=15, contrast=30, saturation=40, gamma=0.9,
                                 red_channel=-5, green_channel=10, blue_channel=20),
        description='Futuristic digital aesthetic', icon='💫',
        preview='Neon, digital vibes'),
    FilterDefinition(
        id='natural-enhance', name='Natural Enhance', category=FilterCategory.CORRECTION,
        options=TransformOptions(brightness=8, contrast=12, saturation=10, gamma=0.95),
        description='Subtle quality improvement', icon='✨',
        preview='Natural enhancement'),
    FilterDefinition(
        id='sharp-crisp', name='Sharp & Crisp', category=FilterCategory.CORRECTION,
        options=TransformOptions(brightness=5, contrast=25, saturation=8, gamma=1.05),
        description='Enhanced clarity and definition', icon='🔪',
        preview='Clear, sharp details'),
    FilterDefinition(
        id='indie-kid', name='Indie Kid', category=FilterCategory.CREATIVE,
        options=TransformOptions(brightness=15, contrast=20, saturation=28, gamma=0.92,
                                 red_channel=8, green_channel=12, blue_channel=10),
        description='Artistic, unique, colorful', icon='🎨',
        preview='Artistic color grading'),
    FilterDefinition(
        id='food-appetizing', name='Appetizing Food', category=FilterCategory.AESTHETIC,
        options=TransformOptions(brightness=10, contrast=15, saturation=35, gamma=0.9,
                                 red_channel=15, green_channel=8),
        description='Makes food look delicious', icon='🍽️',
        preview='Rich, appetizing colors'),
    FilterDefinition(
        id='golden-hour', name='Golden Hour', category=FilterCategory.MOOD,
        options=TransformOptions(brightness=15, contrast=10, saturation=12, gamma=0.88,
                                 red_channel=20, green_channel=8, blue_channel=-12),
        description='Warm sunset lighting effect', icon='🌅',
        preview='Warm golden lighting'),
    FilterDefinition(
        id='cool-tone', name='Cool Tone', category=FilterCategory.MOOD,
        options=TransformOptions(brightness=5, contrast=18, saturation=10, gamma=1.02,
                                 red_channel=-8, blue_channel=15),
        description='Modern cool temperature', icon='❄️',
        preview='Cool, modern feel'),
    FilterDefinition(
        id='retro-warm', name='Retro Warm', category=FilterCategory.MOOD,
        options=TransformOptions(brightness=8, contrast=15, saturation=-5, gamma=0.9,
                                 red_channel=18, green_channel=5, blue_channel=-15),
        description='Nostalgic warm vintage look', icon='📼',
        preview='Retro warm tones'),
]

PRESETS = MappingProxyType({preset.id: preset for preset in _PRESETS})
FILTERS = MappingProxyType({f.id: f for f in _FILTERS})


def get_preset(preset_id: str) -> AestheticPreset:
    """
    Look up a preset by id.

    Raises:
        InvalidParameterError: If the id is not in the catalog
    """
    try:
        return PRESETS[preset_id]
    except KeyError:
        raise InvalidParameterError('preset_id', preset_id,
                                    message=f"Unknown aesthetic preset: {preset_id}")


def list_presets() -> List[AestheticPreset]:
    return list(PRESETS.values())


def get_filter(filter_id: str) -> FilterDefinition:
    try:
        return FILTERS[filter_id]
    except KeyError:
        raise InvalidParameterError('filter_id', filter_id,
                                    message=f"Unknown filter: {filter_id}")


def list_filters() -> List[FilterDefinition]:
    return list(FILTERS.values())


def get_filters_by_category(category) -> List[FilterDefinition]:
    """Catalog filters in one category, in catalog order."""
    category = FilterCategory(category) if isinstance(category, str) else category
    return [f for f in FILTERS.values() if f.category == category]


def _lower_all(values: Optional[Iterable[str]]) -> List[str]:
    return [str(v).strip().lower() for v in (values or [])]


def select_aesthetic_for_content(image_type: Optional[str], mood: Optional[str],
                                 subjects: Optional[Iterable[str]]) -> str:
    """
    Pick a preset id from content signals.

    Deterministic and total: every input maps to a catalog id, falling
    back to DEFAULT_PRESET_ID.

    Args:
        image_type: Analyzer image type (portrait, landscape, ...)
        mood: Analyzer mood
        subjects: Detected object labels

    Returns:
        Preset id
    """
    image_type = (image_type or '').strip().lower()
    mood = (mood or '').strip().lower()
    subjects = _lower_all(subjects)

    if 'person' in subjects or 'face' in subjects:
        if mood in ('warm', 'happy'):
            return 'soft-girl'
        if mood in ('confident', 'bold'):
            return 'baddie-vibes'
        if mood in ('moody', 'serious'):
            return 'dark-academia'

    if image_type == 'landscape' or 'nature' in subjects:
        return 'cottagecore'

    if image_type == 'architecture' or any(s in subjects for s in ('urban', 'architecture', 'building')):
        return 'y2k-cyber'

    if mood in ('vintage', 'nostalgic'):
        return 'film-aesthetic'

    if mood in ('dark', 'edgy'):
        return 'grunge-edge'

    return DEFAULT_PRESET_ID


def intensity_for_analysis(analysis) -> Intensity:
    """Choose preset intensity from technical quality and mood."""
    overall = analysis.technical_quality.overall
    mood = (analysis.mood or '').lower()
    if overall > 0.8:
        return Intensity.LIGHT
    if overall < 0.4 or mood in ('bold', 'dramatic'):
        return Intensity.STRONG
    if mood in ('soft', 'dreamy'):
        return Intensity.LIGHT
    return Intensity.MEDIUM


def apply_intensity(options: TransformOptions, intensity) -> TransformOptions:
    """Scale a preset's deltas by the intensity multiplier and re-clamp."""
    return options.scaled(Intensity.parse(intensity).multiplier)


def resolve_preset_options(preset_id: str, intensity='medium') -> TransformOptions:
    return apply_intensity(get_preset(preset_id).options, intensity)


def trendiness_score(preset_id: str, options: TransformOptions, quality: float = 0.0) -> float:
    """
    Heuristic 0-100 rating of how on-trend an edit looks.

    Args:
        preset_id: Preset that produced the options
        options: Final options applied
        quality: Overall technical quality of the source, 0-1
    """
    score = 70.0
    score += 3 * len(options.items())
    score += 15 if preset_id.startswith('y2k') else 10
    score += 10 * max(0.0, min(1.0, quality))
    return min(100.0, score)
