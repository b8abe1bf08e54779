"""
Aesthetic presets, filters and content-driven recommendations.
"""

from .models import AestheticPreset, FilterCategory, FilterDefinition, FilterRecommendation
from .catalog import (
    PRESETS,
    FILTERS,
    DEFAULT_PRESET_ID,
    get_preset,
    list_presets,
    get_filter,
    list_filters,
    get_filters_by_category,
    select_aesthetic_for_content,
    intensity_for_analysis,
    apply_intensity,
    resolve_preset_options,
    trendiness_score,
)
from .recommender import FilterRecommender, recommend_filters, score_filter

__all__ = [
    'AestheticPreset',
    'FilterCategory',
    'FilterDefinition',
    'FilterRecommendation',
    'PRESETS',
    'FILTERS',
    'DEFAULT_PRESET_ID',
    'get_preset',
    'list_presets',
    'get_filter',
    'list_filters',
    'get_filters_by_category',
    'select_aesthetic_for_content',
    'intensity_for_analysis',
    'apply_intensity',
    'resolve_preset_options',
    'trendiness_score',
    'FilterRecommender',
    'recommend_filters',
    'score_filter',
]
