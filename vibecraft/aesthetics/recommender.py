"""
Content-aware filter recommendations.

Scores every catalog filter against an AnalysisResult with additive
heuristic rules. Pure: no I/O, no randomness, output depends only on the
analysis and the catalog order.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..analysis.models import AnalysisResult
from .catalog import list_filters
from .models import FilterCategory, FilterDefinition, FilterRecommendation

logger = logging.getLogger(__name__)

BASE_SCORE = 50
MIN_SCORE = 40
MAX_RESULTS = 8


def _has(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)


def score_filter(filter_def: FilterDefinition, analysis: AnalysisResult) -> float:
    """
    Suitability of one filter for one analysis, clamped to [0, 100].

    Args:
        filter_def: Catalog filter
        analysis: Content analysis of the image

    Returns:
        Score in [0, 100]
    """
    score = BASE_SCORE
    fid = filter_def.id
    subjects = [s.lower() for s in analysis.detected_objects]
    image_type = analysis.image_type
    mood = analysis.mood
    quality = analysis.technical_quality.overall

    # Content
    if image_type == 'portrait' or 'person' in subjects or 'face' in subjects:
        if _has(fid, 'portrait', 'skin', 'warm'):
            score += 25
        if _has(fid, 'dramatic', 'baddie'):
            score += 15
        if _has(fid, 'soft'):
            score += 20

    if image_type == 'landscape' or 'nature' in subjects or 'sky' in subjects:
        if _has(fid, 'landscape', 'nature', 'vibrant'):
            score += 25
        if _has(fid, 'cottagecore', 'natural'):
            score += 20

    if 'food' in subjects:
        if _has(fid, 'food', 'warm', 'vibrant'):
            score += 30

    if 'architecture' in subjects or 'building' in subjects:
        if _has(fid, 'urban', 'dramatic', 'cyber'):
            score += 20

    # Mood
    if mood in ('warm', 'cozy') and _has(fid, 'warm', 'soft', 'cottagecore'):
        score += 20
    if mood in ('cool', 'modern') and _has(fid, 'cool', 'cyber', 'crisp'):
        score += 20
    if mood in ('dramatic', 'bold') and _has(fid, 'dramatic', 'baddie', 'high-contrast'):
        score += 25
    if mood in ('vintage', 'nostalgic') and _has(fid, 'film', 'vintage', 'retro'):
        score += 25
    if mood in ('soft', 'dreamy') and _has(fid, 'soft', 'dreamy', 'pastel'):
        score += 20

    # Technical quality
    if quality < 0.4:
        if filter_def.category == FilterCategory.CORRECTION or _has(fid, 'enhance', 'sharp'):
            score += 20
    if quality > 0.8:
        if filter_def.category in (FilterCategory.CREATIVE, FilterCategory.AESTHETIC):
            score += 15

    # Penalties
    if image_type == 'portrait' and 'landscape' in fid:
        score -= 15
    if 'person' in subjects and 'harsh' in fid:
        score -= 10

    return float(max(0, min(100, score)))


def recommendation_reason(analysis: AnalysisResult, score: float) -> str:
    subjects = [s.lower() for s in analysis.detected_objects]
    if score >= 90:
        return f"Perfect match for {analysis.image_type} with {analysis.mood} mood"
    if score >= 80:
        if 'person' in subjects:
            return "Excellent for portrait enhancement"
        if 'nature' in subjects:
            return "Great for landscape photography"
        return "Highly suitable for this image style"
    if score >= 70:
        return f"Good fit for {analysis.image_type} images"
    if score >= 60:
        return f"Suitable for {analysis.mood} mood enhancement"
    if score >= 50:
        return "Works well with detected elements"
    return "Decent option for this image"


class FilterRecommender:
    """Ranks catalog filters for an analyzed image."""

    def __init__(self, config: Optional[Dict] = None,
                 filters: Optional[Sequence[FilterDefinition]] = None):
        """
        Args:
            config: Optional 'recommender' settings (min_score, max_results)
            filters: Filters to rank; defaults to the catalog in catalog order
        """
        config = config or {}
        self.min_score = config.get('min_score', MIN_SCORE)
        self.max_results = config.get('max_results', MAX_RESULTS)
        self.filters = list(filters) if filters is not None else list_filters()

    def recommend(self, analysis: AnalysisResult) -> List[FilterRecommendation]:
        """
        Top filters for the analysis, best first.

        Filters scoring below min_score are dropped. Ties keep catalog
        order (sorted() is stable).
        """
        scored = []
        for filter_def in self.filters:
            score = score_filter(filter_def, analysis)
            if score >= self.min_score:
                scored.append(FilterRecommendation(
                    filter=filter_def,
                    score=score,
                    reason=recommendation_reason(analysis, score),
                ))

        ranked = sorted(scored, key=lambda rec: rec.score, reverse=True)[:self.max_results]
        logger.debug(f"Recommended {len(ranked)} filters for {analysis.image_type}: "
                     f"{[(r.filter_id, r.score) for r in ranked]}")
        return ranked

    def by_category(self, analysis: AnalysisResult, category) -> List[FilterRecommendation]:
        category = FilterCategory(category) if isinstance(category, str) else category
        return [rec for rec in self.recommend(analysis) if rec.filter.category == category]

    def for_subjects(self, subjects: Sequence[str], analysis: AnalysisResult) -> List[FilterRecommendation]:
        """Recommendations matching the given subjects, plus any scoring 70 or more."""
        subjects = [s.lower() for s in subjects]
        matches = []
        for rec in self.recommend(analysis):
            fid = rec.filter_id
            if (('person' in subjects and 'portrait' in fid)
                    or ('food' in subjects and 'food' in fid)
                    or ('nature' in subjects and 'landscape' in fid)
                    or ('architecture' in subjects and 'urban' in fid)
                    or rec.score >= 70):
                matches.append(rec)
        return matches


def recommend_filters(analysis: AnalysisResult) -> List[FilterRecommendation]:
    """Top 8 catalog filters for the analysis with default thresholds."""
    return FilterRecommender().recommend(analysis)
