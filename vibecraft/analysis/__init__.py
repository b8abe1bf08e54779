"""
Image analysis: content classification and quality assessment.
"""

from .models import AnalysisResult, TechnicalQuality
from .quality_assessor import QualityAssessor, QualityComparison, QualityMetrics, QUALITY_WEIGHTS
from .vision_llm_analyzer import (
    ContentAnalyzer,
    StaticAnalyzer,
    VisionLLMAnalyzer,
    VisionLLMProvider,
    RateLimiter,
    parse_analysis_response,
)

__all__ = [
    'AnalysisResult',
    'TechnicalQuality',
    'QualityAssessor',
    'QualityComparison',
    'QualityMetrics',
    'QUALITY_WEIGHTS',
    'ContentAnalyzer',
    'StaticAnalyzer',
    'VisionLLMAnalyzer',
    'VisionLLMProvider',
    'RateLimiter',
    'parse_analysis_response',
]
