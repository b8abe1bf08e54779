"""
Preset and filter definitions.
"""

from dataclasses import dataclass
from enum import Enum

from ..processing.models import TransformOptions


class FilterCategory(Enum):
    AESTHETIC = "aesthetic"
    CORRECTION = "correction"
    CREATIVE = "creative"
    MOOD = "mood"


@dataclass(frozen=True)
class AestheticPreset:
    """Named bundle of transform deltas representing a look."""
    id: str
    display_name: str
    vibe_tag: str
    options: TransformOptions
    formula_description: str


@dataclass(frozen=True)
class FilterDefinition:
    """A discrete, user-facing filter."""
    id: str
    name: str
    category: FilterCategory
    options: TransformOptions
    description: str
    icon: str = ""
    preview: str = ""


@dataclass(frozen=True)
class FilterRecommendation:
    """A filter with its suitability score (0-100) for one analysis."""
    filter: FilterDefinition
    score: float
    reason: str

    @property
    def filter_id(self) -> str:
        return self.filter.id
