"""
Data models for color transforms and editing configurations.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import InvalidParameterError


class Intensity(Enum):
    """How strongly a preset is applied."""
    LIGHT = "light"
    MEDIUM = "medium"
    STRONG = "strong"

    @property
    def multiplier(self) -> float:
        return INTENSITY_MULTIPLIERS[self]

    @classmethod
    def parse(cls, value) -> 'Intensity':
        """Accept an Intensity, its value, or the analysis alias 'heavy'."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.MEDIUM
        text = str(value).strip().lower()
        if text == 'heavy':
            return cls.STRONG
        try:
            return cls(text)
        except ValueError:
            raise InvalidParameterError('intensity', value,
                                        message=f"Unknown intensity: {value}")


INTENSITY_MULTIPLIERS = {
    Intensity.LIGHT: 0.6,
    Intensity.MEDIUM: 1.0,
    Intensity.STRONG: 1.4,
}


class Priority(Enum):
    QUALITY = "quality"
    SPEED = "speed"
    ARTISTIC = "artistic"


class Style(Enum):
    NATURAL = "natural"
    VIBRANT = "vibrant"
    MUTED = "muted"
    WARM = "warm"
    COOL = "cool"


# Legal ranges per TransformOptions field (gamma lower bound is exclusive)
DELTA_RANGE = (-100.0, 100.0)
HUE_RANGE = (-180.0, 180.0)
GAMMA_RANGE = (0.0, 3.0)

# Gamma bounds after intensity scaling
GAMMA_SCALE_BOUNDS = (0.3, 3.0)

_CAMEL_ALIASES = {
    'redChannel': 'red_channel',
    'greenChannel': 'green_channel',
    'blueChannel': 'blue_channel',
}


@dataclass(frozen=True)
class TransformOptions:
    """
    Sparse set of color adjustments.

    A field left as None means "no change", which differs from zero for
    merging and for deciding whether a pipeline stage runs at all.
    """
    brightness: Optional[float] = None      # -100 to 100
    contrast: Optional[float] = None        # -100 to 100
    saturation: Optional[float] = None      # -100 to 100
    hue: Optional[float] = None             # -180 to 180 degrees
    gamma: Optional[float] = None           # (0, 3]
    red_channel: Optional[float] = None     # -100 to 100
    green_channel: Optional[float] = None   # -100 to 100
    blue_channel: Optional[float] = None    # -100 to 100

    @staticmethod
    def field_range(name: str) -> Tuple[float, float]:
        if name == 'hue':
            return HUE_RANGE
        if name == 'gamma':
            return GAMMA_RANGE
        return DELTA_RANGE

    def items(self) -> List[Tuple[str, float]]:
        """Set fields as (name, value) pairs in declaration order."""
        return [(f.name, getattr(self, f.name)) for f in fields(self)
                if getattr(self, f.name) is not None]

    def is_identity(self) -> bool:
        for name, value in self.items():
            if name == 'gamma':
                if value != 1.0:
                    return False
            elif value != 0:
                return False
        return True

    def validate(self) -> 'TransformOptions':
        """
        Check every set field against its legal range.

        Returns:
            self, for chaining

        Raises:
            InvalidParameterError: If any field is out of range or not finite
        """
        for name, value in self.items():
            low, high = self.field_range(name)
            if value != value:  # NaN
                raise InvalidParameterError(name, value, (low, high))
            if name == 'gamma':
                if not (low < value <= high):
                    raise InvalidParameterError(name, value, (low, high))
            elif not (low <= value <= high):
                raise InvalidParameterError(name, value, (low, high))
        return self

    def merge(self, other: 'TransformOptions') -> 'TransformOptions':
        """
        Combine two fragments.

        Linear deltas add, gamma values multiply, and a field absent from
        both stays absent. The result is not range-checked.
        """
        merged = {}
        for f in fields(self):
            a = getattr(self, f.name)
            b = getattr(other, f.name)
            if a is None:
                merged[f.name] = b
            elif b is None:
                merged[f.name] = a
            elif f.name == 'gamma':
                merged[f.name] = a * b
            else:
                merged[f.name] = a + b
        return TransformOptions(**merged)

    def scaled(self, multiplier: float) -> 'TransformOptions':
        """
        Scale every delta and re-clamp it to its legal range.

        Gamma below 1 is pulled toward 1 by (1 - g) * multiplier, above 1
        pushed by (g - 1) * multiplier, bounded to [0.3, 3.0].
        """
        scaled = {}
        for name, value in self.items():
            if name == 'gamma':
                if value < 1.0:
                    g = 1.0 - (1.0 - value) * multiplier
                elif value > 1.0:
                    g = 1.0 + (value - 1.0) * multiplier
                else:
                    g = 1.0
                scaled[name] = min(GAMMA_SCALE_BOUNDS[1], max(GAMMA_SCALE_BOUNDS[0], g))
            else:
                low, high = self.field_range(name)
                scaled[name] = min(high, max(low, value * multiplier))
        return TransformOptions(**scaled)

    def to_dict(self) -> Dict[str, float]:
        return dict(self.items())

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TransformOptions':
        """Build from a dict using snake_case or camelCase channel keys; unknown keys are ignored."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name in known and value is not None:
                try:
                    values[name] = float(value)
                except (TypeError, ValueError):
                    raise InvalidParameterError(name, value)
        return cls(**values)


@dataclass
class AlgorithmConfig:
    """One step of an editing configuration."""
    name: str
    enabled: bool = True
    params: Dict[str, Any] = field(default_factory=dict)
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'enabled': self.enabled,
            'params': dict(self.params),
            'order': self.order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AlgorithmConfig':
        return cls(
            name=data.get('name') or data.get('algorithmName', ''),
            enabled=bool(data.get('enabled', True)),
            params=dict(data.get('params') or data.get('parameters') or {}),
            order=int(data.get('order', 0)),
        )


@dataclass
class EditingConfig:
    """Ordered algorithm list plus global strength, priority and style."""
    algorithms: List[AlgorithmConfig] = field(default_factory=list)
    strength: float = 0.6            # 0 to 1
    priority: Priority = Priority.QUALITY
    style: Style = Style.NATURAL

    def __post_init__(self):
        if isinstance(self.priority, str):
            self.priority = Priority(self.priority)
        if isinstance(self.style, str):
            self.style = Style(self.style)

    def ordered_algorithms(self) -> List[AlgorithmConfig]:
        """Enabled steps sorted by order; ties keep list position."""
        return sorted((a for a in self.algorithms if a.enabled), key=lambda a: a.order)

    def get_algorithm(self, name: str) -> Optional[AlgorithmConfig]:
        for algorithm in self.algorithms:
            if algorithm.name == name:
                return algorithm
        return None

    def has_algorithm(self, name: str) -> bool:
        return self.get_algorithm(name) is not None

    def with_strength(self, strength: float) -> 'EditingConfig':
        return replace(self, strength=strength,
                       algorithms=[AlgorithmConfig(a.name, a.enabled, dict(a.params), a.order)
                                   for a in self.algorithms])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'algorithms': [a.to_dict() for a in self.algorithms],
            'strength': self.strength,
            'priority': self.priority.value,
            'style': self.style.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditingConfig':
        return cls(
            algorithms=[AlgorithmConfig.from_dict(a) for a in data.get('algorithms', [])],
            strength=float(data.get('strength', 0.6)),
            priority=Priority(data.get('priority', Priority.QUALITY.value)),
            style=Style(data.get('style', Style.NATURAL.value)),
        )
