"""
Content analysis through vision-capable LLMs.

The orchestrator only depends on ContentAnalyzer.analyze(image_bytes).
VisionLLMAnalyzer implements it on top of a provider (Gemini by
default), enforcing request quotas locally and turning the model's
free-form reply into a sanitized AnalysisResult.
"""

import io
import json
import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from PIL import Image

from ..errors import AnalysisError, AnalysisErrorKind, DecodeError
from .models import AnalysisResult

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r'\{[\s\S]*\}')


class ContentAnalyzer(ABC):
    """Boundary for the content-analysis collaborator."""

    @abstractmethod
    def analyze(self, image_bytes: bytes) -> AnalysisResult:
        """
        Classify an encoded image.

        Raises:
            AnalysisError: With kind TRANSIENT, RATE_LIMITED or UNRECOVERABLE
        """
        pass

    def get_remaining_quota(self) -> Dict[str, int]:
        return {}


class StaticAnalyzer(ContentAnalyzer):
    """Returns a fixed analysis for every image."""

    def __init__(self, result: Optional[AnalysisResult] = None):
        self.result = result or AnalysisResult()

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> 'StaticAnalyzer':
        with open(path, 'r') as f:
            return cls(AnalysisResult.from_dict(json.load(f)))

    def analyze(self, image_bytes: bytes) -> AnalysisResult:
        return self.result


class VisionLLMProvider:
    """Base class for vision-capable LLM providers."""

    def __init__(self, config: Dict):
        """Initialize the provider with configuration."""
        self.config = config
        self.name = "base"
        self.max_dimension = config.get('max_dimension', 1024)

    def prepare_image(self, image_bytes: bytes) -> Image.Image:
        """
        Decode and downscale an image for upload.

        Args:
            image_bytes: Encoded image

        Returns:
            RGB PIL image no larger than max_dimension on either side
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (OSError, ValueError) as e:
            raise DecodeError(f"Could not decode image for analysis: {e}") from e

        if img.mode == 'RGBA':
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[3])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        img.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
        return img

    def analyze_image(self, image: Image.Image, prompt: str) -> Dict:
        """
        Analyze an image with a specific prompt.

        Args:
            image: Image returned by prepare_image()
            prompt: Analysis prompt

        Returns:
            Dictionary with at least a 'content' text field

        Raises:
            AnalysisError: On provider failures
        """
        raise NotImplementedError("Subclasses must implement analyze_image")


class AnalysisPrompts:
    """Prompts sent to the vision model."""

    CONTENT_ANALYSIS = """Analyze this image and provide a detailed assessment in JSON format. Return ONLY valid JSON with the following structure:

{
  "imageType": "portrait|landscape|food|nature|architecture|abstract|other",
  "confidence": 0.0-1.0,
  "technicalQuality": {
    "exposure": 0.0-1.0,
    "sharpness": 0.0-1.0,
    "composition": 0.0-1.0,
    "overall": 0.0-1.0
  },
  "detectedObjects": ["object1", "object2", "..."],
  "mood": "vibrant|calm|dramatic|soft|energetic|moody|neutral",
  "suggestedImprovements": ["improvement1", "improvement2", "..."],
  "editingIntensity": "light|medium|heavy"
}

Guidelines:
- imageType: Classify the main subject/category
- confidence: How certain you are about the classification
- technicalQuality: Rate each aspect from 0.0 (poor) to 1.0 (excellent)
- detectedObjects: List main objects/subjects in the image
- mood: Overall emotional tone of the image
- suggestedImprovements: Specific areas that could be enhanced
- editingIntensity: Recommended processing level based on current quality

Focus on actionable insights for automated image enhancement."""


class RateLimiter:
    """Sliding one-minute window plus a per-calendar-day counter."""

    def __init__(self, requests_per_minute: int = 15, requests_per_day: int = 1500,
                 clock: Callable[[], float] = time.time):
        self.requests_per_minute = requests_per_minute
        self.requests_per_day = requests_per_day
        self.clock = clock
        self._recent = deque()
        self._day = None
        self._daily_count = 0
        self._lock = threading.Lock()

    def _refresh(self, now: float):
        while self._recent and now - self._recent[0] >= 60.0:
            self._recent.popleft()
        today = datetime.fromtimestamp(now).date()
        if today != self._day:
            self._day = today
            self._daily_count = 0

    def acquire(self):
        """
        Reserve one request slot.

        Raises:
            AnalysisError: RATE_LIMITED with retry_after seconds when a quota is spent
        """
        with self._lock:
            now = self.clock()
            self._refresh(now)
            if self._daily_count >= self.requests_per_day:
                raise AnalysisError("Daily API quota exceeded",
                                    AnalysisErrorKind.RATE_LIMITED, retry_after=3600.0)
            if len(self._recent) >= self.requests_per_minute:
                wait = 60.0 - (now - self._recent[0])
                raise AnalysisError(f"Rate limit exceeded, retry in {wait:.0f}s",
                                    AnalysisErrorKind.RATE_LIMITED, retry_after=max(wait, 1.0))
            self._recent.append(now)
            self._daily_count += 1

    def remaining(self) -> Dict[str, int]:
        with self._lock:
            self._refresh(self.clock())
            return {
                'minute': max(0, self.requests_per_minute - len(self._recent)),
                'day': max(0, self.requests_per_day - self._daily_count),
            }


def parse_analysis_response(text: str) -> AnalysisResult:
    """
    Extract the JSON object from a model reply and sanitize it.

    Raises:
        AnalysisError: TRANSIENT if the reply holds no parseable object
    """
    match = _JSON_OBJECT.search(text or '')
    if not match:
        raise AnalysisError("Model reply contained no JSON object", AnalysisErrorKind.TRANSIENT)
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Model reply was not valid JSON: {e}", AnalysisErrorKind.TRANSIENT) from e
    return AnalysisResult.from_dict(data)


class VisionLLMAnalyzer(ContentAnalyzer):
    """
    Main analyzer class that coordinates vision LLM analysis.
    """

    def __init__(self, config: Dict, provider: Optional[VisionLLMProvider] = None,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            config: 'analysis' settings (provider, model, api_key, quotas)
            provider: Preconfigured provider; built from config when None
            clock: Time source for rate limiting
        """
        self.config = config
        self.provider = provider or self._init_provider()
        self.rate_limiter = RateLimiter(
            requests_per_minute=config.get('requests_per_minute', 15),
            requests_per_day=config.get('requests_per_day', 1500),
            clock=clock,
        )

    def _init_provider(self) -> VisionLLMProvider:
        provider_name = self.config.get('provider', 'gemini')

        # Import providers lazily so the SDK is only needed when used
        if provider_name == 'gemini':
            from .vision_providers.gemini_vision import GeminiVisionProvider
            return GeminiVisionProvider(self.config)
        raise ValueError(f"Unknown vision provider: {provider_name}")

    def analyze(self, image_bytes: bytes) -> AnalysisResult:
        self.rate_limiter.acquire()
        start = time.time()
        try:
            image = self.provider.prepare_image(image_bytes)
        except DecodeError as e:
            raise AnalysisError(str(e), AnalysisErrorKind.UNRECOVERABLE) from e

        response = self.provider.analyze_image(image, AnalysisPrompts.CONTENT_ANALYSIS)
        result = parse_analysis_response(response.get('content', ''))

        logger.info(f"Analyzed image as {result.image_type} ({result.mood}, "
                    f"quality {result.technical_quality.overall:.2f}) in {time.time() - start:.2f}s")
        return result

    def get_remaining_quota(self) -> Dict[str, int]:
        return self.rate_limiter.remaining()
