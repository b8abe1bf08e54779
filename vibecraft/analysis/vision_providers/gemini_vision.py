"""
Google Gemini Vision provider for VibeCraft.

Implements content analysis using Google's Gemini vision models.
"""

import logging
import os
from typing import Dict, List

from PIL import Image

from ...errors import AnalysisError, AnalysisErrorKind
from ..vision_llm_analyzer import VisionLLMProvider

logger = logging.getLogger(__name__)

try:
    import google.generativeai as genai
    from google.api_core import exceptions as google_exceptions
    GEMINI_AVAILABLE = True
except ImportError:
    GEMINI_AVAILABLE = False
    logger.warning("Google Generative AI package not installed")


def classify_error(error: Exception) -> AnalysisErrorKind:
    """Map a Google API exception onto an analysis error kind."""
    if isinstance(error, google_exceptions.ResourceExhausted):
        return AnalysisErrorKind.RATE_LIMITED
    if isinstance(error, (google_exceptions.ServiceUnavailable,
                          google_exceptions.DeadlineExceeded,
                          google_exceptions.InternalServerError)):
        return AnalysisErrorKind.TRANSIENT
    return AnalysisErrorKind.UNRECOVERABLE


class GeminiVisionProvider(VisionLLMProvider):
    """Google Gemini Vision implementation."""

    def __init__(self, config: Dict):
        """
        Initialize Gemini Vision provider.

        Args:
            config: Provider-specific configuration
        """
        if not GEMINI_AVAILABLE:
            raise ImportError("Please install google-generativeai: pip install google-generativeai")

        super().__init__(config)
        self.name = "gemini"

        # Configure API
        api_key = config.get('api_key') or os.environ.get('GEMINI_API_KEY')
        if not api_key:
            raise ValueError("Gemini API key not provided")

        genai.configure(api_key=api_key)

        model_name = config.get('model', 'gemini-1.5-flash')
        self.model = genai.GenerativeModel(model_name)
        self.safety_settings = self._configure_safety()
        self.generation_config = {
            'temperature': config.get('temperature', 0.4),
            'top_p': config.get('top_p', 1),
            'top_k': config.get('top_k', 32),
            'max_output_tokens': config.get('max_output_tokens', 1024),
        }

    def _configure_safety(self) -> List[Dict]:
        """Configure safety settings based on config."""
        level_map = {
            'low': 'BLOCK_ONLY_HIGH',
            'medium': 'BLOCK_MEDIUM_AND_ABOVE',
            'high': 'BLOCK_LOW_AND_ABOVE'
        }
        threshold = level_map.get(self.config.get('safety_settings', 'medium'), 'BLOCK_MEDIUM_AND_ABOVE')

        return [
            {"category": category, "threshold": threshold}
            for category in (
                "HARM_CATEGORY_HARASSMENT",
                "HARM_CATEGORY_HATE_SPEECH",
                "HARM_CATEGORY_SEXUALLY_EXPLICIT",
                "HARM_CATEGORY_DANGEROUS_CONTENT",
            )
        ]

    def analyze_image(self, image: Image.Image, prompt: str) -> Dict:
        """
        Analyze an image using Gemini Vision.

        Args:
            image: Prepared PIL image
            prompt: Analysis prompt

        Returns:
            Dictionary with the reply text under 'content'

        Raises:
            AnalysisError: Classified by the Google API error type
        """
        try:
            response = self.model.generate_content(
                [prompt, image],
                generation_config=self.generation_config,
                safety_settings=self.safety_settings
            )
            text = response.text
        except google_exceptions.GoogleAPIError as e:
            kind = classify_error(e)
            logger.error(f"Gemini Vision analysis failed ({kind.value}): {e}")
            raise AnalysisError(f"Gemini request failed: {e}", kind) from e
        except ValueError as e:
            # response.text raises ValueError when the reply was blocked
            logger.error(f"Gemini returned no usable text: {e}")
            raise AnalysisError(f"Gemini returned no text: {e}", AnalysisErrorKind.UNRECOVERABLE) from e

        result = {
            'provider': 'gemini',
            'model': self.model.model_name,
            'content': text,
        }
        usage = getattr(response, 'usage_metadata', None)
        if usage is not None:
            result['usage'] = {
                'prompt_tokens': usage.prompt_token_count,
                'completion_tokens': usage.candidates_token_count,
                'total_tokens': usage.total_token_count
            }
        return result
