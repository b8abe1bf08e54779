"""
Tests for content analysis: result sanitization, rate limiting and the
vision analyzer with a fake provider.
"""

import json

import pytest

from vibecraft.analysis.models import AnalysisResult, TechnicalQuality
from vibecraft.analysis.vision_llm_analyzer import (
    RateLimiter, StaticAnalyzer, VisionLLMAnalyzer, VisionLLMProvider, parse_analysis_response
)
from vibecraft.errors import AnalysisError, AnalysisErrorKind

from conftest import make_analysis

REPLY = {
    "imageType": "portrait",
    "confidence": 0.92,
    "technicalQuality": {"exposure": 0.4, "sharpness": 0.55, "composition": 0.8, "overall": 0.5},
    "detectedObjects": ["person", "window"],
    "mood": "Warm",
    "suggestedImprovements": ["brighten shadows"],
    "editingIntensity": "heavy",
}


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeProvider(VisionLLMProvider):
    """Provider returning canned replies."""

    def __init__(self, reply=None, error=None):
        super().__init__({'max_dimension': 64})
        self.name = "fake"
        self.reply = json.dumps(REPLY) if reply is None else reply
        self.error = error
        self.calls = []

    def analyze_image(self, image, prompt):
        self.calls.append(image.size)
        if self.error is not None:
            raise self.error
        return {'content': self.reply}


class TestAnalysisResult:
    """Test sanitizing raw analyzer output."""

    def test_from_provider_json(self):
        result = AnalysisResult.from_dict(REPLY)
        assert result.image_type == 'portrait'
        assert result.mood == 'warm'
        assert result.detected_objects == ('person', 'window')
        assert result.technical_quality.exposure == 0.4
        assert result.editing_intensity == 'heavy'

    def test_defaults_for_garbage(self):
        result = AnalysisResult.from_dict({
            'imageType': 'selfie',
            'confidence': 'very',
            'technicalQuality': {'exposure': 7, 'overall': float('nan')},
            'detectedObjects': 'person',
            'editingIntensity': 'maximum',
        })
        assert result.image_type == 'other'
        assert result.confidence == 0.8
        assert result.technical_quality.exposure == 1.0
        assert result.technical_quality.overall == 0.7
        assert result.detected_objects == ()
        assert result.editing_intensity == 'medium'

    def test_non_object_payload(self):
        assert AnalysisResult.from_dict(['portrait']) == AnalysisResult()

    def test_snake_case_round_trip(self):
        original = make_analysis('food', mood='cozy', overall=0.4, objects=['cake'])
        assert AnalysisResult.from_dict(original.to_dict()) == original

    def test_lists_frozen(self):
        result = AnalysisResult(detected_objects=['a', 'b'])
        assert result.detected_objects == ('a', 'b')
        assert result.subjects == ('a', 'b')

    def test_technical_quality_non_dict(self):
        assert TechnicalQuality.from_dict(None) == TechnicalQuality()


class TestParseResponse:
    """Test extracting JSON from model replies."""

    def test_json_wrapped_in_prose(self):
        text = "Sure! Here is the analysis:\n```json\n" + json.dumps(REPLY) + "\n```\nHope it helps."
        assert parse_analysis_response(text).image_type == 'portrait'

    def test_no_json(self):
        with pytest.raises(AnalysisError) as exc:
            parse_analysis_response("I cannot analyze this image.")
        assert exc.value.kind is AnalysisErrorKind.TRANSIENT

    def test_broken_json(self):
        with pytest.raises(AnalysisError) as exc:
            parse_analysis_response('{"imageType": "portrait",}')
        assert exc.value.kind is AnalysisErrorKind.TRANSIENT
        assert exc.value.retryable


class TestRateLimiter:
    """Test the local request quotas."""

    def test_minute_window(self):
        clock = FakeClock()
        limiter = RateLimiter(requests_per_minute=15, requests_per_day=1500, clock=clock)
        for _ in range(15):
            limiter.acquire()

        with pytest.raises(AnalysisError) as exc:
            limiter.acquire()
        assert exc.value.kind is AnalysisErrorKind.RATE_LIMITED
        assert exc.value.retry_after == pytest.approx(60.0)

        clock.now += 30
        with pytest.raises(AnalysisError) as exc:
            limiter.acquire()
        assert exc.value.retry_after == pytest.approx(30.0)

        clock.now += 30
        limiter.acquire()

    def test_daily_quota(self):
        clock = FakeClock()
        limiter = RateLimiter(requests_per_minute=100, requests_per_day=3, clock=clock)
        for _ in range(3):
            limiter.acquire()
        with pytest.raises(AnalysisError) as exc:
            limiter.acquire()
        assert exc.value.kind is AnalysisErrorKind.RATE_LIMITED
        assert exc.value.retry_after == 3600.0

    def test_remaining(self):
        clock = FakeClock()
        limiter = RateLimiter(requests_per_minute=5, requests_per_day=10, clock=clock)
        limiter.acquire()
        limiter.acquire()
        assert limiter.remaining() == {'minute': 3, 'day': 8}
        clock.now += 61
        assert limiter.remaining() == {'minute': 5, 'day': 8}


class TestVisionLLMAnalyzer:
    """Test the analyzer against a fake provider."""

    def test_analyze(self, png_bytes):
        provider = FakeProvider()
        analyzer = VisionLLMAnalyzer({}, provider=provider, clock=FakeClock())
        result = analyzer.analyze(png_bytes)

        assert result.image_type == 'portrait'
        assert result.technical_quality.overall == 0.5
        # 48x32 fits inside the 64px bound
        assert provider.calls == [(48, 32)]

    def test_large_images_downscaled(self):
        from PIL import Image
        import io
        buffer = io.BytesIO()
        Image.new('RGBA', (200, 100), (10, 20, 30, 128)).save(buffer, format='PNG')
        provider = FakeProvider()
        VisionLLMAnalyzer({}, provider=provider, clock=FakeClock()).analyze(buffer.getvalue())
        assert provider.calls == [(64, 32)]

    def test_undecodable_image_is_unrecoverable(self):
        analyzer = VisionLLMAnalyzer({}, provider=FakeProvider(), clock=FakeClock())
        with pytest.raises(AnalysisError) as exc:
            analyzer.analyze(b'not an image')
        assert exc.value.kind is AnalysisErrorKind.UNRECOVERABLE

    def test_provider_errors_propagate(self, png_bytes):
        error = AnalysisError("quota", AnalysisErrorKind.RATE_LIMITED, retry_after=12.0)
        analyzer = VisionLLMAnalyzer({}, provider=FakeProvider(error=error), clock=FakeClock())
        with pytest.raises(AnalysisError) as exc:
            analyzer.analyze(png_bytes)
        assert exc.value.retry_after == 12.0

    def test_quota_enforced_before_provider_call(self, png_bytes):
        provider = FakeProvider()
        analyzer = VisionLLMAnalyzer({'requests_per_minute': 1}, provider=provider, clock=FakeClock())
        analyzer.analyze(png_bytes)
        with pytest.raises(AnalysisError) as exc:
            analyzer.analyze(png_bytes)
        assert exc.value.kind is AnalysisErrorKind.RATE_LIMITED
        assert len(provider.calls) == 1
        assert analyzer.get_remaining_quota()['minute'] == 0

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            VisionLLMAnalyzer({'provider': 'clippy'})


class TestStaticAnalyzer:
    """Test the fixed-result analyzer."""

    def test_default(self):
        assert StaticAnalyzer().analyze(b'anything') == AnalysisResult()

    def test_from_json_file(self, tmp_path):
        path = tmp_path / 'analysis.json'
        path.write_text(json.dumps(REPLY))
        assert StaticAnalyzer.from_json_file(path).analyze(b'').image_type == 'portrait'


class TestGeminiErrorClassification:
    """Test mapping Google API errors onto analysis error kinds."""

    def test_classify(self):
        google_exceptions = pytest.importorskip('google.api_core.exceptions')
        pytest.importorskip('google.generativeai')
        from vibecraft.analysis.vision_providers.gemini_vision import classify_error

        assert classify_error(google_exceptions.ResourceExhausted('quota')) is AnalysisErrorKind.RATE_LIMITED
        assert classify_error(google_exceptions.ServiceUnavailable('down')) is AnalysisErrorKind.TRANSIENT
        assert classify_error(google_exceptions.PermissionDenied('key')) is AnalysisErrorKind.UNRECOVERABLE
