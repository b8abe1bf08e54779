"""
Pipeline state models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..analysis.models import AnalysisResult
from ..processing.models import EditingConfig


class ImageStatus(Enum):
    """Lifecycle of one image through the pipeline."""
    UPLOADED = "uploaded"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImageStatus.PROCESSED, ImageStatus.FAILED)

    @property
    def in_flight(self) -> bool:
        return self in (ImageStatus.ANALYZING, ImageStatus.PROCESSING)


def _now() -> str:
    return datetime.now().isoformat()


@dataclass
class ImageRecord:
    """Persisted state of one image."""
    image_id: str
    status: ImageStatus = ImageStatus.UPLOADED
    original_locator: Optional[str] = None
    processed_locator: Optional[str] = None
    content_hash: Optional[str] = None
    analysis: Optional[AnalysisResult] = None
    editing_config: Optional[EditingConfig] = None
    quality: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    attempt: int = 1
    revision: int = 0
    retry_after: Optional[float] = None  # epoch seconds
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'image_id': self.image_id,
            'status': self.status.value,
            'original_locator': self.original_locator,
            'processed_locator': self.processed_locator,
            'content_hash': self.content_hash,
            'analysis': self.analysis.to_dict() if self.analysis else None,
            'editing_config': self.editing_config.to_dict() if self.editing_config else None,
            'quality': self.quality,
            'error_message': self.error_message,
            'error_kind': self.error_kind,
            'attempt': self.attempt,
            'revision': self.revision,
            'retry_after': self.retry_after,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageRecord':
        analysis = data.get('analysis')
        config = data.get('editing_config')
        return cls(
            image_id=data['image_id'],
            status=ImageStatus(data.get('status', ImageStatus.UPLOADED.value)),
            original_locator=data.get('original_locator'),
            processed_locator=data.get('processed_locator'),
            content_hash=data.get('content_hash'),
            analysis=AnalysisResult.from_dict(analysis) if analysis else None,
            editing_config=EditingConfig.from_dict(config) if config else None,
            quality=data.get('quality'),
            error_message=data.get('error_message'),
            error_kind=data.get('error_kind'),
            attempt=int(data.get('attempt', 1)),
            revision=int(data.get('revision', 0)),
            retry_after=data.get('retry_after'),
            created_at=data.get('created_at') or _now(),
            updated_at=data.get('updated_at') or _now(),
        )
