"""
Upload-to-output processing pipeline.
"""

from .models import ImageRecord, ImageStatus
from .orchestrator import BatchOutcome, ProcessingOrchestrator, error_kind

__all__ = [
    'ImageRecord',
    'ImageStatus',
    'BatchOutcome',
    'ProcessingOrchestrator',
    'error_kind',
]
