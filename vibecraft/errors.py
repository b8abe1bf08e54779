"""
Error taxonomy for VibeCraft.

Pixel and matrix layers never raise; validation happens at the
enhancement boundary and collaborator failures are mapped onto these
types so the orchestrator can decide between retrying and failing.
"""

from enum import Enum
from typing import Optional, Tuple


class VibeCraftError(Exception):
    """Base class for all VibeCraft errors."""
    pass


class DecodeError(VibeCraftError):
    """Raised when encoded image bytes cannot be decoded into pixels."""
    pass


class InvalidParameterError(VibeCraftError):
    """Raised when a transform parameter falls outside its legal range."""

    def __init__(self, field: str, value: float,
                 valid_range: Optional[Tuple[float, float]] = None,
                 message: Optional[str] = None):
        self.field = field
        self.value = value
        self.valid_range = valid_range
        if message is None:
            if valid_range is not None:
                message = (f"Parameter '{field}'={value} outside legal range "
                           f"[{valid_range[0]}, {valid_range[1]}]")
            else:
                message = f"Invalid value for parameter '{field}': {value}"
        super().__init__(message)


class AnalysisErrorKind(Enum):
    """How the orchestrator should react to a failed analysis call."""
    TRANSIENT = "transient"          # retry now
    RATE_LIMITED = "rate_limited"    # retry later
    UNRECOVERABLE = "unrecoverable"  # fail the image


class AnalysisError(VibeCraftError):
    """Raised by content-analysis collaborators."""

    def __init__(self, message: str,
                 kind: AnalysisErrorKind = AnalysisErrorKind.UNRECOVERABLE,
                 retry_after: Optional[float] = None):
        super().__init__(message)
        self.kind = kind
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return self.kind != AnalysisErrorKind.UNRECOVERABLE


class EnhancementTimeout(VibeCraftError):
    """Raised when an external call exceeds its time budget."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout


class StorageError(VibeCraftError):
    """Base exception for record and blob storage operations."""
    pass


class StorageNotFoundError(StorageError):
    """Raised when a record or blob does not exist."""
    pass


class StorageConsistencyError(StorageError):
    """Raised when a write cannot be confirmed by reading it back."""
    pass
