"""
Record and blob storage backends.
"""

from .abstract import (
    RecordStore,
    BlobStore,
    InMemoryRecordStore,
    InMemoryBlobStore,
    StorageError,
    StorageNotFoundError,
)
from .local import LocalRecordStore, LocalBlobStore

__all__ = [
    'RecordStore',
    'BlobStore',
    'InMemoryRecordStore',
    'InMemoryBlobStore',
    'LocalRecordStore',
    'LocalBlobStore',
    'StorageError',
    'StorageNotFoundError',
]
