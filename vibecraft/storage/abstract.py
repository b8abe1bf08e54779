"""
Storage abstractions for VibeCraft.

Two collaborators back the processing pipeline: a record store holding
the per-image state as plain dictionaries keyed by image id, and a blob
store holding original and processed image bytes behind opaque
locators. In-memory implementations live here; filesystem ones are in
storage.local.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..errors import StorageError, StorageNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    'RecordStore',
    'BlobStore',
    'InMemoryRecordStore',
    'InMemoryBlobStore',
    'StorageError',
    'StorageNotFoundError',
]


class RecordStore(ABC):
    """Key-value store for image records."""

    @abstractmethod
    def get(self, image_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored record, or None if absent."""
        pass

    @abstractmethod
    def put(self, image_id: str, record: Dict[str, Any]) -> None:
        """Store or replace a record."""
        pass

    @abstractmethod
    def delete(self, image_id: str) -> bool:
        """Delete a record. Returns True if it existed."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        pass


class BlobStore(ABC):
    """Binary object store addressed by opaque locators."""

    @abstractmethod
    def save(self, key: str, data: bytes) -> str:
        """Store bytes under a key and return their locator."""
        pass

    @abstractmethod
    def load(self, locator: str) -> bytes:
        """
        Read bytes back.

        Raises:
            StorageNotFoundError: If nothing is stored at the locator
        """
        pass

    @abstractmethod
    def delete(self, locator: str) -> bool:
        pass

    @abstractmethod
    def exists(self, locator: str) -> bool:
        pass


class InMemoryRecordStore(RecordStore):
    """Process-local record store; returns deep copies so callers cannot alias state."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, image_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(image_id)
            return copy.deepcopy(record) if record is not None else None

    def put(self, image_id: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self._records[image_id] = copy.deepcopy(record)

    def delete(self, image_id: str) -> bool:
        with self._lock:
            return self._records.pop(image_id, None) is not None

    def list_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)


class InMemoryBlobStore(BlobStore):
    """Process-local blob store with memory:// locators."""

    SCHEME = 'memory://'

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def save(self, key: str, data: bytes) -> str:
        locator = f"{self.SCHEME}{key}"
        with self._lock:
            self._blobs[locator] = bytes(data)
        return locator

    def load(self, locator: str) -> bytes:
        with self._lock:
            try:
                return self._blobs[locator]
            except KeyError:
                raise StorageNotFoundError(f"No blob at {locator}")

    def delete(self, locator: str) -> bool:
        with self._lock:
            return self._blobs.pop(locator, None) is not None

    def exists(self, locator: str) -> bool:
        with self._lock:
            return locator in self._blobs
