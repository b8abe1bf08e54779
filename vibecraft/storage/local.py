"""
Local filesystem storage backends.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import StorageError, StorageNotFoundError
from .abstract import BlobStore, RecordStore

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]')


def _safe_name(key: str) -> str:
    name = _UNSAFE_CHARS.sub('_', key)
    if not name or name in ('.', '..'):
        raise StorageError(f"Invalid storage key: {key!r}")
    return name


def _atomic_write(path: Path, data: bytes):
    """Write to a temp file in the same directory, then rename over the target."""
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StorageError(f"Failed to write {path}: {e}") from e


class LocalRecordStore(RecordStore):
    """One JSON document per image id."""

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Record store at {self.base_path}")

    def _path(self, image_id: str) -> Path:
        return self.base_path / f"{_safe_name(image_id)}.json"

    def get(self, image_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(image_id)
        if not path.exists():
            return None
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read record {image_id}: {e}") from e

    def put(self, image_id: str, record: Dict[str, Any]) -> None:
        data = json.dumps(record, indent=2, sort_keys=True, default=str).encode('utf-8')
        _atomic_write(self._path(image_id), data)

    def delete(self, image_id: str) -> bool:
        path = self._path(image_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in self.base_path.glob('*.json'))


class LocalBlobStore(BlobStore):
    """Stores blobs as files; locators are absolute paths."""

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, locator: str) -> Path:
        path = Path(locator).resolve()
        if self.base_path not in path.parents:
            raise StorageError(f"Locator outside blob store: {locator}")
        return path

    def save(self, key: str, data: bytes) -> str:
        path = self.base_path / _safe_name(key)
        _atomic_write(path, bytes(data))
        return str(path)

    def load(self, locator: str) -> bytes:
        path = self._resolve(locator)
        if not path.exists():
            raise StorageNotFoundError(f"No blob at {locator}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {locator}: {e}") from e

    def delete(self, locator: str) -> bool:
        path = self._resolve(locator)
        if not path.exists():
            return False
        path.unlink()
        return True

    def exists(self, locator: str) -> bool:
        return self._resolve(locator).exists()
