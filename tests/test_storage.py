"""
Tests for record and blob storage backends.
"""

import pytest

from vibecraft.errors import StorageError, StorageNotFoundError
from vibecraft.storage import (
    InMemoryBlobStore, InMemoryRecordStore, LocalBlobStore, LocalRecordStore
)


@pytest.fixture(params=['memory', 'local'])
def record_store(request, tmp_path):
    if request.param == 'memory':
        return InMemoryRecordStore()
    return LocalRecordStore(tmp_path / 'records')


@pytest.fixture(params=['memory', 'local'])
def blob_store(request, tmp_path):
    if request.param == 'memory':
        return InMemoryBlobStore()
    return LocalBlobStore(tmp_path / 'blobs')


class TestRecordStores:
    """Behavior shared by all record stores."""

    def test_put_get(self, record_store):
        record = {'image_id': 'img-1', 'status': 'uploaded', 'attempt': 0}
        record_store.put('img-1', record)
        assert record_store.get('img-1') == record

    def test_missing(self, record_store):
        assert record_store.get('nope') is None
        assert not record_store.delete('nope')

    def test_replace_and_delete(self, record_store):
        record_store.put('img-1', {'status': 'uploaded'})
        record_store.put('img-1', {'status': 'processed'})
        assert record_store.get('img-1') == {'status': 'processed'}
        assert record_store.delete('img-1')
        assert record_store.get('img-1') is None

    def test_list_ids(self, record_store):
        for image_id in ('b', 'a', 'c'):
            record_store.put(image_id, {})
        assert record_store.list_ids() == ['a', 'b', 'c']

    def test_no_aliasing(self, record_store):
        record = {'nested': {'value': 1}}
        record_store.put('img', record)
        record['nested']['value'] = 2
        fetched = record_store.get('img')
        fetched['nested']['value'] = 3
        assert record_store.get('img') == {'nested': {'value': 1}}


class TestBlobStores:
    """Behavior shared by all blob stores."""

    def test_save_load(self, blob_store):
        locator = blob_store.save('img-1-original', b'\x89PNG data')
        assert blob_store.exists(locator)
        assert blob_store.load(locator) == b'\x89PNG data'

    def test_overwrite(self, blob_store):
        first = blob_store.save('key', b'one')
        second = blob_store.save('key', b'two')
        assert first == second
        assert blob_store.load(second) == b'two'

    def test_delete(self, blob_store):
        locator = blob_store.save('key', b'data')
        assert blob_store.delete(locator)
        assert not blob_store.exists(locator)
        with pytest.raises(StorageNotFoundError):
            blob_store.load(locator)


class TestLocalStores:
    """Filesystem specifics."""

    def test_records_persist_across_instances(self, tmp_path):
        LocalRecordStore(tmp_path).put('img', {'status': 'processed'})
        assert LocalRecordStore(tmp_path).get('img') == {'status': 'processed'}

    def test_unsafe_keys_are_sanitized(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        locator = store.save('../../etc/passwd', b'x')
        assert store.load(locator) == b'x'
        assert (tmp_path / '.._.._etc_passwd').exists()

    def test_locator_outside_store_rejected(self, tmp_path):
        store = LocalBlobStore(tmp_path / 'blobs')
        outside = tmp_path / 'secret.txt'
        outside.write_bytes(b'secret')
        with pytest.raises(StorageError):
            store.load(str(outside))

    def test_invalid_key(self, tmp_path):
        with pytest.raises(StorageError):
            LocalBlobStore(tmp_path).save('..', b'x')

    def test_corrupt_record(self, tmp_path):
        store = LocalRecordStore(tmp_path)
        (tmp_path / 'bad.json').write_text('{not json')
        with pytest.raises(StorageError):
            store.get('bad')
