"""Tests for filesystem storage backends."""

import json
import os
import time

import pytest
from django.core.exceptions import (
    ImproperlyConfigured,
    SuspiciousFileOperation,
)

from server.apps.files.exceptions import CorruptFileRecord
from server.apps.files.infrastructure.storage import (
    decode_record,
    encode_record,
    get_upload_storage,
    prepare_directories,
)
from server.apps.files.models import DownloadPermission, FileRecord


class TestUploadStorage:
    """Tests for ``UploadStorage``."""

    def test_open_partial_and_commit(self, upload_storage, storage_dirs):
        """Test a committed upload appears under its public name only."""
        upload_dir, _ = storage_dirs
        with upload_storage.open_partial('x_a.txt.partial') as temp_file:
            temp_file.write(b'content')

        upload_storage.commit('x_a.txt.partial', 'abc_a.txt')

        assert (upload_dir / 'abc_a.txt').read_bytes() == b'content'
        assert not (upload_dir / 'x_a.txt.partial').exists()

    def test_open_partial_is_exclusive(self, upload_storage):
        """Test an existing temporary file is never reused."""
        upload_storage.open_partial('x.partial').close()

        with pytest.raises(FileExistsError):
            upload_storage.open_partial('x.partial')

    def test_commit_overwrites(self, upload_storage, storage_dirs):
        """Test a commit replaces a file with the same name."""
        upload_dir, _ = storage_dirs
        (upload_dir / 'abc_a.txt').write_bytes(b'old')
        with upload_storage.open_partial('x.partial') as temp_file:
            temp_file.write(b'new')

        upload_storage.commit('x.partial', 'abc_a.txt')

        assert (upload_dir / 'abc_a.txt').read_bytes() == b'new'

    def test_delete_is_idempotent(self, upload_storage, storage_dirs):
        """Test deleting twice does not raise."""
        upload_dir, _ = storage_dirs
        (upload_dir / 'abc_a.txt').write_bytes(b'x')

        upload_storage.delete('abc_a.txt')
        upload_storage.delete('abc_a.txt')

        assert not (upload_dir / 'abc_a.txt').exists()

    def test_rollback_upload_swallows_errors(self, upload_storage, monkeypatch):
        """Test a failing rollback only logs."""

        def failing_delete(name):
            raise PermissionError(name)

        monkeypatch.setattr(upload_storage, 'delete', failing_delete)

        upload_storage.rollback_upload('x.partial')

    def test_modified_timestamp(self, upload_storage, storage_dirs):
        """Test the modification time is reported."""
        upload_dir, _ = storage_dirs
        blob = upload_dir / 'abc_a.txt'
        blob.write_bytes(b'x')
        os.utime(blob, (1000, 1000))

        assert upload_storage.modified_timestamp('abc_a.txt') == 1000

    def test_path_traversal_rejected(self, upload_storage):
        """Test names cannot leave the upload directory."""
        with pytest.raises(SuspiciousFileOperation):
            upload_storage.path('../escape')


class TestFileRecordStore:
    """Tests for ``FileRecordStore``."""

    def test_missing_record(self, record_store):
        """Test a blob without a record reads as None."""
        assert record_store.read('abc_a.txt') is None

    def test_write_and_read(self, record_store, storage_dirs):
        """Test records are stored as JSON under the blob name."""
        _, data_dir = storage_dirs
        record = FileRecord(
            download_permission=DownloadPermission.UNLIMITED,
            expires_at=int(time.time()),
        )

        record_store.write('abc_a.txt', record)

        assert record_store.read('abc_a.txt') == record
        assert json.loads((data_dir / 'abc_a.txt').read_text()) == {
            'download_permission': 'unlimited',
            'ttl': record.expires_at,
        }

    def test_write_replaces_atomically(self, record_store, storage_dirs):
        """Test only the finished record is left in the data directory."""
        _, data_dir = storage_dirs
        record_store.write('abc_a.txt', FileRecord(expires_at=1))

        record_store.write('abc_a.txt', FileRecord(expires_at=2))

        assert [path.name for path in data_dir.iterdir()] == ['abc_a.txt']
        assert record_store.read('abc_a.txt') == FileRecord(expires_at=2)

    def test_failed_write_keeps_previous_record(
        self,
        record_store,
        storage_dirs,
        monkeypatch,
    ):
        """Test an interrupted write never exposes a partial document."""
        _, data_dir = storage_dirs
        record_store.write('abc_a.txt', FileRecord(expires_at=1))

        def interrupted_dump(document, record_file):
            record_file.write('{"ttl": ')
            raise OSError('disk full')

        monkeypatch.setattr('json.dump', interrupted_dump)

        with pytest.raises(OSError, match='disk full'):
            record_store.write('abc_a.txt', FileRecord(expires_at=2))

        assert record_store.read('abc_a.txt') == FileRecord(expires_at=1)
        assert [path.name for path in data_dir.iterdir()] == ['abc_a.txt']

    def test_names_skip_records_being_written(self, record_store, storage_dirs):
        """Test temporary record files are not listed."""
        _, data_dir = storage_dirs
        (data_dir / 'abc_a.txt').write_text('{}')
        (data_dir / 'Xa81Kq0z_abc_a.txt.partial').write_text('{')

        assert record_store.names() == ['abc_a.txt']

    def test_reads_partial_documents(self, record_store, storage_dirs):
        """Test missing keys mean no override."""
        _, data_dir = storage_dirs
        (data_dir / 'abc_a.txt').write_text('{"download_permission": "none"}')

        assert record_store.read('abc_a.txt') == FileRecord(
            download_permission=DownloadPermission.DENIED,
        )

    def test_corrupt_json(self, record_store, storage_dirs):
        """Test undecodable documents raise ``CorruptFileRecord``."""
        _, data_dir = storage_dirs
        (data_dir / 'abc_a.txt').write_text('{not json')

        with pytest.raises(CorruptFileRecord):
            record_store.read('abc_a.txt')

    def test_names(self, record_store, storage_dirs):
        """Test record names are listed sorted."""
        _, data_dir = storage_dirs
        (data_dir / 'b').write_text('{}')
        (data_dir / 'a').write_text('{}')

        assert record_store.names() == ['a', 'b']

    def test_names_without_directory(self, record_store, storage_dirs):
        """Test a missing data directory has no records."""
        _, data_dir = storage_dirs
        data_dir.rmdir()

        assert record_store.names() == []

    def test_delete_is_idempotent(self, record_store):
        """Test deleting a missing record does not raise."""
        record_store.write('abc_a.txt', FileRecord(expires_at=1))

        record_store.delete('abc_a.txt')
        record_store.delete('abc_a.txt')

        assert record_store.read('abc_a.txt') is None


def test_encode_empty_record():
    """Test absent overrides are stored as null."""
    assert encode_record(FileRecord()) == {
        'download_permission': None,
        'ttl': None,
    }


@pytest.mark.parametrize('raw_record', [
    [],
    {'download_permission': 'sometimes'},
    {'ttl': '12'},
    {'ttl': 1.5},
    {'ttl': True},
])
def test_decode_invalid_record(raw_record):
    """Test wrongly typed documents are rejected."""
    with pytest.raises(CorruptFileRecord):
        decode_record('abc_a.txt', raw_record)


def test_decode_ignores_unknown_keys():
    """Test unknown keys are ignored."""
    record = decode_record('abc_a.txt', {'ttl': 5, 'owner': 'alice'})

    assert record == FileRecord(expires_at=5)


def test_nested_data_directory_rejected(settings, tmp_path):
    """Test records cannot live inside the upload directory."""
    settings.UPLOAD_DIRECTORY = str(tmp_path)
    settings.DATA_DIRECTORY = str(tmp_path / 'data')

    with pytest.raises(ImproperlyConfigured):
        get_upload_storage()


def test_prepare_directories(settings, tmp_path):
    """Test missing directories are created."""
    settings.UPLOAD_DIRECTORY = str(tmp_path / 'upload')
    settings.DATA_DIRECTORY = str(tmp_path / 'data')

    prepare_directories()

    assert (tmp_path / 'upload').is_dir()
    assert (tmp_path / 'data').is_dir()
