"""Shared fixtures for files app tests."""

import io

import pytest

from server.apps.authorization.engine import AuthorizationEngine
from server.apps.authorization.policy import CredentialPolicy
from server.apps.authorization.schemes.basic import BasicEntry
from server.apps.files.models import FileRecord


@pytest.fixture
def engine(password_hash):
    """Engine allowing user ``a`` to upload up to 100 bytes.

    Returns:
        AuthorizationEngine for testing.
    """
    return AuthorizationEngine(CredentialPolicy(
        basic=(
            BasicEntry(username='a', password_hash=password_hash, max_size=100),
        ),
    ))


@pytest.fixture
def open_engine():
    """Engine allowing everyone to upload and download.

    Returns:
        AuthorizationEngine for testing.
    """
    return AuthorizationEngine(CredentialPolicy(
        allow_upload_for_everyone=True,
        allow_download_for_everyone=True,
        default_max_size=100,
    ))


@pytest.fixture
def sample_content():
    """Sample upload body.

    Returns:
        50 bytes of test data.
    """
    return b'0123456789' * 5


class MemoryBlobStorage:
    """In-memory ``BlobStorage`` keeping blobs as bytes."""

    def __init__(self):
        """Start empty."""
        self.blobs: dict[str, bytes] = {}
        self.mtimes: dict[str, float] = {}

    def open_partial(self, name):
        """Create a writable buffer that lands in ``blobs`` on close."""
        if name in self.blobs:
            raise FileExistsError(name)
        self.blobs[name] = b''
        return _MemoryWriter(self, name)

    def commit(self, partial_name, name):
        """Rename a blob."""
        self.blobs[name] = self.blobs.pop(partial_name)

    def open(self, name, mode='rb'):
        """Open a blob for reading."""
        if name not in self.blobs:
            raise FileNotFoundError(name)
        return io.BytesIO(self.blobs[name])

    def exists(self, name):
        """Check whether a blob exists."""
        return name in self.blobs

    def size(self, name):
        """Size of a blob."""
        return len(self.blobs[name])

    def delete(self, name):
        """Delete a blob, missing blobs are fine."""
        self.blobs.pop(name, None)

    def rollback_upload(self, name):
        """Delete an unfinished upload."""
        self.delete(name)

    def listdir(self, path):
        """List all blobs."""
        return [], sorted(self.blobs)

    def modified_timestamp(self, name):
        """Time the blob was last written, 0 by default."""
        if name not in self.blobs:
            raise FileNotFoundError(name)
        return self.mtimes.get(name, 0)


class _MemoryWriter(io.BytesIO):
    def __init__(self, storage, name):
        super().__init__()
        self.storage = storage
        self.name = name

    def write(self, chunk):
        written = super().write(chunk)
        self.storage.blobs[self.name] = self.getvalue()
        return written


class MemoryRecordStore:
    """In-memory ``RecordStore``."""

    def __init__(self):
        """Start empty."""
        self.records: dict[str, FileRecord] = {}

    def read(self, name):
        """Read a record, None if missing."""
        return self.records.get(name)

    def write(self, name, record):
        """Store a record."""
        self.records[name] = record

    def delete(self, name):
        """Delete a record, missing records are fine."""
        self.records.pop(name, None)

    def names(self):
        """Names of all records."""
        return sorted(self.records)


@pytest.fixture
def memory_storage():
    """In-memory blob storage.

    Returns:
        MemoryBlobStorage instance.
    """
    return MemoryBlobStorage()


@pytest.fixture
def memory_records():
    """In-memory record storage.

    Returns:
        MemoryRecordStore instance.
    """
    return MemoryRecordStore()
