"""Filesystem storage backends for uploaded blobs and their records."""

import contextlib
import functools
import json
import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, Final, Protocol, final, override

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.files.storage import FileSystemStorage

from server.apps.files.exceptions import CorruptFileRecord
from server.apps.files.infrastructure.metadata import (
    is_partial_name,
    partial_name,
)
from server.apps.files.models import DownloadPermission, FileRecord

logger = logging.getLogger(__name__)

# Keys of the persisted record
_PERMISSION_KEY: Final = 'download_permission'
_TTL_KEY: Final = 'ttl'


class BlobStorage(Protocol):
    """Narrow interface the core logic needs from blob storage."""

    def open_partial(self, name: str) -> BinaryIO:
        """Create a new file for writing an upload."""

    def commit(self, partial_name: str, name: str) -> None:
        """Atomically rename a finished upload to its public name."""

    def open(self, name: str, mode: str = 'rb') -> Any:
        """Open a stored blob."""

    def exists(self, name: str) -> bool:
        """Check whether a blob exists."""

    def size(self, name: str) -> int:
        """Size of a blob in bytes."""

    def delete(self, name: str) -> None:
        """Delete a blob, missing blobs are not an error."""

    def rollback_upload(self, name: str) -> None:
        """Best-effort removal of an unfinished upload."""

    def listdir(self, path: str) -> tuple[list[str], list[str]]:
        """List directories and files."""

    def modified_timestamp(self, name: str) -> float:
        """Unix time of the last modification of a blob."""


class RecordStore(Protocol):
    """Narrow interface the core logic needs from record storage."""

    def read(self, name: str) -> FileRecord | None:
        """Read the record of a blob, None if there is none."""

    def write(self, name: str, record: FileRecord) -> None:
        """Persist the record of a blob."""

    def delete(self, name: str) -> None:
        """Delete a record, missing records are not an error."""

    def names(self) -> list[str]:
        """Base names of all stored records."""


@final
class UploadStorage(FileSystemStorage):
    """Filesystem storage for uploaded blobs.

    Extends Django's FileSystemStorage with:
    - Exclusive creation of temporary upload files
    - Atomic commit of finished uploads by rename
    - Idempotent, logged deletion
    """

    def open_partial(self, name: str) -> BinaryIO:
        """Create a new file for an upload in progress.

        Args:
            name: Temporary storage name.

        Returns:
            File opened for binary writing.

        Raises:
            FileExistsError: If the name is already taken.
        """
        os.makedirs(self.location, exist_ok=True)
        return open(self.path(name), 'xb')  # noqa: SIM115, WPS515

    def commit(self, partial_name: str, name: str) -> None:
        """Make a finished upload visible under its public name.

        ``os.replace`` is a single filesystem operation: readers see
        either nothing or the complete file, never a partial one.
        An existing file with the same name is overwritten.

        Args:
            partial_name: Temporary storage name.
            name: Public storage name.
        """
        try:
            os.replace(self.path(partial_name), self.path(name))
        except Exception:
            logger.exception('Commit failed: %s -> %s', partial_name, name)
            raise
        logger.info('Committed upload: %s -> %s', partial_name, name)

    @override
    def delete(self, name: str) -> None:
        """Delete file from storage with error handling and logging.

        Deleting a file that is already gone is a no-op.

        Args:
            name: Storage name of file to delete.

        Raises:
            OSError: If the file exists but cannot be removed.
        """
        try:
            logger.debug('Deleting file from storage: %s', name)
            super().delete(name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> None:
        """Delete an unfinished or orphaned upload.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, so the original failure propagates.
        Leftover ``.partial`` files are removed by the reaper.

        Args:
            name: Storage name of file to delete.
        """
        try:
            self.delete(name)
        except OSError:
            logger.exception('Failed to rollback upload, orphaned file: %s', name)
        else:
            logger.info('Rolled back upload: %s', name)

    def modified_timestamp(self, name: str) -> float:
        """Unix time of the last modification of a stored file."""
        return os.path.getmtime(self.path(name))


@final
class FileRecordStore(FileSystemStorage):
    """Filesystem storage for per-file records.

    Each record is a small JSON document stored under the base name of
    its blob, e.g. ``{"download_permission": "unlimited", "ttl": 1700000000}``.
    """

    def read(self, name: str) -> FileRecord | None:
        """Read the record of a blob.

        Args:
            name: Base name of the blob.

        Returns:
            The record, or None if the blob has no record.

        Raises:
            CorruptFileRecord: If the stored document is invalid.
        """
        try:
            with open(self.path(name), encoding='utf-8') as record_file:
                raw_record = json.load(record_file)
        except FileNotFoundError:
            return None
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            raise CorruptFileRecord(name, str(error)) from error

        return decode_record(name, raw_record)

    def write(self, name: str, record: FileRecord) -> None:
        """Persist the record of a blob.

        The document is written to a temporary file and renamed onto
        the record, so readers never see a half-written record.

        Args:
            name: Base name of the blob.
            record: Record to store.
        """
        os.makedirs(self.location, exist_ok=True)
        temp_path = self.path(partial_name(name))
        record_file = open(temp_path, 'x', encoding='utf-8')  # noqa: SIM115
        try:
            with record_file:
                json.dump(encode_record(record), record_file)
            os.replace(temp_path, self.path(name))
        except Exception:
            logger.exception('Failed to write file record: %s', name)
            with contextlib.suppress(FileNotFoundError):
                os.remove(temp_path)
            raise
        logger.debug('Wrote file record: %s', name)

    def names(self) -> list[str]:
        """Base names of all stored records."""
        if not os.path.isdir(self.location):
            return []
        _, files = self.listdir('')
        # Records being written are not records yet
        return sorted(name for name in files if not is_partial_name(name))


def encode_record(record: FileRecord) -> dict[str, Any]:
    """Convert a record to its JSON document."""
    permission = record.download_permission
    return {
        _PERMISSION_KEY: permission.value if permission else None,
        _TTL_KEY: record.expires_at,
    }


def decode_record(name: str, raw_record: object) -> FileRecord:
    """Convert a JSON document to a record.

    Missing keys mean "no override", unknown keys are ignored.

    Args:
        name: Base name of the blob, used in error messages.
        raw_record: Parsed JSON document.

    Returns:
        The record.

    Raises:
        CorruptFileRecord: If a value has the wrong type.
    """
    if not isinstance(raw_record, dict):
        raise CorruptFileRecord(name, 'not a JSON object')

    raw_permission = raw_record.get(_PERMISSION_KEY)
    try:
        permission = (
            None if raw_permission is None
            else DownloadPermission(raw_permission)
        )
    except ValueError as error:
        raise CorruptFileRecord(
            name,
            f'unknown download permission {raw_permission!r}',
        ) from error

    ttl = raw_record.get(_TTL_KEY)
    if ttl is not None and (not isinstance(ttl, int) or isinstance(ttl, bool)):
        raise CorruptFileRecord(name, f'ttl must be an integer, not {ttl!r}')

    return FileRecord(download_permission=permission, expires_at=ttl)


@functools.cache
def get_upload_storage() -> UploadStorage:
    """Get the blob storage configured by ``UPLOAD_DIRECTORY``.

    Returns:
        UploadStorage instance.
    """
    _check_directories()
    return UploadStorage(location=settings.UPLOAD_DIRECTORY)


@functools.cache
def get_record_store() -> FileRecordStore:
    """Get the record storage configured by ``DATA_DIRECTORY``.

    Returns:
        FileRecordStore instance.
    """
    _check_directories()
    return FileRecordStore(location=settings.DATA_DIRECTORY)


def _check_directories() -> None:
    upload_directory = Path(settings.UPLOAD_DIRECTORY).resolve()
    data_directory = Path(settings.DATA_DIRECTORY).resolve()
    if data_directory.is_relative_to(upload_directory):
        raise ImproperlyConfigured(
            'DATA_DIRECTORY cannot be the same directory as '
            'UPLOAD_DIRECTORY or be a subdirectory of it.',
        )


def prepare_directories() -> None:
    """Create the upload and data directories if they are missing.

    Raises:
        ImproperlyConfigured: If the directories overlap.
    """
    _check_directories()
    for directory in (settings.UPLOAD_DIRECTORY, settings.DATA_DIRECTORY):
        Path(directory).mkdir(parents=True, exist_ok=True)
