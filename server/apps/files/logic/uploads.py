"""Business logic for uploads: authorization, ingestion, record write."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Final, final

from server.apps.authorization.decisions import Denied, RequestKind
from server.apps.authorization.engine import AuthorizationEngine
from server.apps.files.exceptions import InvalidAuth, InvalidFileRecordField
from server.apps.files.infrastructure.storage import BlobStorage, RecordStore
from server.apps.files.logic.ingestion import IngestionPipeline
from server.apps.files.models import DownloadPermission, FileRecord

logger = logging.getLogger(__name__)

PERMISSION_HEADER: Final = 'File-Data-Download-Permission'
DELETE_AFTER_HEADER: Final = 'File-Data-Delete-After'


@final
@dataclass(frozen=True)
class UploadRequest:
    """Everything the HTTP layer extracts from an upload request."""

    filename: str
    chunks: Iterable[bytes] = field(repr=False)
    authorization: str | None = None
    content_length: int | None = None
    # Raw values of the override headers
    download_permission: str | None = None
    delete_after: str | None = None


def record_from_headers(
    download_permission: str | None,
    delete_after: str | None,
    now: int,
) -> FileRecord:
    """Build the record requested by the override headers.

    Args:
        download_permission: ``none`` or ``unlimited``, if given.
        delete_after: Seconds the file should live, if given.
        now: Current unix timestamp.

    Returns:
        Record, empty when no override header was given.

    Raises:
        InvalidFileRecordField: If a header value is invalid.
    """
    permission = None
    if download_permission is not None:
        try:
            permission = DownloadPermission(download_permission)
        except ValueError:
            raise InvalidFileRecordField(PERMISSION_HEADER) from None

    expires_at = None
    if delete_after is not None:
        # Only plain non-negative integers, no signs or whitespace
        if not (delete_after.isascii() and delete_after.isdigit()):
            raise InvalidFileRecordField(DELETE_AFTER_HEADER)
        expires_at = now + int(delete_after)

    return FileRecord(download_permission=permission, expires_at=expires_at)


def upload_file(  # noqa: WPS211
    upload: UploadRequest,
    engine: AuthorizationEngine,
    storage: BlobStorage,
    records: RecordStore,
    now: int,
) -> str:
    """Authorize and store an upload together with its record.

    Override headers are validated before any byte is read. A record
    is written only when an override was requested; a stale record
    left by an earlier upload with the same name is removed otherwise.
    If the record cannot be written, the committed blob is removed.

    Args:
        upload: Parsed upload request.
        engine: Authorization engine.
        storage: Blob storage.
        records: Record storage.
        now: Current unix timestamp.

    Returns:
        Committed storage name.

    Raises:
        InvalidAuth: If the caller may not upload.
        InvalidFileRecordField: If an override header is invalid.
        FileServiceError: Any ingestion failure.
    """
    decision = engine.authorize(RequestKind.UPLOAD, upload.authorization)
    if isinstance(decision, Denied):
        raise InvalidAuth(engine.challenge_for(decision))

    record = record_from_headers(
        upload.download_permission,
        upload.delete_after,
        now,
    )

    name = IngestionPipeline(storage).ingest(
        upload.filename,
        upload.content_length,
        decision.max_size,
        upload.chunks,
    )

    try:
        if record.is_empty():
            records.delete(name)
        else:
            records.write(name, record)
    except Exception:
        logger.exception('Failed to write file record, removing %s', name)
        storage.rollback_upload(name)
        raise

    return name
