"""Removal of stored files together with their records."""

import logging

from server.apps.files.infrastructure.storage import BlobStorage, RecordStore

logger = logging.getLogger(__name__)


def remove_stored_file(
    name: str,
    storage: BlobStorage,
    records: RecordStore,
) -> None:
    """Delete a blob and its record.

    Both deletions are idempotent: the reaper and an expired download
    may remove the same file concurrently, and whoever comes second
    succeeds without doing anything.

    The blob goes first: a failure in between leaves a record without
    a blob, which reads as "not found" and is pruned by the reaper.

    Args:
        name: Committed storage name.
        storage: Blob storage.
        records: Record storage.

    Raises:
        OSError: If an existing file cannot be removed.
    """
    storage.delete(name)
    records.delete(name)
    logger.info('Removed stored file %s', name)
