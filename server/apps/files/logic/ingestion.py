"""Streaming ingestion of uploads into blob storage."""

import logging
from collections.abc import Iterable
from typing import BinaryIO, final

from server.apps.files.exceptions import (
    EmptyBody,
    IncompleteUpload,
    InvalidFilename,
    TooLarge,
)
from server.apps.files.infrastructure.metadata import (
    committed_name,
    is_valid_filename,
    new_fingerprint,
    partial_name,
)
from server.apps.files.infrastructure.storage import BlobStorage

logger = logging.getLogger(__name__)


@final
class IngestionPipeline:
    """Stream uploads to storage and commit them under a content name.

    Bytes are written to a ``<random>_<filename>.partial`` file first.
    Only a complete upload within the size limit is renamed to
    ``<fingerprint prefix>_<filename>``; every failure removes the
    temporary file, so storage holds either one committed file or
    nothing.
    """

    def __init__(self, storage: BlobStorage) -> None:
        """Initialize the pipeline.

        Args:
            storage: Blob storage to write into.
        """
        self.storage = storage

    def ingest(
        self,
        filename: str,
        declared_length: int | None,
        max_size: int,
        chunks: Iterable[bytes],
    ) -> str:
        """Store an upload.

        The size limit is enforced while streaming, independently of
        ``declared_length``, so a missing or false ``Content-Length``
        cannot bypass it.

        Args:
            filename: Client supplied filename.
            declared_length: ``Content-Length`` of the request, if given.
            max_size: Maximum number of bytes the caller may upload.
            chunks: Request body.

        Returns:
            Committed storage name.

        Raises:
            InvalidFilename: If the filename contains a path separator.
            EmptyBody: If no bytes are announced or received.
            TooLarge: If the upload exceeds ``max_size``.
            IncompleteUpload: If fewer bytes than announced arrived.
        """
        if not is_valid_filename(filename):
            raise InvalidFilename
        if declared_length is not None:
            if declared_length == 0:
                raise EmptyBody
            if declared_length > max_size:
                raise TooLarge(max_size)

        temp_name = partial_name(filename)
        temp_file = self.storage.open_partial(temp_name)
        committed = False
        try:
            with temp_file:
                fingerprint_hex = self._receive(
                    temp_file,
                    temp_name,
                    declared_length,
                    max_size,
                    chunks,
                )
            name = committed_name(fingerprint_hex, filename)
            self.storage.commit(temp_name, name)
            committed = True
        finally:
            if not committed:
                self.storage.rollback_upload(temp_name)

        logger.info('Uploaded %s', name)
        return name

    def _receive(  # noqa: WPS211
        self,
        temp_file: BinaryIO,
        temp_name: str,
        declared_length: int | None,
        max_size: int,
        chunks: Iterable[bytes],
    ) -> str:
        fingerprint = new_fingerprint()
        received = 0
        for chunk in chunks:
            received += len(chunk)
            if received > max_size:
                logger.warning(
                    'Upload %s exceeds the limit of %d bytes',
                    temp_name,
                    max_size,
                )
                raise TooLarge(max_size)
            temp_file.write(chunk)
            fingerprint.update(chunk)

        if received == 0:
            raise EmptyBody
        if declared_length is not None and declared_length > received:
            logger.error(
                'The upload %s seems to be incomplete: '
                'expected %d bytes but only %d bytes were received',
                temp_name,
                declared_length,
                received,
            )
            raise IncompleteUpload(declared_length, received)
        return fingerprint.hexdigest()
