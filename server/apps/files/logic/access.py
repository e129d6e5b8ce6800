"""Download access resolution.

A download request is authorized first, always, whether or not the
file exists. The decision is then merged with the file's record:

1. A missing blob is "not found", whatever the decision.
2. An expired file is deleted on the spot and is "not found",
   even when its record grants unlimited access.
3. ``UNLIMITED`` allows the download without credentials.
4. ``DENIED`` is "not found", whatever the decision.
5. Otherwise the decision stands.

"Not found" is the same ``FileNotExists`` error in every case, so a
caller cannot tell a hidden or expired file from a missing one.
"""

import logging
from dataclasses import dataclass
from typing import Any, final

from server.apps.authorization.decisions import AuthDecision, Denied, RequestKind
from server.apps.authorization.engine import AuthorizationEngine
from server.apps.files.exceptions import FileNotExists, InvalidAuth
from server.apps.files.infrastructure.metadata import is_valid_filename
from server.apps.files.infrastructure.storage import BlobStorage, RecordStore
from server.apps.files.logic.lifecycle import remove_stored_file
from server.apps.files.models import DownloadPermission, FileRecord

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class Download:
    """A blob opened for streaming to the caller."""

    name: str
    file: Any
    size: int | None


@final
class AccessResolver:
    """Decide whether a stored file may be downloaded."""

    def __init__(
        self,
        engine: AuthorizationEngine,
        storage: BlobStorage,
        records: RecordStore,
    ) -> None:
        """Initialize the resolver.

        Args:
            engine: Authorization engine.
            storage: Blob storage.
            records: Record storage.
        """
        self.engine = engine
        self.storage = storage
        self.records = records

    def resolve(
        self,
        decision: AuthDecision,
        name: str,
        record: FileRecord,
        blob_exists: bool,
        now: int,
    ) -> None:
        """Check a download against the decision and the file record.

        Expired files are removed as a side effect.

        Args:
            decision: Outcome of the authorization engine.
            name: Committed storage name.
            record: Record of the file, ``FileRecord()`` if it has none.
            blob_exists: Whether the blob is present in storage.
            now: Current unix timestamp.

        Raises:
            FileNotExists: If the file is missing, hidden or expired.
            InvalidAuth: If the decision denies and no override applies.
        """
        if not blob_exists:
            raise FileNotExists

        if record.is_expired(now):
            logger.info('File %s reached its ttl on download', name)
            remove_stored_file(name, self.storage, self.records)
            raise FileNotExists

        if record.download_permission is DownloadPermission.UNLIMITED:
            return
        if record.download_permission is DownloadPermission.DENIED:
            raise FileNotExists

        if isinstance(decision, Denied):
            raise InvalidAuth(self.engine.challenge_for(decision))

    def open_download(
        self,
        name: str,
        authorization: str | None,
        now: int,
    ) -> Download:
        """Authorize a download and open the blob.

        Authorization and the record lookup run before the existence
        check is acted upon, so a missing file costs the same as an
        existing one.

        Args:
            name: Committed storage name from the request path.
            authorization: Raw ``Authorization`` header value, if any.
            now: Current unix timestamp.

        Returns:
            The opened blob.

        Raises:
            FileNotExists: If the file is missing, hidden or expired.
            InvalidAuth: If the caller is not allowed to download.
        """
        decision = self.engine.authorize(RequestKind.DOWNLOAD, authorization)

        if is_valid_filename(name):
            blob_exists = self.storage.exists(name)
            record = self.records.read(name) or FileRecord()
        else:
            blob_exists = False
            record = FileRecord()

        self.resolve(decision, name, record, blob_exists, now)

        try:
            blob = self.storage.open(name, 'rb')
        except FileNotFoundError:
            # Removed by the reaper since the existence check
            raise FileNotExists from None

        try:
            size = self.storage.size(name)
        except OSError:
            size = None
        return Download(name=name, file=blob, size=size)
