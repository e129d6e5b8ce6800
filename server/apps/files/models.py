"""Per-file records controlling download permission and expiry."""

import enum
from dataclasses import dataclass
from typing import Final, final

# Values of the persisted `download_permission` key
_PERMISSION_DENIED: Final = 'none'
_PERMISSION_UNLIMITED: Final = 'unlimited'


@final
class DownloadPermission(enum.Enum):
    """Override of the policy decision for downloads of one file.

    An absent override is ``None`` on the record, never ``DENIED``.
    """

    # Nobody can download the file, it looks like it does not exist
    DENIED = _PERMISSION_DENIED
    # Anybody can download the file, independent of the auth config
    UNLIMITED = _PERMISSION_UNLIMITED


@final
@dataclass(frozen=True, slots=True)
class FileRecord:
    """Optional sibling of a stored blob.

    A missing record behaves exactly like ``FileRecord()``.
    The record is stored under the same base name as its blob
    and is removed together with it.
    """

    download_permission: DownloadPermission | None = None
    # Absolute unix timestamp after which the file is deleted
    expires_at: int | None = None

    def is_empty(self) -> bool:
        """Check whether the record carries no override at all."""
        return self.download_permission is None and self.expires_at is None

    def is_expired(self, now: int) -> bool:
        """Check whether the time to live has passed.

        Args:
            now: Current unix timestamp.

        Returns:
            False without a TTL, True once ``expires_at`` is in the past.
        """
        return self.expires_at is not None and self.expires_at < now
