"""Exceptions for files app.

Every error a caller can observe derives from ``FileServiceError`` and
knows its HTTP status and public message. Anything else raised while
serving a request is reported as ``InternalError`` without detail.
"""

from http import HTTPStatus
from typing import ClassVar


class FileServiceError(Exception):
    """Base class for errors reported to the caller."""

    status_code: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR
    public_message: ClassVar[str] = 'Internal Server Error'

    def __init__(self, message: str | None = None) -> None:
        """Initialize FileServiceError.

        Args:
            message: Public message, defaults to ``public_message``.
        """
        self.message = message or self.public_message
        super().__init__(self.message)


class InternalError(FileServiceError):
    """Raised for storage and serialization faults."""


class InvalidAuth(FileServiceError):
    """Raised when the request is not authorized.

    ``scheme`` is always set, it ends up in ``WWW-Authenticate``.
    """

    status_code = HTTPStatus.UNAUTHORIZED
    public_message = 'Unauthorized'

    def __init__(self, scheme: str) -> None:
        """Initialize InvalidAuth.

        Args:
            scheme: Scheme the caller should retry with.
        """
        self.scheme = scheme
        super().__init__()


class InvalidFilename(FileServiceError):
    """Raised when an upload filename contains a path separator."""

    status_code = HTTPStatus.BAD_REQUEST
    public_message = 'Invalid filename'


class EmptyBody(FileServiceError):
    """Raised when an upload carries no bytes."""

    status_code = HTTPStatus.BAD_REQUEST
    public_message = 'Invalid POST body'


class TooLarge(FileServiceError):
    """Raised when an upload exceeds the caller's size limit."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, limit: int) -> None:
        """Initialize TooLarge.

        Args:
            limit: Maximum upload size in bytes.
        """
        self.limit = limit
        super().__init__(
            'The file you tried to upload is too big. '
            f'The maximum filesize is {limit} bytes.',
        )


class IncompleteUpload(FileServiceError):
    """Raised when fewer bytes arrived than ``Content-Length`` announced."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, declared: int, received: int) -> None:
        """Initialize IncompleteUpload.

        Args:
            declared: Announced size in bytes.
            received: Bytes actually received.
        """
        self.declared = declared
        self.received = received
        super().__init__(
            f'The upload is incomplete: expected {declared} bytes, '
            f'received {received} bytes.',
        )


class InvalidFileRecordField(FileServiceError):
    """Raised when an override header has an invalid value."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, field_name: str) -> None:
        """Initialize InvalidFileRecordField.

        Args:
            field_name: Name of the offending header.
        """
        self.field_name = field_name
        super().__init__(f'Invalid value for header {field_name}')


class FileNotExists(FileServiceError):
    """Raised when a file is absent, hidden by its record, or expired.

    The three cases must be indistinguishable for the caller.
    """

    status_code = HTTPStatus.NOT_FOUND
    public_message = 'File does not exist'


class CorruptFileRecord(Exception):  # noqa: N818
    """Raised when a stored record cannot be decoded."""

    def __init__(self, name: str, reason: str) -> None:
        """Initialize CorruptFileRecord.

        Args:
            name: Base name of the record.
            reason: What is wrong with it.
        """
        self.name = name
        super().__init__(f'Corrupt file record {name}: {reason}')
