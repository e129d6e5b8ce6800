"""HTTP Basic credential scheme backed by bcrypt password hashes."""

import base64
import logging
from dataclasses import dataclass, field
from typing import Final, final

import bcrypt

from server.apps.authorization.decisions import (
    Allowed,
    AuthDecision,
    Denied,
    RequestKind,
)

logger = logging.getLogger(__name__)

SCHEME: Final = 'Basic'


@final
@dataclass(frozen=True, slots=True)
class BasicCredentials:
    """Username and password decoded from a ``Basic`` payload."""

    username: str
    password: str = field(repr=False)


def parse_credentials(payload: str) -> BasicCredentials | None:
    """Decode a ``Basic`` authorization payload.

    The payload must be strict base64 of UTF-8 text holding
    exactly one colon: ``username:password``.

    Args:
        payload: Second token of the ``Authorization`` header.

    Returns:
        Decoded credentials, or None if the payload is malformed.
    """
    try:
        decoded = base64.b64decode(payload, validate=True).decode('utf-8')
    except ValueError:
        # binascii.Error, UnicodeDecodeError and non-ASCII input
        return None

    parts = decoded.split(':')
    if len(parts) != 2:
        return None

    username, password = parts
    return BasicCredentials(username=username, password=password)


def hash_password(password: str) -> str:
    """Hash a password for the ``password`` key of a ``[[basic]]`` entry.

    Args:
        password: Plain text password.

    Returns:
        bcrypt hash as text.
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


@final
@dataclass(frozen=True, slots=True)
class BasicEntry:
    """One ``[[basic]]`` principal of the credential policy."""

    username: str
    password_hash: str = field(repr=False)
    max_size: int | None = None
    can_upload: bool = True
    can_download: bool = True

    def permits(self, kind: RequestKind) -> bool:
        """Check whether this principal may perform ``kind`` at all."""
        if kind is RequestKind.UPLOAD:
            return self.can_upload
        return self.can_download

    def evaluate(
        self,
        kind: RequestKind,
        credentials: BasicCredentials,
        default_max_size: int,
    ) -> AuthDecision | None:
        """Evaluate credentials against this entry.

        Args:
            kind: Requested operation.
            credentials: Decoded username and password.
            default_max_size: Policy-wide upload limit.

        Returns:
            None if the username belongs to another entry, otherwise
            ``Allowed`` or ``Denied('Basic')``.
        """
        if credentials.username != self.username:
            return None

        if self.verify_password(credentials.password) and self.permits(kind):
            if self.max_size is None:
                return Allowed(max_size=default_max_size)
            return Allowed(max_size=self.max_size)

        logger.warning(
            'Basic authorization failed for user %s (%s)',
            self.username,
            kind.value,
        )
        return Denied(scheme_hint=SCHEME)

    def verify_password(self, password: str) -> bool:
        """Check a password against the stored bcrypt hash.

        A malformed stored hash or an over-long password never verifies.
        """
        try:
            return bcrypt.checkpw(password.encode(), self.password_hash.encode())
        except ValueError:
            logger.exception(
                'Cannot verify password of user %s against its bcrypt hash',
                self.username,
            )
            return False
