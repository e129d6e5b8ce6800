"""Bearer credential scheme: HMAC signed JSON Web Tokens."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, TypeGuard, final

import jwt

from server.apps.authorization.decisions import (
    Allowed,
    AuthDecision,
    Denied,
    RequestKind,
)

logger = logging.getLogger(__name__)

SCHEME: Final = 'Bearer'

DEFAULT_PERMISSIONS: Final = frozenset(kind.value for kind in RequestKind)
DEFAULT_MAX_SIZE_CLAIM: Final = 'max_filesize'
DEFAULT_PERMISSIONS_CLAIM: Final = 'permissions'
DEFAULT_ALGORITHM: Final = 'HS256'


@final
@dataclass(frozen=True, slots=True)
class BearerEntry:
    """One ``[[bearer]]`` signing secret of the credential policy.

    Tokens signed with ``secret`` may carry their own upload limit and
    permissions in the claims named by ``max_size_claim`` and
    ``permissions_claim``. Missing or mistyped claims fall back to the
    entry defaults.
    """

    secret: str = field(repr=False)
    default_max_size: int | None = None
    default_permissions: frozenset[str] = DEFAULT_PERMISSIONS
    max_size_claim: str = DEFAULT_MAX_SIZE_CLAIM
    permissions_claim: str = DEFAULT_PERMISSIONS_CLAIM
    algorithm: str = DEFAULT_ALGORITHM

    def decode(self, token: str) -> dict[str, Any] | None:
        """Verify signature, structure and expiry of a token.

        Args:
            token: Encoded JWT.

        Returns:
            Claims, or None if the token was not issued with this secret.
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={'require': ['exp']},
            )
        except jwt.PyJWTError:
            return None

    def evaluate(
        self,
        kind: RequestKind,
        token: str,
        default_max_size: int,
    ) -> AuthDecision | None:
        """Evaluate a token against this entry.

        A signature mismatch is not an identity match: the engine moves
        on to the next secret.

        Args:
            kind: Requested operation.
            token: Encoded JWT.
            default_max_size: Policy-wide upload limit.

        Returns:
            None if the token does not verify with this secret, otherwise
            ``Allowed`` or ``Denied('Bearer')``.
        """
        claims = self.decode(token)
        if claims is None:
            return None

        if kind.value not in self.permissions_from(claims):
            logger.warning('Bearer token lacks %s permission', kind.value)
            return Denied(scheme_hint=SCHEME)

        return Allowed(max_size=self.max_size_from(claims, default_max_size))

    def max_size_from(
        self,
        claims: Mapping[str, Any],
        default_max_size: int,
    ) -> int:
        """Resolve the upload limit granted by a token."""
        claimed = claims.get(self.max_size_claim)
        if _is_size(claimed):
            return claimed
        if self.default_max_size is not None:
            return self.default_max_size
        return default_max_size

    def permissions_from(self, claims: Mapping[str, Any]) -> frozenset[str]:
        """Resolve the permissions granted by a token.

        Non-string elements of the claim are ignored.
        """
        claimed = claims.get(self.permissions_claim)
        if isinstance(claimed, list):
            return frozenset(
                permission
                for permission in claimed
                if isinstance(permission, str)
            )
        return self.default_permissions


def _is_size(claimed: object) -> TypeGuard[int]:
    # bool is an int subclass, `true` is not a size
    return (
        isinstance(claimed, int)
        and not isinstance(claimed, bool)
        and claimed >= 0
    )
