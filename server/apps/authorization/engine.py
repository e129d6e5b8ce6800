"""Authorization engine composing credential schemes into one decision."""

import functools
import logging
from typing import Final, final

from django.conf import settings

from server.apps.authorization.decisions import (
    Allowed,
    AuthDecision,
    Denied,
    RequestKind,
)
from server.apps.authorization.policy import CredentialPolicy, load_policy
from server.apps.authorization.schemes import basic, bearer

logger = logging.getLogger(__name__)

_TOKEN_COUNT: Final = 2


@final
class AuthorizationEngine:
    """Evaluate ``Authorization`` headers against a credential policy.

    Entries are evaluated in configured order and the first entry that
    recognizes the credential's identity decides, even when it denies.
    Only such a "known principal, wrong credential" denial carries a
    scheme hint; absent, malformed and unknown credentials do not.
    """

    def __init__(self, policy: CredentialPolicy) -> None:
        """Initialize the engine.

        Args:
            policy: Immutable credential policy.
        """
        self.policy = policy

    def authorize(
        self,
        kind: RequestKind,
        authorization: str | None,
    ) -> AuthDecision:
        """Decide whether a request of ``kind`` may proceed.

        Args:
            kind: Requested operation.
            authorization: Raw ``Authorization`` header value, if any.

        Returns:
            ``Allowed`` with the upload limit, or ``Denied``.
        """
        if self.policy.allows_everyone(kind):
            return Allowed(max_size=self.policy.default_max_size)

        if authorization is None:
            return Denied()

        # The header must look like `<scheme> <payload>`
        tokens = authorization.split(' ')
        if len(tokens) != _TOKEN_COUNT:
            return Denied()
        scheme, payload = tokens

        if scheme == basic.SCHEME:
            outcome = self._authorize_basic(kind, payload)
        elif scheme == bearer.SCHEME:
            outcome = self._authorize_bearer(kind, payload)
        else:
            outcome = None

        if outcome is None:
            logger.debug('No %s principal matched the credential', scheme)
            return Denied()
        return outcome

    def challenge_for(self, decision: Denied) -> str:
        """Scheme to advertise in ``WWW-Authenticate`` for a denial."""
        return decision.scheme_hint or self.policy.default_scheme

    def _authorize_basic(
        self,
        kind: RequestKind,
        payload: str,
    ) -> AuthDecision | None:
        credentials = basic.parse_credentials(payload)
        if credentials is None:
            return None
        for entry in self.policy.basic:
            outcome = entry.evaluate(
                kind,
                credentials,
                self.policy.default_max_size,
            )
            if outcome is not None:
                return outcome
        return None

    def _authorize_bearer(
        self,
        kind: RequestKind,
        token: str,
    ) -> AuthDecision | None:
        for entry in self.policy.bearer:
            outcome = entry.evaluate(
                kind,
                token,
                self.policy.default_max_size,
            )
            if outcome is not None:
                return outcome
        return None


@functools.cache
def get_engine() -> AuthorizationEngine:
    """Get the process-wide engine built from ``AUTH_CONFIG_PATH``.

    The policy file is read on first use. The cache is cleared when
    the setting changes, see ``signals.py``.
    """
    return AuthorizationEngine(load_policy(settings.AUTH_CONFIG_PATH))
