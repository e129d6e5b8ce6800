"""Outcomes of the authorization engine."""

import enum
from dataclasses import dataclass
from typing import final


@final
class RequestKind(enum.Enum):
    """What the caller wants to do with a file."""

    UPLOAD = 'upload'
    DOWNLOAD = 'download'


@final
@dataclass(frozen=True, slots=True)
class Allowed:
    """The request may proceed with uploads limited to ``max_size`` bytes."""

    max_size: int


@final
@dataclass(frozen=True, slots=True)
class Denied:
    """The request is rejected.

    ``scheme_hint`` names the scheme whose credential identified a
    principal but failed the password or permission check. It stays
    ``None`` for absent, malformed or unknown credentials, so callers
    cannot discover which principals exist.
    """

    scheme_hint: str | None = None


AuthDecision = Allowed | Denied
