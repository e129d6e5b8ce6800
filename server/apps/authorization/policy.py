"""Credential policy and its TOML loader.

The policy is read once per process and never mutated afterwards,
so request handlers share it without synchronization.

Example ``auth.toml``::

    default_auth_scheme = "Basic"
    default_max_filesize = 10737418240
    allow_downloading_for_everyone = true

    [[basic]]
    username = "alice"
    password = "$2b$12$..."
    max_filesize = 1073741824

    [[bearer]]
    secret = "..."
    default_permissions = ["download"]
"""

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, final

from django.core.exceptions import ImproperlyConfigured

from server.apps.authorization.decisions import RequestKind
from server.apps.authorization.schemes import basic, bearer
from server.apps.authorization.schemes.basic import BasicEntry
from server.apps.authorization.schemes.bearer import BearerEntry

logger = logging.getLogger(__name__)

DEFAULT_SCHEME: Final = basic.SCHEME
DEFAULT_MAX_SIZE: Final = 10 * 1024 * 1024 * 1024  # 10 GiB


@final
@dataclass(frozen=True, slots=True)
class CredentialPolicy:
    """Process-wide authorization policy.

    ``basic`` and ``bearer`` keep the order of the configuration file,
    which is the order the engine evaluates them in.
    """

    default_scheme: str = DEFAULT_SCHEME
    default_max_size: int = DEFAULT_MAX_SIZE
    allow_upload_for_everyone: bool = False
    allow_download_for_everyone: bool = False
    basic: tuple[BasicEntry, ...] = ()
    bearer: tuple[BearerEntry, ...] = ()

    def allows_everyone(self, kind: RequestKind) -> bool:
        """Check whether ``kind`` needs no credential at all."""
        if kind is RequestKind.UPLOAD:
            return self.allow_upload_for_everyone
        return self.allow_download_for_everyone

    def is_unreachable(self) -> bool:
        """Check whether some request kind can never be authorized."""
        needs_credentials = not (
            self.allow_upload_for_everyone and self.allow_download_for_everyone
        )
        return needs_credentials and not (self.basic or self.bearer)


def load_policy(path: str | Path) -> CredentialPolicy:
    """Read the credential policy from a TOML file.

    Args:
        path: Location of the policy file.

    Returns:
        Parsed policy.

    Raises:
        ImproperlyConfigured: If the file is missing or invalid.
    """
    policy_path = Path(path)
    try:
        with policy_path.open('rb') as policy_file:
            raw_policy = tomllib.load(policy_file)
    except OSError as error:
        raise ImproperlyConfigured(
            f'Cannot read auth config file {policy_path}: {error}',
        ) from error
    except tomllib.TOMLDecodeError as error:
        raise ImproperlyConfigured(
            f'Cannot parse auth config file {policy_path}: {error}',
        ) from error

    policy = policy_from_mapping(raw_policy)
    logger.info(
        'Loaded auth config %s: %d basic, %d bearer entries',
        policy_path,
        len(policy.basic),
        len(policy.bearer),
    )
    if policy.is_unreachable():
        logger.warning(
            'No auth scheme is configured, '
            'uploading / downloading will be impossible',
        )
    return policy


def policy_from_mapping(raw_policy: Mapping[str, Any]) -> CredentialPolicy:
    """Build a policy from already parsed configuration.

    Keys follow the file format: ``default_auth_scheme``,
    ``default_max_filesize``, ``allow_uploading_for_everyone``,
    ``allow_downloading_for_everyone``, ``basic`` and ``bearer``.

    Raises:
        ImproperlyConfigured: If a key has the wrong type.
    """
    return CredentialPolicy(
        default_scheme=_read(
            raw_policy, 'default_auth_scheme', str, DEFAULT_SCHEME,
        ),
        default_max_size=_read_size(
            raw_policy, 'default_max_filesize', DEFAULT_MAX_SIZE,
        ),
        allow_upload_for_everyone=_read(
            raw_policy, 'allow_uploading_for_everyone', bool, False,
        ),
        allow_download_for_everyone=_read(
            raw_policy, 'allow_downloading_for_everyone', bool, False,
        ),
        basic=tuple(
            _basic_entry(raw_entry)
            for raw_entry in _read_tables(raw_policy, 'basic')
        ),
        bearer=tuple(
            _bearer_entry(raw_entry)
            for raw_entry in _read_tables(raw_policy, 'bearer')
        ),
    )


def _basic_entry(raw_entry: Mapping[str, Any]) -> BasicEntry:
    return BasicEntry(
        username=_require(raw_entry, 'username', str),
        password_hash=_require(raw_entry, 'password', str),
        max_size=_read_size(raw_entry, 'max_filesize', None),
        can_upload=_read(raw_entry, 'allow_upload', bool, True),
        can_download=_read(raw_entry, 'allow_download', bool, True),
    )


def _bearer_entry(raw_entry: Mapping[str, Any]) -> BearerEntry:
    permissions = _read(raw_entry, 'default_permissions', list, None)
    if permissions is None:
        default_permissions = bearer.DEFAULT_PERMISSIONS
    elif all(isinstance(permission, str) for permission in permissions):
        default_permissions = frozenset(permissions)
    else:
        raise ImproperlyConfigured(
            'Auth config key "default_permissions" must be a list of strings',
        )

    return BearerEntry(
        secret=_require(raw_entry, 'secret', str),
        default_max_size=_read_size(raw_entry, 'default_max_filesize', None),
        default_permissions=default_permissions,
        max_size_claim=_read(
            raw_entry,
            'max_filesize_field_name',
            str,
            bearer.DEFAULT_MAX_SIZE_CLAIM,
        ),
        permissions_claim=_read(
            raw_entry,
            'permissions_field_name',
            str,
            bearer.DEFAULT_PERMISSIONS_CLAIM,
        ),
        algorithm=_read(
            raw_entry, 'algorithm', str, bearer.DEFAULT_ALGORITHM,
        ),
    )


def _read(
    raw: Mapping[str, Any],
    key: str,
    expected: type,
    default: Any,
) -> Any:
    if key not in raw:
        return default
    value = raw[key]
    # TOML booleans are never ints, but ints must not pass as bools
    if not isinstance(value, expected) or (
        expected is int and isinstance(value, bool)
    ):
        raise ImproperlyConfigured(
            f'Auth config key "{key}" must be of type {expected.__name__}',
        )
    return value


def _require(raw: Mapping[str, Any], key: str, expected: type) -> Any:
    if key not in raw:
        raise ImproperlyConfigured(f'Auth config key "{key}" is required')
    return _read(raw, key, expected, None)


def _read_size(
    raw: Mapping[str, Any],
    key: str,
    default: int | None,
) -> int | None:
    size = _read(raw, key, int, default)
    if size is not None and size < 0:
        raise ImproperlyConfigured(
            f'Auth config key "{key}" must not be negative',
        )
    return size


def _read_tables(raw: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    tables = _read(raw, key, list, [])
    if not all(isinstance(table, Mapping) for table in tables):
        raise ImproperlyConfigured(
            f'Auth config key "{key}" must be an array of tables',
        )
    return tables
