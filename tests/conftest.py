"""Shared fixtures for the file server tests."""

import base64
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import bcrypt
import jwt
import pytest

from server.apps.files.infrastructure.storage import (
    FileRecordStore,
    UploadStorage,
    get_record_store,
    get_upload_storage,
)

_PASSWORD = 'secret'  # noqa: S105


@pytest.fixture(scope='session')
def password():
    """Plain password of every ``[[basic]]`` entry in the tests."""
    return _PASSWORD


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt hash of ``password`` with the cheapest cost factor.

    Returns:
        Hash usable as ``password_hash`` of a ``BasicEntry``.
    """
    return bcrypt.hashpw(_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()


@pytest.fixture(scope='session')
def jwt_secret():
    """Bearer secret, long enough for PyJWT not to warn about it."""
    return 'a-bearer-secret-of-at-least-32-bytes'


@pytest.fixture(scope='session')
def other_jwt_secret():
    """Bearer secret that no policy in the tests is configured with."""
    return 'another-bearer-secret-of-32-bytes!'


@pytest.fixture(scope='session')
def basic_header() -> Callable[[str, str], str]:
    """Build ``Basic`` authorization header values.

    Returns:
        Function taking username and password.
    """

    def factory(username: str, password: str) -> str:
        payload = base64.b64encode(f'{username}:{password}'.encode())
        return f'Basic {payload.decode()}'

    return factory


@pytest.fixture(scope='session')
def bearer_header() -> Callable[..., str]:
    """Build ``Bearer`` authorization header values.

    Returns:
        Function taking the secret and extra claims. Tokens expire in
        a minute unless ``exp`` is passed.
    """

    def factory(secret: str, **claims: Any) -> str:
        claims.setdefault('exp', int(time.time()) + 60)
        return f'Bearer {jwt.encode(claims, secret, algorithm="HS256")}'

    return factory


@pytest.fixture
def storage_dirs(settings, tmp_path):
    """Point the upload and data directories at a temporary location.

    Returns:
        Tuple of upload and data directory.
    """
    upload_dir = tmp_path / 'upload'
    data_dir = tmp_path / 'data'
    upload_dir.mkdir()
    data_dir.mkdir()
    settings.UPLOAD_DIRECTORY = str(upload_dir)
    settings.DATA_DIRECTORY = str(data_dir)
    return upload_dir, data_dir


@pytest.fixture
def upload_storage(storage_dirs) -> UploadStorage:
    """Blob storage inside ``storage_dirs``."""
    return get_upload_storage()


@pytest.fixture
def record_store(storage_dirs) -> FileRecordStore:
    """Record storage inside ``storage_dirs``."""
    return get_record_store()


@pytest.fixture
def write_policy(settings, tmp_path) -> Callable[[str], Path]:
    """Write an auth config file and make it the active policy.

    Returns:
        Function taking the TOML text and returning the file path.
    """

    def factory(toml_text: str) -> Path:
        policy_path = tmp_path / 'auth.toml'
        policy_path.write_text(toml_text, encoding='utf-8')
        settings.AUTH_CONFIG_PATH = str(policy_path)
        return policy_path

    return factory
