"""Tests for the credential policy loader."""

import logging

import pytest
from django.core.exceptions import ImproperlyConfigured

from server.apps.authorization.decisions import RequestKind
from server.apps.authorization.policy import (
    DEFAULT_MAX_SIZE,
    CredentialPolicy,
    load_policy,
    policy_from_mapping,
)
from server.apps.authorization.schemes.bearer import DEFAULT_PERMISSIONS


def test_empty_policy_defaults():
    """Test an empty file denies everything and uses Basic."""
    policy = policy_from_mapping({})

    assert policy == CredentialPolicy()
    assert policy.default_scheme == 'Basic'
    assert policy.default_max_size == DEFAULT_MAX_SIZE
    assert not policy.allows_everyone(RequestKind.UPLOAD)
    assert not policy.allows_everyone(RequestKind.DOWNLOAD)


def test_load_full_policy(tmp_path):
    """Test every key of the file format is read in order."""
    policy_path = tmp_path / 'auth.toml'
    policy_path.write_text(
        '\n'.join((
            'default_auth_scheme = "Bearer"',
            'default_max_filesize = 1000',
            'allow_downloading_for_everyone = true',
            '[[basic]]',
            'username = "alice"',
            'password = "hash-a"',
            'max_filesize = 10',
            'allow_download = false',
            '[[basic]]',
            'username = "bob"',
            'password = "hash-b"',
            '[[bearer]]',
            'secret = "first"',
            'default_max_filesize = 20',
            'default_permissions = ["download"]',
            'max_filesize_field_name = "quota"',
            'permissions_field_name = "scope"',
            '[[bearer]]',
            'secret = "second"',
        )),
        encoding='utf-8',
    )

    policy = load_policy(policy_path)

    assert policy.default_scheme == 'Bearer'
    assert policy.default_max_size == 1000
    assert policy.allow_download_for_everyone
    assert not policy.allow_upload_for_everyone
    assert [entry.username for entry in policy.basic] == ['alice', 'bob']
    assert policy.basic[0].max_size == 10
    assert not policy.basic[0].can_download
    assert policy.basic[0].can_upload
    assert policy.basic[1].max_size is None
    assert [entry.secret for entry in policy.bearer] == ['first', 'second']
    assert policy.bearer[0].default_permissions == frozenset(('download',))
    assert policy.bearer[0].max_size_claim == 'quota'
    assert policy.bearer[0].permissions_claim == 'scope'
    assert policy.bearer[1].default_permissions == DEFAULT_PERMISSIONS


def test_load_missing_file(tmp_path):
    """Test a missing file is a configuration error."""
    with pytest.raises(ImproperlyConfigured, match='Cannot read'):
        load_policy(tmp_path / 'missing.toml')


def test_load_invalid_toml(tmp_path):
    """Test a syntax error is a configuration error."""
    policy_path = tmp_path / 'auth.toml'
    policy_path.write_text('[[basic]', encoding='utf-8')

    with pytest.raises(ImproperlyConfigured, match='Cannot parse'):
        load_policy(policy_path)


@pytest.mark.parametrize(('raw_policy', 'message'), [
    ({'default_max_filesize': 'big'}, 'default_max_filesize'),
    ({'default_max_filesize': -1}, 'must not be negative'),
    ({'allow_uploading_for_everyone': 1}, 'allow_uploading_for_everyone'),
    ({'basic': [{'password': 'x'}]}, '"username" is required'),
    ({'basic': [{'username': 'a'}]}, '"password" is required'),
    ({'basic': {'username': 'a'}}, 'basic'),
    ({'bearer': [{}]}, '"secret" is required'),
    ({'bearer': [{'secret': 's', 'default_permissions': [1]}]}, 'strings'),
])
def test_invalid_values(raw_policy, message):
    """Test wrongly typed keys are rejected."""
    with pytest.raises(ImproperlyConfigured, match=message):
        policy_from_mapping(raw_policy)


def test_unreachable_policy_warns(tmp_path, caplog):
    """Test a policy that can never authorize anything is reported."""
    policy_path = tmp_path / 'auth.toml'
    policy_path.write_text('', encoding='utf-8')

    with caplog.at_level(logging.WARNING):
        policy = load_policy(policy_path)

    assert policy.is_unreachable()
    assert 'No auth scheme is configured' in caplog.text


def test_blanket_policy_is_reachable():
    """Test a policy allowing everything needs no entries."""
    policy = policy_from_mapping({
        'allow_uploading_for_everyone': True,
        'allow_downloading_for_everyone': True,
    })

    assert not policy.is_unreachable()
