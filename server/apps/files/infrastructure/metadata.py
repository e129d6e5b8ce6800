"""Naming and fingerprint utilities for stored files."""

import hashlib
import secrets
import string
from typing import Final

# Characters that would let a filename escape the storage directory
_FORBIDDEN_CHARACTERS: Final = ('/', '\\', '\x00')
_RESERVED_NAMES: Final = frozenset(('', '.', '..'))
_RANDOM_ALPHABET: Final = string.ascii_letters + string.digits

PREFIX_LENGTH: Final = 8
PARTIAL_SUFFIX: Final = '.partial'


def is_valid_filename(filename: str) -> bool:
    """Check that a client supplied filename is a single path component.

    Names of unfinished uploads are rejected as well, so a stored file
    can never be mistaken for one.

    Args:
        filename: Filename taken from the request path.

    Returns:
        False if the name is empty, a relative directory, contains
        a path separator or ends with the partial upload suffix.
    """
    if filename in _RESERVED_NAMES or is_partial_name(filename):
        return False
    return not any(char in filename for char in _FORBIDDEN_CHARACTERS)


def generate_random_prefix(length: int = PREFIX_LENGTH) -> str:
    """Generate a random alphanumeric string.

    Args:
        length: Number of characters.

    Returns:
        String of ``length`` random ASCII letters and digits.
    """
    return ''.join(secrets.choice(_RANDOM_ALPHABET) for _ in range(length))


def partial_name(filename: str) -> str:
    """Name of the temporary file an upload is streamed into.

    Example: 'report.pdf' -> 'Xa81Kq0z_report.pdf.partial'
    """
    return f'{generate_random_prefix()}_{filename}{PARTIAL_SUFFIX}'


def is_partial_name(name: str) -> bool:
    """Check whether a stored name belongs to an unfinished upload."""
    return name.endswith(PARTIAL_SUFFIX)


def new_fingerprint() -> 'hashlib._Hash':
    """Create a content fingerprint accumulator (SHA256)."""
    return hashlib.sha256()


def committed_name(fingerprint_hex: str, filename: str) -> str:
    """Public name of a stored file.

    Only the first ``PREFIX_LENGTH`` hex characters of the fingerprint
    are used, colliding prefixes with the same filename overwrite
    each other.

    Example: ('9f86d081...', 'report.pdf') -> '9f86d081_report.pdf'
    """
    return f'{fingerprint_hex[:PREFIX_LENGTH]}_{filename}'
