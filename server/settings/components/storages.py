"""Filesystem storage configuration for uploaded files.

Blobs live in ``UPLOAD_DIRECTORY`` under their committed names.
Per-file records live in ``DATA_DIRECTORY`` under the same base names.

The data directory must not be the upload directory or a subdirectory
of it, otherwise records would be served as downloadable blobs.
"""

from server.settings.components import config

UPLOAD_DIRECTORY = config('UPLOAD_DIRECTORY', default='upload')
DATA_DIRECTORY = config('DATA_DIRECTORY', default='data')

# Bytes read from the request stream per iteration
UPLOAD_CHUNK_SIZE = config('UPLOAD_CHUNK_SIZE', cast=int, default=65536)

# `.partial` files older than this (seconds) belong to aborted uploads
PARTIAL_UPLOAD_MAX_AGE = config(
    'PARTIAL_UPLOAD_MAX_AGE',
    cast=int,
    default=86400,
)
