"""HTTP views for uploading and downloading files."""

import functools
import logging
import time
from collections.abc import Callable, Iterator
from typing import Final

from django.conf import settings
from django.http import FileResponse, HttpRequest, HttpResponse
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from server.apps.authorization.engine import get_engine
from server.apps.files.exceptions import (
    FileServiceError,
    InternalError,
    InvalidAuth,
)
from server.apps.files.infrastructure.storage import (
    get_record_store,
    get_upload_storage,
)
from server.apps.files.logic.access import AccessResolver
from server.apps.files.logic.uploads import (
    DELETE_AFTER_HEADER,
    PERMISSION_HEADER,
    UploadRequest,
    upload_file,
)

logger = logging.getLogger(__name__)

_View = Callable[..., HttpResponse]

_OCTET_STREAM: Final = 'application/octet-stream'


def _handle_errors(view: _View) -> _View:
    """Turn ``FileServiceError`` into responses, everything else into 500."""

    @functools.wraps(view)
    def decorator(request: HttpRequest, *args: object, **kwargs: object) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except FileServiceError as error:
            return _error_response(error)
        except Exception:
            logger.exception('Internal error while serving %s', request.path)
            return _error_response(InternalError())

    return decorator


def _error_response(error: FileServiceError) -> HttpResponse:
    response = HttpResponse(
        error.message,
        status=error.status_code,
        content_type='text/plain',
    )
    if isinstance(error, InvalidAuth):
        response['WWW-Authenticate'] = error.scheme
    return response


def _read_chunks(
    request: HttpRequest,
    content_length: int | None,
) -> Iterator[bytes]:
    chunk_size = settings.UPLOAD_CHUNK_SIZE
    if content_length is None:
        # Django limits the body to Content-Length, which it takes as 0
        # when absent. The WSGI server has already removed chunked framing.
        read = request.environ['wsgi.input'].read
    else:
        read = request.read
    return iter(functools.partial(read, chunk_size), b'')


def _content_length(request: HttpRequest) -> int | None:
    # An unparsable header is treated like a missing one
    raw_length = request.headers.get('Content-Length')
    if raw_length is None:
        return None
    if not (raw_length.isascii() and raw_length.isdigit()):
        return None
    return int(raw_length)


@csrf_exempt
@require_POST
@_handle_errors
def upload(request: HttpRequest, filename: str) -> HttpResponse:
    """Store the request body and respond with its download link.

    Args:
        request: Upload request, the body is the file content.
        filename: Filename from the request path.

    Returns:
        ``201 Created`` with the link in ``Location`` and in the body.
    """
    content_length = _content_length(request)
    upload_request = UploadRequest(
        filename=filename,
        chunks=_read_chunks(request, content_length),
        authorization=request.headers.get('Authorization'),
        content_length=content_length,
        download_permission=request.headers.get(PERMISSION_HEADER),
        delete_after=request.headers.get(DELETE_AFTER_HEADER),
    )
    name = upload_file(
        upload_request,
        engine=get_engine(),
        storage=get_upload_storage(),
        records=get_record_store(),
        now=int(time.time()),
    )

    link = reverse('files:download', kwargs={'filename': name})
    response = HttpResponse(
        f'Created: {link}',
        status=201,
        content_type='text/plain',
    )
    response['Location'] = link
    return response


@require_GET
@_handle_errors
def download(request: HttpRequest, filename: str) -> HttpResponse:
    """Stream a stored file as an attachment.

    Args:
        request: Download request.
        filename: Committed storage name from the request path.

    Returns:
        Streaming response with the file content.
    """
    resolver = AccessResolver(
        engine=get_engine(),
        storage=get_upload_storage(),
        records=get_record_store(),
    )
    stored = resolver.open_download(
        filename,
        request.headers.get('Authorization'),
        now=int(time.time()),
    )

    response = FileResponse(
        stored.file,
        as_attachment=True,
        filename=stored.name,
        content_type=_OCTET_STREAM,
    )
    if stored.size is not None:
        response['Content-Length'] = str(stored.size)
    return response
