"""HTTP handlers for the per-user file operations."""

import io
import logging
import mimetypes
import urllib.parse
from typing import BinaryIO, Callable, Iterator

from filebox.bootstrap.config import SECURITY_HEADERS
from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.domain.http_types import (
    HttpRequest,
    HttpResponse,
    form_params,
    should_close,
)
from filebox.domain.response_builders import (
    error_response,
    json_response,
    ok_response,
)
from filebox.handlers.operations import FileOperations
from filebox.storage.errors import (
    AlreadyExists,
    ContainmentError,
    FileboxError,
    InvalidArgument,
    NotFound,
    StorageError,
)

FILE_LOGGER = CorrelationLoggerAdapter(logging.getLogger("filebox.handlers.file"), {})

FileRouteHandler = Callable[[HttpRequest, str, FileOperations], HttpResponse]

ERROR_STATUS_LINES: dict[type, str] = {
    ContainmentError: "HTTP/1.1 403 Forbidden",
    InvalidArgument: "HTTP/1.1 400 Bad Request",
    NotFound: "HTTP/1.1 404 Not Found",
    AlreadyExists: "HTTP/1.1 409 Conflict",
    StorageError: "HTTP/1.1 500 Internal Server Error",
}

CREATED = "HTTP/1.1 201 Created"


def stream_file(file_handle: BinaryIO, chunk_size: int = 65536) -> Iterator[bytes]:
    """Yield chunks from an already opened file, closing it when exhausted."""
    with file_handle:
        while True:
            chunk = file_handle.read(chunk_size)
            if not chunk:
                break
            yield chunk


def _content_type_for_name(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or "application/octet-stream"


def _content_disposition(name: str) -> str:
    fallback = name.encode("ascii", "replace").decode().replace('"', "_")
    quoted = urllib.parse.quote(name, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def error_to_response(
    request: HttpRequest, user_id: str, error: FileboxError
) -> HttpResponse:
    """Map a storage error to its HTTP status without exposing storage paths."""
    status_line = ERROR_STATUS_LINES.get(
        type(error), "HTTP/1.1 500 Internal Server Error"
    )
    details = {
        "route": request.path,
        "method": request.method,
        "user": user_id,
        "error_type": type(error).__name__,
    }
    if isinstance(error, ContainmentError):
        FILE_LOGGER.warning(
            "Forbidden path access blocked",
            extra={"event": "forbidden_path", **details},
        )
    elif isinstance(error, StorageError):
        FILE_LOGGER.error(
            "Storage operation failed",
            extra={"event": "storage_error", **details},
            exc_info=error,
        )
    else:
        FILE_LOGGER.info(
            "File operation rejected", extra={"event": "operation_rejected", **details}
        )
    return error_response(status_line, error.public_message, request, SECURITY_HEADERS)


def handle_list(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """GET /list?path=..."""
    params = form_params(request)
    listing = operations.list_folder(user_id, params.get("path", ""))
    return json_response(
        "HTTP/1.1 200 OK",
        listing.as_dict(),
        request,
        SECURITY_HEADERS,
        FILE_LOGGER,
    )


def handle_create_folder(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """POST /create-folder with ``path`` and ``name``."""
    params = form_params(request)
    operations.create_folder(user_id, params.get("path", ""), params.get("name"))
    return ok_response(request, SECURITY_HEADERS, CREATED)


def handle_delete_folder(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """POST /delete-folder with ``path`` and ``name``."""
    params = form_params(request)
    operations.delete(user_id, params.get("path", ""), params.get("name"))
    return ok_response(request, SECURITY_HEADERS)


def handle_delete_file(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """POST /delete-file with ``path`` and ``filename``."""
    params = form_params(request)
    operations.delete(user_id, params.get("path", ""), params.get("filename"))
    return ok_response(request, SECURITY_HEADERS)


def handle_rename(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """POST /rename-folder or /rename-file with ``path``, ``oldName``, ``newName``."""
    params = form_params(request)
    operations.rename(
        user_id,
        params.get("path", ""),
        params.get("oldName"),
        params.get("newName"),
    )
    return ok_response(request, SECURITY_HEADERS)


def handle_upload(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """POST /upload?path=...&filename=... with the raw file bytes as body.

    The body is file content whatever its Content-Type, so the target is
    taken from the query string only.
    """
    params = request.query
    operations.upload(
        user_id,
        params.get("path", ""),
        params.get("filename"),
        io.BytesIO(request.body),
    )
    return ok_response(request, SECURITY_HEADERS, CREATED)


def handle_download(
    request: HttpRequest, user_id: str, operations: FileOperations
) -> HttpResponse:
    """GET /download?path=...&filename=... streamed with chunked encoding."""
    params = form_params(request)
    target, file_handle = operations.download(
        user_id, params.get("path", ""), params.get("filename")
    )
    name = target.location.name
    headers = {
        "Content-Type": _content_type_for_name(name),
        "Content-Disposition": _content_disposition(name),
        **SECURITY_HEADERS,
    }
    FILE_LOGGER.info(
        "File read operation started",
        extra={
            "event": "file_read_started",
            "user": user_id,
            "relative_path": target.relative,
        },
    )
    return HttpResponse(
        "HTTP/1.1 200 OK",
        headers,
        b"",
        should_close(request.headers),
        body_iter=stream_file(file_handle),
        use_chunked=True,
    )


def dispatch_file_route(
    handler: FileRouteHandler,
    request: HttpRequest,
    user_id: str,
    operations: FileOperations,
) -> HttpResponse:
    """Run a file route handler, translating storage errors into responses."""
    try:
        return handler(request, user_id, operations)
    except FileboxError as error:
        return error_to_response(request, user_id, error)


FILE_ROUTES: dict[tuple[str, str], FileRouteHandler] = {
    ("GET", "/list"): handle_list,
    ("POST", "/create-folder"): handle_create_folder,
    ("POST", "/delete-folder"): handle_delete_folder,
    ("POST", "/delete-file"): handle_delete_file,
    ("POST", "/rename-folder"): handle_rename,
    ("POST", "/rename-file"): handle_rename,
    ("POST", "/upload"): handle_upload,
    ("GET", "/download"): handle_download,
}
