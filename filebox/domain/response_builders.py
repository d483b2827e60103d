"""Pure HTTP response builders."""

import gzip
import json
from typing import Optional, Tuple

from filebox.domain.http_types import HttpRequest, HttpResponse, should_close


def accepts_gzip(headers: dict[str, str]) -> bool:
    """Return True when the Accept-Encoding header includes gzip with q>0."""
    encodings = headers.get("accept-encoding", "")
    for token in encodings.split(","):
        value = token.strip()
        if not value:
            continue
        algorithm, _, params = value.partition(";")
        if algorithm.strip().lower() != "gzip":
            continue
        quality = 1.0
        if params:
            for param in params.split(";"):
                key, _, raw_value = param.strip().partition("=")
                if key.lower() == "q" and raw_value:
                    try:
                        quality = float(raw_value)
                    except ValueError:
                        quality = 0.0
                    break
        if quality > 0:
            return True
    return False


def compress_if_gzip_supported(
    payload: bytes, headers: dict[str, str], compression_logger
) -> Tuple[bytes, dict[str, str]]:
    """Compress the payload when the request advertises gzip support."""
    if not accepts_gzip(headers):
        return payload, {}
    compression_logger.debug("Compressed payload", extra={"bytes_out": len(payload)})
    return gzip.compress(payload), {"Content-Encoding": "gzip"}


def _close_preference(request: Optional[HttpRequest]) -> bool:
    return should_close(request.headers) if request is not None else True


def json_response(
    status_line: str,
    payload: dict,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
    compression_logger=None,
) -> HttpResponse:
    """Return a JSON response, gzip-compressed when the client accepts it."""
    body = json.dumps(payload).encode()
    encoding_headers: dict[str, str] = {}
    if compression_logger is not None and request is not None:
        body, encoding_headers = compress_if_gzip_supported(
            body, request.headers, compression_logger
        )
    headers = {
        "Content-Type": "application/json",
        **encoding_headers,
        **security_headers,
    }
    return HttpResponse(status_line, headers, body, _close_preference(request))


def error_response(
    status_line: str,
    message: str,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Return a JSON ``{"error": message}`` response with the given status."""
    return json_response(status_line, {"error": message}, request, security_headers)


def ok_response(
    request: HttpRequest,
    security_headers: dict[str, str],
    status_line: str = "HTTP/1.1 200 OK",
) -> HttpResponse:
    """Return a JSON ``{"status": "ok"}`` acknowledgement."""
    return json_response(status_line, {"status": "ok"}, request, security_headers)


def not_found_response(
    request: HttpRequest, security_headers: dict[str, str], message: str = "Not found"
) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return error_response("HTTP/1.1 404 Not Found", message, request, security_headers)


def bad_request_response(
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
    message: str = "Bad request",
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return error_response(
        "HTTP/1.1 400 Bad Request", message, request, security_headers
    )


def unauthorized_response(
    request: HttpRequest, security_headers: dict[str, str], message: str
) -> HttpResponse:
    """Produce a 401 response for missing or invalid sessions and credentials."""
    return error_response(
        "HTTP/1.1 401 Unauthorized", message, request, security_headers
    )


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return error_response(
        "HTTP/1.1 413 Payload Too Large", "Payload too large", None, security_headers
    )


def connection_limited_response(
    limit_type: str | None, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 503 response describing which connection quota was exceeded."""
    reason = "Connection limit exceeded"
    if limit_type:
        reason = f"{limit_type} connection limit exceeded"
    headers = {"Retry-After": "1", **security_headers}
    return HttpResponse(
        "HTTP/1.1 503 Service Unavailable",
        headers,
        reason.encode(),
        True,
    )


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    headers = {"Connection": "close", **security_headers}
    return HttpResponse(
        "HTTP/1.1 503 Service Unavailable",
        headers,
        b"draining",
        True,
    )


def healthz_response(
    is_draining: bool, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a health check response based on server state."""
    if is_draining:
        return draining_response(security_headers)
    return HttpResponse(
        "HTTP/1.1 200 OK",
        security_headers.copy(),
        b"",
        False,
    )


def method_not_allowed_response(
    request: HttpRequest, security_headers: dict[str, str], allowed_methods
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = error_response(
        "HTTP/1.1 405 Method Not Allowed",
        "Method not allowed",
        request,
        security_headers,
    )
    response.headers["Allow"] = ", ".join(sorted(allowed_methods))
    return response
