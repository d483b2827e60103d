"""Request validation utilities applied before routing."""

from typing import Optional

from filebox.domain.http_types import HttpRequest, HttpResponse
from filebox.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
    method_not_allowed_response,
)


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


def enforce_allowed_method(
    request: HttpRequest,
    allowed_methods: set[str],
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    """Ensure the HTTP method is part of the supported allowlist."""
    if request.method in allowed_methods:
        return None

    return method_not_allowed_response(request, security_headers, allowed_methods)


def enforce_well_formed_route(
    request: HttpRequest, security_headers: dict[str, str]
) -> Optional[HttpResponse]:
    """Reject route paths that are not absolute or carry NUL bytes.

    Routes are matched exactly, so file path containment is left to the
    storage resolver rather than checked here.
    """
    if not request.path.startswith("/") or "\x00" in request.path:
        return bad_request_response(request, security_headers)
    return None


def enforce_post_constraints(
    request: HttpRequest,
    max_body_bytes: int,
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    """Validate POST-specific invariants such as Content-Length and size."""
    declared_length = request.headers.get("content-length")
    if declared_length is None:
        return bad_request_response(request, security_headers)
    try:
        content_length = int(declared_length)
    except ValueError:
        return bad_request_response(request, security_headers)
    if content_length != len(request.body):
        return bad_request_response(request, security_headers)
    if content_length > max_body_bytes:
        return entity_too_large_response(security_headers)
    return None


def validate_request(
    request: HttpRequest,
    allowed_methods: set[str],
    max_body_bytes: int,
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    """Return an error response when the request fails validation checks."""
    method_error = enforce_allowed_method(request, allowed_methods, security_headers)
    if method_error is not None:
        return method_error

    route_error = enforce_well_formed_route(request, security_headers)
    if route_error is not None:
        return route_error

    if request.method == "POST":
        return enforce_post_constraints(request, max_body_bytes, security_headers)

    return None
