"""Request routing logic."""

import logging
from typing import Callable, Optional

from filebox.bootstrap.config import SECURITY_HEADERS
from filebox.domain.correlation_id import CorrelationLoggerAdapter, set_request_user
from filebox.domain.http_types import HttpRequest, HttpResponse
from filebox.domain.response_builders import (
    healthz_response,
    method_not_allowed_response,
    not_found_response,
    unauthorized_response,
)
from filebox.handlers.auth_handler import (
    authenticated_user,
    handle_login,
    handle_logout,
)
from filebox.handlers.file_handler import FILE_ROUTES, dispatch_file_route
from filebox.handlers.services import FileboxServices
from filebox.lifecycle.state import ServerLifecycle

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.pipeline.router"), {}
)

SessionRouteHandler = Callable[[HttpRequest, FileboxServices], HttpResponse]

SESSION_ROUTES: dict[tuple[str, str], SessionRouteHandler] = {
    ("POST", "/login"): handle_login,
    ("GET", "/logout"): handle_logout,
    ("POST", "/logout"): handle_logout,
}


def _log_match(route: str) -> None:
    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched", extra={"event": "route_matched", "route": route}
        )


def _allowed_methods_for(path: str) -> set[str]:
    known = [*SESSION_ROUTES, *FILE_ROUTES, ("GET", "/healthz")]
    return {method for method, route in known if route == path}


def route_request(
    request: HttpRequest,
    services: FileboxServices,
    lifecycle: Optional[ServerLifecycle] = None,
) -> HttpResponse:
    """Route the request to the appropriate handler and return a response."""
    key = (request.method, request.path)

    if key == ("GET", "/healthz"):
        _log_match("/healthz")
        draining = lifecycle is not None and lifecycle.is_draining()
        return healthz_response(draining, SECURITY_HEADERS)

    session_handler = SESSION_ROUTES.get(key)
    if session_handler is not None:
        _log_match(request.path)
        return session_handler(request, services)

    file_handler = FILE_ROUTES.get(key)
    if file_handler is not None:
        _log_match(request.path)
        user_id = authenticated_user(request, services.sessions)
        if user_id is None:
            ROUTER_LOGGER.info(
                "Request without a valid session",
                extra={"event": "session_missing", "route": request.path},
            )
            return unauthorized_response(
                request, SECURITY_HEADERS, "Authentication required"
            )
        set_request_user(user_id)
        return dispatch_file_route(
            file_handler, request, user_id, services.operations
        )

    allowed = _allowed_methods_for(request.path)
    if allowed:
        return method_not_allowed_response(request, SECURITY_HEADERS, allowed)

    ROUTER_LOGGER.info(
        "No matching route found",
        extra={
            "event": "route_not_found",
            "route": request.path,
            "method": request.method,
        },
    )
    return not_found_response(request, SECURITY_HEADERS)
