"""Login and logout handlers backed by cookie sessions."""

import logging
from typing import Optional

from filebox.auth.credentials import AuthError
from filebox.auth.sessions import SessionStore
from filebox.bootstrap.config import SECURITY_HEADERS, SESSION_COOKIE_NAME
from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.domain.http_types import (
    HttpRequest,
    HttpResponse,
    form_params,
    parse_cookies,
)
from filebox.domain.response_builders import (
    json_response,
    ok_response,
    unauthorized_response,
)
from filebox.handlers.file_handler import error_to_response
from filebox.handlers.services import FileboxServices
from filebox.storage.errors import FileboxError

AUTH_HANDLER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.handlers.auth"), {}
)


def session_token(request: HttpRequest) -> Optional[str]:
    """Return the session token carried by the request cookie, if any."""
    return parse_cookies(request.headers).get(SESSION_COOKIE_NAME)


def authenticated_user(request: HttpRequest, sessions: SessionStore) -> Optional[str]:
    """Return the user bound to the request's session cookie."""
    return sessions.lookup(session_token(request))


def session_cookie(token: str, max_age: int, secure: bool) -> str:
    """Build the Set-Cookie value for a session token."""
    attributes = [
        f"{SESSION_COOKIE_NAME}={token}",
        "HttpOnly",
        "SameSite=Strict",
        "Path=/",
        f"Max-Age={max_age}",
    ]
    if secure:
        attributes.append("Secure")
    return "; ".join(attributes)


def handle_login(request: HttpRequest, services: FileboxServices) -> HttpResponse:
    """POST /login with ``username`` and ``password`` form fields."""
    params = form_params(request)
    username = params.get("username", "")
    try:
        user_id = services.authenticator.authenticate(
            username, params.get("password", "")
        )
    except AuthError as error:
        AUTH_HANDLER_LOGGER.warning(
            "Login rejected",
            extra={"event": "login_failed", "reason": str(error)},
        )
        return unauthorized_response(request, SECURITY_HEADERS, error.public_message)

    try:
        services.operations.namespace.ensure(user_id)
    except FileboxError as error:
        return error_to_response(request, user_id, error)
    token = services.sessions.create(user_id)
    AUTH_HANDLER_LOGGER.info(
        "Login succeeded", extra={"event": "login_succeeded", "user": user_id}
    )
    response = json_response(
        "HTTP/1.1 200 OK", {"user": user_id}, request, SECURITY_HEADERS
    )
    response.headers["Set-Cookie"] = session_cookie(
        token,
        services.config.session_ttl_seconds,
        services.config.secure_cookies,
    )
    return response


def handle_logout(request: HttpRequest, services: FileboxServices) -> HttpResponse:
    """GET or POST /logout; revokes the session and expires the cookie."""
    token = session_token(request)
    user_id = services.sessions.lookup(token)
    services.sessions.revoke(token)
    if user_id is not None:
        AUTH_HANDLER_LOGGER.info(
            "Logout completed", extra={"event": "logout", "user": user_id}
        )
    response = ok_response(request, SECURITY_HEADERS)
    response.headers["Set-Cookie"] = session_cookie(
        "", 0, services.config.secure_cookies
    )
    return response
