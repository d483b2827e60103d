"""Per-request log context (correlation ID and authenticated user) via contextvars."""

import contextvars
import logging
import uuid
from typing import Any, MutableMapping, Optional

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)
_request_user_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_user", default=None
)


def generate_correlation_id() -> str:
    """Generate a new correlation ID using UUID4."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Retrieve the current correlation ID from context."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Store a correlation ID in the current context."""
    _correlation_id_var.set(correlation_id)


def get_request_user() -> Optional[str]:
    """Return the user authenticated for the current request, if any."""
    return _request_user_var.get()


def set_request_user(user_id: Optional[str]) -> None:
    """Record the authenticated user for the current request."""
    _request_user_var.set(user_id)


def clear_correlation_id() -> None:
    """Reset the request context once a request is finished."""
    _correlation_id_var.set(None)
    _request_user_var.set(None)


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter injecting correlation ID, user and component into records."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Add correlation_id, component and (when known) user to the extra dict."""
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        else:
            kwargs["extra"] = dict(kwargs["extra"])

        correlation_id = get_correlation_id()
        kwargs["extra"]["correlation_id"] = (
            correlation_id if correlation_id is not None else "-"
        )

        request_user = get_request_user()
        if request_user is not None:
            kwargs["extra"].setdefault("user", request_user)

        logger_name = self.logger.name
        if logger_name.startswith("filebox."):
            component = logger_name[len("filebox.") :]
        else:
            component = logger_name
        kwargs["extra"]["component"] = component

        return msg, kwargs
