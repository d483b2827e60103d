"""Shared HTTP type definitions to avoid circular imports."""

import urllib.parse
from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    query: dict[str, str] = field(default_factory=dict)


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status_line: str
    headers: dict[str, str]
    body: bytes
    close_connection: bool
    body_iter: Optional[Iterable[bytes]] = None
    use_chunked: bool = False


def should_close(headers: dict[str, str]) -> bool:
    """Determine whether the connection should be closed after responding."""
    return headers.get("connection", "").lower() == "close"


def parse_query(raw_query: str) -> dict[str, str]:
    """Decode a query or urlencoded form string, keeping the first value per key."""
    parsed: dict[str, str] = {}
    for name, value in urllib.parse.parse_qsl(raw_query, keep_blank_values=True):
        parsed.setdefault(name, value)
    return parsed


def form_params(request: HttpRequest) -> dict[str, str]:
    """Merge query parameters with an urlencoded body (body wins on conflicts)."""
    params = dict(request.query)
    content_type = request.headers.get("content-type", "")
    if request.body and content_type.startswith("application/x-www-form-urlencoded"):
        params.update(parse_query(request.body.decode("utf-8", errors="replace")))
    return params


def parse_cookies(headers: dict[str, str]) -> dict[str, str]:
    """Return cookies from the Cookie header as a name to value mapping."""
    cookies: dict[str, str] = {}
    for pair in headers.get("cookie", "").split(";"):
        name, separator, value = pair.strip().partition("=")
        if separator and name:
            cookies.setdefault(name, value)
    return cookies
