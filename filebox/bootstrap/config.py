"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


MAX_BODY_BYTES = _env_int("FILEBOX_MAX_BODY_BYTES", 5 * 1024 * 1024)
DEFAULT_STORAGE_DIR = _env_str("FILEBOX_STORAGE_DIR", "uploads")
DEFAULT_USERS_FILE = _env_str("FILEBOX_USERS_FILE", "users.json")
DEFAULT_MAX_CONNECTIONS = _env_int("FILEBOX_MAX_CONNECTIONS", 200)
DEFAULT_MAX_CONNECTIONS_PER_IP = _env_int("FILEBOX_MAX_CONNECTIONS_PER_IP", 20)
DEFAULT_SOCKET_TIMEOUT = _env_int("FILEBOX_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("FILEBOX_SHUTDOWN_GRACE_SECONDS", 30)
DEFAULT_SESSION_TTL_SECONDS = _env_int("FILEBOX_SESSION_TTL_SECONDS", 3600)
DEFAULT_SECURE_COOKIES = _env_bool("FILEBOX_SECURE_COOKIES", False)

HEADER_DELIMITER = b"\r\n\r\n"
ALLOWED_METHODS = {"GET", "POST"}
SESSION_COOKIE_NAME = "filebox_session"

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
    "Cache-Control": "no-store",
}


@dataclass
class ServerConfig:
    """Server configuration including timeouts, shutdown and session settings."""

    socket_timeout: int
    shutdown_grace_seconds: int
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    secure_cookies: bool = DEFAULT_SECURE_COOKIES


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Per-user sandboxed file server")
    parser.add_argument(
        "--storage-dir",
        default=DEFAULT_STORAGE_DIR,
        help="Base directory holding one folder per user",
    )
    parser.add_argument(
        "--users-file",
        default=DEFAULT_USERS_FILE,
        help="JSON object mapping usernames to password hashes",
    )
    parser.add_argument(
        "--hash-password",
        metavar="PASSWORD",
        help="Print a password hash for the users file and exit",
    )
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=4221)
    parser.add_argument("--cert", help="Path to TLS certificate file")
    parser.add_argument("--key", help="Path to TLS private key file")
    default_log_level = os.getenv("FILEBOX_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("FILEBOX_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        default=DEFAULT_MAX_CONNECTIONS,
        help="Maximum concurrent connections (0 for unlimited)",
    )
    parser.add_argument(
        "--max-connections-per-ip",
        type=int,
        default=DEFAULT_MAX_CONNECTIONS_PER_IP,
        help="Maximum concurrent connections per client IP (0 for unlimited)",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    parser.add_argument(
        "--session-ttl-seconds",
        type=int,
        default=DEFAULT_SESSION_TTL_SECONDS,
        help="Lifetime of a login session in seconds",
    )
    parser.add_argument(
        "--secure-cookies",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_SECURE_COOKIES,
        help="Mark the session cookie Secure (use behind TLS)",
    )
    return parser.parse_args(argv)
