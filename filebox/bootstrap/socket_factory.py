"""Listening socket creation with optional TLS."""

import argparse
import logging
import socket
import ssl
import sys

from filebox.domain.correlation_id import CorrelationLoggerAdapter

SOCKET_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.transport.socket"), {}
)

ACCEPT_POLL_SECONDS = 0.5


def create_server_socket(args: argparse.Namespace) -> socket.socket:
    """Bind the listening socket, wrapping it in TLS when cert and key are given."""
    server_socket = socket.create_server(
        (args.host, args.port), reuse_port=hasattr(socket, "SO_REUSEPORT")
    )
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    if not (args.cert and args.key):
        return server_socket

    tls_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    tls_context.minimum_version = ssl.TLSVersion.TLSv1_2
    try:
        tls_context.load_cert_chain(args.cert, args.key)
    except (ssl.SSLError, OSError) as error:
        SOCKET_LOGGER.critical(
            "Failed to load TLS certificates",
            extra={"event": "tls_load_failed", "error_type": type(error).__name__},
        )
        server_socket.close()
        sys.exit(1)
    SOCKET_LOGGER.info("TLS enabled", extra={"event": "tls_enabled", "tls": True})
    return tls_context.wrap_socket(server_socket, server_side=True)
