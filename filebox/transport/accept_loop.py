"""Main connection acceptance loop."""

import argparse
import logging
import socket
import threading

from filebox.bootstrap.config import SECURITY_HEADERS, ServerConfig
from filebox.bootstrap.socket_factory import create_server_socket
from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.domain.response_builders import (
    connection_limited_response,
    draining_response,
)
from filebox.handlers.services import FileboxServices
from filebox.lifecycle.state import ServerLifecycle
from filebox.pipeline.io import send_response
from filebox.transport.connection_limiter import ConnectionLimiter
from filebox.transport.context import WorkerContext
from filebox.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.transport.accept"), {}
)


def _handle_accepted_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    connection_limiter: ConnectionLimiter,
    handler_context: WorkerContext,
) -> None:
    """Hand a new connection to a worker thread, or refuse it when over quota."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={"event": "client_accepted", "client": client_addr_str},
        )

    decision = connection_limiter.acquire(client_address[0])
    if not decision.allowed:
        limit_event = (
            "connection_limit_reached"
            if decision.limit_type == "global"
            else "per_ip_limit_reached"
        )
        ACCEPT_LOGGER.warning(
            "Connection limit reached",
            extra={
                "event": limit_event,
                "client": client_addr_str,
                "limit_type": decision.limit_type,
            },
        )
        send_response(
            client_socket,
            connection_limited_response(decision.limit_type, SECURITY_HEADERS),
        )
        client_socket.close()
        return

    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, handler_context),
        daemon=False,
    )
    thread.start()


def run_server(
    args: argparse.Namespace,
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    services: FileboxServices,
) -> None:
    """Create the listening socket and serve until the lifecycle drains."""
    server_socket = create_server_socket(args)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": args.host,
            "port": args.port,
            "tls": bool(args.cert and args.key),
        },
    )

    connection_limiter = ConnectionLimiter(
        args.max_connections,
        args.max_connections_per_ip,
    )
    handler_context = WorkerContext(
        services=services,
        connection_limiter=connection_limiter,
        lifecycle=lifecycle,
        config=config,
    )

    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if lifecycle.should_stop():
                    break
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                client_socket.close()
                continue

            _handle_accepted_client(
                client_socket, client_address, connection_limiter, handler_context
            )
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "shutdown_grace_seconds": config.shutdown_grace_seconds,
                "entries": connection_limiter.active_connections(),
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info(
            "Server shutdown complete", extra={"event": "server_stopped"}
        )
