"""Per-user sandboxed file server entry point."""

import logging
import signal
import sys

from filebox.auth.credentials import UsersFileAuthenticator, hash_password
from filebox.bootstrap.config import ServerConfig, parse_cli_args
from filebox.bootstrap.logging_setup import configure_logging
from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.handlers.services import build_services
from filebox.lifecycle.state import ServerLifecycle
from filebox.transport.accept_loop import run_server

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("filebox.server"), {})


def main(argv: list[str] | None = None) -> None:
    """Start the file server and spawn worker threads per connection."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    if args.hash_password is not None:
        print(hash_password(args.hash_password))
        return

    configure_logging(args.log_level, args.log_destination)

    config = ServerConfig(
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
        session_ttl_seconds=args.session_ttl_seconds,
        secure_cookies=args.secure_cookies,
    )
    authenticator = UsersFileAuthenticator.from_file(args.users_file)
    services = build_services(args.storage_dir, authenticator, config)
    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "shutdown_signal", "signal": signum},
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting file server",
        extra={
            "event": "server_starting",
            "host": args.host,
            "port": args.port,
            "storage_dir": str(services.operations.namespace.base_dir),
            "users_file": args.users_file,
            "log_level": args.log_level,
            "tls": bool(args.cert and args.key),
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
            "session_ttl_seconds": config.session_ttl_seconds,
        },
    )
    run_server(args, config, lifecycle, services)


if __name__ == "__main__":
    main()
