"""Golden unit tests validating CLI parsing and the entry point."""

from pathlib import Path
from typing import TYPE_CHECKING

from werkzeug.security import check_password_hash

import main
from filebox.bootstrap.config import (
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_CONNECTIONS_PER_IP,
    DEFAULT_SECURE_COOKIES,
    DEFAULT_SESSION_TTL_SECONDS,
    DEFAULT_STORAGE_DIR,
    DEFAULT_USERS_FILE,
    parse_cli_args,
)

if TYPE_CHECKING:
    from _pytest.capture import CaptureFixture
    from _pytest.monkeypatch import MonkeyPatch


def test_parse_cli_args_uses_defaults() -> None:
    """Defaults ensure the server launches with local settings."""
    args = parse_cli_args([])

    assert args.storage_dir == DEFAULT_STORAGE_DIR
    assert args.users_file == DEFAULT_USERS_FILE
    assert args.hash_password is None
    assert args.host == "localhost"
    assert args.port == 4221
    assert args.max_connections == DEFAULT_MAX_CONNECTIONS
    assert args.max_connections_per_ip == DEFAULT_MAX_CONNECTIONS_PER_IP
    assert args.session_ttl_seconds == DEFAULT_SESSION_TTL_SECONDS
    assert args.secure_cookies is DEFAULT_SECURE_COOKIES


def test_parse_cli_args_honors_overrides(tmp_path: Path) -> None:
    """Overrides should replace defaults when flags are present."""
    storage_dir = (tmp_path / "storage").as_posix()
    users_file = (tmp_path / "users.json").as_posix()

    args = parse_cli_args(
        [
            "--storage-dir",
            storage_dir,
            "--users-file",
            users_file,
            "--host",
            "0.0.0.0",
            "--port",
            "9090",
            "--log-level",
            "debug",
            "--log-destination",
            "server.log",
            "--max-connections",
            "10",
            "--max-connections-per-ip",
            "3",
            "--session-ttl-seconds",
            "60",
            "--secure-cookies",
        ]
    )

    assert args.storage_dir == storage_dir
    assert args.users_file == users_file
    assert args.host == "0.0.0.0"
    assert args.port == 9090
    assert args.log_level == "DEBUG"
    assert args.log_destination == "server.log"
    assert args.max_connections == 10
    assert args.max_connections_per_ip == 3
    assert args.session_ttl_seconds == 60
    assert args.secure_cookies is True


def test_parse_cli_args_honors_environment(monkeypatch: "MonkeyPatch") -> None:
    """Environment variables should seed default logging configuration."""
    monkeypatch.setenv("FILEBOX_LOG_LEVEL", "warning")
    monkeypatch.setenv("FILEBOX_LOG_DESTINATION", "app.log")

    args = parse_cli_args([])

    assert args.log_level == "WARNING"
    assert args.log_destination == "app.log"


def test_hash_password_flag_prints_hash_and_exits(
    capsys: "CaptureFixture[str]",
) -> None:
    """--hash-password prints a usable hash without starting the server."""
    main.main(["--hash-password", "s3cret"])

    printed = capsys.readouterr().out.strip()
    assert check_password_hash(printed, "s3cret")
    assert not check_password_hash(printed, "other")
