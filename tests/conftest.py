"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest
import requests

from filebox.auth.credentials import hash_password
from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"

TEST_USERS = {"alice": "alice-secret", "bob": "bob-secret"}


def write_users_file(path: Path, users: dict[str, str] | None = None) -> Path:
    """Write a users file holding password hashes for ``users``."""

    users = TEST_USERS if users is None else users
    path.write_text(
        json.dumps({name: hash_password(password) for name, password in users.items()}),
        encoding="utf-8",
    )
    return path


def _launch_server(
    host: str,
    port: int,
    workdir: Path,
    extra_args: list[str] | None = None,
    log_file: Path | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    storage_dir = workdir / "storage"
    users_file = write_users_file(workdir / "users.json")
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--storage-dir",
        str(storage_dir),
        "--users-file",
        str(users_file),
        "--host",
        host,
        "--port",
        str(port),
    ]
    if log_file:
        args.extend(["--log-destination", str(log_file)])
    if extra_args:
        args.extend(extra_args)

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            # Surface startup output before failing.
            stdout, stderr = process.communicate(timeout=1)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            process.terminate()
            process.wait(timeout=5)
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "storage_dir": storage_dir,
            "process": process,
            "log_file": log_file,
        }

        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    storage_dir: Path
    process: subprocess.Popen[str]
    log_file: Path | None


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the file server in a background process for integration tests."""

    host = "127.0.0.1"
    port = reserve_port(host)
    workdir = tmp_path_factory.mktemp("filebox")
    log_file = workdir / "server.log"
    yield from _launch_server(host, port, workdir, log_file=log_file)


@pytest.fixture(name="limited_server_process")
def _limited_server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the file server with a single connection slot."""

    host = "127.0.0.1"
    port = reserve_port(host)
    workdir = tmp_path_factory.mktemp("filebox-limited")
    log_file = workdir / "server.log"
    limit_args = ["--max-connections", "1", "--max-connections-per-ip", "1"]
    yield from _launch_server(host, port, workdir, limit_args, log_file=log_file)


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]


def login(base_url: str, username: str = "alice") -> requests.Session:
    """Return a requests session holding a valid login cookie."""

    session = requests.Session()
    response = session.post(
        f"{base_url}/login",
        data={"username": username, "password": TEST_USERS[username]},
        timeout=5,
    )
    assert response.status_code == 200
    return session


@pytest.fixture()
def alice(base_url: str):
    """A logged-in HTTP session for alice."""

    session = login(base_url, "alice")
    yield session
    session.close()
