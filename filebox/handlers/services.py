"""Application services shared by every request handler."""

from dataclasses import dataclass

from filebox.auth.credentials import Authenticator
from filebox.auth.sessions import SessionStore
from filebox.bootstrap.config import ServerConfig
from filebox.handlers.operations import FileOperations
from filebox.storage.namespace import Namespace


@dataclass
class FileboxServices:
    """Authentication, session and storage collaborators for request handling."""

    operations: FileOperations
    authenticator: Authenticator
    sessions: SessionStore
    config: ServerConfig


def build_services(
    storage_dir: str, authenticator: Authenticator, config: ServerConfig
) -> FileboxServices:
    """Wire the storage namespace, sessions and authenticator together."""
    return FileboxServices(
        operations=FileOperations(Namespace(storage_dir)),
        authenticator=authenticator,
        sessions=SessionStore(config.session_ttl_seconds),
        config=config,
    )
