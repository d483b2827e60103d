"""Typed errors raised by path resolution and file operations."""


class FileboxError(Exception):
    """Base class for errors surfaced by the storage core."""

    public_message = "Request failed"


class ContainmentError(FileboxError):
    """Raised when a path or identity would escape its namespace root."""

    public_message = "Invalid path"


class NotFound(FileboxError):
    """Raised when the requested entry does not exist."""

    public_message = "Not found"


class AlreadyExists(FileboxError):
    """Raised when the destination of a create or rename is taken."""

    public_message = "Target already exists"


class StorageError(FileboxError):
    """Raised when the underlying filesystem operation fails."""

    public_message = "Storage failure"


class InvalidArgument(FileboxError):
    """Raised when a required name is missing or targets the namespace root."""

    public_message = "Invalid argument"

    def __init__(self, message: str = "Invalid argument") -> None:
        super().__init__(message)
        self.public_message = message
