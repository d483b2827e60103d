"""User-facing file operations built on the namespace and file primitives."""

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.storage import file_ops
from filebox.storage.errors import InvalidArgument
from filebox.storage.file_ops import EntryKind
from filebox.storage.namespace import Namespace
from filebox.storage.resolver import ConfinedPath, normalize_relative

OPERATIONS_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.handlers.operations"), {}
)


@dataclass
class FolderListing:
    """Contents of one folder split by entry kind."""

    user: str
    path: str
    folders: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        """Return the JSON-ready representation."""
        return {
            "user": self.user,
            "path": self.path,
            "folders": self.folders,
            "files": self.files,
        }


def _require_name(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgument(message)
    if not normalize_relative(value):
        raise InvalidArgument("Invalid name")
    return value


def _join(relative_path: Optional[str], name: str) -> str:
    if not relative_path:
        return name
    return f"{relative_path}/{name}"


class FileOperations:
    """Runs each request as one resolve-then-act step against a user's root.

    Every path argument goes through :meth:`Namespace.resolve` immediately
    before the filesystem call. Resolved paths are never cached between
    requests.
    """

    def __init__(self, namespace: Namespace) -> None:
        self._namespace = namespace

    @property
    def namespace(self) -> Namespace:
        """The namespace that owns per-user roots."""
        return self._namespace

    def _resolve(self, user_id: str, relative_path: Optional[str]) -> ConfinedPath:
        return self._namespace.resolve(user_id, relative_path or "")

    def list_folder(self, user_id: str, relative_path: Optional[str]) -> FolderListing:
        """List the folder at ``relative_path``."""
        directory = self._resolve(user_id, relative_path)
        listing = FolderListing(
            user=user_id, path=normalize_relative(relative_path or "")
        )
        for entry in file_ops.list_entries(directory):
            if entry.kind is EntryKind.FOLDER:
                listing.folders.append(entry.name)
            else:
                listing.files.append(entry.name)
        if OPERATIONS_LOGGER.logger.isEnabledFor(logging.DEBUG):
            OPERATIONS_LOGGER.debug(
                "Folder listed",
                extra={
                    "event": "folder_listed",
                    "user": user_id,
                    "relative_path": directory.relative,
                    "entries": len(listing.folders) + len(listing.files),
                },
            )
        return listing

    def create_folder(
        self, user_id: str, relative_path: Optional[str], name: Optional[str]
    ) -> ConfinedPath:
        """Create folder ``name`` (and missing parents) under ``relative_path``."""
        name = _require_name(name, "Missing folder name")
        directory = self._resolve(user_id, _join(relative_path, name))
        file_ops.make_directory(directory)
        self._log_mutation("create_folder", user_id, directory)
        return directory

    def delete(
        self, user_id: str, relative_path: Optional[str], name: Optional[str]
    ) -> None:
        """Delete the file or folder ``name`` under ``relative_path``."""
        name = _require_name(name, "Missing name")
        target = self._resolve(user_id, _join(relative_path, name))
        file_ops.delete_entry(target)
        self._log_mutation("delete", user_id, target)

    def rename(
        self,
        user_id: str,
        relative_path: Optional[str],
        old_name: Optional[str],
        new_name: Optional[str],
    ) -> ConfinedPath:
        """Rename ``old_name`` to ``new_name`` inside ``relative_path``.

        Both endpoints are resolved independently; the move itself never
        replaces an existing destination.
        """
        old_name = _require_name(old_name, "Missing names")
        new_name = _require_name(new_name, "Missing names")
        source = self._resolve(user_id, _join(relative_path, old_name))
        destination = self._resolve(user_id, _join(relative_path, new_name))
        file_ops.rename_entry(source, destination)
        self._log_mutation("rename", user_id, destination)
        return destination

    def upload(
        self,
        user_id: str,
        relative_path: Optional[str],
        filename: Optional[str],
        stream: BinaryIO,
    ) -> int:
        """Store ``stream`` as ``filename`` inside ``relative_path``."""
        filename = _require_name(filename, "Missing filename")
        target = self._resolve(user_id, _join(relative_path, filename))
        size = file_ops.write_file(target, stream)
        self._log_mutation("upload", user_id, target, bytes_in=size)
        return size

    def download(
        self, user_id: str, relative_path: Optional[str], filename: Optional[str]
    ) -> tuple[ConfinedPath, BinaryIO]:
        """Open ``filename`` inside ``relative_path`` for streaming."""
        filename = _require_name(filename, "Missing filename")
        target = self._resolve(user_id, _join(relative_path, filename))
        return target, file_ops.open_file(target)

    def _log_mutation(
        self, operation: str, user_id: str, target: ConfinedPath, **details
    ) -> None:
        OPERATIONS_LOGGER.info(
            "File operation complete",
            extra={
                "event": "operation_complete",
                "operation": operation,
                "user": user_id,
                "relative_path": target.relative,
                **details,
            },
        )
