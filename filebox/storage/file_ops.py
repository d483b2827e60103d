"""Filesystem primitives that operate on confined paths only.

Nothing in this module performs containment checks. Every function takes
:class:`~filebox.storage.resolver.ConfinedPath` values produced by the
resolver, which keeps the security invariant in one place.
"""

import contextlib
import ctypes
import errno
import logging
import os
import shutil
import stat
import sys
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.storage.errors import (
    AlreadyExists,
    InvalidArgument,
    NotFound,
    StorageError,
)
from filebox.storage.resolver import ConfinedPath

FILE_OPS_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.storage.file_ops"), {}
)

UPLOAD_TEMP_PREFIX = ".upload-"
COPY_CHUNK_SIZE = 65536
UPLOADED_FILE_MODE = 0o644

AT_FDCWD = -100
RENAME_NOREPLACE = 1
_NOREPLACE_UNSUPPORTED = {errno.EINVAL, errno.ENOSYS, errno.EOPNOTSUPP}


class EntryKind(str, Enum):
    """Kind of a directory entry as reported to clients."""

    FOLDER = "folder"
    FILE = "file"


@dataclass(frozen=True)
class Entry:
    """A single directory entry."""

    name: str
    kind: EntryKind


def _load_renameat2():
    if not sys.platform.startswith("linux"):
        return None
    try:
        libc = ctypes.CDLL(None, use_errno=True)
    except OSError:
        return None
    function = getattr(libc, "renameat2", None)
    if function is None:
        return None
    function.argtypes = [
        ctypes.c_int,
        ctypes.c_char_p,
        ctypes.c_int,
        ctypes.c_char_p,
        ctypes.c_uint,
    ]
    function.restype = ctypes.c_int
    return function


_RENAMEAT2 = _load_renameat2()


def list_entries(directory: ConfinedPath) -> list[Entry]:
    """Return folders and regular files of ``directory`` in filesystem order.

    A missing directory yields an empty listing. Symlinks and special files
    are not reported, and in-flight upload temp files are hidden.
    """
    entries: list[Entry] = []
    try:
        with os.scandir(directory.path) as iterator:
            for dir_entry in iterator:
                if dir_entry.name.startswith(UPLOAD_TEMP_PREFIX):
                    continue
                if dir_entry.is_dir(follow_symlinks=False):
                    entries.append(Entry(dir_entry.name, EntryKind.FOLDER))
                elif dir_entry.is_file(follow_symlinks=False):
                    entries.append(Entry(dir_entry.name, EntryKind.FILE))
    except FileNotFoundError:
        return []
    except NotADirectoryError as exc:
        raise NotFound("not a directory") from exc
    except OSError as exc:
        raise StorageError("directory listing failed") from exc
    return entries


def make_directory(directory: ConfinedPath) -> None:
    """Create ``directory`` and any missing parents; existing folders are fine."""
    try:
        directory.path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        raise AlreadyExists("a file occupies the folder name") from exc
    except OSError as exc:
        raise StorageError("folder creation failed") from exc
    if FILE_OPS_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_OPS_LOGGER.debug(
            "Folder ensured",
            extra={"event": "folder_ensured", "relative_path": directory.relative},
        )


def delete_entry(target: ConfinedPath) -> None:
    """Remove a file or a whole directory tree; absent targets are a no-op.

    A symlink at the named location is removed itself; its target is left
    alone.

    Recursive deletion is not transactional. Entries removed before a
    failure stay removed, and every failure is reported in one
    :class:`StorageError`.
    """
    if target.is_root:
        raise InvalidArgument("Cannot delete the root folder")

    failures: list[str] = []

    def _record_failure(_function, path, error) -> None:
        if isinstance(error, FileNotFoundError):
            return
        failures.append(os.fspath(path))

    path = target.location
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path, onexc=_record_failure)
        else:
            path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StorageError("delete failed") from exc

    if failures:
        FILE_OPS_LOGGER.warning(
            "Recursive delete incomplete",
            extra={
                "event": "delete_incomplete",
                "relative_path": target.relative,
                "entries": len(failures),
            },
        )
        raise StorageError(f"{len(failures)} entries could not be removed")


def _rename_noreplace_fallback(source: Path, destination: Path) -> None:
    if source.is_dir() and not source.is_symlink():
        # Without renameat2 a directory move cannot refuse an empty
        # destination directory atomically.
        if os.path.lexists(destination):
            raise FileExistsError(
                errno.EEXIST, os.strerror(errno.EEXIST), os.fspath(destination)
            )
        os.rename(source, destination)
        return
    os.link(source, destination, follow_symlinks=False)
    os.unlink(source)


def _rename_noreplace(source: Path, destination: Path) -> None:
    """Move ``source`` to ``destination``, failing if the destination exists."""
    if _RENAMEAT2 is not None:
        result = _RENAMEAT2(
            AT_FDCWD,
            os.fsencode(source),
            AT_FDCWD,
            os.fsencode(destination),
            RENAME_NOREPLACE,
        )
        if result == 0:
            return
        error_number = ctypes.get_errno()
        if error_number not in _NOREPLACE_UNSUPPORTED:
            raise OSError(
                error_number,
                os.strerror(error_number),
                os.fspath(source),
                None,
                os.fspath(destination),
            )
    _rename_noreplace_fallback(source, destination)


def rename_entry(source: ConfinedPath, destination: ConfinedPath) -> None:
    """Atomically move ``source`` to ``destination`` without overwriting.

    Both ends are taken as named, so renaming a symlink moves the link.
    """
    if source.is_root or destination.is_root:
        raise InvalidArgument("Cannot rename the root folder")
    old_path = source.location
    new_path = destination.location
    if not os.path.lexists(old_path):
        raise NotFound("rename source missing")
    if (
        old_path.is_dir()
        and not old_path.is_symlink()
        and old_path in new_path.parents
    ):
        raise InvalidArgument("Cannot move a folder into itself")
    try:
        _rename_noreplace(old_path, new_path)
    except FileExistsError as exc:
        raise AlreadyExists("rename destination exists") from exc
    except FileNotFoundError as exc:
        raise NotFound("rename source or destination folder missing") from exc
    except OSError as exc:
        if exc.errno == errno.ENOTEMPTY:
            raise AlreadyExists("rename destination exists") from exc
        if exc.errno == errno.EINVAL:
            raise InvalidArgument("Cannot move a folder into itself") from exc
        raise StorageError("rename failed") from exc


def _write_temp_and_replace(
    descriptor: int, temp_name: str, stream: BinaryIO, destination: Path
) -> int:
    try:
        with os.fdopen(descriptor, "wb") as handle:
            shutil.copyfileobj(stream, handle, COPY_CHUNK_SIZE)
            handle.flush()
            os.fsync(handle.fileno())
            size = handle.tell()
        os.chmod(temp_name, UPLOADED_FILE_MODE)
        os.replace(temp_name, destination)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(temp_name)
        raise
    return size


def write_file(target: ConfinedPath, stream: BinaryIO) -> int:
    """Store ``stream`` at ``target`` and return the number of bytes written.

    Content goes to a private temp file beside the target which then
    replaces the target in one step. Concurrent writers to the same name
    end with exactly one writer's content (last replace wins).
    """
    if target.is_root or target.path == target.root:
        raise InvalidArgument("Missing filename")
    parent = target.path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
        descriptor, temp_name = tempfile.mkstemp(dir=parent, prefix=UPLOAD_TEMP_PREFIX)
    except FileExistsError as exc:
        raise AlreadyExists("a file occupies the folder name") from exc
    except OSError as exc:
        raise StorageError("upload folder unavailable") from exc

    try:
        size = _write_temp_and_replace(descriptor, temp_name, stream, target.path)
    except IsADirectoryError as exc:
        raise AlreadyExists("a folder occupies the file name") from exc
    except OSError as exc:
        raise StorageError("file write failed") from exc
    if FILE_OPS_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_OPS_LOGGER.debug(
            "File stored",
            extra={
                "event": "file_stored",
                "relative_path": target.relative,
                "bytes_in": size,
            },
        )
    return size


def open_file(target: ConfinedPath) -> BinaryIO:
    """Open an existing regular file for binary streaming reads."""
    if not target.path.is_file():
        raise NotFound("file missing")
    handle: Optional[BinaryIO] = None
    try:
        handle = open(target.path, "rb")
        if not stat.S_ISREG(os.fstat(handle.fileno()).st_mode):
            raise IsADirectoryError(errno.EISDIR, "not a regular file")
    except (FileNotFoundError, IsADirectoryError) as exc:
        if handle is not None:
            handle.close()
        raise NotFound("file missing") from exc
    except OSError as exc:
        if handle is not None:
            handle.close()
        raise StorageError("file open failed") from exc
    return handle
