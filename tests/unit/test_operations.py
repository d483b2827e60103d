"""Unit tests for user-facing file operations."""

import io
import logging
import os
from pathlib import Path

import pytest

from filebox.handlers.operations import FileOperations
from filebox.storage.errors import (
    AlreadyExists,
    ContainmentError,
    InvalidArgument,
    NotFound,
)
from filebox.storage.namespace import Namespace


@pytest.fixture
def operations(tmp_path: Path) -> FileOperations:
    return FileOperations(Namespace(tmp_path / "storage"))


def test_folder_and_file_lifecycle(operations: FileOperations) -> None:
    """Create, upload, list, rename, download and delete in one user's root."""
    operations.create_folder("alice", "", "docs")
    size = operations.upload("alice", "docs", "a.txt", io.BytesIO(b"hello"))
    assert size == 5

    root_listing = operations.list_folder("alice", "")
    assert root_listing.as_dict() == {
        "user": "alice",
        "path": "",
        "folders": ["docs"],
        "files": [],
    }
    assert operations.list_folder("alice", "docs").files == ["a.txt"]

    operations.rename("alice", "docs", "a.txt", "b.txt")
    target, handle = operations.download("alice", "docs", "b.txt")
    with handle:
        assert handle.read() == b"hello"
    assert target.relative == "docs/b.txt"

    operations.delete("alice", "", "docs")
    assert operations.list_folder("alice", "").folders == []


def test_users_do_not_see_each_other(operations: FileOperations) -> None:
    operations.upload("alice", "", "secret.txt", io.BytesIO(b"alice only"))

    assert operations.list_folder("bob", "").files == []
    with pytest.raises(NotFound):
        operations.download("bob", "", "secret.txt")


def test_missing_path_defaults_to_root(operations: FileOperations) -> None:
    operations.create_folder("alice", None, "docs")
    assert operations.list_folder("alice", None).folders == ["docs"]


@pytest.mark.parametrize(
    ("call", "message"),
    [
        (lambda ops: ops.create_folder("alice", "", None), "Missing folder name"),
        (lambda ops: ops.create_folder("alice", "", "  "), "Missing folder name"),
        (lambda ops: ops.delete("alice", "", ""), "Missing name"),
        (lambda ops: ops.rename("alice", "", None, "b"), "Missing names"),
        (lambda ops: ops.rename("alice", "", "a", ""), "Missing names"),
        (
            lambda ops: ops.upload("alice", "", None, io.BytesIO(b"")),
            "Missing filename",
        ),
        (lambda ops: ops.download("alice", "", None), "Missing filename"),
        (lambda ops: ops.delete("alice", "", "."), "Invalid name"),
        (lambda ops: ops.create_folder("alice", "", "/"), "Invalid name"),
    ],
)
def test_missing_or_empty_names_are_invalid(
    operations: FileOperations, call, message: str
) -> None:
    with pytest.raises(InvalidArgument) as excinfo:
        call(operations)
    assert excinfo.value.public_message == message


def test_parent_references_in_names_are_contained(
    operations: FileOperations,
) -> None:
    with pytest.raises(ContainmentError):
        operations.create_folder("alice", "", "../bob")
    with pytest.raises(ContainmentError):
        operations.upload("alice", "..", "x.txt", io.BytesIO(b"x"))
    with pytest.raises(ContainmentError):
        operations.rename("alice", "", "a.txt", "../../b.txt")


def test_rename_conflict_keeps_both_entries(operations: FileOperations) -> None:
    operations.upload("alice", "", "a.txt", io.BytesIO(b"a"))
    operations.upload("alice", "", "b.txt", io.BytesIO(b"b"))

    with pytest.raises(AlreadyExists):
        operations.rename("alice", "", "a.txt", "b.txt")

    assert sorted(operations.list_folder("alice", "").files) == ["a.txt", "b.txt"]


def test_mutations_log_relative_paths_only(
    operations: FileOperations, tmp_path: Path, caplog
) -> None:
    with caplog.at_level(logging.INFO, logger="filebox.handlers.operations"):
        operations.upload("alice", "docs", "a.txt", io.BytesIO(b"abc"))

    records = [
        record
        for record in caplog.records
        if getattr(record, "event", None) == "operation_complete"
    ]
    assert len(records) == 1
    record = records[0]
    assert record.operation == "upload"
    assert record.user == "alice"
    assert record.relative_path == "docs/a.txt"
    assert record.bytes_in == 3
    assert str(tmp_path) not in record.getMessage()


def test_listing_reports_normalized_path(operations: FileOperations) -> None:
    operations.create_folder("alice", "", "docs")
    assert operations.list_folder("alice", "docs//./").path == "docs"
    assert operations.list_folder("alice", "/").path == ""


def test_deleting_a_link_leaves_its_target(operations: FileOperations) -> None:
    operations.upload("alice", "", "real.txt", io.BytesIO(b"kept"))
    root = operations.namespace.ensure("alice")
    os.symlink(root / "real.txt", root / "alias.txt")

    operations.delete("alice", "", "alias.txt")
    operations.delete("alice", "", "alias.txt")

    assert not os.path.lexists(root / "alias.txt")
    assert (root / "real.txt").read_bytes() == b"kept"


def test_moving_a_folder_into_itself_is_invalid(operations: FileOperations) -> None:
    operations.create_folder("alice", "", "docs")
    with pytest.raises(InvalidArgument):
        operations.rename("alice", "", "docs", "docs/inner")
    assert operations.list_folder("alice", "").folders == ["docs"]
