"""Confinement of caller-supplied relative paths to a namespace root."""

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path

from filebox.storage.errors import ContainmentError

_SEPARATORS = re.compile(r"[\\/]")


@dataclass(frozen=True)
class ConfinedPath:
    """An absolute path already verified to lie within its namespace root.

    ``root`` and ``path`` are canonical (symlink-resolved). ``location`` is
    the entry as named by the caller: its canonical parent joined with the
    final name, so a symlink at that name is the link itself rather than
    its target. File operations accept only this type, so a raw relative
    path can never reach the filesystem without passing through
    :func:`resolve_confined_path`.
    """

    root: Path
    path: Path
    location: Path

    @property
    def is_root(self) -> bool:
        """Return True when the caller named the namespace root itself."""
        return self.location == self.root

    @property
    def relative(self) -> str:
        """Posix path relative to the root; safe to log or return to clients."""
        if self.path == self.root:
            return ""
        return self.path.relative_to(self.root).as_posix()


def is_within(root: Path, candidate: Path) -> bool:
    """Return True when candidate equals root or is a descendant of it.

    Compares whole path segments, so ``/data/alice-evil`` is never treated
    as inside ``/data/alice``.
    """
    return candidate == root or root in candidate.parents


def normalize_relative(relative_path: str) -> str:
    """Return the canonical relative form of ``relative_path``.

    Parent references are rejected before any normalization happens. The
    remaining input is treated as rooted at a synthetic ``/`` so that
    absolute-looking input, ``.`` segments, trailing and doubled
    separators all collapse into a plain relative path.
    """
    if "\x00" in relative_path:
        raise ContainmentError("null byte in path")
    if ".." in _SEPARATORS.split(relative_path):
        raise ContainmentError("parent reference in path")

    normalized = posixpath.normpath("/" + relative_path).lstrip("/")
    return "" if normalized == "." else normalized


def resolve_confined_path(root, relative_path: str) -> ConfinedPath:
    """Resolve ``relative_path`` inside ``root`` or raise ContainmentError.

    The root must already exist. The candidate is canonicalized with
    symlinks followed wherever they exist on disk (dangling links included);
    a missing tail is appended as-is, so paths that are about to be created
    are checked through their deepest existing ancestor.
    """
    normalized = normalize_relative(relative_path)
    parent, name = posixpath.split(normalized)
    try:
        canonical_root = Path(root).resolve(strict=True)
        candidate = (canonical_root / normalized).resolve(strict=False)
        canonical_parent = (canonical_root / parent).resolve(strict=False)
    except (OSError, RuntimeError) as exc:
        raise ContainmentError("path could not be canonicalized") from exc

    if not is_within(canonical_root, candidate):
        raise ContainmentError("path escapes namespace root")
    if not is_within(canonical_root, canonical_parent):
        raise ContainmentError("parent escapes namespace root")
    location = canonical_parent / name if name else canonical_root
    return ConfinedPath(canonical_root, candidate, location)
