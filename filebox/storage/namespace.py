"""Per-user namespace roots under a shared storage base directory."""

import logging
import os
from pathlib import Path

from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.storage.errors import ContainmentError, StorageError
from filebox.storage.resolver import ConfinedPath, is_within, resolve_confined_path

NAMESPACE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebox.storage.namespace"), {}
)

_FORBIDDEN_IDENTITY_CHARS = ("/", "\\", "\x00")


def validate_identity(user_id: str) -> str:
    """Return ``user_id`` when it is usable as a single directory name."""
    if not isinstance(user_id, str) or not user_id:
        raise ContainmentError("empty user identity")
    if any(char in user_id for char in _FORBIDDEN_IDENTITY_CHARS):
        raise ContainmentError("separator in user identity")
    if user_id == "." or ".." in user_id:
        raise ContainmentError("dot reference in user identity")
    return user_id


class Namespace:
    """Maps user identities to isolated root directories."""

    def __init__(self, base_dir) -> None:
        self._base_dir = Path(os.path.abspath(base_dir))

    @property
    def base_dir(self) -> Path:
        """Absolute storage base directory."""
        return self._base_dir

    def root_for(self, user_id: str) -> Path:
        """Return the root directory for ``user_id`` without touching disk."""
        return self._base_dir / validate_identity(user_id)

    def ensure(self, user_id: str) -> Path:
        """Create the user's root on first use and return its canonical form."""
        root = self.root_for(user_id)
        try:
            root.mkdir(parents=True, exist_ok=True)
            canonical_base = self._base_dir.resolve(strict=True)
            canonical_root = root.resolve(strict=True)
        except FileExistsError as exc:
            raise StorageError("namespace root is not a directory") from exc
        except OSError as exc:
            raise StorageError("namespace root could not be created") from exc

        if canonical_root == canonical_base or not is_within(
            canonical_base, canonical_root
        ):
            NAMESPACE_LOGGER.warning(
                "Namespace root escapes storage base",
                extra={"event": "namespace_escape", "user": user_id},
            )
            raise ContainmentError("namespace root escapes storage base")
        if not canonical_root.is_dir():
            raise StorageError("namespace root is not a directory")
        return canonical_root

    def resolve(self, user_id: str, relative_path: str) -> ConfinedPath:
        """Confine ``relative_path`` to the user's root, creating the root lazily."""
        return resolve_confined_path(self.ensure(user_id), relative_path)
