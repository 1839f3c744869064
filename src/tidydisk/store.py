"""Soft-delete stores: where removed items go so they can come back.

``RecoveryStore`` is tidydisk's own store. Removed items are moved under
``files/`` and described by a JSON record under ``info/`` (the same split the
freedesktop trash uses), so every item can be restored to its original path.

``SystemTrash`` hands items to the platform trash through send2trash. The
platform trash offers no programmatic restore, so items sent there have no
handle and must be restored by hand.
"""

import json
import logging
import os
import shutil
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from send2trash import send2trash
from send2trash.exceptions import TrashPermissionError

from tidydisk.errors import (
    AccessDenied,
    DeleteError,
    NotFound,
    RestoreConflict,
    RestoreNotFound,
    RestoreUnsupported,
    TidyDiskError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreOutcome:
    """Per-item result of a soft delete or restore call."""

    path: str
    handle: str | None = None
    error: TidyDiskError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class StoredEntry:
    """One item currently held by a RecoveryStore."""

    handle: str
    original_path: str
    deleted_at: datetime
    size_bytes: int = 0


def classify_os_error(path: str, error: OSError) -> DeleteError:
    """Map an OSError to the deletion error taxonomy."""
    if isinstance(error, PermissionError):
        return AccessDenied(path, f"access denied: {error.strerror or error}")
    if isinstance(error, FileNotFoundError):
        return NotFound(path)
    return DeleteError(path, f"OS error: {error.strerror or error}")


class SoftDeleteStore(ABC):
    """A reversible removal facility."""

    supports_restore: bool = True

    @abstractmethod
    def soft_delete(
        self, paths: list[str], sizes: dict[str, int] | None = None
    ) -> list[StoreOutcome]:
        """Move paths into the store. Returns one outcome per path, in order.

        Raises:
            OSError: If the store itself is unusable (nothing was moved).
        """

    @abstractmethod
    def restore(self, handle: str) -> StoreOutcome:
        """Put one stored item back at its original path."""

    @abstractmethod
    def bulk_restore(self, handles: list[str] | None = None) -> list[StoreOutcome]:
        """Restore many items in one call; None restores the whole store."""


class RecoveryStore(SoftDeleteStore):
    """Directory-backed store with one info record per removed item."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.files_dir = self.root / "files"
        self.info_dir = self.root / "info"

    def _ensure_dirs(self) -> None:
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self.info_dir.mkdir(parents=True, exist_ok=True)

    def _info_path(self, handle: str) -> Path:
        return self.info_dir / f"{handle}.json"

    def soft_delete(
        self, paths: list[str], sizes: dict[str, int] | None = None
    ) -> list[StoreOutcome]:
        self._ensure_dirs()
        sizes = sizes or {}
        return [self._move_in(path, sizes.get(path, 0)) for path in paths]

    def _move_in(self, path: str, size_bytes: int) -> StoreOutcome:
        source = Path(path)
        if not source.exists() and not source.is_symlink():
            return StoreOutcome(path=path, error=NotFound(path))

        handle = f"{uuid.uuid4().hex[:12]}_{source.name}"
        info_path = self._info_path(handle)
        record = {
            "original_path": path,
            "deleted_at": datetime.now().isoformat(),
            "size_bytes": size_bytes,
        }
        stored = self.files_dir / handle
        try:
            # Record before moving; a record without data is dropped on restore
            info_path.write_text(json.dumps(record))
            shutil.move(str(source), str(stored))
        except OSError as e:
            error = classify_os_error(path, e)
            # A cross-device move copies first and can fail while removing the source
            if (stored.exists() or stored.is_symlink()) and not self._put_back(stored, source):
                logger.error("Partial move of %s kept in recovery store as %s", path, handle)
                return StoreOutcome(path=path, error=error)
            info_path.unlink(missing_ok=True)
            return StoreOutcome(path=path, error=error)

        logger.debug("Moved %s into recovery store as %s", path, handle)
        return StoreOutcome(path=path, handle=handle)

    def _put_back(self, stored: Path, source: Path) -> bool:
        """Return a half-moved item to its source and drop the stored copy.

        Returns:
            False if the stored copy is still needed (it keeps its record)
        """
        try:
            if stored.is_dir() and not stored.is_symlink():
                shutil.copytree(stored, source, symlinks=True, dirs_exist_ok=True)
                shutil.rmtree(stored)
            else:
                if not source.exists() and not source.is_symlink():
                    shutil.copy2(stored, source, follow_symlinks=False)
                stored.unlink()
        except OSError as e:
            logger.warning("Could not put %s back after a failed move: %s", source, e)
            return False
        return True

    def entries(self) -> list[StoredEntry]:
        """All stored items, oldest first. Unreadable records are skipped."""
        if not self.info_dir.exists():
            return []
        entries = []
        for info_path in self.info_dir.glob("*.json"):
            try:
                record = json.loads(info_path.read_text())
                entries.append(
                    StoredEntry(
                        handle=info_path.stem,
                        original_path=record["original_path"],
                        deleted_at=datetime.fromisoformat(record["deleted_at"]),
                        size_bytes=int(record.get("size_bytes", 0)),
                    )
                )
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable recovery record %s: %s", info_path, e)
        entries.sort(key=lambda e: e.deleted_at)
        return entries

    def find(self, original_path: str) -> list[StoredEntry]:
        """Entries stored from original_path or from anywhere beneath it, newest first."""
        prefix = original_path.rstrip(os.sep) + os.sep
        matches = [
            e
            for e in self.entries()
            if e.original_path == original_path or e.original_path.startswith(prefix)
        ]
        matches.sort(key=lambda e: e.deleted_at, reverse=True)
        return matches

    def contains(self, handle: str) -> bool:
        return self._info_path(handle).exists() and (self.files_dir / handle).exists()

    def restore(self, handle: str) -> StoreOutcome:
        info_path = self._info_path(handle)
        stored = self.files_dir / handle
        try:
            record = json.loads(info_path.read_text())
        except FileNotFoundError:
            return StoreOutcome(path=handle, handle=handle, error=RestoreNotFound(f"Not in store: {handle}"))
        except (OSError, ValueError) as e:
            return StoreOutcome(path=handle, handle=handle, error=TidyDiskError(f"Unreadable record {handle}: {e}"))

        original = record["original_path"]
        if not stored.exists() and not stored.is_symlink():
            info_path.unlink(missing_ok=True)
            return StoreOutcome(path=original, handle=handle, error=RestoreNotFound(f"Not in store: {original}"))

        dest = Path(original)
        if dest.exists() or dest.is_symlink():
            return StoreOutcome(path=original, handle=handle, error=RestoreConflict(original))

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(stored), str(dest))
        except OSError as e:
            return StoreOutcome(path=original, handle=handle, error=classify_os_error(original, e))

        info_path.unlink(missing_ok=True)
        logger.debug("Restored %s from recovery store", original)
        return StoreOutcome(path=original, handle=handle)

    def bulk_restore(self, handles: list[str] | None = None) -> list[StoreOutcome]:
        if handles is None:
            handles = [e.handle for e in self.entries()]
        return [self.restore(handle) for handle in handles]

    def size_of(self, handle: str) -> int:
        try:
            return int(json.loads(self._info_path(handle).read_text()).get("size_bytes", 0))
        except (OSError, ValueError):
            return 0


class SystemTrash(SoftDeleteStore):
    """The platform trash / recycle bin, reached through send2trash."""

    supports_restore = False

    def soft_delete(
        self, paths: list[str], sizes: dict[str, int] | None = None
    ) -> list[StoreOutcome]:
        outcomes = []
        for path in paths:
            if not os.path.lexists(path):
                outcomes.append(StoreOutcome(path=path, error=NotFound(path)))
                continue
            try:
                send2trash(path)
            except TrashPermissionError as e:
                outcomes.append(StoreOutcome(path=path, error=AccessDenied(path, str(e))))
            except OSError as e:
                outcomes.append(StoreOutcome(path=path, error=classify_os_error(path, e)))
            else:
                outcomes.append(StoreOutcome(path=path))
        return outcomes

    def restore(self, handle: str) -> StoreOutcome:
        raise RestoreUnsupported("Items sent to the system trash must be restored from the trash itself")

    def bulk_restore(self, handles: list[str] | None = None) -> list[StoreOutcome]:
        raise RestoreUnsupported("Items sent to the system trash must be restored from the trash itself")
